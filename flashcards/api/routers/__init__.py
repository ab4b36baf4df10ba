"""API routers for the flashcards service."""

from flashcards.api.routers import resources_router, tools_router

__all__ = [
    "tools_router",
    "resources_router",
]
