"""Tool-style HTTP API for the flashcards engine."""

from .main import create_app

__all__ = ["create_app"]
