"""
FastAPI application for the flashcards engine.

Provides:
- Tool calls: POST /tools/<tool_name> with a JSON arguments object
- Resources: GET /resources/available-tags, /resources/due-date-progress
- Health: GET /, GET /health
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger

from config import get_settings
from flashcards.api.routers import resources_router, tools_router
from flashcards.errors import (
    InvalidRequestError,
    NotFoundError,
    SelectionError,
    StorageIOError,
)
from flashcards.oracle import FSRSOracle
from flashcards.service import FlashcardService
from flashcards.state_store import StateStore

SERVICE_NAME = "flashcards"
SERVICE_VERSION = "1.0.0"


def build_service() -> FlashcardService:
    """Load the store named in settings and wrap it in a service."""
    settings = get_settings()
    store = StateStore(settings.resolved_data_file())
    store.load()
    oracle = FSRSOracle(
        request_retention=settings.request_retention,
        maximum_interval=settings.maximum_interval,
    )
    return FlashcardService(store, oracle)


def _register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(NotFoundError)
    async def _not_found(request: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"error": str(exc)})

    @app.exception_handler(InvalidRequestError)
    async def _invalid(request: Request, exc: InvalidRequestError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"error": str(exc)})

    @app.exception_handler(SelectionError)
    async def _nothing_to_select(request: Request, exc: SelectionError) -> JSONResponse:
        # Not a failure of the call: report it with the current stats
        return JSONResponse(
            status_code=200,
            content={"error": str(exc), "stats": exc.stats.to_dict()},
        )

    @app.exception_handler(StorageIOError)
    async def _storage(request: Request, exc: StorageIOError) -> JSONResponse:
        logger.error(f"Storage failure during {request.url.path}: {exc}")
        return JSONResponse(status_code=500, content={"error": str(exc)})


def create_app(service: FlashcardService | None = None) -> FastAPI:
    """
    Build the API.

    Args:
        service: Pre-built service (tests); otherwise one is loaded from
            settings at startup
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "service", None) is None:
            app.state.service = build_service()
        logger.info(f"Flashcards API ready (data file: {app.state.service.store.file_path})")
        yield
        logger.info("Shutting down flashcards API...")

    app = FastAPI(
        title="Flashcards",
        description="Spaced-repetition flashcards exposed as tool calls.",
        version=SERVICE_VERSION,
        lifespan=lifespan,
    )
    app.state.service = service

    _register_error_handlers(app)

    # ========================================
    # Health & Status Endpoints
    # ========================================

    @app.get("/", tags=["Health"])
    def root() -> dict[str, str]:
        """Root endpoint returning service info."""
        return {"service": SERVICE_NAME, "version": SERVICE_VERSION, "status": "ok"}

    @app.get("/health", tags=["Health"])
    def health_check(request: Request) -> dict[str, Any]:
        svc: FlashcardService = request.app.state.service
        return {
            "status": "healthy",
            "timestamp": datetime.now(UTC).isoformat(),
            "data_file": str(svc.store.file_path),
            "stats": svc.get_stats().to_dict(),
        }

    app.include_router(tools_router.router, prefix="/tools", tags=["Tools"])
    app.include_router(resources_router.router, prefix="/resources", tags=["Resources"])

    return app
