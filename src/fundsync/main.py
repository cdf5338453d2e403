"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from fundsync import __version__
from fundsync.api.routers import funds_router, holdings_router, portfolio_router
from fundsync.config.logging_config import setup_logging
from fundsync.config.settings import get_settings
from fundsync.core.exceptions import (
    AppError,
    DuplicateHoldingError,
    FetchError,
    NotFoundError,
)
from fundsync.repositories.sqlalchemy.database import init_db
from fundsync.sync_context import SyncContext


def _status_for(exc: AppError) -> int:
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, DuplicateHoldingError):
        return 409
    if isinstance(exc, FetchError):
        return 502
    return 400


def create_app(context: Optional[SyncContext] = None) -> FastAPI:
    """
    Build the API application.

    With no context, the lifespan handler creates the database and a
    SyncContext on startup and closes it on shutdown. A context passed in
    is used as is and left open. With auto_refresh enabled, valuations are
    refreshed in the background from startup until shutdown.
    """
    settings = get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler."""
        # Startup
        setup_logging()
        owned = getattr(app.state, "context", None) is None
        if owned:
            init_db(settings)
            app.state.context = SyncContext(settings=settings)
        sync_context = app.state.context
        if not sync_context.is_initialized:
            sync_context.initialize()
        if sync_context.settings.auto_refresh:
            sync_context.start_auto_refresh()
        yield
        # Shutdown
        sync_context.stop_auto_refresh()
        if owned:
            app.state.context.close()
            app.state.context = None

    app = FastAPI(
        title=settings.app_name,
        description="Local-first fund holdings tracker with periodic valuation sync",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.context = context

    app.include_router(holdings_router)
    app.include_router(portfolio_router)
    app.include_router(funds_router)

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        """Global handler for application errors."""
        return JSONResponse(
            status_code=_status_for(exc),
            content={"error": exc.code, "message": exc.message},
        )

    @app.get("/health")
    def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "healthy"}

    @app.get("/")
    def root() -> dict[str, str]:
        """Root endpoint with API info."""
        return {
            "app": settings.app_name,
            "version": __version__,
            "docs": "/docs",
        }

    return app


app = create_app()
