"""
FastAPI application for QA Tracker.
"""

from __future__ import annotations

import importlib.metadata
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy import Engine
from sqlalchemy.exc import SQLAlchemyError

from .applications.routes import router as applications_router
from .bugs.routes import router as bug_reports_router
from .config import Settings, get_settings
from .core.errors import InfrastructureError, QATrackerError, ValidationError
from .core.logging import configure_logging
from .db.base import get_engine, get_session_local, init_database
from .notifications.channels import EmailSender, WhatsAppSender
from .notifications.dispatcher import NotificationDispatcher
from .realtime.presence import PresenceHub
from .realtime.routes import router as realtime_router
from .uploads.routes import router as uploads_router
from .uploads.storage import ScreenshotStorage
from .users.routes import auth_router
from .users.routes import router as qa_users_router

logger = structlog.get_logger()


def _version() -> str:
    return importlib.metadata.version("qa-tracker")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings: Settings = app.state.settings
    configure_logging(settings)
    logger.info("qa_tracker_starting", environment=settings.environment)

    await init_database(app.state.engine)

    yield

    logger.info("qa_tracker_stopping", pending_notifications=app.state.notifier.pending)
    await app.state.notifier.aclose()
    logger.info("shutdown_complete")


def _format_validation_error(exc: RequestValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ()) if item != "body")
        parts.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return "; ".join(parts) or "Invalid request"


def install_exception_handlers(app: FastAPI) -> None:
    """Render domain errors as ``{"detail": ..., "code": ...}``."""

    @app.exception_handler(QATrackerError)
    async def handle_domain_error(request: Request, exc: QATrackerError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("request_failed", path=request.url.path, error=exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        error = ValidationError(_format_validation_error(exc))
        return JSONResponse(status_code=error.status_code, content=error.to_dict())

    @app.exception_handler(SQLAlchemyError)
    async def handle_database_error(request: Request, exc: SQLAlchemyError) -> JSONResponse:
        logger.error("database_error", path=request.url.path, error=str(exc))
        error = InfrastructureError("Database operation failed")
        return JSONResponse(status_code=error.status_code, content=error.to_dict())


def create_app(settings: Optional[Settings] = None, engine: Optional[Engine] = None) -> FastAPI:
    """Build the application and its services.

    Args:
        settings: Settings to use, defaults to :func:`get_settings`.
        engine: Database engine, defaults to the engine for ``DATABASE_URL``.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="Bug tracking and fix validation for QA teams",
        version=_version(),
        lifespan=lifespan,
    )

    engine = engine or get_engine()
    session_factory = get_session_local(engine)
    presence = PresenceHub()
    email_sender = EmailSender(settings)
    whatsapp_sender = WhatsAppSender(settings)

    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.presence = presence
    app.state.email_sender = email_sender
    app.state.whatsapp_sender = whatsapp_sender
    app.state.notifier = NotificationDispatcher(
        session_factory, email_sender, whatsapp_sender, settings, realtime=presence
    )
    app.state.screenshot_storage = ScreenshotStorage(
        settings.upload_dir, settings.upload_max_files, settings.upload_max_file_size
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    install_exception_handlers(app)

    for router in (
        auth_router,
        applications_router,
        bug_reports_router,
        qa_users_router,
        uploads_router,
        realtime_router,
    ):
        app.include_router(router, prefix=settings.api_prefix)

    app.mount(
        "/uploads",
        StaticFiles(directory=settings.upload_dir, check_dir=False),
        name="uploads",
    )

    @app.get("/health", tags=["system"])
    async def health() -> dict:
        """Basic health check endpoint."""
        return {"status": "ok"}

    @app.get("/version", tags=["system"])
    def version() -> dict[str, str]:
        """Return the version of the application."""
        return {"version": _version()}

    return app


app = create_app()
