"""FastAPI application factory."""

import logging
import time
import uuid
from typing import Optional

from fastapi import FastAPI, Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from vaultnote import __version__
from vaultnote.api.deps import build_services
from vaultnote.api.errors import register_exception_handlers
from vaultnote.api.routes import api_router
from vaultnote.config import VaultNoteConfig, config
from vaultnote.observability import metrics
from vaultnote.services.mailer import Mailer

logger = logging.getLogger(__name__)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log method, path, status and duration of every request."""

    SKIP_PATHS = {"/ping", "/health", "/docs", "/redoc", "/openapi.json", "/favicon.ico"}

    async def dispatch(self, request: Request, call_next) -> Response:
        if request.url.path in self.SKIP_PATHS:
            return await call_next(request)

        request_id = uuid.uuid4().hex[:8]
        start_time = time.time()
        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(
                f"[{request_id}] {request.method} {request.url.path} raised "
                f"{type(e).__name__} after {duration_ms:.1f}ms"
            )
            raise

        duration_ms = (time.time() - start_time) * 1000
        logger.info(
            f"[{request_id}] {request.method} {request.url.path} "
            f"{response.status_code} {duration_ms:.1f}ms"
        )
        return response


def create_application(
    settings: Optional[VaultNoteConfig] = None,
    engine=None,
    mailer: Optional[Mailer] = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Configuration to use; defaults to the global config.
        engine: SQLAlchemy engine to share across repositories. A new one
            is created from the settings when omitted.
        mailer: Verification code delivery; built from the settings when
            omitted.
    """
    settings = settings or config

    app = FastAPI(
        title=settings.server_name,
        description="Note vault backend: accounts, vaults, notes and links",
        version=__version__,
    )
    app.state.settings = settings
    app.state.services = build_services(settings, engine=engine, mailer=mailer)

    app.add_middleware(RequestLoggingMiddleware)
    app.include_router(api_router)
    register_exception_handlers(app, expose_details=settings.expose_error_details)

    @app.get("/ping")
    def ping():
        return {"message": "pong"}

    @app.get("/health")
    def health_check():
        return {
            "status": "healthy",
            "version": __version__,
            "metrics": metrics.snapshot(),
        }

    return app
