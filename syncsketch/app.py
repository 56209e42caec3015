from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from syncsketch import __version__
from syncsketch.core.config import Settings, get_settings
from syncsketch.core.error_handlers import register_error_handlers
from syncsketch.core.logging_config import configure_logging
from syncsketch.core.utils import isoformat, utcnow
from syncsketch.db.create_tables import create_all
from syncsketch.routers import auth as auth_router
from syncsketch.routers import connection as connection_router
from syncsketch.services.auth_service import AuthService
from syncsketch.services.connection_service import ConnectionService
from syncsketch.services.notification_service import NotificationService

logger = logging.getLogger(__name__)

DEV_ORIGINS = (
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Inject baseline security headers (anti clickjacking, sniffing, referrer policy)."""

    def __init__(self, app, *, enforce_hsts: bool) -> None:
        super().__init__(app)
        self._enforce_hsts = enforce_hsts

    async def dispatch(self, request, call_next):
        response = await call_next(request)
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        if self._enforce_hsts:
            response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    create_all(app.state.settings.database_url)
    logger.info("SyncSketch API ready (%s)", app.state.settings.app_env)
    yield


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings)

    app = FastAPI(title="SyncSketch API", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.auth_service = AuthService(settings=settings, notifications=NotificationService(settings))
    app.state.connection_service = ConnectionService(settings=settings)

    allowed_cors = set(settings.cors_origins)
    if not settings.is_production:
        allowed_cors.update(DEV_ORIGINS)
    if allowed_cors:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=sorted(allowed_cors),
            allow_credentials=True,
            allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
            allow_headers=["*"],
        )
    app.add_middleware(SecurityHeadersMiddleware, enforce_hsts=settings.is_production)
    register_error_handlers(app)

    app.include_router(auth_router.router)
    app.include_router(connection_router.router)

    @app.get("/health", tags=["health"])
    def health():
        return {
            "status": "success",
            "message": "Server is running",
            "environment": settings.app_env,
            "timestamp": isoformat(utcnow()),
        }

    return app


app = create_app()
