"""
LoginGuard application factory.

FastAPI application with structured logging, error handling and the
brute-force protected login endpoint.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI

from loginguard.api import CredentialVerifier, create_login_router
from loginguard.config import get_settings
from loginguard.core import get_logger, setup_logging
from loginguard.core.middleware import RequestContextMiddleware, setup_exception_handlers
from loginguard.db import dispose_engine, verify_database_connection

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown."""
    settings = get_settings()

    setup_logging(
        level=settings.log_level,
        json_output=not settings.debug,
        log_file=settings.log_file or None,
    )
    config = settings.login_limit_config()
    logger.info(
        "Starting LoginGuard",
        data={
            "environment": settings.environment,
            "login_limit_enabled": config.enabled,
            "max_attempts_per_ip": config.max_attempts_per_ip,
            "lockout_duration_minutes": config.lockout_duration_minutes,
            "max_attempts_per_username": config.max_attempts_per_username,
            "trusted_proxies": len(config.trusted_proxies),
        },
    )

    # Does NOT run migrations
    if verify_database_connection():
        logger.info("Database connection verified")
    else:
        logger.warning(
            "Database connection failed - run 'alembic upgrade head' to initialize"
        )

    yield

    logger.info("Shutting down LoginGuard")
    dispose_engine()


def create_app(verify_credentials: CredentialVerifier | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        verify_credentials: Host credential check. Without one the login
            endpoint is not mounted.
    """
    settings = get_settings()

    app = FastAPI(
        title="LoginGuard",
        description="Login brute-force protection gate",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    # Must be before middleware
    setup_exception_handlers(app)
    app.add_middleware(RequestContextMiddleware)

    @app.get("/health", tags=["health"])
    async def health() -> dict[str, Any]:
        return {"status": "ok"}

    if verify_credentials is not None:
        app.include_router(create_login_router(verify_credentials))

    return app
