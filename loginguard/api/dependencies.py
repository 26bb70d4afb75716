"""
FastAPI dependencies for login limiting.

Each request gets its own LoginGuard bound to the request's DB session.
"""

from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from loginguard.config import LoginLimitConfig, get_settings
from loginguard.core import client_ip_ctx
from loginguard.db import get_db
from loginguard.limiter import (
    LoginGuard,
    SqlAttemptStore,
    SqlSecurityLog,
    client_ip_from_request,
)


def get_limit_config() -> LoginLimitConfig:
    """Snapshot the login limiting options from cached settings."""
    return get_settings().login_limit_config()


async def get_client_ip(
    request: Request,
    config: Annotated[LoginLimitConfig, Depends(get_limit_config)],
) -> str:
    """
    Resolve the rate-limit identity, honoring trusted proxies only.

    Async so the context variable is set on the request task and is
    visible to the (threadpool) endpoint and its log records.
    """
    ip_address = client_ip_from_request(request, config.trusted_networks)
    client_ip_ctx.set(ip_address)
    return ip_address


def get_login_guard(
    db: Annotated[Session, Depends(get_db)],
    config: Annotated[LoginLimitConfig, Depends(get_limit_config)],
) -> LoginGuard:
    """Build a LoginGuard backed by the database."""
    return LoginGuard(SqlAttemptStore(db), config, SqlSecurityLog(db))


# Type aliases for cleaner route signatures
ClientIP = Annotated[str, Depends(get_client_ip)]
Guard = Annotated[LoginGuard, Depends(get_login_guard)]
