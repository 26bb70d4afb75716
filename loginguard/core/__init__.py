"""Core utilities: logging, errors, time and middleware."""

from loginguard.core.errors import (
    AppError,
    ErrorCode,
    ErrorResponse,
    InvalidCredentialsError,
    LoginLockedError,
    StorageError,
    ValidationError,
    lockout_message,
)
from loginguard.core.logging import (
    ContextLogger,
    client_ip_ctx,
    get_logger,
    request_id_ctx,
    setup_logging,
)
from loginguard.core.time import Clock, ceil_minutes, utcnow

__all__ = [
    # Errors
    "AppError",
    "ErrorCode",
    "ErrorResponse",
    "InvalidCredentialsError",
    "LoginLockedError",
    "StorageError",
    "ValidationError",
    "lockout_message",
    # Logging
    "ContextLogger",
    "client_ip_ctx",
    "get_logger",
    "request_id_ctx",
    "setup_logging",
    # Time
    "Clock",
    "ceil_minutes",
    "utcnow",
]
