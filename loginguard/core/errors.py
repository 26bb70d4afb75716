"""
Structured error handling with stable error codes.

No stack traces are exposed to clients. All errors are mapped to
stable, documented error codes for reliable client handling.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Stable error codes for API responses."""

    # General errors (1xxx)
    INTERNAL_ERROR = "E1000"
    VALIDATION_ERROR = "E1001"
    NOT_FOUND = "E1002"
    METHOD_NOT_ALLOWED = "E1003"
    RATE_LIMITED = "E1005"

    # Authentication errors (2xxx)
    UNAUTHORIZED = "E2000"
    INVALID_CREDENTIALS = "E2001"
    LOGIN_LOCKED = "E2011"

    # Authorization errors (3xxx)
    FORBIDDEN = "E3000"


@dataclass(frozen=True)
class ErrorResponse:
    """Structured error response for API.

    Format: {error: {code, message, request_id, details?}}
    """

    code: ErrorCode
    message: str
    request_id: str | None = None
    details: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON response."""
        error: dict[str, Any] = {
            "code": self.code.value,
            "message": self.message,
        }
        if self.request_id:
            error["request_id"] = self.request_id
        if self.details:
            error["details"] = self.details
        return {"error": error}


class AppError(Exception):
    """Base application error with structured error detail."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        status_code: int = 500,
        details: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ):
        self.code = code
        self.message = message
        self.status_code = status_code
        self.details = details
        self.headers = headers or {}
        super().__init__(message)

    def to_response(self, request_id: str | None = None) -> ErrorResponse:
        """Create error response with request ID."""
        return ErrorResponse(
            code=self.code,
            message=self.message,
            request_id=request_id,
            details=self.details,
        )


class ValidationError(AppError):
    """Validation error (400)."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(ErrorCode.VALIDATION_ERROR, message, 400, details)


class InvalidCredentialsError(AppError):
    """Invalid credentials (401)."""

    def __init__(self, message: str = "Invalid username or password"):
        super().__init__(ErrorCode.INVALID_CREDENTIALS, message, 401)


def lockout_message(retry_after_minutes: int) -> str:
    """User-facing lockout text. Must not depend on whether the account exists."""
    unit = "minute" if retry_after_minutes == 1 else "minutes"
    return (
        "Too many failed login attempts. "
        f"Please try again in {retry_after_minutes} {unit}."
    )


class LoginLockedError(AppError):
    """Login attempts temporarily blocked (429)."""

    def __init__(self, retry_after_minutes: int):
        self.retry_after_minutes = retry_after_minutes
        super().__init__(
            ErrorCode.LOGIN_LOCKED,
            lockout_message(retry_after_minutes),
            429,
            details={"retry_after_minutes": retry_after_minutes},
            headers={"Retry-After": str(retry_after_minutes * 60)},
        )


class StorageError(Exception):
    """A storage round-trip failed. Never shown to clients."""
