"""
Security event sinks.

The guard reports what it sees (failures, blocks, distributed attacks) to a
sink. Aggregated events are folded into one entry per event type and IP.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from loginguard.core.errors import StorageError
from loginguard.core.logging import get_logger
from loginguard.db.repositories.security_log import (
    SecurityEventType,
    Severity,
    log_or_update_security_event,
    log_security_event,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class SecurityEvent:
    event_type: str
    severity: str
    message: str
    context: dict[str, Any] = field(default_factory=dict)
    occurred_at: datetime | None = None
    user_id: str | None = None

    @property
    def ip_address(self) -> str | None:
        return self.context.get("ip_address")

    @property
    def username(self) -> str | None:
        return self.context.get("username")


def login_failed_event(
    ip_address: str,
    username: str,
    user_exists: bool | None,
    now: datetime,
    user_id: str | None = None,
) -> SecurityEvent:
    context: dict[str, Any] = {"ip_address": ip_address, "username": username}
    if user_exists is not None:
        context["user_exists"] = user_exists
    message = (
        "Failed login attempt (unknown user)"
        if user_exists is False
        else "Failed login attempt"
    )
    return SecurityEvent(
        SecurityEventType.LOGIN_FAILED, Severity.WARNING, message, context, now, user_id
    )


def login_blocked_event(
    ip_address: str, username: str, layer: str, now: datetime
) -> SecurityEvent:
    return SecurityEvent(
        SecurityEventType.LOGIN_BLOCKED,
        Severity.CRITICAL,
        "Login attempt blocked due to rate limiting",
        {
            "ip_address": ip_address,
            "username": username,
            "reason": "too_many_attempts",
            "layer": layer,
        },
        now,
    )


def distributed_brute_force_event(
    username: str, attempts: int, window_minutes: int, ip_address: str, now: datetime
) -> SecurityEvent:
    return SecurityEvent(
        SecurityEventType.DISTRIBUTED_BRUTE_FORCE,
        Severity.CRITICAL,
        "Distributed brute force attack detected on username",
        {
            "username": username,
            "attempts": attempts,
            "window_minutes": window_minutes,
            "ip_address": ip_address,
        },
        now,
    )


class SecurityEventSink(Protocol):
    def emit(self, event: SecurityEvent) -> None:
        """Record a standalone event."""
        ...

    def emit_aggregated(self, event: SecurityEvent) -> None:
        """Record an event, folding repeats from the same IP together."""
        ...


class SqlSecurityLog:
    """Sink that writes to the ``security_log`` table."""

    def __init__(self, db: Session):
        self._db = db

    def _write(self, writer, event: SecurityEvent) -> None:
        try:
            writer(
                self._db,
                event.event_type,
                event.severity,
                event.message,
                context=event.context,
                ip_address=event.ip_address,
                username=event.username,
                user_id=event.user_id,
                now=event.occurred_at,
            )
        except SQLAlchemyError as exc:
            try:
                self._db.rollback()
            except SQLAlchemyError:
                logger.warning(
                    "Rollback after failed security_log write also failed", exc_info=True
                )
            raise StorageError(f"security_log write failed: {exc}") from exc

    def emit(self, event: SecurityEvent) -> None:
        self._write(log_security_event, event)

    def emit_aggregated(self, event: SecurityEvent) -> None:
        self._write(log_or_update_security_event, event)


class LoggingSecurityLog:
    """Sink that only writes to the application log."""

    def emit(self, event: SecurityEvent) -> None:
        logger.warning(event.message, data={"event": event.event_type, **event.context})

    def emit_aggregated(self, event: SecurityEvent) -> None:
        self.emit(event)
