"""
Security log repository for brute-force and lockout events.
"""

import json
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from loginguard.core.time import utcnow
from loginguard.db.models import SecurityLogEntry


class SecurityEventType:
    """Security event type constants."""

    LOGIN_FAILED = "login_failed"
    LOGIN_BLOCKED = "login_blocked"
    DISTRIBUTED_BRUTE_FORCE = "distributed_brute_force_detected"


class Severity:
    """Severity levels, lowest first."""

    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"

    ORDER = (INFO, WARNING, CRITICAL)


REDACTED = "[REDACTED]"
SENSITIVE_KEYS = ("password", "pass", "token", "secret", "key", "auth", "cookie", "session")
MAX_CONTEXT_DEPTH = 10


def normalize_severity(severity: str) -> str:
    """Unknown severities are stored as info."""
    return severity if severity in Severity.ORDER else Severity.INFO


def escalate_severity(current: str, incoming: str) -> str:
    """Return the higher of two severities."""
    return max(
        normalize_severity(current),
        normalize_severity(incoming),
        key=Severity.ORDER.index,
    )


def filter_sensitive_context(context: dict[str, Any], depth: int = 0) -> dict[str, Any]:
    """Replace values under sensitive-looking keys before persisting."""
    if depth >= MAX_CONTEXT_DEPTH:
        return {}
    filtered: dict[str, Any] = {}
    for key, value in context.items():
        lowered = str(key).lower()
        if any(marker in lowered for marker in SENSITIVE_KEYS):
            filtered[key] = REDACTED
        elif isinstance(value, dict):
            filtered[key] = filter_sensitive_context(value, depth + 1)
        else:
            filtered[key] = value
    return filtered


def _encode_context(context: dict[str, Any] | None) -> str | None:
    if not context:
        return None
    return json.dumps(filter_sensitive_context(context), default=str)


def log_security_event(
    db: Session,
    event_type: str,
    severity: str,
    message: str,
    *,
    context: dict[str, Any] | None = None,
    ip_address: str | None = None,
    username: str | None = None,
    user_id: str | None = None,
    now: datetime | None = None,
) -> SecurityLogEntry:
    """
    Create a security log entry.

    Args:
        db: Database session.
        event_type: Event being logged (use SecurityEventType constants).
        severity: info, warning or critical.
        message: Human-readable summary.
        context: Additional details (stored as JSON, sensitive keys redacted).
        ip_address: Client IP address.
        username: Submitted username, if any.
        user_id: Resolved account ID, if known.
        now: Timestamp override, defaults to current UTC time.

    Returns:
        Created SecurityLogEntry.
    """
    timestamp = now or utcnow()
    entry = SecurityLogEntry(
        event_type=event_type,
        severity=normalize_severity(severity),
        message=message,
        ip_address=ip_address,
        username=username,
        user_id=user_id,
        context=_encode_context(context),
        occurrence_count=1,
        first_seen=timestamp,
        timestamp=timestamp,
    )
    db.add(entry)
    db.commit()
    return entry


def log_or_update_security_event(
    db: Session,
    event_type: str,
    severity: str,
    message: str,
    *,
    context: dict[str, Any] | None = None,
    ip_address: str | None = None,
    username: str | None = None,
    user_id: str | None = None,
    now: datetime | None = None,
) -> SecurityLogEntry:
    """
    Aggregate repeated events from the same IP into a single entry.

    The most recent entry with the same event type and IP address gets its
    occurrence count bumped, its timestamp, message and context refreshed,
    and its severity escalated (never lowered). Without a match a new
    entry is created.
    """
    timestamp = now or utcnow()
    stmt = (
        select(SecurityLogEntry)
        .where(
            SecurityLogEntry.event_type == event_type,
            SecurityLogEntry.ip_address == ip_address,
        )
        .order_by(SecurityLogEntry.timestamp.desc(), SecurityLogEntry.id.desc())
        .limit(1)
    )
    existing = db.execute(stmt).scalar_one_or_none()
    if existing is None:
        return log_security_event(
            db,
            event_type,
            severity,
            message,
            context=context,
            ip_address=ip_address,
            username=username,
            user_id=user_id,
            now=timestamp,
        )

    merged = dict(context or {})
    merged["last_seen"] = timestamp.isoformat()

    existing.occurrence_count += 1
    existing.severity = escalate_severity(existing.severity, severity)
    existing.message = message
    existing.context = _encode_context(merged)
    existing.timestamp = timestamp
    if username is not None:
        existing.username = username
    if user_id is not None:
        existing.user_id = user_id
    db.commit()
    return existing


def list_security_events(
    db: Session,
    *,
    event_type: str | None = None,
    limit: int = 200,
    offset: int = 0,
) -> list[SecurityLogEntry]:
    """Return recent security events, newest first."""
    stmt = select(SecurityLogEntry)
    if event_type is not None:
        stmt = stmt.where(SecurityLogEntry.event_type == event_type)
    stmt = (
        stmt.order_by(SecurityLogEntry.timestamp.desc(), SecurityLogEntry.id.desc())
        .limit(limit)
        .offset(offset)
    )
    return list(db.execute(stmt).scalars().all())
