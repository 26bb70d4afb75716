"""Database repositories for data access."""

from loginguard.db.repositories.attempts import (
    MATCH_ALL,
    MATCH_ANY,
    count_attempts,
    delete_attempts_for_pair,
    insert_attempt,
    latest_attempt_time,
    purge_attempts_older_than,
)
from loginguard.db.repositories.security_log import (
    SecurityEventType,
    Severity,
    filter_sensitive_context,
    list_security_events,
    log_or_update_security_event,
    log_security_event,
)

__all__ = [
    # Attempts
    "MATCH_ALL",
    "MATCH_ANY",
    "count_attempts",
    "latest_attempt_time",
    "insert_attempt",
    "delete_attempts_for_pair",
    "purge_attempts_older_than",
    # Security log
    "SecurityEventType",
    "Severity",
    "filter_sensitive_context",
    "list_security_events",
    "log_security_event",
    "log_or_update_security_event",
]
