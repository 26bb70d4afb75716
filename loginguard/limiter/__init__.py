"""Login attempt limiting."""

from loginguard.limiter.client_ip import (
    INVALID_IP,
    client_ip_from_request,
    is_valid_ip,
    normalize_ip,
    resolve_client_ip,
)
from loginguard.limiter.events import (
    LoggingSecurityLog,
    SecurityEvent,
    SecurityEventSink,
    SqlSecurityLog,
)
from loginguard.limiter.guard import (
    LAYER_IP,
    LAYER_USERNAME,
    LockoutDecision,
    LoginGuard,
    clean_username,
)
from loginguard.limiter.store import (
    AttemptFilter,
    AttemptStore,
    MemoryAttemptStore,
    SqlAttemptStore,
)
from loginguard.limiter.window import WindowCounter

__all__ = [
    # Client IP
    "INVALID_IP",
    "client_ip_from_request",
    "is_valid_ip",
    "normalize_ip",
    "resolve_client_ip",
    # Events
    "LoggingSecurityLog",
    "SecurityEvent",
    "SecurityEventSink",
    "SqlSecurityLog",
    # Guard
    "LAYER_IP",
    "LAYER_USERNAME",
    "LockoutDecision",
    "LoginGuard",
    "clean_username",
    # Store
    "AttemptFilter",
    "AttemptStore",
    "MemoryAttemptStore",
    "SqlAttemptStore",
    "WindowCounter",
]
