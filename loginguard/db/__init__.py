"""Database models, engine, and session management."""

from loginguard.db.base import Base
from loginguard.db.engine import (
    create_db_engine,
    dispose_engine,
    get_engine,
    verify_database_connection,
)
from loginguard.db.models import LoginAttempt, SecurityLogEntry
from loginguard.db.session import (
    get_db,
    get_session_factory,
    reset_session_factory,
    session_scope,
)

__all__ = [
    # Base
    "Base",
    # Engine
    "create_db_engine",
    "get_engine",
    "verify_database_connection",
    "dispose_engine",
    # Session
    "get_db",
    "get_session_factory",
    "reset_session_factory",
    "session_scope",
    # Models
    "LoginAttempt",
    "SecurityLogEntry",
]
