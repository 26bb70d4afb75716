"""
SQLAlchemy ORM models.

Defines the login attempt log and the security event log.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from loginguard.core.time import utcnow
from loginguard.db.base import Base

IP_ADDRESS_LENGTH = 100
USERNAME_LENGTH = 255


class LoginAttempt(Base):
    """One failed login attempt. Rows are never updated."""

    __tablename__ = "login_attempts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    ip_address: Mapped[str] = mapped_column(String(IP_ADDRESS_LENGTH), nullable=False)
    username: Mapped[str] = mapped_column(String(USERNAME_LENGTH), nullable=False)
    attempt_time: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=utcnow
    )

    __table_args__ = (
        Index("ix_login_attempts_ip_address", "ip_address"),
        Index("ix_login_attempts_username", "username"),
        Index("ix_login_attempts_attempt_time", "attempt_time"),
        Index("ix_login_attempts_ip_time", "ip_address", "attempt_time"),
        Index("ix_login_attempts_user_time", "username", "attempt_time"),
    )


class SecurityLogEntry(Base):
    """Security event, optionally aggregated by event type and IP."""

    __tablename__ = "security_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_type: Mapped[str] = mapped_column(String(64), nullable=False)
    severity: Mapped[str] = mapped_column(
        String(20), nullable=False, default="info"
    )  # info, warning, critical
    message: Mapped[str] = mapped_column(Text, nullable=False)
    ip_address: Mapped[str | None] = mapped_column(String(IP_ADDRESS_LENGTH), nullable=True)
    username: Mapped[str | None] = mapped_column(String(USERNAME_LENGTH), nullable=True)
    user_id: Mapped[str | None] = mapped_column(String(36), nullable=True)
    context: Mapped[str | None] = mapped_column(Text, nullable=True)  # JSON
    occurrence_count: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    first_seen: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    timestamp: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        Index("ix_security_log_event_type", "event_type"),
        Index("ix_security_log_ip_address", "ip_address"),
        Index("ix_security_log_timestamp", "timestamp"),
        Index("ix_security_log_event_ip", "event_type", "ip_address"),
    )
