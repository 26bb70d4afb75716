"""
Login attempt repository.

Append-only log of failed logins, queried by count and purged by age or
by exact (ip, username) pair.
"""

from datetime import datetime

from sqlalchemy import and_, delete, func, or_, select
from sqlalchemy.orm import Session
from sqlalchemy.sql.elements import ColumnElement

from loginguard.db.models import LoginAttempt

MATCH_ANY = "any"
MATCH_ALL = "all"


def _key_clause(
    ip_address: str | None, username: str | None, match: str
) -> ColumnElement[bool]:
    clauses = []
    if ip_address is not None:
        clauses.append(LoginAttempt.ip_address == ip_address)
    if username is not None:
        clauses.append(LoginAttempt.username == username)
    if not clauses:
        raise ValueError("At least one of ip_address or username is required")
    if len(clauses) == 1:
        return clauses[0]
    return or_(*clauses) if match == MATCH_ANY else and_(*clauses)


def count_attempts(
    db: Session,
    *,
    since: datetime,
    ip_address: str | None = None,
    username: str | None = None,
    match: str = MATCH_ANY,
) -> int:
    """Count attempts newer than ``since`` matching the given keys."""
    stmt = select(func.count(LoginAttempt.id)).where(
        _key_clause(ip_address, username, match),
        LoginAttempt.attempt_time > since,
    )
    return int(db.execute(stmt).scalar_one())


def latest_attempt_time(
    db: Session,
    *,
    since: datetime,
    ip_address: str | None = None,
    username: str | None = None,
    match: str = MATCH_ANY,
) -> datetime | None:
    """Return the most recent matching attempt time newer than ``since``."""
    stmt = select(func.max(LoginAttempt.attempt_time)).where(
        _key_clause(ip_address, username, match),
        LoginAttempt.attempt_time > since,
    )
    return db.execute(stmt).scalar_one_or_none()


def insert_attempt(
    db: Session, *, ip_address: str, username: str, attempt_time: datetime
) -> LoginAttempt:
    """Record one failed attempt."""
    attempt = LoginAttempt(
        ip_address=ip_address,
        username=username,
        attempt_time=attempt_time,
    )
    db.add(attempt)
    db.commit()
    return attempt


def delete_attempts_for_pair(db: Session, *, ip_address: str, username: str) -> int:
    """
    Delete attempts for one exact (ip, username) pair.

    Returns:
        Number of rows deleted.
    """
    stmt = delete(LoginAttempt).where(
        _key_clause(ip_address, username, MATCH_ALL)
    )
    result = db.execute(stmt)
    db.commit()
    return result.rowcount


def purge_attempts_older_than(db: Session, cutoff: datetime) -> int:
    """
    Delete every attempt recorded before ``cutoff``.

    Returns:
        Number of rows deleted.
    """
    stmt = delete(LoginAttempt).where(LoginAttempt.attempt_time < cutoff)
    result = db.execute(stmt)
    db.commit()
    return result.rowcount

