"""
Attempt store backends.

The limiter talks to storage through the small ``AttemptStore`` protocol so
the SQL table can be swapped for anything that can count rows by key and
time. Backends raise ``StorageError`` and nothing else.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from loginguard.core.errors import StorageError
from loginguard.core.logging import get_logger
from loginguard.db.repositories import attempts as attempts_repo
from loginguard.db.repositories.attempts import MATCH_ALL, MATCH_ANY

logger = get_logger(__name__)


@dataclass(frozen=True)
class AttemptFilter:
    """Which attempt rows a query applies to."""

    ip_address: str | None = None
    username: str | None = None
    match: str = MATCH_ANY

    @classmethod
    def combined(cls, ip_address: str, username: str) -> AttemptFilter:
        """ip == X OR username == Y."""
        return cls(ip_address=ip_address, username=username, match=MATCH_ANY)

    @classmethod
    def username_only(cls, username: str) -> AttemptFilter:
        return cls(username=username)

    @classmethod
    def exact_pair(cls, ip_address: str, username: str) -> AttemptFilter:
        """ip == X AND username == Y."""
        return cls(ip_address=ip_address, username=username, match=MATCH_ALL)

    def matches(self, ip_address: str, username: str) -> bool:
        checks = []
        if self.ip_address is not None:
            checks.append(ip_address == self.ip_address)
        if self.username is not None:
            checks.append(username == self.username)
        if not checks:
            return False
        return any(checks) if self.match == MATCH_ANY else all(checks)


@dataclass(frozen=True)
class AttemptRecord:
    ip_address: str
    username: str
    attempt_time: datetime


class AttemptStore(Protocol):
    """Storage operations the limiter needs."""

    def count(self, criteria: AttemptFilter, since: datetime) -> int:
        ...

    def latest(self, criteria: AttemptFilter, since: datetime) -> datetime | None:
        ...

    def insert(self, ip_address: str, username: str, attempt_time: datetime) -> None:
        ...

    def delete_pair(self, ip_address: str, username: str) -> int:
        ...

    def purge_older_than(self, cutoff: datetime) -> int:
        ...


class SqlAttemptStore:
    """AttemptStore backed by the ``login_attempts`` table."""

    def __init__(self, db: Session):
        self._db = db

    def _fail(self, operation: str, exc: SQLAlchemyError) -> StorageError:
        try:
            self._db.rollback()
        except SQLAlchemyError:
            logger.warning(
                "Rollback after failed login_attempts %s also failed", operation, exc_info=True
            )
        return StorageError(f"login_attempts {operation} failed: {exc}")

    def count(self, criteria: AttemptFilter, since: datetime) -> int:
        try:
            return attempts_repo.count_attempts(
                self._db,
                since=since,
                ip_address=criteria.ip_address,
                username=criteria.username,
                match=criteria.match,
            )
        except SQLAlchemyError as exc:
            raise self._fail("count", exc) from exc

    def latest(self, criteria: AttemptFilter, since: datetime) -> datetime | None:
        try:
            return attempts_repo.latest_attempt_time(
                self._db,
                since=since,
                ip_address=criteria.ip_address,
                username=criteria.username,
                match=criteria.match,
            )
        except SQLAlchemyError as exc:
            raise self._fail("latest", exc) from exc

    def insert(self, ip_address: str, username: str, attempt_time: datetime) -> None:
        try:
            attempts_repo.insert_attempt(
                self._db,
                ip_address=ip_address,
                username=username,
                attempt_time=attempt_time,
            )
        except SQLAlchemyError as exc:
            raise self._fail("insert", exc) from exc

    def delete_pair(self, ip_address: str, username: str) -> int:
        try:
            return attempts_repo.delete_attempts_for_pair(
                self._db, ip_address=ip_address, username=username
            )
        except SQLAlchemyError as exc:
            raise self._fail("delete", exc) from exc

    def purge_older_than(self, cutoff: datetime) -> int:
        try:
            return attempts_repo.purge_attempts_older_than(self._db, cutoff)
        except SQLAlchemyError as exc:
            raise self._fail("purge", exc) from exc


class MemoryAttemptStore:
    """
    In-process AttemptStore for single-worker hosts and tests.

    The lock only keeps the list consistent; it does not serialize the
    limiter's count-then-insert sequence.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._records: list[AttemptRecord] = []

    def _matching(self, criteria: AttemptFilter, since: datetime) -> list[AttemptRecord]:
        return [
            r
            for r in self._records
            if r.attempt_time > since and criteria.matches(r.ip_address, r.username)
        ]

    def count(self, criteria: AttemptFilter, since: datetime) -> int:
        with self._lock:
            return len(self._matching(criteria, since))

    def latest(self, criteria: AttemptFilter, since: datetime) -> datetime | None:
        with self._lock:
            matching = self._matching(criteria, since)
        return max((r.attempt_time for r in matching), default=None)

    def insert(self, ip_address: str, username: str, attempt_time: datetime) -> None:
        with self._lock:
            self._records.append(AttemptRecord(ip_address, username, attempt_time))

    def delete_pair(self, ip_address: str, username: str) -> int:
        pair = AttemptFilter.exact_pair(ip_address, username)
        with self._lock:
            before = len(self._records)
            self._records = [
                r for r in self._records if not pair.matches(r.ip_address, r.username)
            ]
            return before - len(self._records)

    def purge_older_than(self, cutoff: datetime) -> int:
        with self._lock:
            before = len(self._records)
            self._records = [r for r in self._records if r.attempt_time >= cutoff]
            return before - len(self._records)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
