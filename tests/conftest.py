"""Shared fixtures: in-memory database, controllable clock, event recorder."""

from datetime import datetime, timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from loginguard.db import models  # noqa: F401
from loginguard.db.base import Base
from loginguard.limiter import MemoryAttemptStore, SqlAttemptStore

START = datetime(2026, 1, 15, 12, 0, 0)


class FakeClock:
    """Naive UTC clock that only moves when told to."""

    def __init__(self, start: datetime = START):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class RecordingSink:
    """SecurityEventSink that keeps everything in memory."""

    def __init__(self):
        self.events = []
        self.aggregated = []

    def emit(self, event) -> None:
        self.events.append(event)

    def emit_aggregated(self, event) -> None:
        self.aggregated.append(event)

    def of_type(self, event_type: str) -> list:
        return [e for e in self.events + self.aggregated if e.event_type == event_type]


class DeadSession:
    """Session whose connection is gone: every call fails, rollback included."""

    def __getattr__(self, name):
        def fail(*args, **kwargs):
            raise OperationalError("SELECT 1", {}, Exception("server closed the connection"))

        return fail


@pytest.fixture
def engine():
    """Fresh in-memory SQLite database with all tables."""
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(engine):
    SessionLocal = sessionmaker(bind=engine, expire_on_commit=False)
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture(params=["memory", "sql"])
def store(request, db_session):
    """Every store-level behavior must hold for both backends."""
    if request.param == "memory":
        return MemoryAttemptStore()
    return SqlAttemptStore(db_session)
