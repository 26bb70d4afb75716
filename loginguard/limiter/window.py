"""Sliding-window counting over the attempt store."""

from datetime import datetime, timedelta

from loginguard.config import RETENTION_HOURS
from loginguard.core.time import Clock, ceil_minutes, utcnow
from loginguard.limiter.store import AttemptFilter, AttemptStore


class WindowCounter:
    """Counts attempts inside a trailing window ending at ``clock()``."""

    def __init__(
        self,
        store: AttemptStore,
        clock: Clock = utcnow,
        retention: timedelta = timedelta(hours=RETENTION_HOURS),
    ):
        self.store = store
        self.clock = clock
        self.retention = retention

    def _cutoff(self, now: datetime, window: timedelta) -> datetime:
        # Rows past retention are purge candidates and never count.
        return now - min(window, self.retention)

    def count(self, criteria: AttemptFilter, window: timedelta) -> int:
        now = self.clock()
        return self.store.count(criteria, self._cutoff(now, window))

    def retry_after_minutes(self, criteria: AttemptFilter, window: timedelta) -> int:
        """
        Whole minutes (rounded up) until the newest matching attempt leaves
        the window. Zero means nothing is holding a lock.
        """
        now = self.clock()
        latest = self.store.latest(criteria, self._cutoff(now, window))
        if latest is None:
            return 0
        return ceil_minutes(latest + window - now)
