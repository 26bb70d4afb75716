"""Clock helpers.

Attempt timestamps are stored naive but always in UTC, and every window
comparison happens against ``utcnow()``. Anything that needs "now" takes a
``Clock`` so tests can pin it.
"""

from __future__ import annotations

import math
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    """Naive UTC datetime (tzinfo stripped)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def ceil_minutes(delta: timedelta) -> int:
    """Whole minutes in ``delta`` rounded up; zero for non-positive deltas."""
    seconds = delta.total_seconds()
    if seconds <= 0:
        return 0
    return math.ceil(seconds / 60)
