from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Protocol

# Smallest step PostgreSQL timestamptz can represent.
TICK = timedelta(microseconds=1)


class Clock(Protocol):
    def now(self) -> datetime: ...


class SystemClock:
    """Default wall-clock implementation."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


def strictly_after(candidate: datetime, previous: datetime | None) -> datetime:
    """Return ``candidate``, bumped past ``previous`` if the clock stalled or went back."""
    if previous is not None and candidate <= previous:
        return previous + TICK
    return candidate
