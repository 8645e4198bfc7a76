"""Injectable clocks.

Services take a zero-argument callable returning an aware datetime. The
system clock is the default; tests pass a FixedClock.
"""

import datetime as dt
from typing import Callable


Clock = Callable[[], dt.datetime]


def utc_now() -> dt.datetime:
    """Current time as an aware UTC datetime."""
    return dt.datetime.now(dt.timezone.utc)


class FixedClock:
    """Clock frozen at a given instant, advanced explicitly."""

    def __init__(self, now: dt.datetime):
        self._now = now

    def __call__(self) -> dt.datetime:
        return self._now

    def advance(self, **delta: float) -> dt.datetime:
        self._now = self._now + dt.timedelta(**delta)
        return self._now

    def set(self, now: dt.datetime) -> None:
        self._now = now
