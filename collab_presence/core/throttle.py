"""Leading-edge throttle.

The first event in a window passes immediately; every later event is
dropped (not queued, not coalesced) until ``interval`` has elapsed since
the last accepted one.  State is per instance so independent trackers
never share a window.
"""

from __future__ import annotations

from datetime import datetime, timedelta


class LeadingEdgeThrottle:
    __slots__ = ("_interval", "_last_accepted")

    def __init__(self, interval: timedelta = timedelta(milliseconds=500)) -> None:
        if interval < timedelta(0):
            raise ValueError("interval must not be negative")
        self._interval = interval
        self._last_accepted: datetime | None = None

    @property
    def interval(self) -> timedelta:
        return self._interval

    @property
    def last_accepted(self) -> datetime | None:
        return self._last_accepted

    def try_acquire(self, now: datetime) -> bool:
        """Return True and open a new window if *now* is outside the current one."""
        if self._last_accepted is not None and now - self._last_accepted < self._interval:
            return False
        self._last_accepted = now
        return True

    def reset(self) -> None:
        self._last_accepted = None
