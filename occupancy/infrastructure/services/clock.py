"""
Clock implementations - Infrastructure Layer

``SystemClock`` reads the wall clock; ``FixedClock`` holds a settable instant
so that time-dependent behaviour can be reproduced.
"""

from datetime import datetime, timedelta, timezone, tzinfo


class SystemClock:
    """Clock backed by the system time."""

    def __init__(self, local_timezone: tzinfo):
        self.local_timezone = local_timezone

    def now_utc(self) -> datetime:
        return datetime.now(timezone.utc)

    def now_local(self) -> datetime:
        return self.now_utc().astimezone(self.local_timezone)


class FixedClock:
    """Clock that returns a controllable instant."""

    def __init__(self, current: datetime, local_timezone: tzinfo = timezone.utc):
        """
        Args:
            current: Initial instant; must be timezone-aware
            local_timezone: Zone used by ``now_local``
        """
        self.local_timezone = local_timezone
        self.set_time(current)

    def set_time(self, current: datetime) -> None:
        if current.tzinfo is None:
            raise ValueError("FixedClock requires a timezone-aware datetime")
        self._current = current.astimezone(timezone.utc)

    def advance(self, delta: timedelta) -> None:
        self._current = self._current + delta

    def now_utc(self) -> datetime:
        return self._current

    def now_local(self) -> datetime:
        return self._current.astimezone(self.local_timezone)
