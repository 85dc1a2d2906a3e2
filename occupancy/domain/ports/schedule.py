"""Domain port for the opening-hours and holiday calendar."""

from __future__ import annotations

from datetime import date, datetime, tzinfo
from typing import Protocol


class IScheduleProvider(Protocol):
    """Opening hours of the facility, in its local time zone."""

    @property
    def timezone(self) -> tzinfo:
        """Local zone in which the schedule's hours are expressed."""
        ...

    def is_open(self, local_dt: datetime) -> bool:
        """Whether the facility is open at the given local instant."""
        ...

    def open_hour(self, day: date) -> int:
        ...

    def close_hour(self, day: date) -> int:
        ...

    def is_holiday(self, day: date) -> bool:
        ...
