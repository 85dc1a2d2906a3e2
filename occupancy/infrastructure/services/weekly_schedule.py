"""
Weekly Schedule - Infrastructure Layer

Opening hours with separate weekday and weekend values. Public holidays
follow the Bavarian calendar and use the weekend hours.
"""

from datetime import date, datetime, timedelta, tzinfo
from typing import Union
from zoneinfo import ZoneInfo

from dateutil.easter import easter

# (month, day)
FIXED_HOLIDAYS = frozenset(
    {
        (1, 1),  # New Year
        (1, 6),  # Epiphany
        (5, 1),  # Labour Day
        (8, 15),  # Assumption Day
        (10, 3),  # German Unity Day
        (11, 1),  # All Saints' Day
        (12, 25),  # Christmas Day
        (12, 26),  # 2nd Day of Christmas
    }
)

# Days relative to Easter Sunday: Good Friday, Easter Monday, Ascension,
# Whit Monday, Corpus Christi.
EASTER_OFFSETS = (-2, 1, 39, 50, 60)


def is_bavarian_holiday(day: date) -> bool:
    """Whether ``day`` is a public holiday in Bavaria."""
    if (day.month, day.day) in FIXED_HOLIDAYS:
        return True
    easter_sunday = easter(day.year)
    return any(day == easter_sunday + timedelta(days=o) for o in EASTER_OFFSETS)


class WeeklySchedule:
    """Schedule with weekday and weekend/holiday opening hours."""

    def __init__(
        self,
        weekday_open: int = 6,
        weekday_close: int = 23,
        weekend_open: int = 9,
        weekend_close: int = 21,
        timezone: Union[str, tzinfo] = "Europe/Berlin",
    ):
        if not weekday_open < weekday_close:
            raise ValueError("weekday_open must be before weekday_close")
        if not weekend_open < weekend_close:
            raise ValueError("weekend_open must be before weekend_close")

        self.weekday_open = weekday_open
        self.weekday_close = weekday_close
        self.weekend_open = weekend_open
        self.weekend_close = weekend_close
        self._timezone = ZoneInfo(timezone) if isinstance(timezone, str) else timezone

    @property
    def timezone(self) -> tzinfo:
        return self._timezone

    def _uses_weekend_hours(self, day: date) -> bool:
        return day.weekday() >= 5 or is_bavarian_holiday(day)

    def open_hour(self, day: date) -> int:
        if self._uses_weekend_hours(day):
            return self.weekend_open
        return self.weekday_open

    def close_hour(self, day: date) -> int:
        if self._uses_weekend_hours(day):
            return self.weekend_close
        return self.weekday_close

    def is_holiday(self, day: date) -> bool:
        return is_bavarian_holiday(day)

    def is_open(self, local_dt: datetime) -> bool:
        """
        Whether the facility is open at ``local_dt``.

        Open from the opening hour up to and including minute zero of the
        closing hour. Aware datetimes are converted to the schedule's zone.
        """
        if local_dt.tzinfo is not None:
            local_dt = local_dt.astimezone(self._timezone)
        day = local_dt.date()
        open_hour = self.open_hour(day)
        close_hour = self.close_hour(day)
        hour = local_dt.hour
        return open_hour <= hour < close_hour or (
            hour == close_hour and local_dt.minute == 0
        )
