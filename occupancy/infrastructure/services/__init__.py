"""
Services package - Infrastructure Layer

Concrete clock and schedule implementations of the domain ports.
"""

from occupancy.infrastructure.services.clock import FixedClock, SystemClock
from occupancy.infrastructure.services.weekly_schedule import (
    WeeklySchedule,
    is_bavarian_holiday,
)

__all__ = ["FixedClock", "SystemClock", "WeeklySchedule", "is_bavarian_holiday"]
