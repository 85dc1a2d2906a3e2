"""Domain ports (protocols) implemented by infrastructure services."""

from .clock import IClock
from .schedule import IScheduleProvider

__all__ = ["IClock", "IScheduleProvider"]
