from enum import Enum
from typing import Tuple


class EnumEnvironment(str, Enum):
    DEVELOPMENT = "development"
    TESTING = "testing"
    STAGING = "staging"
    PRODUCTION = "production"


class EnumLogLevel(str, Enum):
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


# Indexed by weekday, 0=Monday.
WEEKDAY_NAMES: Tuple[str, ...] = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)

WEEKDAY_SHORT_NAMES: Tuple[str, ...] = tuple(name[:3] for name in WEEKDAY_NAMES)


def weekday_name(weekday: int) -> str:
    """Full weekday label, or "Unknown" outside 0..6."""
    if 0 <= weekday < len(WEEKDAY_NAMES):
        return WEEKDAY_NAMES[weekday]
    return "Unknown"


def weekday_short(weekday: int) -> str:
    """Three letter weekday label, or "???" outside 0..6."""
    if 0 <= weekday < len(WEEKDAY_SHORT_NAMES):
        return WEEKDAY_SHORT_NAMES[weekday]
    return "???"
