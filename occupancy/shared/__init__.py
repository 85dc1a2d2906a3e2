"""
Shared module - Cross-cutting concerns / Shared Layer

Constants, enums and logging helpers used by every other layer. This package
must not depend on the domain, application or infrastructure layers.
"""

from .consts import (
    WEEKDAY_NAMES,
    WEEKDAY_SHORT_NAMES,
    EnumEnvironment,
    EnumLogLevel,
    weekday_name,
    weekday_short,
)
from .logging import configure_logging, get_logger, update_logging_from_settings

__all__ = [
    "EnumEnvironment",
    "EnumLogLevel",
    "WEEKDAY_NAMES",
    "WEEKDAY_SHORT_NAMES",
    "weekday_name",
    "weekday_short",
    "configure_logging",
    "get_logger",
    "update_logging_from_settings",
]
