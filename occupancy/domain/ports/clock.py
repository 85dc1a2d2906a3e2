"""Domain port for reading the current time."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol


class IClock(Protocol):
    """Source of the current instant; core logic never reads the wall clock."""

    def now_utc(self) -> datetime:
        """Current time as an aware UTC datetime."""
        ...

    def now_local(self) -> datetime:
        """Current time as an aware datetime in the configured local zone."""
        ...
