"""Domain entities describing the progress and outcome of a repair job."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date


@dataclass(frozen=True, slots=True)
class RepairProgress:
    """Emitted before each calendar day of a repair job is processed."""

    current_day: date
    total_days: int
    processed_days: int


@dataclass(slots=True)
class RepairSummary:
    """Counters accumulated over one repair invocation."""

    days_processed: int = 0
    gaps_filled: int = 0
    records_zeroed: int = 0
    end_entries_added: int = 0
    cancelled: bool = False

    @property
    def has_changes(self) -> bool:
        return bool(self.gaps_filled or self.records_zeroed or self.end_entries_added)


@dataclass(slots=True)
class DayRepairResult:
    """Changes applied to a single calendar day."""

    gaps_filled: int = 0
    records_zeroed: int = 0
    end_entry_added: bool = False
