"""Domain entities for raw occupancy samples and per-slot aggregates."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Tuple
from uuid import UUID

# (weekday 0=Monday..6=Sunday, hour 0..23)
Slot = Tuple[int, int]


@dataclass(slots=True)
class Sample:
    """A single occupancy reading as stored by the record store."""

    id: UUID
    timestamp: datetime
    value: float


@dataclass(frozen=True, slots=True)
class SlotAverage:
    """Mean occupancy of one (weekday, hour) slot over a UTC range."""

    weekday: int
    hour: int
    mean_percentage: float
    sample_count: int

    @property
    def slot(self) -> Slot:
        return (self.weekday, self.hour)


@dataclass(frozen=True, slots=True)
class SlotStatistics:
    """Grouped mean and sample standard deviation for a slot."""

    mean: float
    std_dev: float
    sample_count: int
