"""
Occupancy Record Store Interface

This module defines the narrow read/write contract the repair engine, the
insights use case and the training pipeline use to access raw occupancy
samples. Implementations are expected to provide read-your-writes
consistency within one logical session.
"""

from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import List, Sequence, Tuple
from uuid import UUID

from occupancy.domain.entities.occupancy import Sample, SlotAverage


class IRecordStore(ABC):
    """Interface for occupancy record store implementations."""

    @abstractmethod
    async def insert(self, timestamp: datetime, value: float) -> UUID:
        """
        Insert a single sample.

        Args:
            timestamp: UTC instant of the sample
            value: Occupancy percentage

        Returns:
            The identity of the new sample
        """
        pass

    @abstractmethod
    async def batch_insert(self, samples: Sequence[Tuple[datetime, float]]) -> int:
        """
        Insert several samples in one round trip.

        Args:
            samples: ``(utc_timestamp, value)`` pairs

        Returns:
            Number of inserted samples
        """
        pass

    @abstractmethod
    async def update_value(self, sample_id: UUID, value: float) -> None:
        """Overwrite the value of an existing sample."""
        pass

    @abstractmethod
    async def records_for_local_date(self, local_date: date) -> List[Sample]:
        """
        Return every sample whose local wall-clock date is ``local_date``.

        The local zone is the one the store was configured with; the result
        is ordered by timestamp.
        """
        pass

    @abstractmethod
    async def records_between(self, start: datetime, end: datetime) -> List[Sample]:
        """Return the samples in the UTC range ``[start, end)`` ordered by time."""
        pass

    @abstractmethod
    async def slot_averages(self, start: datetime, end: datetime) -> List[SlotAverage]:
        """
        Aggregate the samples in the UTC range ``[start, end)`` per slot.

        Slots are keyed by the UTC weekday (Monday = 0) and UTC hour of each
        sample.
        """
        pass
