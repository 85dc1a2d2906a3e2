"""
Repositories package - Infrastructure Layer

This package contains the concrete implementations of the domain's
repository interfaces.
"""

from occupancy.infrastructure.repositories.model_snapshot_repository import (
    FileModelSnapshotRepository,
)
from occupancy.infrastructure.repositories.occupancy_record_repository import (
    MongoOccupancyRecordRepository,
)

__all__ = ["FileModelSnapshotRepository", "MongoOccupancyRecordRepository"]
