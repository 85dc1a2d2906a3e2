"""Repository interfaces for the occupancy domain."""

from .record_store import IRecordStore
from .snapshot_repository import IModelSnapshotRepository

__all__ = ["IRecordStore", "IModelSnapshotRepository"]
