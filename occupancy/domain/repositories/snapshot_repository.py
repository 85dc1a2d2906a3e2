"""
Model Snapshot Repository Interface

Abstracts where trained-model snapshots are kept so that the training
use case does not depend on a particular storage medium.
"""

from abc import ABC, abstractmethod

from occupancy.domain.entities.snapshot import ModelSnapshot


class IModelSnapshotRepository(ABC):
    """Interface for model snapshot storage."""

    @abstractmethod
    def save(self, snapshot: ModelSnapshot) -> str:
        """
        Persist a snapshot, replacing any previous one.

        Args:
            snapshot: The snapshot to store

        Returns:
            A reference (e.g. file path) to the stored snapshot

        Raises:
            SnapshotFormatError: If the snapshot cannot be serialized
            PersistenceError: If the storage medium cannot be written
        """
        pass

    @abstractmethod
    def load(self) -> ModelSnapshot:
        """
        Load the stored snapshot.

        Raises:
            SnapshotNotFoundError: If nothing has been stored yet
            SnapshotVersionError: If the snapshot has a newer format version
            SnapshotFormatError: If the stored payload is invalid
        """
        pass

    @abstractmethod
    def exists(self) -> bool:
        """Whether a snapshot has been stored."""
        pass
