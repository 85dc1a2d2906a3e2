"""
File Model Snapshot Repository - Infrastructure Layer

Stores the latest model snapshot as a JSON document on the local file system.
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional, Union

import structlog
from pydantic import TypeAdapter, ValidationError

from occupancy.application.dtos.snapshot_dto import ModelSnapshotDTO
from occupancy.domain.entities.errors import (
    PersistenceError,
    SnapshotFormatError,
    SnapshotNotFoundError,
    SnapshotVersionError,
)
from occupancy.domain.entities.snapshot import CURRENT_SNAPSHOT_VERSION, ModelSnapshot
from occupancy.domain.repositories.snapshot_repository import IModelSnapshotRepository

logger = structlog.get_logger(__name__)

_VERSION_ADAPTER = TypeAdapter(int)


def _declared_version(data: Dict[str, Any]) -> Optional[int]:
    """Read the format version with the same coercion the DTO applies."""
    if "version" not in data:
        return None
    try:
        return _VERSION_ADAPTER.validate_python(data["version"])
    except ValidationError:
        return None


class FileModelSnapshotRepository(IModelSnapshotRepository):
    """JSON file implementation of the snapshot repository."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def save(self, snapshot: ModelSnapshot) -> str:
        try:
            payload = ModelSnapshotDTO.from_domain(snapshot).model_dump_json(indent=2)
        except ValidationError as e:
            raise SnapshotFormatError(
                f"Failed to serialize model snapshot: {str(e)}",
                details={"path": str(self.path)},
            ) from e

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(payload, encoding="utf-8")
        except OSError as e:
            raise PersistenceError(
                f"Failed to write model snapshot: {str(e)}",
                details={"path": str(self.path)},
            ) from e

        logger.info(
            "snapshot.saved",
            path=str(self.path),
            samples=snapshot.training_sample_count,
        )
        return str(self.path)

    def load(self) -> ModelSnapshot:
        if not self.path.exists():
            raise SnapshotNotFoundError(str(self.path))

        try:
            raw = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise PersistenceError(
                f"Failed to read model snapshot: {str(e)}",
                details={"path": str(self.path)},
            ) from e

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise SnapshotFormatError(
                f"Failed to deserialize model: {str(e)}",
                details={"path": str(self.path)},
            ) from e

        if not isinstance(data, dict):
            raise SnapshotFormatError(
                "Failed to deserialize model: expected a JSON object",
                details={"path": str(self.path)},
            )

        version = _declared_version(data)
        if version is not None and version > CURRENT_SNAPSHOT_VERSION:
            raise SnapshotVersionError(CURRENT_SNAPSHOT_VERSION, version)

        try:
            snapshot = ModelSnapshotDTO.model_validate(data).to_domain()
        except ValidationError as e:
            raise SnapshotFormatError(
                f"Failed to deserialize model: {str(e)}",
                details={"path": str(self.path)},
            ) from e

        logger.info("snapshot.loaded", path=str(self.path), version=snapshot.version)
        return snapshot

    def exists(self) -> bool:
        return self.path.is_file()
