"""
Domain Entities - Model Snapshot

A versioned, forward-compatible record of a training run. The snapshot keeps
summary metadata and per-slot statistics only; fitted coefficients are not
part of the persisted format.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

CURRENT_SNAPSHOT_VERSION = 1


@dataclass(slots=True)
class SerializedSlotStats:
    """Per-slot statistics as stored in a snapshot."""

    weekday: int
    hour: int
    mean: float
    std_dev: float
    sample_count: int


@dataclass(slots=True)
class ModelSummary:
    """Descriptive metadata about the fitted model."""

    model_type: str = "LinearRegression"
    fit_intercept: bool = True
    feature_names: List[str] = field(default_factory=list)
    feature_importance: Optional[List[float]] = None


@dataclass(slots=True)
class ModelSnapshot:
    """Persistable metadata of one trained model."""

    created_at: datetime
    training_window_days: int
    training_sample_count: int
    training_mse: float
    validation_mse: Optional[float] = None
    slot_stats: List[SerializedSlotStats] = field(default_factory=list)
    model_summary: ModelSummary = field(default_factory=ModelSummary)
    version: int = CURRENT_SNAPSHOT_VERSION

    def age_hours(self, now: datetime) -> int:
        """Whole hours elapsed since the snapshot was created."""
        return int((now - self.created_at).total_seconds() // 3600)

    def is_stale(self, max_age_hours: int, now: datetime) -> bool:
        return self.age_hours(now) > max_age_hours

    def summary(self) -> str:
        validation = (
            f"{self.validation_mse:.2f}" if self.validation_mse is not None else "N/A"
        )
        return (
            f"Model v{self.version}: {self.training_sample_count} samples, "
            f"train_mse={self.training_mse:.2f}, val_mse={validation}, "
            f"created {self.created_at:%Y-%m-%d %H:%M} UTC"
        )
