"""DTOs for the persisted model snapshot format."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from occupancy.domain.entities.snapshot import (
    CURRENT_SNAPSHOT_VERSION,
    ModelSnapshot,
    ModelSummary,
    SerializedSlotStats,
)


class SlotStatisticsDTO(BaseModel):
    """Serialized statistics of one (weekday, hour) slot."""

    weekday: int = Field(ge=0, le=6, description="Weekday, Monday = 0")
    hour: int = Field(ge=0, le=23, description="Hour of day (UTC)")
    mean: float = Field(description="Mean occupancy percentage")
    std_dev: float = Field(ge=0.0, description="Sample standard deviation")
    sample_count: int = Field(ge=0, description="Number of grouped values")

    @classmethod
    def from_domain(cls, stats: SerializedSlotStats) -> "SlotStatisticsDTO":
        return cls(
            weekday=stats.weekday,
            hour=stats.hour,
            mean=stats.mean,
            std_dev=stats.std_dev,
            sample_count=stats.sample_count,
        )

    def to_domain(self) -> SerializedSlotStats:
        return SerializedSlotStats(
            weekday=self.weekday,
            hour=self.hour,
            mean=self.mean,
            std_dev=self.std_dev,
            sample_count=self.sample_count,
        )


class ModelSummaryDTO(BaseModel):
    """Descriptive metadata about the fitted model."""

    model_type: str = Field(default="LinearRegression")
    fit_intercept: bool = Field(default=True)
    feature_names: List[str] = Field(default_factory=list)
    feature_importance: Optional[List[float]] = Field(default=None)

    @classmethod
    def from_domain(cls, summary: ModelSummary) -> "ModelSummaryDTO":
        return cls(
            model_type=summary.model_type,
            fit_intercept=summary.fit_intercept,
            feature_names=list(summary.feature_names),
            feature_importance=summary.feature_importance,
        )

    def to_domain(self) -> ModelSummary:
        return ModelSummary(
            model_type=self.model_type,
            fit_intercept=self.fit_intercept,
            feature_names=list(self.feature_names),
            feature_importance=self.feature_importance,
        )

    model_config = {"protected_namespaces": ()}


class ModelSnapshotDTO(BaseModel):
    """Versioned on-disk representation of a training run."""

    version: int = Field(default=CURRENT_SNAPSHOT_VERSION, ge=1)
    created_at: datetime
    training_window_days: int = Field(ge=0)
    training_sample_count: int = Field(ge=0)
    training_mse: float
    validation_mse: Optional[float] = None
    slot_stats: List[SlotStatisticsDTO] = Field(default_factory=list)
    model_summary: ModelSummaryDTO = Field(default_factory=ModelSummaryDTO)

    @field_validator("created_at")
    @classmethod
    def _require_timezone(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            raise ValueError("created_at must be timezone-aware")
        return value

    @classmethod
    def from_domain(cls, snapshot: ModelSnapshot) -> "ModelSnapshotDTO":
        return cls(
            version=snapshot.version,
            created_at=snapshot.created_at,
            training_window_days=snapshot.training_window_days,
            training_sample_count=snapshot.training_sample_count,
            training_mse=snapshot.training_mse,
            validation_mse=snapshot.validation_mse,
            slot_stats=[SlotStatisticsDTO.from_domain(s) for s in snapshot.slot_stats],
            model_summary=ModelSummaryDTO.from_domain(snapshot.model_summary),
        )

    def to_domain(self) -> ModelSnapshot:
        return ModelSnapshot(
            version=self.version,
            created_at=self.created_at,
            training_window_days=self.training_window_days,
            training_sample_count=self.training_sample_count,
            training_mse=self.training_mse,
            validation_mse=self.validation_mse,
            slot_stats=[s.to_domain() for s in self.slot_stats],
            model_summary=self.model_summary.to_domain(),
        )

    model_config = {
        "protected_namespaces": (),
        "json_schema_extra": {
            "example": {
                "version": 1,
                "created_at": "2024-06-03T10:00:00Z",
                "training_window_days": 56,
                "training_sample_count": 64512,
                "training_mse": 41.7,
                "validation_mse": 48.2,
                "slot_stats": [
                    {
                        "weekday": 0,
                        "hour": 17,
                        "mean": 62.5,
                        "std_dev": 0.0,
                        "sample_count": 1,
                    }
                ],
                "model_summary": {
                    "model_type": "LinearRegression",
                    "fit_intercept": True,
                    "feature_names": ["hour_sin", "hour_cos"],
                    "feature_importance": None,
                },
            }
        },
    }
