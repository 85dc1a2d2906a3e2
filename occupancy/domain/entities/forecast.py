"""
Domain Entities - Forecast

This module defines the entities of the forecasting pipeline: the fixed
feature vector fed to the regression model, the fitted model itself and the
confidence-scored predictions returned to callers.
"""

from dataclasses import astuple, dataclass, fields
from datetime import datetime
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np

from occupancy.domain.entities.errors import ComputationError

FALLBACK_CONFIDENCE = 0.5


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


@dataclass(slots=True)
class ForecastConfig:
    """Tuning of the forecasting pipeline."""

    enabled: bool = True
    training_window_days: int = 56
    retrain_interval_hours: int = 24
    prediction_horizon_hours: int = 6
    min_samples_for_training: int = 500
    validation_split: float = 0.2
    recent_window_size: int = 180
    model_path: Optional[str] = None
    fallback_on_error: bool = True


@dataclass(slots=True)
class PredictionFeatures:
    """Features extracted for one (target time, horizon) pair.

    Field order is the order of the model's input vector.
    """

    hour_sin: float
    hour_cos: float
    weekday_sin: float
    weekday_cos: float
    historical_avg: float
    historical_std: float
    recent_avg_1h: float
    recent_avg_3h: float
    recent_trend: float
    day_avg_so_far: float
    prev_day_avg: float
    is_weekend: float
    is_holiday: float
    week_of_year_sin: float
    week_of_year_cos: float
    hours_ahead: float

    NUM_FEATURES = 16

    def to_vector(self) -> List[float]:
        return [float(v) for v in astuple(self)]

    @classmethod
    def feature_names(cls) -> List[str]:
        return [f.name for f in fields(cls)]


@dataclass(frozen=True, slots=True)
class ModelBased:
    """Prediction produced by the trained regression model."""

    confidence: float

    @property
    def is_model(self) -> bool:
        return True


@dataclass(frozen=True, slots=True)
class HistoricalAverage:
    """Prediction taken directly from the slot's historical average."""

    @property
    def confidence(self) -> float:
        return FALLBACK_CONFIDENCE

    @property
    def is_model(self) -> bool:
        return False


PredictionMethod = Union[ModelBased, HistoricalAverage]


@dataclass(slots=True)
class PredictionWithConfidence:
    """A single hourly forecast with its confidence band.

    Values are clamped on construction: ``predicted_value`` and the bounds to
    ``[0, 100]`` and ``confidence_score`` to ``[0, 1]``.
    """

    timestamp: datetime
    predicted_value: float
    confidence_low: float
    confidence_high: float
    confidence_score: float
    method: PredictionMethod

    def __post_init__(self) -> None:
        self.predicted_value = _clamp(self.predicted_value, 0.0, 100.0)
        self.confidence_low = _clamp(self.confidence_low, 0.0, 100.0)
        self.confidence_high = _clamp(self.confidence_high, 0.0, 100.0)
        self.confidence_score = _clamp(self.confidence_score, 0.0, 1.0)

    def is_valid(self) -> bool:
        return (
            0.0 <= self.confidence_low <= self.predicted_value
            and self.predicted_value <= self.confidence_high <= 100.0
            and 0.0 <= self.confidence_score <= 1.0
        )

    @property
    def interval_width(self) -> float:
        return self.confidence_high - self.confidence_low

    def to_simple(self) -> Tuple[datetime, float]:
        return (self.timestamp, self.predicted_value)


@dataclass(frozen=True, slots=True)
class TrainedModel:
    """An ordinary least squares model fitted on ``PredictionFeatures``."""

    coefficients: Tuple[float, ...]
    intercept: float
    training_mse: float
    training_sample_count: int
    created_at: datetime
    validation_mse: Optional[float] = None

    def predict(self, features: PredictionFeatures) -> float:
        """Predict occupancy for a single feature vector."""
        value = float(
            np.dot(np.asarray(self.coefficients), np.asarray(features.to_vector()))
            + self.intercept
        )
        if not np.isfinite(value):
            raise ComputationError(
                "Model produced a non-finite prediction",
                details={"value": value},
            )
        return value

    def predict_batch(self, features: Sequence[PredictionFeatures]) -> List[float]:
        """Predict occupancy for several feature vectors at once."""
        if not features:
            return []
        matrix = np.asarray([f.to_vector() for f in features], dtype=float)
        return (matrix @ np.asarray(self.coefficients) + self.intercept).tolist()

    def info(self) -> str:
        validation = (
            f"{self.validation_mse:.2f}" if self.validation_mse is not None else "N/A"
        )
        return (
            f"TrainedModel(samples={self.training_sample_count}, "
            f"train_mse={self.training_mse:.2f}, val_mse={validation}, "
            f"created={self.created_at:%Y-%m-%d %H:%M})"
        )
