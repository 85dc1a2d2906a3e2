"""
Application Use Cases - Occupancy Prediction

This module contains the predictor that combines the trained regression
model with the deterministic historical-average fallback. The predictor is
single-owner state: callers must serialize ``add_observation``,
``update_baseline`` and ``predict``.
"""

from collections import deque
from datetime import datetime, timedelta
from typing import Deque, List, Optional, Sequence, Tuple

import structlog

from occupancy.domain.entities.errors import ComputationError
from occupancy.domain.entities.forecast import (
    ForecastConfig,
    HistoricalAverage,
    ModelBased,
    PredictionWithConfidence,
    TrainedModel,
)
from occupancy.domain.entities.occupancy import SlotAverage
from occupancy.domain.ports.clock import IClock
from occupancy.domain.ports.schedule import IScheduleProvider
from occupancy.domain.services.feature_extractor import FeatureExtractor

logger = structlog.get_logger(__name__)

DEFAULT_MODEL_STD = 15.0
DEFAULT_FALLBACK_STD = 10.0
HORIZON_PENALTY_PER_HOUR = 0.15
CONFIDENCE_SCALE = 20.0
FALLBACK_SCORE = 0.5
DEFAULT_PREDICTION = (50.0, 30.0, 70.0)


def normalize_timestamp(dt: datetime) -> datetime:
    """Truncate a timestamp to the start of its hour."""
    return dt.replace(minute=0, second=0, microsecond=0)


class OccupancyPredictor:
    """Produces confidence-scored hourly forecasts."""

    def __init__(self, config: Optional[ForecastConfig] = None):
        self.config = config or ForecastConfig()
        self.feature_extractor = FeatureExtractor()
        self._model: Optional[TrainedModel] = None
        self._last_training: Optional[datetime] = None
        self._recent: Deque[Tuple[datetime, float]] = deque(
            maxlen=self.config.recent_window_size
        )

    @property
    def model(self) -> Optional[TrainedModel]:
        return self._model

    @property
    def has_model(self) -> bool:
        return self._model is not None

    @property
    def can_use_model(self) -> bool:
        return self.config.enabled and self._model is not None

    @property
    def last_training(self) -> Optional[datetime]:
        return self._last_training

    @property
    def recent_observations(self) -> List[Tuple[datetime, float]]:
        return list(self._recent)

    def needs_retraining(self, clock: IClock) -> bool:
        """True if never trained or the retrain interval has elapsed."""
        if self._last_training is None:
            return True
        elapsed = clock.now_utc() - self._last_training
        hours_since = int(elapsed.total_seconds() // 3600)
        return hours_since >= self.config.retrain_interval_hours

    def set_model(self, model: TrainedModel, trained_at: datetime) -> None:
        """Replace the current model wholesale."""
        self._model = model
        self._last_training = trained_at
        logger.info(
            "predictor.model.installed",
            trained_at=trained_at.isoformat(),
            info=model.info(),
        )

    def add_observation(self, timestamp: datetime, value: float) -> None:
        """Append a sample to the recent window, evicting the oldest at capacity."""
        self._recent.append((timestamp, value))

    def update_baseline(self, baseline: Sequence[SlotAverage]) -> None:
        self.feature_extractor.update_historical_stats(baseline)

    def predict(
        self,
        baseline: Sequence[SlotAverage],
        schedule: IScheduleProvider,
        clock: IClock,
    ) -> List[PredictionWithConfidence]:
        """
        Forecast each hour in ``1..prediction_horizon_hours``.

        Hours at which the facility is closed are skipped. An empty baseline
        yields no predictions. This method does not raise: model failures
        fall back to the historical average (or drop the hour when
        ``fallback_on_error`` is disabled).
        """
        if not baseline:
            return []

        now = clock.now_utc()
        predictions: List[PredictionWithConfidence] = []

        for hours_ahead in range(1, self.config.prediction_horizon_hours + 1):
            target_time = now + timedelta(hours=hours_ahead)
            if not schedule.is_open(target_time.astimezone(schedule.timezone)):
                continue

            prediction = self._predict_single(
                target_time, hours_ahead, baseline, schedule
            )
            if prediction is not None:
                predictions.append(prediction)

        return predictions

    def _predict_single(
        self,
        target_time: datetime,
        hours_ahead: int,
        baseline: Sequence[SlotAverage],
        schedule: IScheduleProvider,
    ) -> Optional[PredictionWithConfidence]:
        if self.can_use_model:
            try:
                return self._model_predict(target_time, hours_ahead, baseline, schedule)
            except Exception as exc:
                logger.warning(
                    "prediction.model.failed",
                    target_time=target_time.isoformat(),
                    hours_ahead=hours_ahead,
                    error=str(exc),
                )
                if not self.config.fallback_on_error:
                    return None

        return self._fallback_predict(target_time, baseline)

    def _model_predict(
        self,
        target_time: datetime,
        hours_ahead: int,
        baseline: Sequence[SlotAverage],
        schedule: IScheduleProvider,
    ) -> PredictionWithConfidence:
        model = self._model
        if model is None:
            raise ComputationError("No trained model is installed")
        features = self.feature_extractor.extract(
            target_time, hours_ahead, list(self._recent), baseline, schedule
        )
        predicted = model.predict(features)
        low, high, score = self._confidence(target_time, predicted, hours_ahead)

        return PredictionWithConfidence(
            timestamp=normalize_timestamp(target_time),
            predicted_value=predicted,
            confidence_low=low,
            confidence_high=high,
            confidence_score=score,
            method=ModelBased(confidence=score),
        )

    def _fallback_predict(
        self, target_time: datetime, baseline: Sequence[SlotAverage]
    ) -> PredictionWithConfidence:
        weekday, hour = target_time.weekday(), target_time.hour
        match = next(
            (avg for avg in baseline if avg.weekday == weekday and avg.hour == hour),
            None,
        )

        if match is None:
            value, low, high = DEFAULT_PREDICTION
        else:
            std = self.feature_extractor.slot_std(weekday, hour)
            if std is None:
                std = DEFAULT_FALLBACK_STD
            value = match.mean_percentage
            low, high = value - std, value + std

        logger.debug(
            "prediction.fallback",
            target_time=target_time.isoformat(),
            slot_found=match is not None,
        )
        return PredictionWithConfidence(
            timestamp=normalize_timestamp(target_time),
            predicted_value=value,
            confidence_low=low,
            confidence_high=high,
            confidence_score=FALLBACK_SCORE,
            method=HistoricalAverage(),
        )

    def _confidence(
        self, target_time: datetime, predicted: float, hours_ahead: int
    ) -> Tuple[float, float, float]:
        """Confidence band from the slot's std, widened with the horizon."""
        base_std = self.feature_extractor.slot_std(
            target_time.weekday(), target_time.hour
        )
        if base_std is None:
            base_std = DEFAULT_MODEL_STD

        adjusted_std = base_std * (1.0 + (hours_ahead - 1) * HORIZON_PENALTY_PER_HOUR)
        clamped = min(100.0, max(0.0, predicted))
        low = max(0.0, clamped - adjusted_std)
        high = min(100.0, clamped + adjusted_std)
        score = min(1.0, max(0.0, 1.0 / (1.0 + adjusted_std / CONFIDENCE_SCALE)))
        return low, high, score
