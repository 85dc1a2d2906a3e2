"""
Application Use Cases - Training Data Preparation

Builds ``(features, targets)`` pairs for the regression model from raw
occupancy samples and a slot baseline.
"""

from bisect import bisect_right
from datetime import datetime, timedelta
from typing import List, Sequence, Tuple

import pandas as pd
import structlog

from occupancy.domain.entities.errors import InsufficientDataError
from occupancy.domain.entities.forecast import ForecastConfig, PredictionFeatures
from occupancy.domain.entities.occupancy import Sample, SlotAverage
from occupancy.domain.ports.schedule import IScheduleProvider
from occupancy.domain.services.feature_extractor import FeatureExtractor

logger = structlog.get_logger(__name__)


class TrainingDataPreparer:
    """Turns raw samples into training pairs for the forecasting model."""

    def __init__(self, config: ForecastConfig):
        self.config = config

    def prepare(
        self,
        samples: Sequence[Sample],
        baseline: Sequence[SlotAverage],
        schedule: IScheduleProvider,
    ) -> Tuple[List[PredictionFeatures], List[float]]:
        """
        Prepare training data from raw samples.

        Every sample becomes a target. Its features are extracted with a
        horizon ``h`` cycling through ``1..prediction_horizon_hours`` and a
        recent window made of the last ``recent_window_size`` samples that
        were already known ``h`` hours before the target.

        Args:
            samples: Raw samples from the training window
            baseline: Slot averages over the same window
            schedule: Source of the local zone and the holiday calendar

        Returns:
            Tuple of (features, targets)

        Raises:
            InsufficientDataError: If fewer than ``min_samples_for_training``
                usable samples are available
        """
        required = self.config.min_samples_for_training
        if len(samples) < required:
            raise InsufficientDataError(len(samples), required)

        timestamps, values = self._clean(samples)

        extractor = FeatureExtractor()
        extractor.update_historical_stats(baseline)

        history = list(zip(timestamps, values))
        window_size = self.config.recent_window_size
        horizon = max(1, self.config.prediction_horizon_hours)

        features: List[PredictionFeatures] = []
        targets: List[float] = []

        for index, (timestamp, value) in enumerate(history):
            hours_ahead = 1 + index % horizon
            known = bisect_right(timestamps, timestamp - timedelta(hours=hours_ahead))
            window = history[max(0, known - window_size) : known]

            features.append(
                extractor.extract(timestamp, hours_ahead, window, baseline, schedule)
            )
            targets.append(value)

        if len(features) < required:
            raise InsufficientDataError(len(features), required)

        logger.info(
            "training.data.prepared",
            samples=len(samples),
            pairs=len(features),
            horizon=horizon,
        )
        return features, targets

    @staticmethod
    def _clean(samples: Sequence[Sample]) -> Tuple[List[datetime], List[float]]:
        """Sort by time, drop missing values and keep the last sample per instant."""
        frame = pd.DataFrame(
            {
                "timestamp": [s.timestamp for s in samples],
                "value": [s.value for s in samples],
            }
        )
        frame["timestamp"] = pd.to_datetime(frame["timestamp"], utc=True)
        frame = (
            frame.dropna(subset=["value"])
            .sort_values("timestamp", kind="stable")
            .drop_duplicates(subset="timestamp", keep="last")
        )

        timestamps = [ts.to_pydatetime() for ts in frame["timestamp"]]
        values = frame["value"].astype(float).tolist()
        return timestamps, values
