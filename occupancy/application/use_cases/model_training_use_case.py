"""
Application Use Cases - Model Training

This module contains the ordinary least squares model builder and the use
case that trains the forecasting model from the record store, builds the
persistable snapshot and installs the model into the predictor.
"""

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import List, Optional, Sequence

import numpy as np
import structlog
from sklearn.linear_model import LinearRegression
from sklearn.metrics import mean_squared_error

from occupancy.application.use_cases.occupancy_prediction_use_case import (
    OccupancyPredictor,
)
from occupancy.application.use_cases.training_data_preparation_use_case import (
    TrainingDataPreparer,
)
from occupancy.domain.entities.errors import (
    ComputationError,
    DataAccessError,
    InsufficientDataError,
    MismatchedLengthsError,
    SingularMatrixError,
)
from occupancy.domain.entities.forecast import (
    ForecastConfig,
    PredictionFeatures,
    TrainedModel,
)
from occupancy.domain.entities.occupancy import SlotAverage
from occupancy.domain.entities.snapshot import (
    ModelSnapshot,
    ModelSummary,
    SerializedSlotStats,
)
from occupancy.domain.ports.clock import IClock
from occupancy.domain.ports.schedule import IScheduleProvider
from occupancy.domain.repositories.record_store import IRecordStore
from occupancy.domain.repositories.snapshot_repository import (
    IModelSnapshotRepository,
)
from occupancy.domain.services.feature_extractor import FeatureExtractor

logger = structlog.get_logger(__name__)

MIN_VALIDATION_SAMPLES = 10


class ModelBuilder:
    """Fits ``TrainedModel`` instances with ordinary least squares."""

    def __init__(self, fit_intercept: bool = True):
        self.fit_intercept = fit_intercept

    def train(
        self,
        features: Sequence[PredictionFeatures],
        targets: Sequence[float],
        created_at: datetime,
    ) -> TrainedModel:
        """
        Fit a model on the provided data.

        Feature columns that carry no information (constant when an
        intercept is fitted, all-zero otherwise) are left out of the fit and
        receive a coefficient of 0. The remaining design matrix must have
        full column rank.

        Raises:
            InsufficientDataError: If there is no data
            MismatchedLengthsError: If features and targets differ in length
            SingularMatrixError: If the design matrix is rank deficient
            ComputationError: If the data contains non-finite values
        """
        if not features or not targets:
            raise InsufficientDataError(0)
        if len(features) != len(targets):
            raise MismatchedLengthsError(len(features), len(targets))

        x = np.asarray([f.to_vector() for f in features], dtype=float)
        y = np.asarray(targets, dtype=float)
        if not (np.all(np.isfinite(x)) and np.all(np.isfinite(y))):
            raise ComputationError(
                "Training data contains non-finite values",
                details={"samples": len(y)},
            )

        active = self._informative_columns(x)
        coefficients = np.zeros(x.shape[1])
        intercept = 0.0

        if active.any():
            design = x[:, active]
            centered = design - design.mean(axis=0) if self.fit_intercept else design
            rank = int(np.linalg.matrix_rank(centered))
            if rank < design.shape[1]:
                raise SingularMatrixError(
                    "Design matrix is singular",
                    details={
                        "rank": rank,
                        "columns": int(design.shape[1]),
                        "samples": int(design.shape[0]),
                    },
                )
            regression = LinearRegression(fit_intercept=self.fit_intercept)
            regression.fit(design, y)
            coefficients[active] = regression.coef_
            intercept = float(regression.intercept_) if self.fit_intercept else 0.0
        elif self.fit_intercept:
            intercept = float(y.mean())

        predictions = x @ coefficients + intercept
        training_mse = float(mean_squared_error(y, predictions))

        logger.debug(
            "model.fitted",
            samples=len(y),
            active_features=int(active.sum()),
            training_mse=training_mse,
        )
        return TrainedModel(
            coefficients=tuple(float(c) for c in coefficients),
            intercept=intercept,
            training_mse=training_mse,
            training_sample_count=len(y),
            created_at=created_at,
        )

    def train_with_validation(
        self,
        features: Sequence[PredictionFeatures],
        targets: Sequence[float],
        validation_split: float,
        created_at: datetime,
    ) -> TrainedModel:
        """
        Train on a leading prefix and report MSE on the held-out suffix.

        The split is by position, not randomized; the first
        ``int((1 - validation_split) * n)`` samples are used for training.

        Raises:
            InsufficientDataError: If fewer than 10 samples are supplied
        """
        if len(features) < MIN_VALIDATION_SAMPLES:
            raise InsufficientDataError(len(features), MIN_VALIDATION_SAMPLES)
        if len(features) != len(targets):
            raise MismatchedLengthsError(len(features), len(targets))

        split_idx = int((1.0 - validation_split) * len(features))
        model = self.train(features[:split_idx], targets[:split_idx], created_at)

        val_features = features[split_idx:]
        if not val_features:
            return model

        val_predictions = model.predict_batch(val_features)
        validation_mse = float(mean_squared_error(targets[split_idx:], val_predictions))
        return replace(model, validation_mse=validation_mse)

    def _informative_columns(self, x: np.ndarray) -> np.ndarray:
        if self.fit_intercept:
            return np.ptp(x, axis=0) > 0.0
        return np.any(x != 0.0, axis=0)


@dataclass
class TrainingResult:
    """Outcome of a successful training run."""

    model: TrainedModel
    snapshot: ModelSnapshot
    snapshot_location: Optional[str] = None


class ModelTrainingUseCase:
    """Use case for (re)training the forecasting model."""

    def __init__(
        self,
        record_store: IRecordStore,
        schedule: IScheduleProvider,
        clock: IClock,
        predictor: OccupancyPredictor,
        config: ForecastConfig,
        snapshot_repository: Optional[IModelSnapshotRepository] = None,
    ):
        """
        Initialize the model training use case.

        Args:
            record_store: Store holding the raw samples
            schedule: Opening hours and local time zone of the facility
            clock: Source of the current time
            predictor: Predictor that receives the trained model
            config: Forecasting configuration
            snapshot_repository: Optional storage for the training snapshot
        """
        self.record_store = record_store
        self.schedule = schedule
        self.clock = clock
        self.predictor = predictor
        self.config = config
        self.snapshot_repository = snapshot_repository
        self.preparer = TrainingDataPreparer(config)
        self.builder = ModelBuilder()

    async def execute(self) -> TrainingResult:
        """
        Train a model on the last ``training_window_days`` of data.

        A failed run leaves the predictor's current model and its
        ``last_training`` untouched.

        Raises:
            DataAccessError: If the record store cannot be read
            InsufficientDataError: If there are too few samples
            ComputationError: If the model cannot be fitted
            PersistenceError: If the snapshot cannot be saved
        """
        end = self.clock.now_utc()
        start = end - timedelta(days=self.config.training_window_days)

        logger.info(
            "training.started",
            start=start.isoformat(),
            end=end.isoformat(),
            window_days=self.config.training_window_days,
        )

        try:
            samples = await self.record_store.records_between(start, end)
            baseline = await self.record_store.slot_averages(start, end)
        except DataAccessError:
            raise
        except Exception as exc:
            logger.error("training.data.failed", error=str(exc), exc_info=exc)
            raise DataAccessError(
                f"Failed to load training data: {exc}",
                details={"start": start.isoformat(), "end": end.isoformat()},
            ) from exc

        try:
            features, targets = self.preparer.prepare(samples, baseline, self.schedule)
            model = self.builder.train_with_validation(
                features, targets, self.config.validation_split, created_at=end
            )
        except (InsufficientDataError, ComputationError) as exc:
            logger.warning(
                "training.failed",
                error=exc.message,
                details=exc.details,
                samples=len(samples),
            )
            raise

        snapshot = self._build_snapshot(model, baseline, end)
        location = None
        if self.snapshot_repository is not None:
            location = self.snapshot_repository.save(snapshot)

        self.predictor.set_model(model, end)
        self.predictor.update_baseline(baseline)

        logger.info(
            "training.completed",
            samples=model.training_sample_count,
            training_mse=model.training_mse,
            validation_mse=model.validation_mse,
            snapshot=location,
        )
        return TrainingResult(model=model, snapshot=snapshot, snapshot_location=location)

    def _build_snapshot(
        self, model: TrainedModel, baseline: Sequence[SlotAverage], created_at: datetime
    ) -> ModelSnapshot:
        extractor = FeatureExtractor()
        extractor.update_historical_stats(baseline)

        slot_stats: List[SerializedSlotStats] = [
            SerializedSlotStats(
                weekday=weekday,
                hour=hour,
                mean=stats.mean,
                std_dev=stats.std_dev,
                sample_count=stats.sample_count,
            )
            for (weekday, hour), stats in sorted(extractor.historical_stats.items())
        ]

        return ModelSnapshot(
            created_at=created_at,
            training_window_days=self.config.training_window_days,
            training_sample_count=model.training_sample_count,
            training_mse=model.training_mse,
            validation_mse=model.validation_mse,
            slot_stats=slot_stats,
            model_summary=ModelSummary(
                model_type="LinearRegression",
                fit_intercept=self.builder.fit_intercept,
                feature_names=PredictionFeatures.feature_names(),
            ),
        )
