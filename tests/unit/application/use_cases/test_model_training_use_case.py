from __future__ import annotations

import math
from datetime import datetime, timedelta, timezone
from typing import List, Tuple

import numpy as np
import pytest

from occupancy.application.use_cases.model_training_use_case import (
    ModelBuilder,
    ModelTrainingUseCase,
)
from occupancy.application.use_cases.occupancy_prediction_use_case import (
    OccupancyPredictor,
)
from occupancy.domain.entities.errors import (
    DataAccessError,
    InsufficientDataError,
    MismatchedLengthsError,
    SingularMatrixError,
)
from occupancy.domain.entities.forecast import ForecastConfig, PredictionFeatures
from occupancy.infrastructure.repositories.model_snapshot_repository import (
    FileModelSnapshotRepository,
)
from occupancy.infrastructure.services.clock import FixedClock
from tests.conftest import AlwaysOpenSchedule, InMemoryRecordStore

UTC = timezone.utc
TRAINED_AT = datetime(2024, 6, 3, 4, 0, tzinfo=UTC)
WEIGHTS = np.linspace(-2.0, 2.0, PredictionFeatures.NUM_FEATURES)


def _random_data(
    count: int, seed: int = 7
) -> Tuple[List[PredictionFeatures], List[float], np.ndarray]:
    rng = np.random.default_rng(seed)
    x = rng.normal(size=(count, PredictionFeatures.NUM_FEATURES))
    y = x @ WEIGHTS + 10.0
    features = [PredictionFeatures(*row.tolist()) for row in x]
    return features, y.tolist(), x


def test_train_recovers_linear_relationship() -> None:
    features, targets, _ = _random_data(200)

    model = ModelBuilder().train(features, targets, TRAINED_AT)

    assert model.coefficients == pytest.approx(WEIGHTS.tolist(), abs=1e-6)
    assert model.intercept == pytest.approx(10.0, abs=1e-6)
    assert model.training_mse == pytest.approx(0.0, abs=1e-9)
    assert model.training_sample_count == 200
    assert model.validation_mse is None
    assert model.created_at == TRAINED_AT


def test_constant_columns_get_zero_coefficient() -> None:
    features, _, x = _random_data(100)
    x[:, 12] = 0.0  # is_holiday never set
    features = [PredictionFeatures(*row.tolist()) for row in x]
    targets = (x @ WEIGHTS + 3.0).tolist()

    model = ModelBuilder().train(features, targets, TRAINED_AT)

    assert model.coefficients[12] == 0.0
    assert model.intercept == pytest.approx(3.0, abs=1e-6)


def test_all_constant_features_fall_back_to_mean() -> None:
    features = [PredictionFeatures(*([1.0] * 16)) for _ in range(4)]

    model = ModelBuilder().train(features, [10.0, 20.0, 30.0, 40.0], TRAINED_AT)

    assert model.intercept == pytest.approx(25.0)
    assert all(c == 0.0 for c in model.coefficients)
    assert model.training_mse == pytest.approx(125.0)


def test_duplicate_columns_are_singular() -> None:
    features, targets, x = _random_data(50)
    x[:, 1] = x[:, 0]
    features = [PredictionFeatures(*row.tolist()) for row in x]

    with pytest.raises(SingularMatrixError):
        ModelBuilder().train(features, targets, TRAINED_AT)


def test_train_rejects_empty_and_mismatched_input() -> None:
    features, targets, _ = _random_data(20)

    with pytest.raises(InsufficientDataError):
        ModelBuilder().train([], [], TRAINED_AT)
    with pytest.raises(MismatchedLengthsError):
        ModelBuilder().train(features, targets[:-1], TRAINED_AT)


def test_train_with_validation_splits_by_position() -> None:
    features, targets, _ = _random_data(50)
    created = datetime(2024, 6, 3, tzinfo=UTC)

    model = ModelBuilder().train_with_validation(
        features, targets, 0.2, created_at=created
    )

    assert model.training_sample_count == 40
    assert model.validation_mse == pytest.approx(0.0, abs=1e-9)
    assert model.created_at == created


def test_train_with_validation_needs_ten_samples() -> None:
    features, targets, _ = _random_data(9)

    with pytest.raises(InsufficientDataError) as exc_info:
        ModelBuilder().train_with_validation(features, targets, 0.2, TRAINED_AT)

    assert exc_info.value.required == 10


def _seed_store(store: InMemoryRecordStore, start: datetime, days: int) -> None:
    rng = np.random.default_rng(42)
    current = start
    end = start + timedelta(days=days)
    while current < end:
        daily = 30.0 * math.sin(2 * math.pi * current.hour / 24)
        weekly = 5.0 * current.weekday()
        value = 40.0 + daily + weekly + float(rng.normal(0.0, 3.0))
        store.add(current, min(100.0, max(0.0, value)))
        current += timedelta(minutes=30)


@pytest.mark.asyncio
async def test_execute_trains_installs_and_saves_snapshot(tmp_path) -> None:
    start = datetime(2024, 6, 3, tzinfo=UTC)
    store = InMemoryRecordStore()
    _seed_store(store, start, days=21)
    clock = FixedClock(start + timedelta(days=21))
    config = ForecastConfig(training_window_days=28, min_samples_for_training=100)
    predictor = OccupancyPredictor(config)
    repository = FileModelSnapshotRepository(tmp_path / "model.json")

    use_case = ModelTrainingUseCase(
        record_store=store,
        schedule=AlwaysOpenSchedule(),
        clock=clock,
        predictor=predictor,
        config=config,
        snapshot_repository=repository,
    )
    result = await use_case.execute()

    assert result.model.training_sample_count == int(0.8 * 21 * 48)
    assert result.model.validation_mse is not None
    assert predictor.has_model is True
    assert predictor.last_training == clock.now_utc()
    assert predictor.feature_extractor.slot_statistics(0, 12) is not None

    assert result.snapshot_location == str(tmp_path / "model.json")
    stored = repository.load()
    assert stored.training_window_days == 28
    assert len(stored.slot_stats) == 7 * 24
    assert stored.model_summary.feature_names == PredictionFeatures.feature_names()
    assert stored.created_at == clock.now_utc()


@pytest.mark.asyncio
async def test_execute_keeps_previous_state_on_insufficient_data(tmp_path) -> None:
    store = InMemoryRecordStore()
    now = datetime(2024, 6, 3, 12, tzinfo=UTC)
    for minute in range(0, 60, 10):
        store.add(now - timedelta(hours=2, minutes=minute), 40.0)
    predictor = OccupancyPredictor()
    repository = FileModelSnapshotRepository(tmp_path / "model.json")

    use_case = ModelTrainingUseCase(
        store,
        AlwaysOpenSchedule(),
        FixedClock(now),
        predictor,
        ForecastConfig(),
        snapshot_repository=repository,
    )

    with pytest.raises(InsufficientDataError):
        await use_case.execute()

    assert predictor.has_model is False
    assert predictor.last_training is None
    assert repository.exists() is False


@pytest.mark.asyncio
async def test_execute_wraps_store_failures() -> None:
    store = InMemoryRecordStore()
    store.fail_on_read = True
    use_case = ModelTrainingUseCase(
        store,
        AlwaysOpenSchedule(),
        FixedClock(datetime(2024, 6, 3, tzinfo=UTC)),
        OccupancyPredictor(),
        ForecastConfig(),
    )

    with pytest.raises(DataAccessError):
        await use_case.execute()
