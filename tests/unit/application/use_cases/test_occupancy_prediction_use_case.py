from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest

from occupancy.application.use_cases.occupancy_prediction_use_case import (
    OccupancyPredictor,
    normalize_timestamp,
)
from occupancy.domain.entities.forecast import (
    ForecastConfig,
    HistoricalAverage,
    ModelBased,
    PredictionFeatures,
    TrainedModel,
)
from occupancy.infrastructure.services.clock import FixedClock
from tests.conftest import AlwaysOpenSchedule, slot

UTC = timezone.utc
MONDAY_10 = datetime(2024, 6, 3, 10, 0, tzinfo=UTC)


class _ClosedSchedule(AlwaysOpenSchedule):
    def is_open(self, local_dt: datetime) -> bool:
        return local_dt.hour != 12


def _constant_model(value: float, first_coefficient: float = 0.0) -> TrainedModel:
    coefficients = [0.0] * PredictionFeatures.NUM_FEATURES
    coefficients[0] = first_coefficient
    return TrainedModel(
        coefficients=tuple(coefficients),
        intercept=value,
        training_mse=1.0,
        training_sample_count=600,
        created_at=MONDAY_10 - timedelta(hours=6),
    )


def test_normalize_timestamp_truncates_to_hour() -> None:
    assert normalize_timestamp(datetime(2024, 6, 3, 10, 42, 7, tzinfo=UTC)) == (
        datetime(2024, 6, 3, 10, tzinfo=UTC)
    )


def test_empty_baseline_yields_no_predictions() -> None:
    predictor = OccupancyPredictor()
    assert predictor.predict([], AlwaysOpenSchedule(), FixedClock(MONDAY_10)) == []


def test_fallback_scenario_without_model() -> None:
    predictor = OccupancyPredictor(ForecastConfig(prediction_horizon_hours=2))
    baseline = [slot(0, 11, 30.0), slot(0, 12, 50.0)]

    predictions = predictor.predict(baseline, AlwaysOpenSchedule(), FixedClock(MONDAY_10))

    assert [p.timestamp for p in predictions] == [
        datetime(2024, 6, 3, 11, tzinfo=UTC),
        datetime(2024, 6, 3, 12, tzinfo=UTC),
    ]
    assert [p.predicted_value for p in predictions] == [30.0, 50.0]
    assert all(isinstance(p.method, HistoricalAverage) for p in predictions)
    assert predictions[0].confidence_low == 20.0
    assert predictions[0].confidence_high == 40.0
    assert predictions[0].confidence_score == 0.5


def test_fallback_uses_slot_std_and_default_for_missing_slot() -> None:
    predictor = OccupancyPredictor(ForecastConfig(prediction_horizon_hours=2))
    predictor.update_baseline([slot(0, 11, 30.0), slot(0, 11, 40.0)])
    baseline = [slot(0, 11, 35.0)]

    predictions = predictor.predict(baseline, AlwaysOpenSchedule(), FixedClock(MONDAY_10))

    band = predictions[0].confidence_high - predictions[0].confidence_low
    assert band == pytest.approx(2 * 7.0710678, rel=1e-6)
    assert (
        predictions[1].predicted_value,
        predictions[1].confidence_low,
        predictions[1].confidence_high,
    ) == (50.0, 30.0, 70.0)


def test_closed_hours_are_skipped() -> None:
    predictor = OccupancyPredictor(ForecastConfig(prediction_horizon_hours=3))
    baseline = [slot(0, 11, 30.0), slot(0, 12, 50.0), slot(0, 13, 60.0)]

    predictions = predictor.predict(baseline, _ClosedSchedule(), FixedClock(MONDAY_10))

    assert [p.timestamp.hour for p in predictions] == [11, 13]


def test_model_predictions_widen_with_horizon() -> None:
    predictor = OccupancyPredictor(ForecastConfig(prediction_horizon_hours=3))
    predictor.set_model(_constant_model(60.0), MONDAY_10)
    baseline = [slot(0, 11, 30.0)]

    predictions = predictor.predict(baseline, AlwaysOpenSchedule(), FixedClock(MONDAY_10))

    assert len(predictions) == 3
    assert all(isinstance(p.method, ModelBased) for p in predictions)
    assert all(p.predicted_value == pytest.approx(60.0) for p in predictions)
    assert predictions[0].confidence_low == pytest.approx(45.0)
    assert predictions[0].confidence_high == pytest.approx(75.0)
    assert predictions[0].confidence_score == pytest.approx(1 / (1 + 15 / 20))
    widths = [p.interval_width for p in predictions]
    assert widths == sorted(widths)
    assert widths[1] == pytest.approx(2 * 15 * 1.15)
    assert predictions[0].method.confidence == predictions[0].confidence_score


def test_every_prediction_satisfies_the_confidence_invariant() -> None:
    predictor = OccupancyPredictor(ForecastConfig(prediction_horizon_hours=6))
    predictor.set_model(_constant_model(130.0), MONDAY_10)
    baseline = [slot(0, h, 90.0) for h in range(24)]

    predictions = predictor.predict(baseline, AlwaysOpenSchedule(), FixedClock(MONDAY_10))

    assert len(predictions) == 6
    for prediction in predictions:
        assert prediction.is_valid()
        assert 0.0 <= prediction.confidence_low <= prediction.predicted_value
        assert prediction.predicted_value <= prediction.confidence_high <= 100.0
        assert 0.0 <= prediction.confidence_score <= 1.0


def test_model_failure_falls_back_to_historical_average() -> None:
    predictor = OccupancyPredictor(ForecastConfig(prediction_horizon_hours=1))
    predictor.set_model(_constant_model(50.0, float("inf")), MONDAY_10)
    baseline = [slot(0, 11, 30.0)]
    clock = FixedClock(MONDAY_10)

    # hour_sin at 11:00 is non-zero, so the model output is not finite
    predictions = predictor.predict(baseline, AlwaysOpenSchedule(), clock)

    assert len(predictions) == 1
    assert isinstance(predictions[0].method, HistoricalAverage)
    assert predictions[0].predicted_value == 30.0


def test_model_failure_drops_hour_when_fallback_disabled() -> None:
    predictor = OccupancyPredictor(
        ForecastConfig(prediction_horizon_hours=1, fallback_on_error=False)
    )
    predictor.set_model(_constant_model(50.0, float("inf")), MONDAY_10)

    predictions = predictor.predict(
        [slot(0, 11, 30.0)], AlwaysOpenSchedule(), FixedClock(MONDAY_10)
    )

    assert predictions == []


def test_disabled_forecasting_ignores_installed_model() -> None:
    predictor = OccupancyPredictor(
        ForecastConfig(enabled=False, prediction_horizon_hours=1)
    )
    predictor.set_model(_constant_model(80.0), MONDAY_10)

    assert predictor.has_model is True
    assert predictor.can_use_model is False
    predictions = predictor.predict(
        [slot(0, 11, 30.0)], AlwaysOpenSchedule(), FixedClock(MONDAY_10)
    )
    assert isinstance(predictions[0].method, HistoricalAverage)


def test_needs_retraining_after_interval() -> None:
    predictor = OccupancyPredictor(ForecastConfig(retrain_interval_hours=24))
    clock = FixedClock(MONDAY_10)

    assert predictor.needs_retraining(clock) is True

    predictor.set_model(_constant_model(50.0), MONDAY_10)
    assert predictor.last_training == MONDAY_10

    clock.advance(timedelta(hours=23, minutes=59))
    assert predictor.needs_retraining(clock) is False
    clock.advance(timedelta(minutes=1))
    assert predictor.needs_retraining(clock) is True


def test_recent_window_evicts_oldest_observations() -> None:
    predictor = OccupancyPredictor(ForecastConfig(recent_window_size=3))

    for minute in range(5):
        predictor.add_observation(MONDAY_10 + timedelta(minutes=minute), float(minute))

    assert [v for _, v in predictor.recent_observations] == [2.0, 3.0, 4.0]


def test_holiday_schedule_is_consulted_for_model_features() -> None:
    class _Holidays(AlwaysOpenSchedule):
        def __init__(self) -> None:
            super().__init__()
            self.checked: list[date] = []

        def is_holiday(self, day: date) -> bool:
            self.checked.append(day)
            return False

    schedule = _Holidays()
    predictor = OccupancyPredictor(ForecastConfig(prediction_horizon_hours=2))
    predictor.set_model(_constant_model(40.0), MONDAY_10)

    predictor.predict([slot(0, 11, 30.0)], schedule, FixedClock(MONDAY_10))

    assert schedule.checked == [date(2024, 6, 3), date(2024, 6, 3)]
