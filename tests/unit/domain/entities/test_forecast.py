from __future__ import annotations

from datetime import datetime, timezone

import pytest

from occupancy.domain.entities.errors import ComputationError
from occupancy.domain.entities.forecast import (
    ForecastConfig,
    HistoricalAverage,
    ModelBased,
    PredictionFeatures,
    PredictionWithConfidence,
    TrainedModel,
)


def _features(**overrides: float) -> PredictionFeatures:
    values = {name: 0.0 for name in PredictionFeatures.feature_names()}
    values.update(overrides)
    return PredictionFeatures(**values)


def test_forecast_config_defaults() -> None:
    config = ForecastConfig()
    assert config.enabled is True
    assert config.training_window_days == 56
    assert config.retrain_interval_hours == 24
    assert config.prediction_horizon_hours == 6
    assert config.min_samples_for_training == 500
    assert config.validation_split == pytest.approx(0.2)
    assert config.recent_window_size == 180
    assert config.model_path is None
    assert config.fallback_on_error is True


def test_feature_vector_has_fixed_order() -> None:
    names = PredictionFeatures.feature_names()
    assert len(names) == PredictionFeatures.NUM_FEATURES == 16
    assert names[0] == "hour_sin"
    assert names[-1] == "hours_ahead"

    features = _features(hour_sin=0.5, hours_ahead=3.0)
    vector = features.to_vector()
    assert len(vector) == 16
    assert vector[0] == 0.5
    assert vector[-1] == 3.0


def test_prediction_is_clamped_on_construction() -> None:
    prediction = PredictionWithConfidence(
        timestamp=datetime(2024, 6, 3, 11, tzinfo=timezone.utc),
        predicted_value=120.0,
        confidence_low=-5.0,
        confidence_high=140.0,
        confidence_score=1.7,
        method=ModelBased(confidence=1.0),
    )

    assert prediction.predicted_value == 100.0
    assert prediction.confidence_low == 0.0
    assert prediction.confidence_high == 100.0
    assert prediction.confidence_score == 1.0
    assert prediction.is_valid()
    assert prediction.interval_width == 100.0


def test_prediction_to_simple() -> None:
    timestamp = datetime(2024, 6, 3, 11, tzinfo=timezone.utc)
    prediction = PredictionWithConfidence(
        timestamp=timestamp,
        predicted_value=42.0,
        confidence_low=32.0,
        confidence_high=52.0,
        confidence_score=0.5,
        method=HistoricalAverage(),
    )
    assert prediction.to_simple() == (timestamp, 42.0)


def test_prediction_methods_are_distinct_variants() -> None:
    model_based = ModelBased(confidence=0.7)
    historical = HistoricalAverage()

    assert model_based.is_model is True
    assert model_based.confidence == 0.7
    assert historical.is_model is False
    assert historical.confidence == 0.5


def test_trained_model_predicts_dot_product_plus_intercept() -> None:
    coefficients = tuple([2.0] + [0.0] * 14 + [1.0])
    model = TrainedModel(
        coefficients=coefficients,
        intercept=10.0,
        training_mse=1.0,
        training_sample_count=100,
        created_at=datetime(2024, 6, 3, 4, 30, tzinfo=timezone.utc),
    )

    features = _features(hour_sin=3.0, hours_ahead=2.0)
    assert model.predict(features) == pytest.approx(18.0)
    assert model.predict_batch([features, _features()]) == pytest.approx([18.0, 10.0])
    assert model.predict_batch([]) == []
    assert "samples=100" in model.info()
    assert "val_mse=N/A" in model.info()
    assert "created=2024-06-03 04:30" in model.info()


def test_trained_model_rejects_non_finite_prediction() -> None:
    model = TrainedModel(
        coefficients=tuple([float("inf")] + [0.0] * 15),
        intercept=0.0,
        training_mse=0.0,
        training_sample_count=1,
        created_at=datetime(2024, 6, 3, 4, 30, tzinfo=timezone.utc),
    )
    with pytest.raises(ComputationError):
        model.predict(_features(hour_sin=-1.0, hour_cos=1.0))


def test_trained_model_requires_creation_time() -> None:
    with pytest.raises(TypeError):
        TrainedModel(  # type: ignore[call-arg]
            coefficients=tuple([0.0] * 16),
            intercept=0.0,
            training_mse=0.0,
            training_sample_count=1,
        )
