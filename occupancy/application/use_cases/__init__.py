"""Application use cases of the occupancy core."""

from .data_repair_use_case import DataRepairUseCase
from .insights_use_case import AnalyticsReport, OccupancyInsightsUseCase
from .model_training_use_case import ModelBuilder, ModelTrainingUseCase, TrainingResult
from .occupancy_prediction_use_case import OccupancyPredictor
from .training_data_preparation_use_case import TrainingDataPreparer

__all__ = [
    "DataRepairUseCase",
    "OccupancyInsightsUseCase",
    "AnalyticsReport",
    "ModelBuilder",
    "ModelTrainingUseCase",
    "TrainingResult",
    "OccupancyPredictor",
    "TrainingDataPreparer",
]
