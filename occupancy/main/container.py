"""
Dependency container injection module - Main Layer

This module implements the dependency injection container
to simplify the management and lifecycle of dependencies
in the application.
"""

from contextlib import asynccontextmanager
from typing import Optional
from zoneinfo import ZoneInfo

from dependency_injector import containers, providers

from occupancy.application.use_cases import (
    DataRepairUseCase,
    ModelTrainingUseCase,
    OccupancyInsightsUseCase,
    OccupancyPredictor,
)
from occupancy.domain.entities import ForecastConfig
from occupancy.domain.entities.errors import PersistenceError
from occupancy.infrastructure.database import MongoDatabase
from occupancy.infrastructure.repositories import (
    FileModelSnapshotRepository,
    MongoOccupancyRecordRepository,
)
from occupancy.infrastructure.services import SystemClock, WeeklySchedule
from occupancy.shared import get_logger

from .config import AppSettings

logger = get_logger(__name__)


def _snapshot_repository(
    model_path: Optional[str],
) -> Optional[FileModelSnapshotRepository]:
    if not model_path:
        return None
    return FileModelSnapshotRepository(model_path)


class AppContainer(containers.DeclarativeContainer):
    """Composition Root using dependency-injector."""

    # Settings
    config = providers.Configuration()

    # Infrastructure
    mongo_database = providers.Singleton(
        MongoDatabase,
        mongo_uri=config.database.mongo_uri,
        db_name=config.database.database_name,
    )

    local_timezone = providers.Singleton(ZoneInfo, config.schedule.timezone)

    schedule = providers.Singleton(
        WeeklySchedule,
        weekday_open=config.schedule.weekday_open,
        weekday_close=config.schedule.weekday_close,
        weekend_open=config.schedule.weekend_open,
        weekend_close=config.schedule.weekend_close,
        timezone=local_timezone,
    )

    clock = providers.Singleton(SystemClock, local_timezone=local_timezone)

    record_repository = providers.Singleton(
        MongoOccupancyRecordRepository,
        mongo_database=mongo_database,
        local_timezone=local_timezone,
    )

    snapshot_repository = providers.Singleton(
        _snapshot_repository,
        model_path=config.forecast.model_path,
    )

    forecast_config = providers.Singleton(
        ForecastConfig,
        enabled=config.forecast.enabled,
        training_window_days=config.forecast.training_window_days,
        retrain_interval_hours=config.forecast.retrain_interval_hours,
        prediction_horizon_hours=config.forecast.prediction_horizon_hours,
        min_samples_for_training=config.forecast.min_samples_for_training,
        validation_split=config.forecast.validation_split,
        recent_window_size=config.forecast.recent_window_size,
        model_path=config.forecast.model_path,
        fallback_on_error=config.forecast.fallback_on_error,
    )

    # The predictor holds the installed model and recent observations.
    predictor = providers.Singleton(OccupancyPredictor, config=forecast_config)

    # Application (use cases)
    data_repair_use_case = providers.Factory(
        DataRepairUseCase,
        record_store=record_repository,
        schedule=schedule,
        max_gap_minutes=config.analytics.max_gap_minutes,
    )

    model_training_use_case = providers.Factory(
        ModelTrainingUseCase,
        record_store=record_repository,
        schedule=schedule,
        clock=clock,
        predictor=predictor,
        config=forecast_config,
        snapshot_repository=snapshot_repository,
    )

    insights_use_case = providers.Factory(
        OccupancyInsightsUseCase,
        record_store=record_repository,
        clock=clock,
        prediction_window_days=config.analytics.prediction_window_days,
        insights_window_weeks=config.analytics.insights_window_weeks,
    )


# -------------------------
# Global Container Instance
# -------------------------
_app_container: AppContainer | None = None


def init_container(settings: AppSettings) -> AppContainer:
    """Initialize global container with application settings."""

    global _app_container

    container = AppContainer()
    container.config.from_pydantic(settings)
    _app_container = container
    return container


def get_container() -> AppContainer:
    """Get the initialized global container."""

    if _app_container is None:
        raise RuntimeError("Container has not been initialized yet")

    return _app_container


@asynccontextmanager
async def app_lifespan():
    """
    Centralized lifecycle management for external resources.

    Creates the MongoDB indexes on startup, reports any stored model
    snapshot and closes the database connection on shutdown.
    """
    container = get_container()
    mongo_database = container.mongo_database()

    try:
        logger.info("container.mongo.ensure_connection")
        await mongo_database.create_indexes()

        snapshot_repository = container.snapshot_repository()
        if snapshot_repository is not None and snapshot_repository.exists():
            try:
                snapshot = snapshot_repository.load()
            except PersistenceError as e:
                logger.warning("container.snapshot.unreadable", error=e.message)
            else:
                logger.info("container.snapshot.found", summary=snapshot.summary())

        logger.info("container.resources.initialized")
        yield container

    finally:
        logger.info("container.mongo.close")
        mongo_database.close()
        logger.info("container.resources.shutdown")
