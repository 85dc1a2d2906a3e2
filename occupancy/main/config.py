"""
Application Settings - Main Layer

Use Pydantic Settings for configuration management.
This module handles configuration settings provided using
environment variables, .env files and default values.
"""

from typing import Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from occupancy.shared import EnumEnvironment, EnumLogLevel


class DatabaseSettings(BaseSettings):
    """Database configuration settings."""

    mongo_uri: str = Field(
        default="mongodb://localhost:27017/occupancy_db",
        description="MongoDB connection URI",
    )
    database_name: str = Field(
        default="occupancy_db", description="Name of the MongoDB database"
    )

    model_config = SettingsConfigDict(
        env_prefix="DB_", case_sensitive=False, extra="ignore"
    )


class ScheduleSettings(BaseSettings):
    """Opening hours and local time zone of the facility."""

    timezone: str = Field(
        default="Europe/Berlin", description="IANA name of the local time zone"
    )
    weekday_open: int = Field(default=6, ge=0, le=23)
    weekday_close: int = Field(default=23, ge=0, le=23)
    weekend_open: int = Field(default=9, ge=0, le=23)
    weekend_close: int = Field(default=21, ge=0, le=23)

    model_config = SettingsConfigDict(
        env_prefix="SCHEDULE_", case_sensitive=False, extra="ignore"
    )

    @model_validator(mode="after")
    def _check_hours(self) -> "ScheduleSettings":
        if self.weekday_open >= self.weekday_close:
            raise ValueError("weekday_open must be before weekday_close")
        if self.weekend_open >= self.weekend_close:
            raise ValueError("weekend_open must be before weekend_close")
        return self


class ForecastSettings(BaseSettings):
    """Forecasting pipeline settings."""

    enabled: bool = Field(default=True, description="Use the trained model")
    training_window_days: int = Field(default=56, ge=1)
    retrain_interval_hours: int = Field(default=24, ge=1)
    prediction_horizon_hours: int = Field(default=6, ge=1)
    min_samples_for_training: int = Field(default=500, ge=1)
    validation_split: float = Field(default=0.2, gt=0.0, lt=1.0)
    recent_window_size: int = Field(default=180, ge=1)
    model_path: Optional[str] = Field(
        default="data/model_snapshot.json",
        description="Where the model snapshot is stored (None disables it)",
    )
    fallback_on_error: bool = Field(
        default=True, description="Use historical averages when the model fails"
    )

    model_config = SettingsConfigDict(
        env_prefix="FORECAST_",
        case_sensitive=False,
        extra="ignore",
        protected_namespaces=(),
    )


class AnalyticsSettings(BaseSettings):
    """Analytics and insights settings."""

    prediction_window_days: int = Field(
        default=28, ge=1, description="Days of history behind the baseline"
    )
    insights_window_weeks: int = Field(
        default=4, ge=1, description="Weeks compared by generated insights"
    )
    max_gap_minutes: int = Field(
        default=5, ge=1, description="Longest gap interpolated by data repair"
    )

    model_config = SettingsConfigDict(
        env_prefix="ANALYTICS_", case_sensitive=False, extra="ignore"
    )


class LoggingSettings(BaseSettings):
    """Logging configuration settings."""

    level: EnumLogLevel = Field(default=EnumLogLevel.INFO, description="Logging level")
    file_path: Optional[str] = Field(
        default=None, description="Log file path (if None, logs to console)"
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_", case_sensitive=False, extra="ignore"
    )


class AppSettings(BaseSettings):
    """Main application settings, aggregating all sub-settings."""

    environment: EnumEnvironment = Field(
        default=EnumEnvironment.DEVELOPMENT, description="Application environment"
    )

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    schedule: ScheduleSettings = Field(default_factory=ScheduleSettings)
    forecast: ForecastSettings = Field(default_factory=ForecastSettings)
    analytics: AnalyticsSettings = Field(default_factory=AnalyticsSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_nested_delimiter="__",
        extra="ignore",
    )


def get_settings() -> AppSettings:
    """
    Get application settings instance Factory.

    Used to be mocked in tests, allowing different settings based on environment.
    """
    return AppSettings()
