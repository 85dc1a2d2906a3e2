"""
Domain Entities Package

This package contains the core domain entities and business logic.
"""

from .analytics import (
    AnalyticsRange,
    ComparisonMode,
    DayAnalysis,
    HourlyComparison,
    Insight,
    InsightCategory,
    OccupancyStats,
    PeriodComparison,
    TimePeriod,
    TrendDirection,
)
from .errors import (
    ComputationError,
    DataAccessError,
    DomainError,
    InsufficientDataError,
    MismatchedLengthsError,
    PersistenceError,
    RepairValidationError,
    SingularMatrixError,
    SnapshotFormatError,
    SnapshotNotFoundError,
    SnapshotVersionError,
    ValidationError,
)
from .forecast import (
    ForecastConfig,
    HistoricalAverage,
    ModelBased,
    PredictionFeatures,
    PredictionMethod,
    PredictionWithConfidence,
    TrainedModel,
)
from .occupancy import Sample, Slot, SlotAverage, SlotStatistics
from .repair import DayRepairResult, RepairProgress, RepairSummary
from .snapshot import (
    CURRENT_SNAPSHOT_VERSION,
    ModelSnapshot,
    ModelSummary,
    SerializedSlotStats,
)

__all__ = [
    "Sample",
    "Slot",
    "SlotAverage",
    "SlotStatistics",
    "RepairProgress",
    "RepairSummary",
    "DayRepairResult",
    "AnalyticsRange",
    "ComparisonMode",
    "TrendDirection",
    "InsightCategory",
    "Insight",
    "OccupancyStats",
    "DayAnalysis",
    "TimePeriod",
    "HourlyComparison",
    "PeriodComparison",
    "ForecastConfig",
    "PredictionFeatures",
    "PredictionMethod",
    "ModelBased",
    "HistoricalAverage",
    "PredictionWithConfidence",
    "TrainedModel",
    "ModelSnapshot",
    "ModelSummary",
    "SerializedSlotStats",
    "CURRENT_SNAPSHOT_VERSION",
    "DomainError",
    "DataAccessError",
    "ValidationError",
    "RepairValidationError",
    "InsufficientDataError",
    "ComputationError",
    "MismatchedLengthsError",
    "SingularMatrixError",
    "PersistenceError",
    "SnapshotNotFoundError",
    "SnapshotVersionError",
    "SnapshotFormatError",
]
