"""
Domain Entities - Analytics

Value objects produced by the statistical analytics engine: aggregate
statistics, per-day analysis, hour-by-hour period comparisons and the ranked
insights handed to presentation layers.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

# (weekday, hour, value)
SlotValue = Tuple[int, int, float]

HOURLY_TREND_THRESHOLD = 5.0
MIN_SAMPLES_PER_SIDE = 2


class ComparisonMode(str, Enum):
    """How the two compared periods were selected."""

    WEEK_OVER_WEEK = "week_over_week"
    MONTH_OVER_MONTH = "month_over_month"
    CUSTOM_RANGE = "custom_range"


class AnalyticsRange(str, Enum):
    """Look-back ranges anchored at Monday 00:00 UTC of the current week."""

    THIS_WEEK = "this_week"
    LAST_2_WEEKS = "last_2_weeks"
    LAST_4_WEEKS = "last_4_weeks"
    LAST_8_WEEKS = "last_8_weeks"

    @property
    def weeks_before_current(self) -> int:
        return {
            AnalyticsRange.THIS_WEEK: 0,
            AnalyticsRange.LAST_2_WEEKS: 1,
            AnalyticsRange.LAST_4_WEEKS: 3,
            AnalyticsRange.LAST_8_WEEKS: 7,
        }[self]


class TrendDirection(str, Enum):
    """Direction of an occupancy trend."""

    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"
    INSUFFICIENT = "insufficient"

    @property
    def description(self) -> str:
        return {
            TrendDirection.INCREASING: "getting busier",
            TrendDirection.DECREASING: "getting quieter",
            TrendDirection.STABLE: "staying consistent",
            TrendDirection.INSUFFICIENT: "insufficient data",
        }[self]

    @property
    def symbol(self) -> str:
        return {
            TrendDirection.INCREASING: "↑",
            TrendDirection.DECREASING: "↓",
            TrendDirection.STABLE: "→",
            TrendDirection.INSUFFICIENT: "?",
        }[self]


class InsightCategory(str, Enum):
    """Category of a generated insight."""

    TREND = "trend"
    PEAK = "peak"
    QUIET_TIME = "quiet_time"
    ANOMALY = "anomaly"
    DAY_PATTERN = "day_pattern"
    CONSISTENCY = "consistency"


@dataclass(slots=True)
class OccupancyStats:
    """Statistical summary over a set of slot averages."""

    mean: float
    median: float
    std_dev: float
    min: float
    max: float
    sample_count: int
    coefficient_of_variation: float


@dataclass(slots=True)
class TimePeriod:
    """A contiguous run of hours on one weekday; ``end_hour`` is exclusive."""

    weekday: int
    start_hour: int
    end_hour: int
    avg_occupancy: float

    @property
    def duration_hours(self) -> int:
        return self.end_hour - self.start_hour


@dataclass(slots=True)
class DayAnalysis:
    """Aggregated view of a single weekday."""

    weekday: int
    day_name: str
    avg_occupancy: float
    peak_hour: Optional[int]
    peak_occupancy: float
    quietest_hour: Optional[int]
    quietest_occupancy: float
    sample_count: int


@dataclass(slots=True)
class HourlyComparison:
    """Occupancy of one slot in a baseline period versus a current period."""

    weekday: int
    hour: int
    baseline_avg: float
    current_avg: float
    absolute_change: float
    percent_change: float
    baseline_samples: int
    current_samples: int

    @property
    def is_comparable(self) -> bool:
        return (
            self.baseline_samples >= MIN_SAMPLES_PER_SIDE
            and self.current_samples >= MIN_SAMPLES_PER_SIDE
        )

    def trend(self) -> TrendDirection:
        """Classify this slot's change using a +/-5% stability band."""
        if not self.is_comparable:
            return TrendDirection.INSUFFICIENT
        if self.percent_change > HOURLY_TREND_THRESHOLD:
            return TrendDirection.INCREASING
        if self.percent_change < -HOURLY_TREND_THRESHOLD:
            return TrendDirection.DECREASING
        return TrendDirection.STABLE


@dataclass(slots=True)
class PeriodComparison:
    """Full comparison between a baseline period and a current period."""

    mode: ComparisonMode
    baseline_overall_avg: float
    current_overall_avg: float
    overall_change_percent: float
    overall_trend: TrendDirection
    hourly_comparisons: List[HourlyComparison] = field(default_factory=list)
    biggest_increases: List[SlotValue] = field(default_factory=list)
    biggest_decreases: List[SlotValue] = field(default_factory=list)


@dataclass(slots=True)
class Insight:
    """A ranked, human-readable observation about occupancy patterns."""

    category: InsightCategory
    importance: int
    title: str
    description: str
    data: Optional[SlotValue] = None
