"""
Application Use Cases - Occupancy Insights

Loads slot averages for the standard analytics windows from the record store
and runs the analytics engine over them.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import List, Optional, Tuple

import structlog

from occupancy.domain.entities.analytics import (
    AnalyticsRange,
    ComparisonMode,
    DayAnalysis,
    Insight,
    OccupancyStats,
    PeriodComparison,
    SlotValue,
    TimePeriod,
)
from occupancy.domain.entities.errors import DataAccessError, ValidationError
from occupancy.domain.entities.occupancy import SlotAverage
from occupancy.domain.ports.clock import IClock
from occupancy.domain.repositories.record_store import IRecordStore
from occupancy.domain.services import occupancy_analytics as analytics

logger = structlog.get_logger(__name__)

PERIOD_WEEKS = {
    ComparisonMode.WEEK_OVER_WEEK: 1,
    ComparisonMode.MONTH_OVER_MONTH: 4,
}


@dataclass
class AnalyticsReport:
    """Analytics computed over one look-back range."""

    range: AnalyticsRange
    start: datetime
    end: datetime
    averages: List[SlotAverage]
    stats: Optional[OccupancyStats]
    days: List[DayAnalysis]
    peak_hours: List[SlotValue] = field(default_factory=list)
    quiet_hours: List[SlotValue] = field(default_factory=list)
    quiet_windows: List[TimePeriod] = field(default_factory=list)


class OccupancyInsightsUseCase:
    """Use case for loading analytics, comparisons and insights."""

    def __init__(
        self,
        record_store: IRecordStore,
        clock: IClock,
        prediction_window_days: int = 28,
        insights_window_weeks: int = 4,
        top_n: int = 5,
        quiet_threshold: float = analytics.QUIET_WINDOW_THRESHOLD,
        quiet_min_hours: int = analytics.QUIET_WINDOW_MIN_HOURS,
    ):
        self.record_store = record_store
        self.clock = clock
        self.prediction_window_days = prediction_window_days
        self.insights_window_weeks = insights_window_weeks
        self.top_n = top_n
        self.quiet_threshold = quiet_threshold
        self.quiet_min_hours = quiet_min_hours

    def week_start(self) -> datetime:
        """Monday 00:00 UTC of the current UTC week."""
        now = self.clock.now_utc()
        return analytics.midnight_utc(now.date() - timedelta(days=now.weekday()))

    def range_bounds(self, analytics_range: AnalyticsRange) -> Tuple[datetime, datetime]:
        start = self.week_start() - timedelta(weeks=analytics_range.weeks_before_current)
        return start, self.clock.now_utc()

    async def load_analytics(self, analytics_range: AnalyticsRange) -> AnalyticsReport:
        """Compute statistics, day patterns and quiet periods for a range."""
        start, end = self.range_bounds(analytics_range)
        averages = await self._slot_averages(start, end)

        report = AnalyticsReport(
            range=analytics_range,
            start=start,
            end=end,
            averages=averages,
            stats=analytics.calculate_stats(averages),
            days=analytics.analyze_days(averages),
            peak_hours=analytics.find_peak_hours(averages, self.top_n),
            quiet_hours=analytics.find_quiet_hours(averages, self.top_n),
            quiet_windows=analytics.find_quiet_windows(
                averages, self.quiet_threshold, self.quiet_min_hours
            ),
        )
        logger.info(
            "analytics.loaded",
            range=analytics_range.value,
            slots=len(averages),
        )
        return report

    async def generate_insights(self) -> List[Insight]:
        """
        Insights for the current window against the preceding window.

        The current window covers the last ``insights_window_weeks`` weeks
        (including the running week) up to now; the baseline is the same
        number of weeks immediately before it.
        """
        current_start = self.week_start() - timedelta(
            weeks=self.insights_window_weeks - 1
        )
        baseline_start = current_start - timedelta(weeks=self.insights_window_weeks)

        current = await self._slot_averages(current_start, self.clock.now_utc())
        baseline = await self._slot_averages(baseline_start, current_start)

        insights = analytics.generate_insights(current, baseline)
        logger.info(
            "insights.generated",
            count=len(insights),
            current_slots=len(current),
            baseline_slots=len(baseline),
        )
        return insights

    async def compare(self, mode: ComparisonMode) -> PeriodComparison:
        """Compare the running week with the same span one week or four weeks earlier."""
        if mode not in PERIOD_WEEKS:
            raise ValidationError(
                "Custom range comparisons need explicit bounds",
                details={"mode": mode.value},
            )
        shift = timedelta(weeks=PERIOD_WEEKS[mode])
        current_start = self.week_start()
        current_end = self.clock.now_utc()
        return await self.compare_ranges(
            current_start - shift,
            current_end - shift,
            current_start,
            current_end,
            mode=mode,
        )

    async def compare_ranges(
        self,
        baseline_start: datetime,
        baseline_end: datetime,
        current_start: datetime,
        current_end: datetime,
        mode: ComparisonMode = ComparisonMode.CUSTOM_RANGE,
    ) -> PeriodComparison:
        if baseline_start >= baseline_end or current_start >= current_end:
            raise ValidationError(
                "Comparison ranges must have start before end",
                details={
                    "baseline": [baseline_start.isoformat(), baseline_end.isoformat()],
                    "current": [current_start.isoformat(), current_end.isoformat()],
                },
            )
        baseline = await self._slot_averages(baseline_start, baseline_end)
        current = await self._slot_averages(current_start, current_end)
        return analytics.compare_periods(baseline, current, mode)

    async def prediction_baseline(self) -> List[SlotAverage]:
        """Slot averages over the last ``prediction_window_days`` days."""
        now = self.clock.now_utc()
        return await self._slot_averages(
            now - timedelta(days=self.prediction_window_days), now
        )

    async def _slot_averages(self, start: datetime, end: datetime) -> List[SlotAverage]:
        try:
            return await self.record_store.slot_averages(start, end)
        except DataAccessError:
            raise
        except Exception as exc:
            logger.error(
                "analytics.load.failed",
                start=start.isoformat(),
                end=end.isoformat(),
                error=str(exc),
            )
            raise DataAccessError(
                f"Failed to load slot averages: {exc}",
                details={"start": start.isoformat(), "end": end.isoformat()},
            ) from exc
