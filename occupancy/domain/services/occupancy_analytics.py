"""
Occupancy Analytics - Domain Service

Pure, synchronous functions over slices of ``SlotAverage``: aggregate
statistics, per-day analysis, peak and quiet detection, period comparison and
insight generation. Functions that may legitimately see no data return an
empty list or ``None`` instead of raising.

Slots are keyed by UTC weekday and hour, as computed by the record store.
"""

from datetime import date, datetime, time, timedelta, timezone, tzinfo
from statistics import fmean, median, pstdev
from typing import Dict, List, Optional, Sequence, Tuple

import structlog

from occupancy.domain.entities.analytics import (
    ComparisonMode,
    DayAnalysis,
    HourlyComparison,
    Insight,
    InsightCategory,
    OccupancyStats,
    PeriodComparison,
    SlotValue,
    TimePeriod,
    TrendDirection,
)
from occupancy.domain.entities.occupancy import Slot, SlotAverage
from occupancy.domain.ports.clock import IClock
from occupancy.domain.ports.schedule import IScheduleProvider
from occupancy.shared.consts import weekday_name, weekday_short

logger = structlog.get_logger(__name__)

MIN_SLOT_SAMPLES = 2
MIN_QUALIFYING_COMPARISONS = 5
OVERALL_TREND_THRESHOLD = 3.0
MIN_DAY_SAMPLES = 5
QUIET_WINDOW_THRESHOLD = 40.0
QUIET_WINDOW_MIN_HOURS = 2
TOP_CHANGES = 3


def midnight_utc(day: date) -> datetime:
    """Return 00:00 UTC of the given calendar date."""
    return datetime.combine(day, time.min, tzinfo=timezone.utc)


def _truncate_to_hour(dt: datetime) -> datetime:
    return dt.replace(minute=0, second=0, microsecond=0)


def _weighted_average(data: Sequence[SlotAverage]) -> float:
    total_samples = sum(d.sample_count for d in data)
    if total_samples <= 0:
        return 0.0
    return sum(d.mean_percentage * d.sample_count for d in data) / total_samples


# ==================== Statistics ====================


def calculate_stats(data: Sequence[SlotAverage]) -> Optional[OccupancyStats]:
    """Mean, median, population std, range and coefficient of variation."""
    if not data:
        return None

    values = [d.mean_percentage for d in data]
    mean = fmean(values)
    std_dev = pstdev(values, mu=mean)

    return OccupancyStats(
        mean=mean,
        median=median(values),
        std_dev=std_dev,
        min=min(values),
        max=max(values),
        sample_count=len(values),
        coefficient_of_variation=std_dev / mean if mean > 0 else 0.0,
    )


def analyze_days(data: Sequence[SlotAverage]) -> List[DayAnalysis]:
    """Analyze each of the seven weekdays (always returns seven entries)."""
    analysis = []
    for weekday in range(7):
        day_data = [d for d in data if d.weekday == weekday]

        peak = max(day_data, key=lambda d: d.mean_percentage, default=None)
        quietest = min(day_data, key=lambda d: d.mean_percentage, default=None)

        analysis.append(
            DayAnalysis(
                weekday=weekday,
                day_name=weekday_name(weekday),
                avg_occupancy=_weighted_average(day_data),
                peak_hour=peak.hour if peak else None,
                peak_occupancy=peak.mean_percentage if peak else 0.0,
                quietest_hour=quietest.hour if quietest else None,
                quietest_occupancy=quietest.mean_percentage if quietest else 0.0,
                sample_count=sum(d.sample_count for d in day_data),
            )
        )
    return analysis


def find_peak_hours(data: Sequence[SlotAverage], top_n: int) -> List[SlotValue]:
    """The ``top_n`` busiest slots with at least two samples."""
    candidates = [
        (d.weekday, d.hour, d.mean_percentage)
        for d in data
        if d.sample_count >= MIN_SLOT_SAMPLES
    ]
    candidates.sort(key=lambda c: c[2], reverse=True)
    return candidates[:top_n]


def find_quiet_hours(data: Sequence[SlotAverage], top_n: int) -> List[SlotValue]:
    """The ``top_n`` quietest observed slots.

    Slots with a mean of exactly zero are treated as never observed.
    """
    candidates = [
        (d.weekday, d.hour, d.mean_percentage)
        for d in data
        if d.sample_count >= MIN_SLOT_SAMPLES and d.mean_percentage > 0.0
    ]
    candidates.sort(key=lambda c: c[2])
    return candidates[:top_n]


def find_quiet_windows(
    data: Sequence[SlotAverage], threshold: float, min_hours: int
) -> List[TimePeriod]:
    """
    Find runs of consecutive quiet hours per weekday.

    A run is made of the day's slots (sorted by hour, at least two samples)
    whose mean is at or below ``threshold``. Runs shorter than ``min_hours``
    are dropped; a run still open at the end of the day ends at hour 24.

    Returns:
        Windows sorted by ascending average occupancy
    """
    windows: List[TimePeriod] = []

    for weekday in range(7):
        day_hours = sorted(
            (
                d
                for d in data
                if d.weekday == weekday and d.sample_count >= MIN_SLOT_SAMPLES
            ),
            key=lambda d: d.hour,
        )

        start: Optional[int] = None
        values: List[float] = []

        for slot in day_hours:
            if slot.mean_percentage <= threshold:
                if start is None:
                    start = slot.hour
                    values = []
                values.append(slot.mean_percentage)
                continue

            if start is not None and len(values) >= min_hours:
                windows.append(TimePeriod(weekday, start, slot.hour, fmean(values)))
            start = None

        if start is not None and len(values) >= min_hours:
            windows.append(TimePeriod(weekday, start, 24, fmean(values)))

    windows.sort(key=lambda w: w.avg_occupancy)
    return windows


# ==================== Comparative analytics ====================


def _percent_change(baseline_avg: float, current_avg: float) -> float:
    if baseline_avg > 0:
        return (current_avg - baseline_avg) / baseline_avg * 100.0
    if current_avg > 0:
        return 100.0
    return 0.0


def build_hourly_comparisons(
    baseline: Sequence[SlotAverage], current: Sequence[SlotAverage]
) -> List[HourlyComparison]:
    """Outer-join two slot sets on ``(weekday, hour)``, ordered by slot."""
    baseline_map: Dict[Slot, SlotAverage] = {d.slot: d for d in baseline}
    current_map: Dict[Slot, SlotAverage] = {d.slot: d for d in current}

    comparisons = []
    for weekday, hour in sorted(baseline_map.keys() | current_map.keys()):
        before = baseline_map.get((weekday, hour))
        after = current_map.get((weekday, hour))

        baseline_avg = before.mean_percentage if before else 0.0
        current_avg = after.mean_percentage if after else 0.0

        comparisons.append(
            HourlyComparison(
                weekday=weekday,
                hour=hour,
                baseline_avg=baseline_avg,
                current_avg=current_avg,
                absolute_change=current_avg - baseline_avg,
                percent_change=_percent_change(baseline_avg, current_avg),
                baseline_samples=before.sample_count if before else 0,
                current_samples=after.sample_count if after else 0,
            )
        )
    return comparisons


def determine_trend(comparisons: Sequence[HourlyComparison]) -> TrendDirection:
    """Overall trend from the comparisons with two or more samples per side."""
    qualifying = [c for c in comparisons if c.is_comparable]
    if len(qualifying) < MIN_QUALIFYING_COMPARISONS:
        return TrendDirection.INSUFFICIENT

    avg_change = fmean(c.percent_change for c in qualifying)
    if avg_change > OVERALL_TREND_THRESHOLD:
        return TrendDirection.INCREASING
    if avg_change < -OVERALL_TREND_THRESHOLD:
        return TrendDirection.DECREASING
    return TrendDirection.STABLE


def compare_periods(
    baseline: Sequence[SlotAverage],
    current: Sequence[SlotAverage],
    mode: ComparisonMode,
) -> PeriodComparison:
    """Compare a baseline period with a current period."""
    hourly = build_hourly_comparisons(baseline, current)

    baseline_overall = _weighted_average(baseline)
    current_overall = _weighted_average(current)
    overall_change = (
        (current_overall - baseline_overall) / baseline_overall * 100.0
        if baseline_overall > 0
        else 0.0
    )

    ranked = sorted(
        (c for c in hourly if c.is_comparable),
        key=lambda c: c.percent_change,
        reverse=True,
    )
    increases = [
        (c.weekday, c.hour, c.percent_change) for c in ranked if c.percent_change > 0
    ][:TOP_CHANGES]
    decreases = [
        (c.weekday, c.hour, c.percent_change)
        for c in reversed(ranked)
        if c.percent_change < 0
    ][:TOP_CHANGES]

    return PeriodComparison(
        mode=mode,
        baseline_overall_avg=baseline_overall,
        current_overall_avg=current_overall,
        overall_change_percent=overall_change,
        overall_trend=determine_trend(hourly),
        hourly_comparisons=hourly,
        biggest_increases=increases,
        biggest_decreases=decreases,
    )


# ==================== Insights ====================


def _consistency_level(cv: float) -> str:
    if cv < 0.3:
        return "very consistent"
    if cv < 0.5:
        return "moderately consistent"
    return "highly variable"


def _trend_description(comparison: PeriodComparison) -> str:
    change = abs(comparison.overall_change_percent)
    if comparison.overall_trend is TrendDirection.INCREASING:
        return (
            f"Occupancy has increased by {change:.1f}% compared to the previous "
            "period. Consider adjusting your workout times."
        )
    if comparison.overall_trend is TrendDirection.DECREASING:
        return (
            f"Good news! Occupancy has decreased by {change:.1f}% compared to the "
            "previous period."
        )
    if comparison.overall_trend is TrendDirection.STABLE:
        return "Occupancy patterns are stable compared to the previous period."
    return "Not enough data to determine occupancy trends."


def _trend_importance(trend: TrendDirection) -> int:
    if trend is TrendDirection.INCREASING:
        return 4
    if trend is TrendDirection.DECREASING:
        return 3
    return 2


def generate_insights(
    current: Sequence[SlotAverage],
    baseline: Optional[Sequence[SlotAverage]] = None,
) -> List[Insight]:
    """
    Build ranked insights for the current period.

    Insights are assembled in a fixed order (consistency, busiest day,
    quietest day, peak hours, best quiet window, then trend and biggest
    increase when a baseline is given) and finally stable-sorted by
    descending importance.
    """
    insights: List[Insight] = []

    stats = calculate_stats(current)
    if stats is not None:
        insights.append(
            Insight(
                category=InsightCategory.CONSISTENCY,
                importance=2,
                title=f"Occupancy is {_consistency_level(stats.coefficient_of_variation)}",
                description=(
                    f"Average occupancy is {stats.mean:.1f}% with a standard "
                    f"deviation of {stats.std_dev:.1f}%. Range: {stats.min:.1f}% "
                    f"to {stats.max:.1f}%."
                ),
            )
        )

    days = analyze_days(current)
    busiest = max(days, key=lambda d: d.avg_occupancy)
    if busiest.sample_count >= MIN_DAY_SAMPLES:
        peak_hour = busiest.peak_hour or 0
        insights.append(
            Insight(
                category=InsightCategory.DAY_PATTERN,
                importance=3,
                title=f"{busiest.day_name} is the busiest day",
                description=(
                    f"Average occupancy on {busiest.day_name} is "
                    f"{busiest.avg_occupancy:.1f}%, peaking at "
                    f"{busiest.peak_occupancy:.1f}% around {peak_hour}:00."
                ),
                data=(busiest.weekday, peak_hour, busiest.avg_occupancy),
            )
        )

    quietest = min(
        (d for d in days if d.sample_count >= MIN_DAY_SAMPLES),
        key=lambda d: d.avg_occupancy,
        default=None,
    )
    if quietest is not None:
        quiet_hour = quietest.quietest_hour or 0
        insights.append(
            Insight(
                category=InsightCategory.QUIET_TIME,
                importance=4,
                title=f"{quietest.day_name} is the quietest day",
                description=(
                    f"Average occupancy on {quietest.day_name} is only "
                    f"{quietest.avg_occupancy:.1f}%. Best time: around "
                    f"{quiet_hour}:00 ({quietest.quietest_occupancy:.1f}%)."
                ),
                data=(quietest.weekday, quiet_hour, quietest.quietest_occupancy),
            )
        )

    peaks = find_peak_hours(current, TOP_CHANGES)
    if peaks:
        listed = ", ".join(f"{weekday_short(w)} {h}:00 ({p:.0f}%)" for w, h, p in peaks)
        insights.append(
            Insight(
                category=InsightCategory.PEAK,
                importance=3,
                title="Busiest times to avoid",
                description=f"Peak hours: {listed}",
                data=peaks[0],
            )
        )

    windows = find_quiet_windows(current, QUIET_WINDOW_THRESHOLD, QUIET_WINDOW_MIN_HOURS)
    if windows:
        best = windows[0]
        insights.append(
            Insight(
                category=InsightCategory.QUIET_TIME,
                importance=5,
                title="Best workout window",
                description=(
                    f"{weekday_short(best.weekday)} {best.start_hour}:00-"
                    f"{best.end_hour}:00 averages only {best.avg_occupancy:.1f}% "
                    f"occupancy. {len(windows) - 1} more quiet windows available."
                ),
                data=(best.weekday, best.start_hour, best.avg_occupancy),
            )
        )

    if baseline is not None:
        comparison = compare_periods(baseline, current, ComparisonMode.WEEK_OVER_WEEK)
        insights.append(
            Insight(
                category=InsightCategory.TREND,
                importance=_trend_importance(comparison.overall_trend),
                title=f"Gym is {comparison.overall_trend.description}",
                description=_trend_description(comparison),
            )
        )

        if comparison.biggest_increases:
            w, h, change = comparison.biggest_increases[0]
            insights.append(
                Insight(
                    category=InsightCategory.ANOMALY,
                    importance=3,
                    title="Significant occupancy increase",
                    description=(
                        f"{weekday_short(w)} at {h}:00 has seen a {change:.0f}% "
                        "increase in occupancy. You may want to avoid this time slot."
                    ),
                    data=(w, h, change),
                )
            )

    insights.sort(key=lambda i: i.importance, reverse=True)
    return insights


# ==================== Simple lookups ====================


def calculate_predictions(
    baseline: Sequence[SlotAverage],
    schedule: IScheduleProvider,
    clock: IClock,
    hours: int = 2,
) -> List[Tuple[datetime, float]]:
    """
    Look up the historical average for each of the next ``hours`` hours.

    Hours at which the facility is closed, or whose UTC slot is missing from
    the baseline, are skipped. Timestamps are truncated to the hour.
    """
    if not baseline:
        return []

    by_slot = {d.slot: d for d in baseline}
    now = clock.now_utc()
    predictions = []

    for hours_ahead in range(1, hours + 1):
        target = now + timedelta(hours=hours_ahead)
        if not schedule.is_open(target.astimezone(schedule.timezone)):
            continue

        match = by_slot.get((target.weekday(), target.hour))
        if match is not None:
            predictions.append((_truncate_to_hour(target), match.mean_percentage))

    return predictions


def find_best_time_today(
    data: Sequence[SlotAverage],
    clock: IClock,
    tz: Optional[tzinfo] = None,
) -> Optional[Tuple[int, float]]:
    """
    Find the quietest local hour of the local "today".

    Each UTC slot is placed on concrete instants in the previous, current and
    next UTC week and converted with the offset valid at that instant, so a
    daylight-saving change between the slot and now does not shift it.

    Returns:
        ``(local_hour, mean_percentage)`` or ``None`` when no slot falls on
        today's local date
    """
    if not data:
        return None

    now_utc = clock.now_utc()
    zone = tz or clock.now_local().tzinfo
    today = now_utc.astimezone(zone).date()
    week_start = midnight_utc(now_utc.date() - timedelta(days=now_utc.weekday()))

    candidates: List[Tuple[int, float]] = []
    for slot in data:
        for week in (-1, 0, 1):
            instant = week_start + timedelta(
                days=week * 7 + slot.weekday, hours=slot.hour
            )
            local = instant.astimezone(zone)
            if local.date() == today:
                candidates.append((local.hour, slot.mean_percentage))

    best = min(candidates, key=lambda c: c[1], default=None)
    logger.debug("analytics.best_time_today", today=str(today), best=best)
    return best

