"""
Feature Extractor - Domain Service

Turns a target instant, the slot baseline and a short window of recent raw
samples into the fixed ``PredictionFeatures`` vector used by the regression
model.
"""

import math
from collections import defaultdict
from datetime import datetime, time, timedelta
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from occupancy.domain.entities.forecast import PredictionFeatures
from occupancy.domain.entities.occupancy import Slot, SlotAverage, SlotStatistics
from occupancy.domain.ports.schedule import IScheduleProvider

RecentSample = Tuple[datetime, float]

DEFAULT_LEVEL = 50.0
DEFAULT_GLOBAL_STD = 15.0
DEFAULT_BASELINE_STD = 10.0
SAMPLES_PER_HOUR = 60


def cyclical_encode(value: float, period: float) -> Tuple[float, float]:
    """Encode a periodic value as ``(sin, cos)`` of ``2*pi*value/period``."""
    angle = 2.0 * math.pi * value / period
    return math.sin(angle), math.cos(angle)


def _mean_or_default(values: Sequence[float]) -> float:
    return float(np.mean(values)) if len(values) else DEFAULT_LEVEL


def _trend_slope(values: Sequence[float]) -> float:
    """Least-squares slope over sample index, scaled to change per hour."""
    if len(values) < 2:
        return 0.0
    y = np.asarray(values, dtype=float)
    x = np.arange(len(y), dtype=float)
    dx = x - x.mean()
    denominator = float(np.sum(dx**2))
    if abs(denominator) < np.finfo(float).eps:
        return 0.0
    return float(np.sum(dx * (y - y.mean())) / denominator) * SAMPLES_PER_HOUR


class FeatureExtractor:
    """Builds prediction features and keeps per-slot historical statistics."""

    def __init__(self):
        self._historical_stats: Dict[Slot, SlotStatistics] = {}

    @property
    def historical_stats(self) -> Dict[Slot, SlotStatistics]:
        return dict(self._historical_stats)

    def update_historical_stats(self, baseline: Sequence[SlotAverage]) -> None:
        """
        Rebuild the slot statistics from a baseline.

        Values are grouped by slot; each group contributes its mean and its
        sample standard deviation (0 for single-entry groups).
        """
        groups: Dict[Slot, List[float]] = defaultdict(list)
        for avg in baseline:
            groups[avg.slot].append(avg.mean_percentage)

        stats: Dict[Slot, SlotStatistics] = {}
        for slot, values in groups.items():
            array = np.asarray(values, dtype=float)
            std_dev = float(np.std(array, ddof=1)) if len(array) > 1 else 0.0
            stats[slot] = SlotStatistics(
                mean=float(array.mean()), std_dev=std_dev, sample_count=len(array)
            )
        self._historical_stats = stats

    def slot_statistics(self, weekday: int, hour: int) -> Optional[SlotStatistics]:
        return self._historical_stats.get((weekday, hour))

    def slot_std(self, weekday: int, hour: int) -> Optional[float]:
        stats = self._historical_stats.get((weekday, hour))
        return stats.std_dev if stats else None

    def extract(
        self,
        target_time: datetime,
        hours_ahead: int,
        recent_samples: Sequence[RecentSample],
        baseline: Sequence[SlotAverage],
        schedule: IScheduleProvider,
    ) -> PredictionFeatures:
        """
        Extract features for a prediction target.

        Calendar features (cyclical encodings, weekend, holiday, day-level
        averages) use the schedule's local time. Historical slot statistics
        are looked up by the target's UTC slot, matching how the store keys
        its aggregates.

        Args:
            target_time: Aware UTC instant being predicted
            hours_ahead: Forecast horizon in hours
            recent_samples: Chronological ``(utc_timestamp, value)`` window
            baseline: Slot averages used when no statistics are available
            schedule: Source of the local zone and the holiday calendar
        """
        local_time = target_time.astimezone(schedule.timezone)
        local_weekday = local_time.weekday()

        hour_sin, hour_cos = cyclical_encode(local_time.hour, 24)
        weekday_sin, weekday_cos = cyclical_encode(local_weekday, 7)
        week_sin, week_cos = cyclical_encode(local_time.isocalendar()[1], 52)

        historical_avg, historical_std = self._historical_level(
            (target_time.weekday(), target_time.hour), baseline
        )
        recent_1h, recent_3h, trend = self._momentum(recent_samples)
        day_avg, prev_day_avg = self._day_features(recent_samples, local_time, schedule)

        return PredictionFeatures(
            hour_sin=hour_sin,
            hour_cos=hour_cos,
            weekday_sin=weekday_sin,
            weekday_cos=weekday_cos,
            historical_avg=historical_avg,
            historical_std=historical_std,
            recent_avg_1h=recent_1h,
            recent_avg_3h=recent_3h,
            recent_trend=trend,
            day_avg_so_far=day_avg,
            prev_day_avg=prev_day_avg,
            is_weekend=1.0 if local_weekday >= 5 else 0.0,
            is_holiday=1.0 if schedule.is_holiday(local_time.date()) else 0.0,
            week_of_year_sin=week_sin,
            week_of_year_cos=week_cos,
            hours_ahead=float(hours_ahead),
        )

    def _historical_level(
        self, slot: Slot, baseline: Sequence[SlotAverage]
    ) -> Tuple[float, float]:
        stats = self._historical_stats.get(slot)
        if stats is not None:
            return stats.mean, stats.std_dev
        for avg in baseline:
            if avg.slot == slot:
                return avg.mean_percentage, DEFAULT_BASELINE_STD
        return DEFAULT_LEVEL, DEFAULT_GLOBAL_STD

    def _momentum(self, recent: Sequence[RecentSample]) -> Tuple[float, float, float]:
        if not recent:
            return DEFAULT_LEVEL, DEFAULT_LEVEL, 0.0

        latest = recent[-1][0]
        one_hour_ago = latest - timedelta(hours=1)
        three_hours_ago = latest - timedelta(hours=3)

        last_hour = [v for t, v in recent if t >= one_hour_ago]
        last_three_hours = [v for t, v in recent if t >= three_hours_ago]

        return (
            _mean_or_default(last_hour),
            _mean_or_default(last_three_hours),
            _trend_slope(last_three_hours),
        )

    def _day_features(
        self,
        recent: Sequence[RecentSample],
        local_time: datetime,
        schedule: IScheduleProvider,
    ) -> Tuple[float, float]:
        # local midnights as aware bounds; samples are compared, not converted
        today = local_time.date()
        zone = schedule.timezone
        start_today = datetime.combine(today, time.min, tzinfo=zone)
        start_yesterday = datetime.combine(
            today - timedelta(days=1), time.min, tzinfo=zone
        )
        start_tomorrow = datetime.combine(
            today + timedelta(days=1), time.min, tzinfo=zone
        )

        today_values: List[float] = []
        yesterday_values: List[float] = []
        for timestamp, value in recent:
            if start_today <= timestamp < start_tomorrow:
                today_values.append(value)
            elif start_yesterday <= timestamp < start_today:
                yesterday_values.append(value)

        return _mean_or_default(today_values), _mean_or_default(yesterday_values)
