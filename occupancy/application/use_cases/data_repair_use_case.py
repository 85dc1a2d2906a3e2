"""
Application Use Cases - Data Repair

This module contains the use case that repairs stored occupancy samples day
by day: readings outside opening hours are zeroed, short gaps are filled by
linear interpolation and an end-of-day closing sample is ensured.
"""

from datetime import date, datetime, time, timedelta, timezone
from typing import Callable, List, Optional, Tuple

import structlog

from occupancy.domain.entities.errors import DataAccessError, RepairValidationError
from occupancy.domain.entities.occupancy import Sample
from occupancy.domain.entities.repair import (
    DayRepairResult,
    RepairProgress,
    RepairSummary,
)
from occupancy.domain.ports.schedule import IScheduleProvider
from occupancy.domain.repositories.record_store import IRecordStore

logger = structlog.get_logger(__name__)

MAX_GAP_MINUTES = 5
END_OF_DAY_MINUTE = 1

ProgressSink = Callable[[RepairProgress], None]
CancelCheck = Callable[[], bool]


class DataRepairUseCase:
    """Use case for repairing the stored occupancy series over a date range."""

    def __init__(
        self,
        record_store: IRecordStore,
        schedule: IScheduleProvider,
        max_gap_minutes: int = MAX_GAP_MINUTES,
    ):
        """
        Initialize the data repair use case.

        Args:
            record_store: Store holding the raw samples
            schedule: Opening hours and local time zone of the facility
            max_gap_minutes: Longest gap (in minutes) that is interpolated
        """
        self.record_store = record_store
        self.schedule = schedule
        self.max_gap_minutes = max_gap_minutes

    async def repair_range(
        self,
        start_date: date,
        end_date: date,
        progress_sink: Optional[ProgressSink] = None,
        should_cancel: Optional[CancelCheck] = None,
    ) -> RepairSummary:
        """
        Repair every local calendar day from ``start_date`` to ``end_date``.

        Days are processed sequentially. A progress tick is emitted before
        each day starts and ``should_cancel`` is checked between days, never
        in the middle of one.

        Args:
            start_date: First local date to repair (inclusive)
            end_date: Last local date to repair (inclusive)
            progress_sink: Optional callback receiving ``RepairProgress``
            should_cancel: Optional callback; returning True stops the job

        Returns:
            Summary of the changes made

        Raises:
            RepairValidationError: If ``start_date`` is after ``end_date``
            DataAccessError: If the store fails; ``details["summary"]`` holds
                the summary accumulated before the failing day
        """
        if start_date > end_date:
            raise RepairValidationError(
                "Repair start date must not be after end date",
                details={"start_date": str(start_date), "end_date": str(end_date)},
            )

        total_days = (end_date - start_date).days + 1
        summary = RepairSummary()

        logger.info(
            "repair.started",
            start_date=str(start_date),
            end_date=str(end_date),
            total_days=total_days,
        )

        current = start_date
        while current <= end_date:
            if should_cancel is not None and should_cancel():
                summary.cancelled = True
                logger.info(
                    "repair.cancelled",
                    next_day=str(current),
                    days_processed=summary.days_processed,
                )
                break

            self._emit_progress(
                progress_sink,
                RepairProgress(
                    current_day=current,
                    total_days=total_days,
                    processed_days=summary.days_processed,
                ),
            )

            try:
                result = await self.repair_day(current)
            except Exception as exc:
                logger.error(
                    "repair.day.failed",
                    day=str(current),
                    error=str(exc),
                    exc_info=exc,
                )
                raise DataAccessError(
                    f"Failed to repair data for {current}: {exc}",
                    details={"day": str(current), "summary": summary},
                ) from exc

            summary.days_processed += 1
            summary.gaps_filled += result.gaps_filled
            summary.records_zeroed += result.records_zeroed
            if result.end_entry_added:
                summary.end_entries_added += 1

            current += timedelta(days=1)

        logger.info(
            "repair.completed",
            days_processed=summary.days_processed,
            gaps_filled=summary.gaps_filled,
            records_zeroed=summary.records_zeroed,
            end_entries_added=summary.end_entries_added,
            cancelled=summary.cancelled,
        )
        return summary

    async def repair_day(self, day: date) -> DayRepairResult:
        """Run the three repair passes for one local date, re-reading between passes."""
        open_hour = self.schedule.open_hour(day)
        close_hour = self.schedule.close_hour(day)
        result = DayRepairResult()

        records = await self.record_store.records_for_local_date(day)
        result.records_zeroed = await self._zero_outside_hours(
            records, day, open_hour, close_hour
        )

        records = await self.record_store.records_for_local_date(day)
        result.gaps_filled = await self._fill_gaps(records, day, open_hour, close_hour)

        records = await self.record_store.records_for_local_date(day)
        result.end_entry_added = await self._ensure_end_of_day_entry(
            records, day, close_hour
        )

        logger.debug(
            "repair.day.completed",
            day=str(day),
            open_hour=open_hour,
            close_hour=close_hour,
            records_zeroed=result.records_zeroed,
            gaps_filled=result.gaps_filled,
            end_entry_added=result.end_entry_added,
        )
        return result

    async def _zero_outside_hours(
        self, records: List[Sample], day: date, open_hour: int, close_hour: int
    ) -> int:
        open_time = time(open_hour, 0)
        close_time = time(close_hour, 0)
        zeroed = 0

        for record in records:
            local = self._to_local(record.timestamp)
            if local.date() != day:
                continue
            local_time = local.time().replace(tzinfo=None)
            is_outside = local_time < open_time or local_time > close_time
            if is_outside and record.value != 0.0:
                await self.record_store.update_value(record.id, 0.0)
                zeroed += 1

        return zeroed

    async def _fill_gaps(
        self, records: List[Sample], day: date, open_hour: int, close_hour: int
    ) -> int:
        points: List[Tuple[int, float]] = []
        for record in records:
            local = self._to_local(record.timestamp)
            if local.date() == day:
                points.append((local.hour * 60 + local.minute, record.value))
        points.sort(key=lambda point: point[0])
        if len(points) < 2:
            return 0

        open_minute = open_hour * 60
        close_minute = close_hour * 60
        inserts: List[Tuple[datetime, float]] = []

        for (m1, v1), (m2, v2) in zip(points, points[1:]):
            gap = m2 - m1
            if not 1 < gap <= self.max_gap_minutes:
                continue
            if m1 < open_minute or m2 > close_minute:
                continue

            for minute in range(m1 + 1, m2):
                timestamp = self._local_minute_to_utc(day, minute)
                if timestamp is None:
                    logger.debug(
                        "repair.gap.nonexistent_local_time", day=str(day), minute=minute
                    )
                    continue
                inserts.append((timestamp, v1 + (minute - m1) / gap * (v2 - v1)))

        if inserts:
            await self.record_store.batch_insert(inserts)
        return len(inserts)

    async def _ensure_end_of_day_entry(
        self, records: List[Sample], day: date, close_hour: int
    ) -> bool:
        for record in records:
            local = self._to_local(record.timestamp)
            if (
                local.date() == day
                and local.hour == close_hour
                and local.minute == END_OF_DAY_MINUTE
            ):
                return False

        timestamp = self._local_minute_to_utc(
            day, close_hour * 60 + END_OF_DAY_MINUTE
        )
        if timestamp is None:
            logger.warning(
                "repair.end_of_day.nonexistent_local_time",
                day=str(day),
                close_hour=close_hour,
            )
            return False

        await self.record_store.insert(timestamp, 0.0)
        return True

    def _to_local(self, timestamp: datetime) -> datetime:
        return timestamp.astimezone(self.schedule.timezone)

    def _local_minute_to_utc(self, day: date, minute_of_day: int) -> Optional[datetime]:
        """
        Convert a local wall-clock minute to UTC.

        Returns None for wall times skipped by a daylight-saving transition;
        repeated wall times resolve to their first occurrence.
        """
        naive = datetime.combine(day, time(minute_of_day // 60, minute_of_day % 60))
        local = naive.replace(tzinfo=self.schedule.timezone, fold=0)
        utc = local.astimezone(timezone.utc)
        if utc.astimezone(self.schedule.timezone).replace(tzinfo=None) != naive:
            return None
        return utc

    @staticmethod
    def _emit_progress(sink: Optional[ProgressSink], progress: RepairProgress) -> None:
        if sink is None:
            return
        try:
            sink(progress)
        except Exception as exc:
            logger.warning(
                "repair.progress_sink.failed",
                day=str(progress.current_day),
                error=str(exc),
            )
