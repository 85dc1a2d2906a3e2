from __future__ import annotations

import sys
from collections import defaultdict
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Dict, Iterator, List, Sequence, Tuple
from uuid import UUID, uuid4

import pytest

from occupancy.domain.entities.occupancy import Sample, SlotAverage
from occupancy.domain.repositories.record_store import IRecordStore
from occupancy.infrastructure.services.clock import FixedClock

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

UTC = timezone.utc


class InMemoryRecordStore(IRecordStore):
    """Record store keeping samples in a list, keyed like the Mongo store."""

    def __init__(self, local_timezone: tzinfo = UTC) -> None:
        self.local_timezone = local_timezone
        self.samples: List[Sample] = []
        self.updates: List[Tuple[UUID, float]] = []
        self.fail_on_read = False

    def add(self, timestamp: datetime, value: float) -> Sample:
        sample = Sample(id=uuid4(), timestamp=timestamp.astimezone(UTC), value=value)
        self.samples.append(sample)
        return sample

    async def insert(self, timestamp: datetime, value: float) -> UUID:
        return self.add(timestamp, value).id

    async def batch_insert(self, samples: Sequence[Tuple[datetime, float]]) -> int:
        for timestamp, value in samples:
            self.add(timestamp, value)
        return len(samples)

    async def update_value(self, sample_id: UUID, value: float) -> None:
        for sample in self.samples:
            if sample.id == sample_id:
                sample.value = value
                self.updates.append((sample_id, value))
                return
        raise KeyError(sample_id)

    async def records_for_local_date(self, local_date: date) -> List[Sample]:
        start = datetime.combine(local_date, time.min, tzinfo=self.local_timezone)
        end = datetime.combine(
            local_date + timedelta(days=1), time.min, tzinfo=self.local_timezone
        )
        return await self.records_between(start.astimezone(UTC), end.astimezone(UTC))

    async def records_between(self, start: datetime, end: datetime) -> List[Sample]:
        if self.fail_on_read:
            raise RuntimeError("store unavailable")
        selected = [s for s in self.samples if start <= s.timestamp < end]
        return sorted(selected, key=lambda s: s.timestamp)

    async def slot_averages(self, start: datetime, end: datetime) -> List[SlotAverage]:
        if self.fail_on_read:
            raise RuntimeError("store unavailable")
        groups: Dict[Tuple[int, int], List[float]] = defaultdict(list)
        for sample in self.samples:
            if start <= sample.timestamp < end:
                ts = sample.timestamp.astimezone(UTC)
                groups[(ts.weekday(), ts.hour)].append(sample.value)
        return [
            SlotAverage(
                weekday=weekday,
                hour=hour,
                mean_percentage=sum(values) / len(values),
                sample_count=len(values),
            )
            for (weekday, hour), values in sorted(groups.items())
        ]


class AlwaysOpenSchedule:
    """Schedule that is open around the clock and has no holidays."""

    def __init__(self, tz: tzinfo = UTC) -> None:
        self._tz = tz

    @property
    def timezone(self) -> tzinfo:
        return self._tz

    def is_open(self, local_dt: datetime) -> bool:
        return True

    def open_hour(self, day: date) -> int:
        return 0

    def close_hour(self, day: date) -> int:
        return 23

    def is_holiday(self, day: date) -> bool:
        return False


class FakeCursor:
    def __init__(self, documents: Sequence[Dict[str, Any]]):
        self._documents = list(documents)
        self._limit: int | None = None

    def sort(self, key: str, direction: int = 1) -> "FakeCursor":
        self._documents.sort(key=lambda d: d[key], reverse=direction < 0)
        return self

    def limit(self, amount: int) -> "FakeCursor":
        self._limit = amount
        return self

    def __iter__(self) -> Iterator[Dict[str, Any]]:
        docs = self._documents
        if self._limit:
            docs = docs[: self._limit]
        return iter(docs)


def _matches(document: Dict[str, Any], query: Dict[str, Any]) -> bool:
    for key, condition in query.items():
        value = document.get(key)
        if isinstance(condition, dict):
            if "$gte" in condition and not value >= condition["$gte"]:
                return False
            if "$lt" in condition and not value < condition["$lt"]:
                return False
        elif value != condition:
            return False
    return True


class FakeCollection:
    """Subset of a pymongo collection used by the record store."""

    def __init__(self) -> None:
        self.documents: List[Dict[str, Any]] = []
        self.created_indexes: List[tuple[Any, ...]] = []
        self.pipelines: List[List[Dict[str, Any]]] = []

    def find_one(self, query: Dict[str, Any]) -> Dict[str, Any] | None:
        return next((d for d in self.documents if _matches(d, query)), None)

    def find(self, query: Dict[str, Any]) -> FakeCursor:
        return FakeCursor([d for d in self.documents if _matches(d, query)])

    def insert_one(self, document: Dict[str, Any]) -> Any:
        self.documents.append(document)
        return SimpleNamespace(acknowledged=True, inserted_id=document.get("id"))

    def insert_many(self, documents: List[Dict[str, Any]], ordered: bool = True) -> Any:
        self.documents.extend(documents)
        return SimpleNamespace(
            acknowledged=True, inserted_ids=[d.get("id") for d in documents]
        )

    def update_one(self, query: Dict[str, Any], update: Dict[str, Any]) -> Any:
        document = self.find_one(query)
        if document is None:
            return SimpleNamespace(matched_count=0, acknowledged=True)
        document.update(update.get("$set", {}))
        return SimpleNamespace(matched_count=1, acknowledged=True)

    def aggregate(self, pipeline: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Evaluates the slot-average pipeline: $match, $group by UTC slot, $sort."""
        self.pipelines.append(pipeline)
        match = pipeline[0]["$match"]
        groups: Dict[Tuple[int, int], List[float]] = defaultdict(list)
        for document in self.documents:
            if _matches(document, match):
                ts = document["timestamp"].astimezone(UTC)
                groups[(ts.weekday(), ts.hour)].append(document["value"])
        return [
            {
                "_id": {"weekday": weekday, "hour": hour},
                "mean_percentage": sum(values) / len(values),
                "sample_count": len(values),
            }
            for (weekday, hour), values in sorted(groups.items())
        ]

    def create_index(self, keys: Any, name: str | None = None, **kwargs: Any) -> Any:
        self.created_indexes.append((keys, name, kwargs))
        return name or keys


class FakeMongoDatabase:
    def __init__(self) -> None:
        self.collections: Dict[str, FakeCollection] = {}

    def get_collection(self, name: str) -> FakeCollection:
        return self.collections.setdefault(name, FakeCollection())

    async def find_many(
        self,
        collection_name: str,
        query: Dict[str, Any],
        sort_by: str | None = None,
        sort_direction: int = 1,
        limit: int = 0,
    ) -> List[Dict[str, Any]]:
        cursor = self.get_collection(collection_name).find(query)
        if sort_by:
            cursor.sort(sort_by, sort_direction)
        cursor.limit(limit)
        return list(cursor)

    async def insert_one(self, collection_name: str, document: Dict[str, Any]) -> Any:
        self.get_collection(collection_name).insert_one(document)
        return document

    async def insert_many(
        self, collection_name: str, documents: Sequence[Dict[str, Any]]
    ) -> int:
        if not documents:
            return 0
        result = self.get_collection(collection_name).insert_many(list(documents))
        return len(result.inserted_ids)

    async def update_one(
        self, collection_name: str, query: Dict[str, Any], update: Dict[str, Any]
    ) -> None:
        result = self.get_collection(collection_name).update_one(query, update)
        if result.matched_count == 0:
            raise Exception(f"Document not found in {collection_name}")

    async def aggregate(
        self, collection_name: str, pipeline: List[Dict[str, Any]]
    ) -> List[Dict[str, Any]]:
        return self.get_collection(collection_name).aggregate(pipeline)

    async def create_indexes(self) -> None:  # pragma: no cover - stub for tests
        pass

    def close(self) -> None:
        pass


@pytest.fixture()
def fake_mongo_database() -> FakeMongoDatabase:
    return FakeMongoDatabase()


@pytest.fixture()
def record_store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture()
def always_open_schedule() -> AlwaysOpenSchedule:
    return AlwaysOpenSchedule()


@pytest.fixture()
def monday_10_utc() -> datetime:
    # 2024-06-03 is a Monday
    return datetime(2024, 6, 3, 10, 0, tzinfo=UTC)


@pytest.fixture()
def fixed_clock(monday_10_utc: datetime) -> FixedClock:
    return FixedClock(monday_10_utc)


def slot(weekday: int, hour: int, mean: float, count: int = 10) -> SlotAverage:
    return SlotAverage(
        weekday=weekday, hour=hour, mean_percentage=mean, sample_count=count
    )
