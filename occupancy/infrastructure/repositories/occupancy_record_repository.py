"""
MongoDB Occupancy Record Repository - Infrastructure Layer

This module implements the IRecordStore interface using MongoDB as the
underlying data store. Documents have the shape
``{"id": str, "timestamp": datetime (UTC), "value": float}``.
"""

from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Any, Dict, List, Sequence, Tuple
from uuid import UUID, uuid4

import pymongo
import pymongo.errors

from occupancy.domain.entities.errors import DataAccessError
from occupancy.domain.entities.occupancy import Sample, SlotAverage
from occupancy.domain.repositories.record_store import IRecordStore
from occupancy.infrastructure.database import RECORDS_COLLECTION, MongoDatabase


class MongoOccupancyRecordRepository(IRecordStore):
    """MongoDB implementation of the record store."""

    COLLECTION_NAME = RECORDS_COLLECTION

    def __init__(self, mongo_database: MongoDatabase, local_timezone: tzinfo):
        """
        Initialize the MongoDB record repository.

        Args:
            mongo_database: MongoDB database client
            local_timezone: Zone used to resolve local calendar dates
        """
        self.db = mongo_database
        self.local_timezone = local_timezone

    def _to_document(self, sample: Sample) -> Dict[str, Any]:
        """Convert a Sample entity to a MongoDB document."""
        return {
            "id": str(sample.id),
            "timestamp": sample.timestamp.astimezone(timezone.utc),
            "value": float(sample.value),
        }

    def _to_entity(self, document: Dict[str, Any]) -> Sample:
        """Convert a MongoDB document to a Sample entity."""
        timestamp: datetime = document["timestamp"]
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        return Sample(
            id=UUID(document["id"]),
            timestamp=timestamp.astimezone(timezone.utc),
            value=float(document["value"]),
        )

    async def insert(self, timestamp: datetime, value: float) -> UUID:
        sample = Sample(id=uuid4(), timestamp=timestamp, value=value)
        try:
            await self.db.insert_one(self.COLLECTION_NAME, self._to_document(sample))
        except Exception as e:
            raise DataAccessError(
                f"Failed to insert occupancy record: {str(e)}",
                details={"timestamp": timestamp.isoformat()},
            ) from e
        return sample.id

    async def batch_insert(self, samples: Sequence[Tuple[datetime, float]]) -> int:
        documents = [
            self._to_document(Sample(id=uuid4(), timestamp=ts, value=value))
            for ts, value in samples
        ]
        try:
            return await self.db.insert_many(self.COLLECTION_NAME, documents)
        except Exception as e:
            raise DataAccessError(
                f"Failed to insert occupancy records: {str(e)}",
                details={"count": len(documents)},
            ) from e

    async def update_value(self, sample_id: UUID, value: float) -> None:
        try:
            await self.db.update_one(
                self.COLLECTION_NAME,
                {"id": str(sample_id)},
                {"$set": {"value": float(value)}},
            )
        except Exception as e:
            raise DataAccessError(
                f"Failed to update occupancy record: {str(e)}",
                details={"id": str(sample_id)},
            ) from e

    async def records_for_local_date(self, local_date: date) -> List[Sample]:
        """Samples in ``[local midnight, next local midnight)`` of ``local_date``."""
        start = datetime.combine(local_date, time.min, tzinfo=self.local_timezone)
        end = datetime.combine(
            local_date + timedelta(days=1), time.min, tzinfo=self.local_timezone
        )
        return await self.records_between(
            start.astimezone(timezone.utc), end.astimezone(timezone.utc)
        )

    async def records_between(self, start: datetime, end: datetime) -> List[Sample]:
        try:
            documents = await self.db.find_many(
                self.COLLECTION_NAME,
                {"timestamp": {"$gte": start, "$lt": end}},
                sort_by="timestamp",
                sort_direction=pymongo.ASCENDING,
            )
        except pymongo.errors.PyMongoError as e:
            raise DataAccessError(
                f"Failed to read occupancy records: {str(e)}",
                details={"start": start.isoformat(), "end": end.isoformat()},
            ) from e
        return [self._to_entity(doc) for doc in documents]

    async def slot_averages(self, start: datetime, end: datetime) -> List[SlotAverage]:
        pipeline: List[Dict[str, Any]] = [
            {"$match": {"timestamp": {"$gte": start, "$lt": end}}},
            {
                "$group": {
                    "_id": {
                        "weekday": {
                            "$subtract": [{"$isoDayOfWeek": "$timestamp"}, 1]
                        },
                        "hour": {"$hour": "$timestamp"},
                    },
                    "mean_percentage": {"$avg": "$value"},
                    "sample_count": {"$sum": 1},
                }
            },
            {"$sort": {"_id.weekday": 1, "_id.hour": 1}},
        ]
        try:
            rows = await self.db.aggregate(self.COLLECTION_NAME, pipeline)
        except pymongo.errors.PyMongoError as e:
            raise DataAccessError(
                f"Failed to aggregate occupancy records: {str(e)}",
                details={"start": start.isoformat(), "end": end.isoformat()},
            ) from e

        return [
            SlotAverage(
                weekday=int(row["_id"]["weekday"]),
                hour=int(row["_id"]["hour"]),
                mean_percentage=float(row["mean_percentage"]),
                sample_count=int(row["sample_count"]),
            )
            for row in rows
        ]
