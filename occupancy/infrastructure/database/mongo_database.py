"""
MongoDB Database - Infrastructure Layer

This module provides a MongoDB database client for interacting with MongoDB.
It handles connection, collections, basic CRUD operations and aggregations.
"""

from typing import Any, Dict, List, Optional, Sequence

import pymongo.errors
import structlog
from pymongo import ASCENDING, MongoClient
from pymongo.database import Database

logger = structlog.get_logger(__name__)

RECORDS_COLLECTION = "occupancy_records"


class MongoDatabase:
    """MongoDB database client."""

    def __init__(self, mongo_uri: str, db_name: str):
        """
        Initialize the MongoDB database client.

        Datetimes are returned timezone-aware (UTC).

        Args:
            mongo_uri: MongoDB connection URI
            db_name: Name of the database to use
        """
        self.client: MongoClient = MongoClient(mongo_uri, tz_aware=True)
        self.db: Database = self.client[db_name]

    async def find_many(
        self,
        collection_name: str,
        query: Dict[str, Any],
        sort_by: Optional[str] = None,
        sort_direction: int = ASCENDING,
        limit: int = 0,
    ) -> List[Dict[str, Any]]:
        """
        Find multiple documents in a collection.

        Args:
            collection_name: Name of the collection
            query: Query to match documents
            sort_by: Field to sort by
            sort_direction: Sort direction (1 for ascending, -1 for descending)
            limit: Maximum number of documents to return (0 means no limit)

        Returns:
            List of documents
        """
        cursor = self.db[collection_name].find(query)

        if sort_by:
            cursor = cursor.sort(sort_by, sort_direction)
        if limit:
            cursor = cursor.limit(limit)

        return list(cursor)

    async def insert_one(
        self, collection_name: str, document: Dict[str, Any]
    ) -> Dict[str, Any]:
        """
        Insert a document into a collection.

        Raises:
            Exception: If the insert is not acknowledged
        """
        result = self.db[collection_name].insert_one(document)
        if not result.acknowledged:
            raise Exception(f"Failed to insert document in {collection_name}")
        return document

    async def insert_many(
        self, collection_name: str, documents: Sequence[Dict[str, Any]]
    ) -> int:
        """
        Insert several documents into a collection in one round trip.

        Returns:
            Number of inserted documents

        Raises:
            Exception: If the insert is not acknowledged
        """
        if not documents:
            return 0
        result = self.db[collection_name].insert_many(list(documents), ordered=True)
        if not result.acknowledged:
            raise Exception(f"Failed to insert documents in {collection_name}")
        return len(result.inserted_ids)

    async def update_one(
        self, collection_name: str, query: Dict[str, Any], update: Dict[str, Any]
    ) -> None:
        """
        Apply an update to a single document.

        Raises:
            Exception: If the document does not exist or the update fails
        """
        result = self.db[collection_name].update_one(query, update)
        if result.matched_count == 0:
            raise Exception(f"Document not found in {collection_name}")
        if not result.acknowledged:
            raise Exception(f"Failed to update document in {collection_name}")

    async def aggregate(
        self, collection_name: str, pipeline: List[Dict[str, Any]]
    ) -> List[Dict[str, Any]]:
        """Run an aggregation pipeline and return all resulting documents."""
        return list(self.db[collection_name].aggregate(pipeline))

    def close(self) -> None:
        """Close the database connection."""
        self.client.close()

    async def create_indexes(self) -> None:
        """
        Create all necessary indexes for the application.
        This is an async method to be called during application startup.
        """
        collection = self.db[RECORDS_COLLECTION]
        try:
            collection.create_index("timestamp", name="timestamp_idx")
            collection.create_index("id", name="id_idx", unique=True)
        except pymongo.errors.OperationFailure as e:
            logger.warning(
                "mongo.indexes.failed", collection=RECORDS_COLLECTION, error=str(e)
            )
