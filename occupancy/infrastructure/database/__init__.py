"""
Database package - Infrastructure Layer

This package contains the MongoDB client used by the record store.
"""

from occupancy.infrastructure.database.mongo_database import (
    RECORDS_COLLECTION,
    MongoDatabase,
)

__all__ = ["MongoDatabase", "RECORDS_COLLECTION"]
