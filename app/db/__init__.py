"""
Database module - MongoDB connection and collection access.
"""
from app.db.mongodb import get_mongo_db, get_collection, test_mongo_connection, COLLECTIONS

__all__ = [
    "get_mongo_db",
    "get_collection",
    "test_mongo_connection",
    "COLLECTIONS"
]
