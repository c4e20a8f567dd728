"""
MongoDB Connection Utility

Every entity of the placement system lives in its own collection:
users, students, companies, applications, application windows,
off-campus opportunities, recruitment rounds, review history and notifications.
"""
import logging

from pymongo import MongoClient, ASCENDING, DESCENDING
from pymongo.database import Database
from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from app.core.config import get_settings

logger = logging.getLogger(__name__)

settings = get_settings()

# Global client (connection pooling handled internally by pymongo)
_client: MongoClient = None
_db: Database = None


def get_mongo_client() -> MongoClient:
    """Get or create MongoDB client (singleton pattern)"""
    global _client
    if _client is None:
        _client = MongoClient(settings.mongodb_uri, tz_aware=False)
    return _client


def get_mongo_db() -> Database:
    """Get the placement database"""
    global _db
    if _db is None:
        client = get_mongo_client()
        _db = client[settings.mongodb_db]
    return _db


def set_mongo_client(client: MongoClient, db_name: str = None) -> None:
    """Swap the process-wide client (used by tests and scripts)."""
    global _client, _db
    _client = client
    _db = client[db_name or settings.mongodb_db] if client is not None else None


def get_collection(name: str) -> Collection:
    """Get a specific collection by its name (see COLLECTIONS)."""
    db = get_mongo_db()
    return db[name]


def test_mongo_connection() -> bool:
    """
    Test if MongoDB is reachable.
    Returns True if connection successful, False otherwise.
    """
    try:
        client = get_mongo_client()
        # ping command checks connection
        client.admin.command('ping')
        return True
    except PyMongoError as e:
        logger.warning("MongoDB connection failed: %s", e)
        return False


# Collection name constants (avoid typos)
COLLECTIONS = {
    "users": "users",
    "students": "students",
    "companies": "companies",
    "applications": "applications",
    "windows": "application_windows",
    "opportunities": "off_campus_opportunities",
    "rounds": "recruitment_rounds",
    "review_history": "application_review_history",
    "notifications": "notifications",
}


def init_mongo_indexes():
    """
    Create unique constraints and lookup indexes.
    Call this once during app startup.
    """
    db = get_mongo_db()

    db[COLLECTIONS["users"]].create_index("email", unique=True)
    db[COLLECTIONS["users"]].create_index("role")

    db[COLLECTIONS["students"]].create_index("user_id", unique=True)
    db[COLLECTIONS["students"]].create_index("roll_number", unique=True)
    db[COLLECTIONS["students"]].create_index([("branch", ASCENDING), ("batch", ASCENDING)])

    db[COLLECTIONS["companies"]].create_index("name", unique=True)
    db[COLLECTIONS["companies"]].create_index([("status", ASCENDING), ("application_deadline", ASCENDING)])

    # One application per student per company
    db[COLLECTIONS["applications"]].create_index([
        ("student_id", ASCENDING),
        ("company_id", ASCENDING)
    ], unique=True)
    db[COLLECTIONS["applications"]].create_index([("company_id", ASCENDING), ("status", ASCENDING)])

    db[COLLECTIONS["windows"]].create_index([("company_id", ASCENDING), ("is_active", ASCENDING)])

    db[COLLECTIONS["opportunities"]].create_index([("is_active", ASCENDING), ("application_deadline", ASCENDING)])

    db[COLLECTIONS["rounds"]].create_index([
        ("company_id", ASCENDING),
        ("round_number", ASCENDING)
    ], unique=True)

    db[COLLECTIONS["review_history"]].create_index([("application_id", ASCENDING), ("reviewed_at", DESCENDING)])

    db[COLLECTIONS["notifications"]].create_index([
        ("recipient_id", ASCENDING),
        ("read", ASCENDING),
        ("timestamp", DESCENDING)
    ])

    logger.info("MongoDB indexes created successfully")
