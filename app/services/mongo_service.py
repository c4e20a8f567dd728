"""
MongoDB Service - shared CRUD plumbing for the document collections.

Every entity service (users, students, companies, ...) derives from MongoService
and only adds the queries specific to its collection.
"""

import math
import re
from datetime import datetime
from typing import Optional, List, Dict, Any, Tuple
from bson import ObjectId
from bson.errors import InvalidId
from fastapi import HTTPException
from pymongo import DESCENDING
from pymongo.collection import Collection

from app.db.mongodb import get_collection, COLLECTIONS


# ============================================================
# HELPER: Convert ObjectId to string for JSON serialization
# ============================================================

def serialize_doc(doc: Any) -> Any:
    """Convert a MongoDB document (and anything nested in it) to a JSON-serializable value."""
    if doc is None:
        return None
    if isinstance(doc, ObjectId):
        return str(doc)
    if isinstance(doc, dict):
        return {key: serialize_doc(value) for key, value in doc.items() if key != "password_hash"}
    if isinstance(doc, (list, tuple)):
        return [serialize_doc(value) for value in doc]
    return doc


def serialize_docs(docs: list) -> list:
    """Convert list of MongoDB documents to JSON-serializable list."""
    return [serialize_doc(doc) for doc in docs]


def to_object_id(value: Any, field: str = "id") -> ObjectId:
    """Parse a path/body identifier, 400 when it is not a valid ObjectId."""
    if isinstance(value, ObjectId):
        return value
    try:
        return ObjectId(str(value))
    except (InvalidId, TypeError):
        raise HTTPException(status_code=400, detail=f"Invalid {field}")


def to_object_ids(values: List[Any], field: str = "id") -> List[ObjectId]:
    return [to_object_id(value, field) for value in values]


def build_pagination(page: int, limit: int, total: int) -> dict:
    """The {page, limit, total, pages} block every list endpoint returns."""
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "pages": math.ceil(total / limit) if limit else 0
    }


def regex_filter(term: str) -> dict:
    """Case-insensitive substring match; user input is escaped."""
    return {"$regex": re.escape(term.strip()), "$options": "i"}


def utcnow() -> datetime:
    return datetime.utcnow()


# ============================================================
# BASE SERVICE
# ============================================================

class MongoService:
    """
    Thin wrapper around one collection.

    Subclasses set `collection_key` (a key of COLLECTIONS) and `entity_name`
    (used in 404 messages).
    """

    collection_key: str = ""
    entity_name: str = "Document"

    def __init__(self):
        self.collection: Collection = get_collection(COLLECTIONS[self.collection_key])

    def get_by_id(self, doc_id: Any) -> Optional[dict]:
        return self.collection.find_one({"_id": to_object_id(doc_id, f"{self.entity_name.lower()} ID")})

    def get_or_404(self, doc_id: Any) -> dict:
        doc = self.get_by_id(doc_id)
        if not doc:
            raise HTTPException(status_code=404, detail=f"{self.entity_name} not found")
        return doc

    def insert(self, data: dict) -> dict:
        """Insert with timestamps, returns the stored document."""
        now = utcnow()
        doc = {**data, "created_at": now, "updated_at": now}
        result = self.collection.insert_one(doc)
        doc["_id"] = result.inserted_id
        return doc

    def update(self, doc_id: Any, changes: dict) -> Optional[dict]:
        """$set the given fields and bump updated_at, returns the fresh document."""
        oid = to_object_id(doc_id, f"{self.entity_name.lower()} ID")
        self.collection.update_one(
            {"_id": oid},
            {"$set": {**changes, "updated_at": utcnow()}}
        )
        return self.collection.find_one({"_id": oid})

    def delete(self, doc_id: Any) -> bool:
        result = self.collection.delete_one({"_id": to_object_id(doc_id, f"{self.entity_name.lower()} ID")})
        return result.deleted_count > 0

    def count(self, query: Optional[dict] = None) -> int:
        return self.collection.count_documents(query or {})

    def find(
        self,
        query: Optional[dict] = None,
        sort: Optional[List[Tuple[str, int]]] = None,
        limit: int = 0
    ) -> List[dict]:
        cursor = self.collection.find(query or {})
        if sort:
            cursor = cursor.sort(sort)
        if limit:
            cursor = cursor.limit(limit)
        return list(cursor)

    def find_page(
        self,
        query: dict,
        page: int,
        limit: int,
        sort: Optional[List[Tuple[str, int]]] = None
    ) -> Tuple[List[dict], dict]:
        """skip/limit page of documents plus the pagination block."""
        total = self.collection.count_documents(query)
        cursor = self.collection.find(query).sort(sort or [("created_at", DESCENDING)])
        docs = list(cursor.skip((page - 1) * limit).limit(limit))
        return docs, build_pagination(page, limit, total)

    def count_by(self, field: str, query: Optional[dict] = None) -> Dict[Any, int]:
        """{value: count} grouped on one field."""
        pipeline = [
            {"$match": query or {}},
            {"$group": {"_id": f"${field}", "count": {"$sum": 1}}}
        ]
        return {row["_id"]: row["count"] for row in self.collection.aggregate(pipeline)}
