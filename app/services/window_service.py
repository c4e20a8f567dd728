"""
Application Window Service - time ranges during which a company accepts applications.

Each window stores its calendar dates and HH:MM times plus the derived
`opens_at` / `closes_at` datetimes that every query runs against.
"""

import logging
from datetime import datetime, date, time, timedelta
from typing import Optional, List

from fastapi import HTTPException
from pymongo import ASCENDING

from app.db.mongodb import get_collection, COLLECTIONS
from app.services.eligibility_service import effective_criteria, build_eligibility_filter
from app.services.mongo_service import MongoService, to_object_id, utcnow

logger = logging.getLogger(__name__)


def _at(day, hhmm: str) -> datetime:
    if isinstance(day, datetime):
        day = day.date()
    hours, minutes = hhmm.split(":")
    return datetime.combine(day, time(int(hours), int(minutes)))


def _as_datetime(day) -> datetime:
    # BSON has no date type
    if isinstance(day, datetime):
        return day
    return datetime.combine(day, time())


def window_bounds(start_date: date, start_time: str, end_date: date, end_time: str):
    # the closing minute stays open to its last millisecond
    closes_at = _at(end_date, end_time) + timedelta(seconds=59, milliseconds=999)
    return _at(start_date, start_time), closes_at


def is_window_open(window: dict, now: Optional[datetime] = None) -> bool:
    now = now or utcnow()
    return bool(window.get("is_active")) and window["opens_at"] <= now <= window["closes_at"]


class ApplicationWindowService(MongoService):
    collection_key = "windows"
    entity_name = "Application window"

    def _check_overlap(self, company_id, opens_at: datetime, closes_at: datetime, exclude_id=None):
        query = {
            "company_id": company_id,
            "is_active": True,
            "opens_at": {"$lt": closes_at},
            "closes_at": {"$gt": opens_at},
        }
        if exclude_id is not None:
            query["_id"] = {"$ne": exclude_id}
        if self.collection.find_one(query):
            raise HTTPException(
                status_code=400,
                detail="An overlapping active application window already exists for this company"
            )

    def create_window(self, data: dict, created_by) -> dict:
        company_id = to_object_id(data["company_id"], "company ID")
        if not get_collection(COLLECTIONS["companies"]).find_one({"_id": company_id}):
            raise HTTPException(status_code=404, detail="Company not found")

        opens_at, closes_at = window_bounds(
            data["start_date"], data["start_time"], data["end_date"], data["end_time"]
        )
        if data.get("is_active", True):
            self._check_overlap(company_id, opens_at, closes_at)

        window = self.insert({
            **data,
            "company_id": company_id,
            "start_date": _as_datetime(data["start_date"]),
            "end_date": _as_datetime(data["end_date"]),
            "opens_at": opens_at,
            "closes_at": closes_at,
            "created_by": created_by,
        })
        logger.info("Application window %s created for company %s", window["_id"], company_id)
        return window

    def update_window(self, window: dict, changes: dict) -> dict:
        merged = {**window, **changes}
        opens_at, closes_at = window_bounds(
            merged["start_date"], merged["start_time"], merged["end_date"], merged["end_time"]
        )
        if closes_at <= opens_at:
            raise HTTPException(status_code=400, detail="End date must be after start date")
        if merged.get("is_active"):
            self._check_overlap(window["company_id"], opens_at, closes_at, exclude_id=window["_id"])

        if "start_date" in changes:
            changes["start_date"] = _as_datetime(changes["start_date"])
        if "end_date" in changes:
            changes["end_date"] = _as_datetime(changes["end_date"])
        changes.update({"opens_at": opens_at, "closes_at": closes_at})
        return self.update(window["_id"], changes)

    def get_open_window(self, company_id, now: Optional[datetime] = None) -> Optional[dict]:
        """The active window covering `now` for a company, if any."""
        now = now or utcnow()
        return self.collection.find_one({
            "company_id": to_object_id(company_id, "company ID"),
            "is_active": True,
            "opens_at": {"$lte": now},
            "closes_at": {"$gte": now},
        })

    def list_active(self) -> List[dict]:
        now = utcnow()
        return self.find(
            {"is_active": True, "opens_at": {"$lte": now}, "closes_at": {"$gte": now}},
            sort=[("closes_at", ASCENDING)]
        )

    def list_upcoming(self, limit: int = 10) -> List[dict]:
        return self.find(
            {"is_active": True, "opens_at": {"$gt": utcnow()}},
            sort=[("opens_at", ASCENDING)],
            limit=limit
        )

    def application_stats(self, window: dict) -> dict:
        """Applications submitted while the window was open, by status."""
        applications = get_collection(COLLECTIONS["applications"])
        query = {
            "company_id": window["company_id"],
            "submitted_at": {"$gte": window["opens_at"], "$lte": window["closes_at"]},
        }
        stats = {"total": 0, "submitted": 0, "under-review": 0, "shortlisted": 0, "rejected": 0, "selected": 0}
        pipeline = [{"$match": query}, {"$group": {"_id": "$status", "count": {"$sum": 1}}}]
        for row in applications.aggregate(pipeline):
            stats[row["_id"]] = row["count"]
            stats["total"] += row["count"]
        return stats

    def eligible_students_count(self, window: dict, company: Optional[dict] = None) -> int:
        criteria = effective_criteria(company or {}, window)
        return get_collection(COLLECTIONS["students"]).count_documents(build_eligibility_filter(criteria))


def get_window_service() -> ApplicationWindowService:
    return ApplicationWindowService()
