"""
Analytics Service - counts and trends shared by dashboards, reports and recruiter analytics.

Date bucketing happens in Python; the database only filters and groups on plain fields.
"""

from collections import Counter
from datetime import datetime, timedelta
from typing import Optional, List, Iterable

from app.db.mongodb import get_collection, COLLECTIONS
from app.services.application_service import get_application_service
from app.services.mongo_service import utcnow
from app.services.student_service import get_student_service

PERIOD_DAYS = {
    "week": 7,
    "month": 30,
    "quarter": 90,
    "year": 365,
    "7d": 7,
    "30d": 30,
    "90d": 90,
    "1y": 365,
}


def period_start(period: str, now: Optional[datetime] = None) -> datetime:
    return (now or utcnow()) - timedelta(days=PERIOD_DAYS.get(period, 30))


def daily_trend(timestamps: Iterable[datetime], days: int, now: Optional[datetime] = None) -> List[dict]:
    """One {date, count} entry per day for the last `days` days, oldest first."""
    today = (now or utcnow()).date()
    counts = Counter(ts.date() for ts in timestamps if ts is not None)
    return [
        {"date": (today - timedelta(days=offset)).isoformat(), "count": counts.get(today - timedelta(days=offset), 0)}
        for offset in range(days - 1, -1, -1)
    ]


def rate(part: int, whole: int) -> float:
    """Percentage rounded to two decimals."""
    return round(part * 100 / whole, 2) if whole else 0


def branch_placement_stats(query: Optional[dict] = None) -> List[dict]:
    """Per-branch totals, placed counts and placement rate."""
    query = query or {}
    totals = get_student_service().count_by("branch", query)
    placed = get_student_service().count_by("branch", {**query, "placed": True})
    return [
        {
            "branch": branch,
            "total": total,
            "placed": placed.get(branch, 0),
            "placement_rate": rate(placed.get(branch, 0), total),
        }
        for branch, total in sorted(totals.items(), key=lambda item: item[1], reverse=True)
    ]


def top_companies(limit: int = 5, query: Optional[dict] = None) -> List[dict]:
    """Companies with the most applications."""
    by_company = get_application_service().count_by("company_id", query)
    selected = get_application_service().count_by("company_id", {**(query or {}), "status": "selected"})
    ranked = sorted(by_company.items(), key=lambda item: item[1], reverse=True)[:limit]
    names = {
        c["_id"]: c["name"]
        for c in get_collection(COLLECTIONS["companies"]).find({"_id": {"$in": [cid for cid, _ in ranked]}}, {"name": 1})
    }
    return [
        {
            "company_id": cid,
            "name": names.get(cid),
            "applications": count,
            "selected": selected.get(cid, 0),
        }
        for cid, count in ranked
    ]


def placement_summary(student_query: Optional[dict] = None) -> dict:
    students = get_collection(COLLECTIONS["students"])
    total = students.count_documents(student_query or {})
    placed = students.count_documents({**(student_query or {}), "placed": True})
    return {
        "total_students": total,
        "placed_students": placed,
        "unplaced_students": total - placed,
        "placement_rate": rate(placed, total),
    }
