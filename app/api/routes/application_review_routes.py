"""
Application Review Routes

GET /applications/review/history - Review entries with statistics
GET /applications/review/my-activity - The caller's own reviews
GET /applications/{application_id}/history - Review trail of one application
"""

from datetime import datetime, timedelta
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pymongo import DESCENDING

from app.api.routes.application_routes import load_application
from app.core.auth import get_current_user, company_scope, ensure_company_access, ensure_staff
from app.schemas.schemas import APIResponse, ReviewType, as_naive_utc
from app.services.analytics_service import daily_trend
from app.services.application_service import ReviewHistoryService, get_application_service
from app.services.mongo_service import serialize_docs, to_object_id, utcnow

router = APIRouter(prefix="/applications", tags=["Application Review"])


def review_statistics(history: ReviewHistoryService, query: dict) -> dict:
    by_type = history.count_by("review_type", query)
    return {
        "total_reviews": sum(by_type.values()),
        "by_review_type": {t.value: by_type.get(t.value, 0) for t in ReviewType},
        "by_new_status": history.count_by("new_status", query),
    }


@router.get("/review/history", response_model=APIResponse)
async def review_history(
    company_id: Optional[str] = None,
    reviewer_id: Optional[str] = None,
    review_type: Optional[ReviewType] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user: dict = Depends(get_current_user)
):
    """Review entries across applications, filtered, with statistics."""
    ensure_staff(user)
    query = {}
    scope = company_scope(user)
    if scope is not None:
        query["company_id"] = {"$in": scope}
    if company_id:
        oid = to_object_id(company_id, "company ID")
        ensure_company_access(user, oid)
        query["company_id"] = oid
    if reviewer_id:
        query["reviewer_id"] = to_object_id(reviewer_id, "reviewer ID")
    if review_type:
        query["review_type"] = review_type.value
    if start_date or end_date:
        query["reviewed_at"] = {}
        if start_date:
            query["reviewed_at"]["$gte"] = as_naive_utc(start_date)
        if end_date:
            query["reviewed_at"]["$lte"] = as_naive_utc(end_date)

    history = ReviewHistoryService()
    entries, pagination = history.find_page(query, page, limit, sort=[("reviewed_at", DESCENDING)])
    return APIResponse(data={
        "history": serialize_docs(entries),
        "statistics": review_statistics(history, query),
        "pagination": pagination,
    })


@router.get("/review/my-activity", response_model=APIResponse)
async def my_review_activity(
    days: int = Query(30, ge=1, le=365),
    user: dict = Depends(get_current_user)
):
    """The caller's reviews over the last `days` days with a daily count."""
    ensure_staff(user)
    since = utcnow() - timedelta(days=days)
    query = {"reviewer_id": user["_id"], "reviewed_at": {"$gte": since}}

    history = ReviewHistoryService()
    entries = history.find(query, sort=[("reviewed_at", DESCENDING)])
    return APIResponse(data={
        "activity": serialize_docs(entries[:50]),
        "statistics": review_statistics(history, query),
        "daily": daily_trend((e["reviewed_at"] for e in entries), days),
    })


@router.get("/{application_id}/history", response_model=APIResponse)
async def application_history(application_id: str, user: dict = Depends(get_current_user)):
    """Every review of one application, newest first."""
    service = get_application_service()
    application = load_application(application_id, user)
    return APIResponse(data={"history": serialize_docs(service.history.for_application(application["_id"]))})
