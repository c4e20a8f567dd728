"""
Recruiter Routes

GET /recruiter/companies - Companies the caller recruits for
GET /recruiter/analytics/dashboard - Pipeline analytics over a period (7d, 30d, 90d, 1y)
GET /recruiter/applications - Applications to the caller's companies
PUT /recruiter/applications/bulk-update - Shortlist, reject or select many applications
PUT /recruiter/applications/{application_id}/status - Update one application
"""

from typing import Optional, List

from fastapi import APIRouter, Depends, Query
from pymongo import DESCENDING

from app.core.auth import get_current_user, company_scope, ensure_company_access, ensure_staff
from app.schemas.schemas import APIResponse, ApplicationStatus, BulkActionRequest, RecruiterPeriod, StatusUpdate
from app.services.analytics_service import PERIOD_DAYS, daily_trend, period_start, rate
from app.services.application_service import get_application_service
from app.services.company_service import get_company_service
from app.services.mongo_service import serialize_doc, serialize_docs, to_object_id
from app.services.round_service import get_round_service
from app.services.student_service import get_student_service

router = APIRouter(prefix="/recruiter", tags=["Recruiter"])

ACTION_STATUS = {
    "shortlist": "shortlisted",
    "reject": "rejected",
    "select": "selected",
}


def recruiter_company_ids(user: dict, company_id: Optional[str] = None) -> List:
    """Companies in view: the requested one (access checked) or all the caller manages."""
    ensure_staff(user)
    if company_id:
        oid = to_object_id(company_id, "company ID")
        ensure_company_access(user, oid)
        return [oid]
    scope = company_scope(user)
    if scope is not None:
        return scope
    return [c["_id"] for c in get_company_service().collection.find({}, {"_id": 1})]


@router.get("/companies", response_model=APIResponse)
async def recruiter_companies(user: dict = Depends(get_current_user)):
    company_ids = recruiter_company_ids(user)
    companies = get_company_service().find({"_id": {"$in": company_ids}}, sort=[("name", 1)])
    applications = get_application_service()
    for company in companies:
        company["application_stats"] = applications.stats({"company_id": company["_id"]})
    return APIResponse(data={"companies": serialize_docs(companies)})


@router.get("/analytics/dashboard", response_model=APIResponse)
async def recruiter_analytics(
    period: RecruiterPeriod = RecruiterPeriod.d30,
    company_id: Optional[str] = None,
    user: dict = Depends(get_current_user)
):
    """Funnel, conversion rates, trend and upcoming rounds for the period."""
    company_ids = recruiter_company_ids(user, company_id)
    start = period_start(period.value)
    scoped = {"company_id": {"$in": company_ids}}
    in_period = {**scoped, "submitted_at": {"$gte": start}}

    applications = get_application_service()
    stats = applications.stats(in_period)
    submitted = [a["submitted_at"] for a in applications.collection.find(in_period, {"submitted_at": 1})]

    students = get_student_service()
    applicant_ids = [a["student_id"] for a in applications.collection.find(in_period, {"student_id": 1})]
    by_branch = get_student_service().count_by("branch", {"_id": {"$in": applicant_ids}})

    return APIResponse(data={
        "period": period.value,
        "start_date": start,
        "companies": len(company_ids),
        "application_stats": stats,
        "conversion": {
            "shortlist_rate": rate(stats["shortlisted"] + stats["selected"], stats["total"]),
            "selection_rate": rate(stats["selected"], stats["total"]),
            "rejection_rate": rate(stats["rejected"], stats["total"]),
        },
        "applicants_by_branch": [{"branch": k, "count": v} for k, v in sorted(by_branch.items())],
        "total_students": students.count(),
        "trend": daily_trend(submitted, PERIOD_DAYS[period.value]),
        "upcoming_rounds": serialize_docs(get_round_service().upcoming(7, company_ids)),
    })


@router.get("/applications", response_model=APIResponse)
async def recruiter_applications(
    company_id: Optional[str] = None,
    status: Optional[ApplicationStatus] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user: dict = Depends(get_current_user)
):
    query = {"company_id": {"$in": recruiter_company_ids(user, company_id)}}
    if status:
        query["status"] = status.value

    service = get_application_service()
    applications, pagination = service.find_page(query, page, limit, sort=[("submitted_at", DESCENDING)])
    students = get_student_service()
    by_id = {
        s["_id"]: s
        for s in students.with_user(students.find({"_id": {"$in": [a["student_id"] for a in applications]}}))
    }
    for application in applications:
        application["student"] = by_id.get(application["student_id"])
    return APIResponse(data={
        "applications": serialize_docs(service.with_company_names(applications)),
        "pagination": pagination,
    })


@router.put("/applications/bulk-update", response_model=APIResponse)
async def recruiter_bulk_update(data: BulkActionRequest, user: dict = Depends(get_current_user)):
    """Apply one action to many applications within the caller's companies."""
    company_ids = recruiter_company_ids(user)
    result = get_application_service().bulk_update_status(
        data.application_ids, ACTION_STATUS[data.action], user["_id"], data.notes, company_ids
    )
    return APIResponse(message=f"{result['updated']} applications updated", data=result)


@router.put("/applications/{application_id}/status", response_model=APIResponse)
async def recruiter_update_status(application_id: str, data: StatusUpdate, user: dict = Depends(get_current_user)):
    service = get_application_service()
    application = service.get_or_404(application_id)
    recruiter_company_ids(user, str(application["company_id"]))
    updated = service.update_status(application, data.status, user["_id"], data.notes, data.score)
    return APIResponse(
        message="Application status updated successfully",
        data={"application": serialize_doc(updated)}
    )
