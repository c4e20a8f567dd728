"""
Dashboard Routes

GET /dashboard/admin - Placement-wide overview
GET /dashboard/recruiter/{company_id} - One company's hiring pipeline
GET /dashboard/student/{student_id} - A student's applications and prospects
GET /dashboard/analytics/overall - Activity over a period (week, month, quarter, year)
"""

from datetime import timedelta

from fastapi import APIRouter, Depends
from pymongo import DESCENDING

from app.core.auth import get_current_user, ensure_admin, ensure_company_access, ensure_staff, ensure_student_access
from app.db.mongodb import get_collection, COLLECTIONS
from app.schemas.schemas import APIResponse, AnalyticsPeriod
from app.services.analytics_service import (
    PERIOD_DAYS, branch_placement_stats, daily_trend, period_start, placement_summary, top_companies
)
from app.services.application_service import get_application_service, STATUSES
from app.services.company_service import get_company_service
from app.services.eligibility_service import effective_criteria, evaluate_student
from app.services.mongo_service import serialize_doc, serialize_docs, utcnow
from app.services.round_service import get_round_service
from app.services.student_service import get_student_service
from app.services.window_service import get_window_service

router = APIRouter(prefix="/dashboard", tags=["Dashboard"])

PROFILE_PART = 100 / 3


def profile_completion(student: dict) -> float:
    """Three equal parts: academic details, skills, resume."""
    parts = [
        all(student.get(f) not in (None, "") for f in ("phone", "branch", "cgpa", "batch")),
        bool(student.get("skills")),
        bool(student.get("resume_url")),
    ]
    return round(sum(parts) * PROFILE_PART, 2)


@router.get("/admin", response_model=APIResponse)
async def admin_dashboard(user: dict = Depends(get_current_user)):
    ensure_admin(user)
    applications = get_application_service()
    companies = get_company_service()

    recent = applications.find({}, sort=[("submitted_at", DESCENDING)], limit=5)
    return APIResponse(data={
        "overview": {
            **placement_summary(),
            "total_companies": companies.count(),
            "active_companies": len(companies.list_active()),
            "total_applications": applications.count(),
            "active_windows": len(get_window_service().list_active()),
        },
        "application_stats": applications.stats(),
        "recent_applications": serialize_docs(applications.with_company_names(recent)),
        "top_companies": serialize_docs(top_companies()),
        "branch_stats": branch_placement_stats(),
        "upcoming_rounds": serialize_docs(get_round_service().upcoming(7)),
    })


@router.get("/recruiter/{company_id}", response_model=APIResponse)
async def recruiter_dashboard(company_id: str, user: dict = Depends(get_current_user)):
    company = get_company_service().get_or_404(company_id)
    ensure_staff(user)
    ensure_company_access(user, company["_id"])
    applications = get_application_service()
    query = {"company_id": company["_id"]}

    rounds = get_round_service().list_for_company(company["_id"])
    round_progress = []
    for round_doc in rounds:
        by_status = get_application_service().count_by("status", {"round_id": round_doc["_id"]})
        round_progress.append({
            "round_id": round_doc["_id"],
            "name": round_doc["name"],
            "round_number": round_doc["round_number"],
            "status": round_doc["status"],
            "scheduled_date": round_doc["scheduled_date"],
            "candidates": sum(by_status.values()),
            "by_status": {s: by_status.get(s, 0) for s in STATUSES},
        })

    since = utcnow() - timedelta(days=30)
    recent_docs = applications.find({**query, "submitted_at": {"$gte": since}}, sort=[("submitted_at", DESCENDING)])
    return APIResponse(data={
        "company": serialize_doc(company),
        "application_stats": applications.stats(query),
        "round_progress": serialize_docs(round_progress),
        "recent_applications": serialize_docs(recent_docs[:10]),
        "daily_trend": daily_trend((a["submitted_at"] for a in recent_docs), 30),
    })


@router.get("/student/{student_id}", response_model=APIResponse)
async def student_dashboard(student_id: str, user: dict = Depends(get_current_user)):
    students = get_student_service()
    student = students.get_or_404(student_id)
    ensure_student_access(user, student)
    student = students.with_user([student])[0]

    applications = get_application_service()
    student_apps = applications.find({"student_id": student["_id"]}, sort=[("submitted_at", DESCENDING)])
    applied = {a["company_id"] for a in student_apps}

    windows = get_window_service()
    eligible = []
    for company in get_company_service().list_active():
        if company["_id"] in applied:
            continue
        window = windows.get_open_window(company["_id"])
        if evaluate_student(student, effective_criteria(company, window), window)["eligible"]:
            eligible.append({
                "_id": company["_id"],
                "name": company["name"],
                "industry": company.get("industry"),
                "package_offered": company.get("package_offered"),
                "application_deadline": company["application_deadline"],
                "window_open": window is not None,
            })

    return APIResponse(data={
        "student": serialize_doc(student),
        "application_stats": applications.stats({"student_id": student["_id"]}),
        "applications": serialize_docs(applications.with_company_names(student_apps)),
        "eligible_companies": serialize_docs(eligible),
        "profile_completion": profile_completion(student),
    })


@router.get("/analytics/overall", response_model=APIResponse)
async def overall_analytics(period: AnalyticsPeriod = AnalyticsPeriod.month, user: dict = Depends(get_current_user)):
    """Applications, placements and registrations within the period."""
    ensure_admin(user)
    start = period_start(period.value)
    in_period = {"submitted_at": {"$gte": start}}

    applications = get_application_service()
    submitted = [a["submitted_at"] for a in applications.collection.find(in_period, {"submitted_at": 1})]
    placements = get_collection(COLLECTIONS["review_history"]).count_documents(
        {"new_status": "selected", "reviewed_at": {"$gte": start}}
    )
    return APIResponse(data={
        "period": period.value,
        "start_date": start,
        "applications": applications.stats(in_period),
        "new_students": get_student_service().count({"created_at": {"$gte": start}}),
        "new_companies": get_company_service().count({"created_at": {"$gte": start}}),
        "placements": placements,
        "placement_summary": placement_summary(),
        "top_companies": serialize_docs(top_companies(5, in_period)),
        "branch_stats": branch_placement_stats(),
        "trend": daily_trend(submitted, PERIOD_DAYS[period.value]),
    })
