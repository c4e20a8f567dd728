"""
Report Routes (JSON)

GET /reports/applications - Applications with student and company, plus status summary
GET /reports/students - Students with application counts, plus placement summary
GET /reports/placements - Placed students by company and branch
GET /reports/company-performance - Per-company funnel and selection rate
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pymongo import DESCENDING

from app.core.auth import get_current_user, ensure_admin
from app.schemas.schemas import APIResponse, ApplicationStatus, Branch, as_naive_utc
from app.services.analytics_service import branch_placement_stats, placement_summary, rate
from app.services.application_service import get_application_service
from app.services.company_service import get_company_service
from app.services.mongo_service import serialize_docs, to_object_id
from app.services.student_service import get_student_service

router = APIRouter(prefix="/reports", tags=["Reports"])


def date_range(field: str, start_date: Optional[datetime], end_date: Optional[datetime]) -> dict:
    if not start_date and not end_date:
        return {}
    bounds = {}
    if start_date:
        bounds["$gte"] = as_naive_utc(start_date)
    if end_date:
        bounds["$lte"] = as_naive_utc(end_date)
    return {field: bounds}


@router.get("/applications", response_model=APIResponse)
async def applications_report(
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    company_id: Optional[str] = None,
    status: Optional[ApplicationStatus] = None,
    limit: int = Query(500, ge=1, le=5000),
    user: dict = Depends(get_current_user)
):
    ensure_admin(user)
    query = date_range("submitted_at", start_date, end_date)
    if company_id:
        query["company_id"] = to_object_id(company_id, "company ID")
    if status:
        query["status"] = status.value

    service = get_application_service()
    applications = service.with_company_names(
        service.find(query, sort=[("submitted_at", DESCENDING)], limit=limit)
    )
    students = get_student_service()
    by_id = {
        s["_id"]: s
        for s in students.with_user(students.find({"_id": {"$in": [a["student_id"] for a in applications]}}))
    }
    rows = [{
        "application_id": a["_id"],
        "student_name": by_id.get(a["student_id"], {}).get("name"),
        "roll_number": by_id.get(a["student_id"], {}).get("roll_number"),
        "branch": by_id.get(a["student_id"], {}).get("branch"),
        "company_name": a["company_name"],
        "status": a["status"],
        "score": a.get("score"),
        "submitted_at": a["submitted_at"],
        "reviewed_at": a.get("reviewed_at"),
    } for a in applications]
    return APIResponse(data={"summary": service.stats(query), "applications": serialize_docs(rows)})


@router.get("/students", response_model=APIResponse)
async def students_report(
    branch: Optional[Branch] = None,
    batch: Optional[int] = None,
    placed: Optional[bool] = None,
    user: dict = Depends(get_current_user)
):
    ensure_admin(user)
    service = get_student_service()
    query = service.build_filter(branch.value if branch else None, placed, batch)
    students = service.with_user(service.find(query, sort=[("roll_number", 1)]))

    app_counts = get_application_service().count_by(
        "student_id", {"student_id": {"$in": [s["_id"] for s in students]}}
    )
    for student in students:
        student["applications_count"] = app_counts.get(student["_id"], 0)
    return APIResponse(data={
        "summary": {**placement_summary(query), "by_branch": branch_placement_stats(query)},
        "students": serialize_docs(students),
    })


@router.get("/placements", response_model=APIResponse)
async def placements_report(
    batch: Optional[int] = None,
    branch: Optional[Branch] = None,
    user: dict = Depends(get_current_user)
):
    ensure_admin(user)
    service = get_student_service()
    base = service.build_filter(branch.value if branch else None, None, batch)
    placed = service.with_user(service.find({**base, "placed": True}, sort=[("roll_number", 1)]))

    companies = {
        c["_id"]: c for c in get_company_service().find(
            {"_id": {"$in": list({s.get("placed_company") for s in placed if s.get("placed_company")})}}
        )
    }
    by_company = {}
    for student in placed:
        company = companies.get(student.get("placed_company"))
        student["placed_company_name"] = company["name"] if company else None
        if company:
            entry = by_company.setdefault(company["_id"], {
                "company_id": company["_id"],
                "name": company["name"],
                "package_offered": company.get("package_offered"),
                "placed": 0,
            })
            entry["placed"] += 1

    return APIResponse(data={
        "summary": placement_summary(base),
        "by_company": serialize_docs(sorted(by_company.values(), key=lambda e: e["placed"], reverse=True)),
        "by_branch": branch_placement_stats(base),
        "students": serialize_docs(placed),
    })


@router.get("/company-performance", response_model=APIResponse)
async def company_performance_report(user: dict = Depends(get_current_user)):
    ensure_admin(user)
    applications = get_application_service()
    rows = []
    for company in get_company_service().find(sort=[("name", 1)]):
        stats = applications.stats({"company_id": company["_id"]})
        rows.append({
            "company_id": company["_id"],
            "name": company["name"],
            "industry": company.get("industry"),
            "status": company.get("status"),
            "total_positions": company.get("total_positions"),
            **stats,
            "selection_rate": rate(stats["selected"], stats["total"]),
            "positions_filled_rate": rate(stats["selected"], company.get("total_positions") or 0),
        })
    return APIResponse(data={"companies": serialize_docs(rows)})
