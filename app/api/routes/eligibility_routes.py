"""
Eligibility Routes

POST /eligibility/check - Detailed check of one student against one company
POST /eligibility/bulk-check - Up to 50 students against up to 20 companies
GET /eligibility/company/{company_id}/eligible-students - Eligible students, paginated
"""

from fastapi import APIRouter, Depends, Query
from pymongo import DESCENDING

from app.core.auth import get_current_user
from app.schemas.schemas import APIResponse, EligibilityCheckRequest, BulkEligibilityRequest
from app.services.application_service import get_application_service
from app.services.company_service import get_company_service, is_application_open
from app.services.eligibility_service import (
    effective_criteria, evaluate_student, build_eligibility_filter, recommendations_for, next_steps_for
)
from app.services.mongo_service import serialize_doc, serialize_docs, to_object_ids, utcnow
from app.services.student_service import get_student_service
from app.services.window_service import get_window_service

router = APIRouter(prefix="/eligibility", tags=["Eligibility"])


@router.post("/check", response_model=APIResponse)
async def check_eligibility(data: EligibilityCheckRequest, user: dict = Depends(get_current_user)):
    """Per-criterion breakdown with recommendations and next steps."""
    student = get_student_service().get_or_404(data.student_id)
    company = get_company_service().get_or_404(data.company_id)
    window = get_window_service().get_open_window(company["_id"])

    result = evaluate_student(student, effective_criteria(company, window), window)
    existing = get_application_service().collection.find_one(
        {"student_id": student["_id"], "company_id": company["_id"]}
    )
    return APIResponse(data={
        "student_id": str(student["_id"]),
        "company": {"_id": str(company["_id"]), "name": company["name"]},
        **result,
        "application_window": serialize_doc(window),
        "is_application_open": is_application_open(company),
        "recommendations": recommendations_for(result),
        "next_steps": next_steps_for(result, company, existing, utcnow()),
        "existing_application": serialize_doc(existing),
    })


@router.post("/bulk-check", response_model=APIResponse)
async def bulk_check(data: BulkEligibilityRequest, user: dict = Depends(get_current_user)):
    """Every student against every company, with a summary."""
    students = get_student_service().find({"_id": {"$in": to_object_ids(data.student_ids, "student ID")}})
    companies = get_company_service().find({"_id": {"$in": to_object_ids(data.company_ids, "company ID")}})
    windows = get_window_service()

    results = []
    for company in companies:
        window = windows.get_open_window(company["_id"])
        criteria = effective_criteria(company, window)
        for student in students:
            result = evaluate_student(student, criteria, window)
            results.append({
                "student_id": str(student["_id"]),
                "roll_number": student["roll_number"],
                "company_id": str(company["_id"]),
                "company_name": company["name"],
                "eligible": result["eligible"],
                "reasons": result["reasons"],
            })

    eligible = sum(1 for r in results if r["eligible"])
    return APIResponse(data={
        "results": results,
        "summary": {
            "students_checked": len(students),
            "companies_checked": len(companies),
            "total_checks": len(results),
            "eligible": eligible,
            "not_eligible": len(results) - eligible,
        },
    })


@router.get("/company/{company_id}/eligible-students", response_model=APIResponse)
async def eligible_students(
    company_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user: dict = Depends(get_current_user)
):
    company = get_company_service().get_or_404(company_id)
    window = get_window_service().get_open_window(company["_id"])
    criteria = effective_criteria(company, window)

    service = get_student_service()
    students, pagination = service.find_page(
        build_eligibility_filter(criteria), page, limit, sort=[("cgpa", DESCENDING)]
    )
    return APIResponse(data={
        "company": {"_id": str(company["_id"]), "name": company["name"]},
        "criteria": criteria,
        "students": serialize_docs(service.with_user(students)),
        "pagination": pagination,
    })
