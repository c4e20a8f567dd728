"""
Application Routes

GET /applications - List applications (status, company, round, score range, search)
GET /applications/stats - Totals per status and average score
GET /applications/student/{student_id} - A student's applications
GET /applications/company/{company_id} - A company's applications
POST /applications - Apply to a company
POST /applications/bulk-update - Set one status on many applications
GET /applications/{application_id} - Application with review history
PUT /applications/{application_id}/status - Update status (any status, any time)
PUT /applications/{application_id}/score - Update score
"""

from typing import Optional

from fastapi import APIRouter, HTTPException, Depends, Query
from pymongo import DESCENDING

from app.core.auth import (
    get_current_user, get_student_for_user, company_scope, ensure_company_access, ensure_staff,
    ensure_student_access
)
from app.schemas.schemas import (
    APIResponse, ApplicationCreate, ApplicationStatus, StatusUpdate, ScoreUpdate, BulkStatusUpdate
)
from app.services.application_service import get_application_service
from app.services.mongo_service import serialize_doc, serialize_docs, to_object_id
from app.services.student_service import get_student_service

router = APIRouter(prefix="/applications", tags=["Applications"])


def scoped_query(user: dict) -> dict:
    """Recruiters see their company's applications, students their own."""
    scope = company_scope(user)
    if scope is not None:
        return {"company_id": {"$in": scope}}
    if user.get("role") == "student":
        student = get_student_for_user(user)
        return {"student_id": student["_id"] if student else None}
    return {}


def load_application(application_id: str, user: dict) -> dict:
    application = get_application_service().get_or_404(application_id)
    ensure_company_access(user, application["company_id"])
    if user.get("role") == "student":
        student = get_student_for_user(user)
        if not student or student["_id"] != application["student_id"]:
            raise HTTPException(status_code=403, detail="Access denied to this application")
    return application


@router.get("", response_model=APIResponse)
async def list_applications(
    status: Optional[ApplicationStatus] = None,
    company_id: Optional[str] = None,
    round_id: Optional[str] = None,
    min_score: Optional[float] = Query(None, ge=0, le=100),
    max_score: Optional[float] = Query(None, ge=0, le=100),
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user: dict = Depends(get_current_user)
):
    """List applications visible to the caller."""
    query = scoped_query(user)
    if status:
        query["status"] = status.value
    if company_id:
        oid = to_object_id(company_id, "company ID")
        ensure_company_access(user, oid)
        query["company_id"] = oid
    if round_id:
        query["round_id"] = to_object_id(round_id, "round ID")
    if min_score is not None or max_score is not None:
        query["score"] = {}
        if min_score is not None:
            query["score"]["$gte"] = min_score
        if max_score is not None:
            query["score"]["$lte"] = max_score
    if search:
        students = get_student_service()
        matching = students.collection.find(students.build_filter(search=search), {"_id": 1})
        query.setdefault("$and", []).append({"student_id": {"$in": [s["_id"] for s in matching]}})

    service = get_application_service()
    applications, pagination = service.find_page(query, page, limit, sort=[("submitted_at", DESCENDING)])
    return APIResponse(data={
        "applications": serialize_docs(service.with_company_names(applications)),
        "pagination": pagination,
    })


@router.get("/stats", response_model=APIResponse)
async def application_stats(company_id: Optional[str] = None, user: dict = Depends(get_current_user)):
    """Totals per status and the average score, optionally for one company."""
    query = scoped_query(user)
    if company_id:
        oid = to_object_id(company_id, "company ID")
        ensure_company_access(user, oid)
        query["company_id"] = oid
    return APIResponse(data=get_application_service().stats(query))


@router.get("/student/{student_id}", response_model=APIResponse)
async def student_applications(
    student_id: str,
    status: Optional[ApplicationStatus] = None,
    user: dict = Depends(get_current_user)
):
    """All applications of one student, newest first."""
    student = get_student_service().get_or_404(student_id)
    ensure_student_access(user, student)
    query = {"student_id": student["_id"]}
    if status:
        query["status"] = status.value
    service = get_application_service()
    applications = service.find(query, sort=[("submitted_at", DESCENDING)])
    return APIResponse(data={
        "applications": serialize_docs(service.with_company_names(applications)),
        "stats": service.stats({"student_id": student["_id"]}),
    })


@router.get("/company/{company_id}", response_model=APIResponse)
async def company_applications(
    company_id: str,
    status: Optional[ApplicationStatus] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user: dict = Depends(get_current_user)
):
    """Applications received by one company, with student details."""
    oid = to_object_id(company_id, "company ID")
    ensure_company_access(user, oid)
    query = {"company_id": oid}
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
        "applications": serialize_docs(applications),
        "stats": service.stats({"company_id": oid}),
        "pagination": pagination,
    })


@router.post("", response_model=APIResponse, status_code=201)
async def create_application(data: ApplicationCreate, user: dict = Depends(get_current_user)):
    """Apply to a company as the caller's student profile (admins may name the student)."""
    students = get_student_service()
    if data.student_id:
        student = students.get_or_404(data.student_id)
        if user.get("role") == "recruiter":
            raise HTTPException(status_code=403, detail="Only administrators can apply on behalf of a student")
        ensure_student_access(user, student)
    else:
        student = get_student_for_user(user)
        if not student:
            raise HTTPException(status_code=404, detail="Student profile not found")

    application = get_application_service().create_application(
        student, data.company_id, data.resume_url, data.form_data
    )
    return APIResponse(
        message="Application submitted successfully",
        data={"application": serialize_doc(application)}
    )


@router.post("/bulk-update", response_model=APIResponse)
async def bulk_update(data: BulkStatusUpdate, user: dict = Depends(get_current_user)):
    """Set one status on many applications; failures are reported per item."""
    ensure_staff(user)
    result = get_application_service().bulk_update_status(
        data.application_ids, data.status, user["_id"], data.notes, company_scope(user)
    )
    return APIResponse(message=f"{result['updated']} applications updated", data=result)


@router.get("/{application_id}", response_model=APIResponse)
async def get_application(application_id: str, user: dict = Depends(get_current_user)):
    """Application details with student, company and review history."""
    application = load_application(application_id, user)
    service = get_application_service()
    students = get_student_service()

    student = students.get_by_id(application["student_id"])
    application["student"] = students.with_user([student])[0] if student else None
    application["company"] = service.companies.find_one(
        {"_id": application["company_id"]}, {"name": 1, "industry": 1, "package_offered": 1}
    )
    application["review_history"] = service.history.for_application(application["_id"])
    return APIResponse(data={"application": serialize_doc(application)})


@router.put("/{application_id}/status", response_model=APIResponse)
async def update_status(application_id: str, data: StatusUpdate, user: dict = Depends(get_current_user)):
    """Set any status; history, notification and round/placement side effects follow."""
    ensure_staff(user)
    application = load_application(application_id, user)
    updated = get_application_service().update_status(
        application, data.status, user["_id"], data.notes, data.score
    )
    return APIResponse(
        message="Application status updated successfully",
        data={"application": serialize_doc(updated)}
    )


@router.put("/{application_id}/score", response_model=APIResponse)
async def update_score(application_id: str, data: ScoreUpdate, user: dict = Depends(get_current_user)):
    ensure_staff(user)
    application = load_application(application_id, user)
    updated = get_application_service().update_score(application, data.score, user["_id"], data.notes)
    return APIResponse(
        message="Application score updated successfully",
        data={"application": serialize_doc(updated)}
    )
