"""
Student Routes

GET /students - List students (branch, placed, batch, CGPA range, search)
GET /students/eligible/{company_id} - Students eligible for a company
POST /students - Create student (user account + profile)
POST /students/bulk - Bulk create from JSON rows
POST /students/bulk-upload - Bulk create from a CSV file
GET /students/{student_id} - Get student with applications
PUT /students/{student_id} - Update student
DELETE /students/{student_id} - Delete student, applications and account
"""

from typing import Optional

from fastapi import APIRouter, HTTPException, Depends, Query, UploadFile, File
from pymongo import DESCENDING

from app.core.auth import (
    get_current_user, ensure_admin, ensure_company_access, ensure_staff, ensure_student_access
)
from app.schemas.schemas import APIResponse, Branch, StudentCreate, StudentUpdate, StudentBulkRequest
from app.services.application_service import get_application_service
from app.services.company_service import get_company_service
from app.services.eligibility_service import effective_criteria, build_eligibility_filter
from app.services.mongo_service import serialize_doc, serialize_docs
from app.services.student_service import get_student_service
from app.services.window_service import get_window_service
from app.utils.file_upload import read_student_csv

router = APIRouter(prefix="/students", tags=["Students"])


@router.get("", response_model=APIResponse)
async def list_students(
    branch: Optional[Branch] = None,
    placed: Optional[bool] = None,
    batch: Optional[int] = Query(None, ge=2000, le=2030),
    min_cgpa: Optional[float] = Query(None, ge=0, le=10),
    max_cgpa: Optional[float] = Query(None, ge=0, le=10),
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user: dict = Depends(get_current_user)
):
    """List students with filters and pagination."""
    ensure_staff(user)
    service = get_student_service()
    query = service.build_filter(branch.value if branch else None, placed, batch, min_cgpa, max_cgpa, search)
    students, pagination = service.find_page(query, page, limit)
    return APIResponse(data={
        "students": serialize_docs(service.with_user(students)),
        "pagination": pagination,
    })


@router.get("/eligible/{company_id}", response_model=APIResponse)
async def eligible_students(
    company_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user: dict = Depends(get_current_user)
):
    """Unplaced students satisfying the company's current criteria."""
    company = get_company_service().get_or_404(company_id)
    ensure_staff(user)
    ensure_company_access(user, company["_id"])
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


@router.post("", response_model=APIResponse, status_code=201)
async def create_student(data: StudentCreate, user: dict = Depends(get_current_user)):
    """Create the student's account and profile."""
    ensure_admin(user)
    service = get_student_service()
    student = service.create_student(data)
    return APIResponse(
        message="Student created successfully",
        data={"student": serialize_doc(service.with_user([student])[0])}
    )


@router.post("/bulk", response_model=APIResponse)
async def bulk_create_students(data: StudentBulkRequest, user: dict = Depends(get_current_user)):
    """Create students from JSON rows; each row succeeds or fails on its own."""
    ensure_admin(user)
    result = get_student_service().bulk_import(data.students)
    return APIResponse(message=f"{result['created']} students created", data=result)


@router.post("/bulk-upload", response_model=APIResponse)
async def bulk_upload_students(file: UploadFile = File(...), user: dict = Depends(get_current_user)):
    """Create students from an uploaded CSV file."""
    ensure_admin(user)
    rows = await read_student_csv(file)
    result = get_student_service().bulk_import(rows)
    return APIResponse(message=f"{result['created']} students created", data=result)


@router.get("/{student_id}", response_model=APIResponse)
async def get_student(student_id: str, user: dict = Depends(get_current_user)):
    """Get a student with their applications."""
    service = get_student_service()
    student = service.get_or_404(student_id)
    ensure_student_access(user, student)
    student = service.with_user([student])[0]

    applications = get_application_service()
    student_apps = applications.find({"student_id": student["_id"]}, sort=[("submitted_at", DESCENDING)])
    return APIResponse(data={
        "student": serialize_doc(student),
        "applications": serialize_docs(applications.with_company_names(student_apps)),
    })


@router.put("/{student_id}", response_model=APIResponse)
async def update_student(student_id: str, data: StudentUpdate, user: dict = Depends(get_current_user)):
    """Update a profile. Students editing themselves may only change name, phone and skills."""
    service = get_student_service()
    student = service.get_or_404(student_id)

    self_edit = user.get("role") == "student"
    if self_edit and student["user_id"] != user["_id"]:
        raise HTTPException(status_code=403, detail="You can only update your own profile")

    updated = service.update_student(student, data.model_dump(exclude_unset=True), self_edit=self_edit)
    return APIResponse(
        message="Student updated successfully",
        data={"student": serialize_doc(service.with_user([updated])[0])}
    )


@router.delete("/{student_id}", response_model=APIResponse)
async def delete_student(student_id: str, user: dict = Depends(get_current_user)):
    """Delete the student with their applications and user account."""
    ensure_admin(user)
    service = get_student_service()
    result = service.delete_student(service.get_or_404(student_id))
    return APIResponse(message="Student deleted successfully", data=result)
