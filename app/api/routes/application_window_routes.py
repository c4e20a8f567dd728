"""
Application Window Routes

GET /application-windows - List windows with application stats
GET /application-windows/active - Windows open right now
GET /application-windows/upcoming - Next windows to open
GET /application-windows/eligible/{company_id} - Open window and the caller's eligibility
GET /application-windows/{window_id} - Window details
POST /application-windows - Create window
PUT /application-windows/{window_id} - Update window
PUT /application-windows/{window_id}/deactivate - Deactivate window
DELETE /application-windows/{window_id} - Delete window (not while open)
"""

from typing import Optional

from fastapi import APIRouter, HTTPException, Depends, Query
from pymongo import DESCENDING

from app.core.auth import get_current_user, get_student_for_user, ensure_admin
from app.schemas.schemas import APIResponse, WindowCreate, WindowUpdate
from app.services.company_service import get_company_service
from app.services.eligibility_service import effective_criteria, evaluate_student
from app.services.mongo_service import serialize_doc, serialize_docs, to_object_id
from app.services.window_service import get_window_service, is_window_open

router = APIRouter(prefix="/application-windows", tags=["Application Windows"])


def with_company_names(windows: list) -> list:
    companies = get_company_service()
    names = {
        c["_id"]: c["name"]
        for c in companies.find({"_id": {"$in": [w["company_id"] for w in windows]}})
    }
    for window in windows:
        window["company_name"] = names.get(window["company_id"])
        window["is_currently_active"] = is_window_open(window)
    return windows


@router.get("", response_model=APIResponse)
async def list_windows(
    company_id: Optional[str] = None,
    is_active: Optional[bool] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user: dict = Depends(get_current_user)
):
    """List windows with their application stats and eligible student count."""
    query = {}
    if company_id:
        query["company_id"] = to_object_id(company_id, "company ID")
    if is_active is not None:
        query["is_active"] = is_active

    service = get_window_service()
    windows, pagination = service.find_page(query, page, limit, sort=[("opens_at", DESCENDING)])
    companies = get_company_service()
    for window in windows:
        window["application_stats"] = service.application_stats(window)
        window["eligible_students_count"] = service.eligible_students_count(
            window, companies.get_by_id(window["company_id"])
        )
    return APIResponse(data={"windows": serialize_docs(with_company_names(windows)), "pagination": pagination})


@router.get("/active", response_model=APIResponse)
async def active_windows(user: dict = Depends(get_current_user)):
    windows = get_window_service().list_active()
    return APIResponse(data={"windows": serialize_docs(with_company_names(windows))})


@router.get("/upcoming", response_model=APIResponse)
async def upcoming_windows(user: dict = Depends(get_current_user)):
    windows = get_window_service().list_upcoming()
    return APIResponse(data={"windows": serialize_docs(with_company_names(windows))})


@router.get("/eligible/{company_id}", response_model=APIResponse)
async def window_eligibility(company_id: str, user: dict = Depends(get_current_user)):
    """The company's open window and, for student callers, their eligibility."""
    company = get_company_service().get_or_404(company_id)
    window = get_window_service().get_open_window(company["_id"])

    eligibility = None
    student = get_student_for_user(user)
    if student:
        eligibility = evaluate_student(
            student, effective_criteria(company, window), window, require_window=True
        )
    return APIResponse(data={
        "company": {"_id": str(company["_id"]), "name": company["name"]},
        "window": serialize_doc(window),
        "is_open": window is not None,
        "eligibility": eligibility,
    })


@router.get("/{window_id}", response_model=APIResponse)
async def get_window(window_id: str, user: dict = Depends(get_current_user)):
    service = get_window_service()
    window = service.get_or_404(window_id)
    window["application_stats"] = service.application_stats(window)
    window["eligible_students_count"] = service.eligible_students_count(
        window, get_company_service().get_by_id(window["company_id"])
    )
    return APIResponse(data={"window": serialize_doc(with_company_names([window])[0])})


@router.post("", response_model=APIResponse, status_code=201)
async def create_window(data: WindowCreate, user: dict = Depends(get_current_user)):
    """Create a window; overlapping active windows for the same company are refused."""
    ensure_admin(user)
    window = get_window_service().create_window(data.model_dump(), user["_id"])
    return APIResponse(message="Application window created successfully", data={"window": serialize_doc(window)})


@router.put("/{window_id}", response_model=APIResponse)
async def update_window(window_id: str, data: WindowUpdate, user: dict = Depends(get_current_user)):
    service = get_window_service()
    window = service.get_or_404(window_id)
    ensure_admin(user)
    changes = data.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")
    updated = service.update_window(window, changes)
    return APIResponse(message="Application window updated successfully", data={"window": serialize_doc(updated)})


@router.put("/{window_id}/deactivate", response_model=APIResponse)
async def deactivate_window(window_id: str, user: dict = Depends(get_current_user)):
    service = get_window_service()
    window = service.get_or_404(window_id)
    ensure_admin(user)
    updated = service.update(window["_id"], {"is_active": False})
    return APIResponse(message="Application window deactivated successfully", data={"window": serialize_doc(updated)})


@router.delete("/{window_id}", response_model=APIResponse)
async def delete_window(window_id: str, user: dict = Depends(get_current_user)):
    """Delete a window unless it is open right now."""
    service = get_window_service()
    window = service.get_or_404(window_id)
    ensure_admin(user)
    if is_window_open(window):
        raise HTTPException(status_code=400, detail="Cannot delete a currently active application window")
    service.delete(window["_id"])
    return APIResponse(message="Application window deleted successfully")
