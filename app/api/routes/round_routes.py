"""
Recruitment Round Routes

GET /rounds/company/{company_id} - Rounds of a company in order
GET /rounds/upcoming - Rounds scheduled in the next N days
POST /rounds - Create round (next round number when omitted)
GET /rounds/{round_id} - Round with candidate count
PUT /rounds/{round_id} - Update round
DELETE /rounds/{round_id} - Delete round without candidates
PUT /rounds/{round_id}/reorder - Move round to a new position
PUT /rounds/{round_id}/status - Change status; completing advances shortlisted candidates
GET /rounds/{round_id}/candidates - Applications in this round
POST /rounds/{round_id}/candidates - Add an application to this round
DELETE /rounds/{round_id}/candidates/{application_id} - Remove (reject) a candidate
"""

from fastapi import APIRouter, HTTPException, Depends, Query

from app.core.auth import get_current_user, company_scope, ensure_company_access, ensure_staff
from app.schemas.schemas import (
    APIResponse, RoundCreate, RoundUpdate, RoundReorder, RoundStatusUpdate, RoundCandidateAdd
)
from app.services.application_service import get_application_service
from app.services.company_service import get_company_service
from app.services.mongo_service import serialize_doc, serialize_docs
from app.services.round_service import get_round_service
from app.services.student_service import get_student_service

router = APIRouter(prefix="/rounds", tags=["Recruitment Rounds"])


def load_round(round_id: str, user: dict) -> dict:
    round_doc = get_round_service().get_or_404(round_id)
    ensure_company_access(user, round_doc["company_id"])
    return round_doc


def load_managed_round(round_id: str, user: dict) -> dict:
    ensure_staff(user)
    return load_round(round_id, user)


def progress_on_completion(round_doc: dict, status: str, user: dict):
    """Completing a round advances or selects its shortlisted candidates."""
    if status == "completed" and round_doc["status"] != "completed":
        return get_application_service().advance_round(round_doc, user["_id"])
    return None


@router.get("/company/{company_id}", response_model=APIResponse)
async def company_rounds(company_id: str, include_inactive: bool = False, user: dict = Depends(get_current_user)):
    company = get_company_service().get_or_404(company_id)
    rounds = get_round_service().list_for_company(company["_id"], include_inactive)
    return APIResponse(data={"company": {"_id": str(company["_id"]), "name": company["name"]},
                             "rounds": serialize_docs(rounds)})


@router.get("/upcoming", response_model=APIResponse)
async def upcoming_rounds(days: int = Query(7, ge=1, le=90), user: dict = Depends(get_current_user)):
    rounds = get_round_service().upcoming(days, company_scope(user))
    return APIResponse(data={"rounds": serialize_docs(rounds)})


@router.post("", response_model=APIResponse, status_code=201)
async def create_round(data: RoundCreate, user: dict = Depends(get_current_user)):
    if not data.company_id:
        raise HTTPException(status_code=400, detail="Company ID is required")
    company = get_company_service().get_or_404(data.company_id)
    ensure_staff(user)
    ensure_company_access(user, company["_id"])
    round_doc = get_round_service().create_round(company["_id"], data.model_dump(), user["_id"])
    return APIResponse(message="Round created successfully", data={"round": serialize_doc(round_doc)})


@router.get("/{round_id}", response_model=APIResponse)
async def get_round(round_id: str, user: dict = Depends(get_current_user)):
    round_doc = load_round(round_id, user)
    round_doc["candidate_count"] = get_round_service().candidate_count(round_doc["_id"])
    return APIResponse(data={"round": serialize_doc(round_doc)})


@router.put("/{round_id}", response_model=APIResponse)
async def update_round(round_id: str, data: RoundUpdate, user: dict = Depends(get_current_user)):
    """Update round details; company and round number are not editable here."""
    service = get_round_service()
    round_doc = load_managed_round(round_id, user)
    changes = data.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")

    max_score = changes.get("max_score", round_doc.get("max_score"))
    passing_score = changes.get("passing_score", round_doc.get("passing_score"))
    if max_score is not None and passing_score is not None and passing_score > max_score:
        raise HTTPException(status_code=400, detail="Passing score cannot be greater than max score")

    progression = progress_on_completion(round_doc, changes.get("status"), user)
    updated = service.update(round_doc["_id"], changes)
    return APIResponse(
        message="Round updated successfully",
        data={"round": serialize_doc(updated), "progression": serialize_doc(progression)}
    )


@router.delete("/{round_id}", response_model=APIResponse)
async def delete_round(round_id: str, user: dict = Depends(get_current_user)):
    get_round_service().delete_round(load_managed_round(round_id, user))
    return APIResponse(message="Round deleted successfully")


@router.put("/{round_id}/reorder", response_model=APIResponse)
async def reorder_round(round_id: str, data: RoundReorder, user: dict = Depends(get_current_user)):
    rounds = get_round_service().reorder(load_managed_round(round_id, user), data.new_sequence)
    return APIResponse(message="Rounds reordered successfully", data={"rounds": serialize_docs(rounds)})


@router.put("/{round_id}/status", response_model=APIResponse)
async def update_round_status(round_id: str, data: RoundStatusUpdate, user: dict = Depends(get_current_user)):
    """Change status; moving to completed advances or selects shortlisted candidates."""
    round_doc = load_managed_round(round_id, user)
    progression = progress_on_completion(round_doc, data.status, user)
    updated = get_round_service().update(round_doc["_id"], {"status": data.status})
    return APIResponse(
        message="Round status updated successfully",
        data={"round": serialize_doc(updated), "progression": serialize_doc(progression)}
    )


@router.get("/{round_id}/candidates", response_model=APIResponse)
async def round_candidates(round_id: str, user: dict = Depends(get_current_user)):
    round_doc = load_managed_round(round_id, user)
    candidates = get_round_service().candidates(round_doc["_id"])
    students = get_student_service()
    by_id = {
        s["_id"]: s
        for s in students.with_user(students.find({"_id": {"$in": [c["student_id"] for c in candidates]}}))
    }
    for candidate in candidates:
        candidate["student"] = by_id.get(candidate["student_id"])
    return APIResponse(data={"round": serialize_doc(round_doc), "candidates": serialize_docs(candidates)})


@router.post("/{round_id}/candidates", response_model=APIResponse)
async def add_candidate(round_id: str, data: RoundCandidateAdd, user: dict = Depends(get_current_user)):
    round_doc = load_managed_round(round_id, user)
    application = get_application_service().get_or_404(data.application_id)
    updated = get_round_service().add_candidate(round_doc, application)
    return APIResponse(message="Candidate added to round", data={"application": serialize_doc(updated)})


@router.delete("/{round_id}/candidates/{application_id}", response_model=APIResponse)
async def remove_candidate(round_id: str, application_id: str, user: dict = Depends(get_current_user)):
    """Take a candidate out of the round by rejecting the application."""
    round_doc = load_managed_round(round_id, user)
    applications = get_application_service()
    application = applications.get_or_404(application_id)
    if application.get("round_id") != round_doc["_id"]:
        raise HTTPException(status_code=404, detail="Candidate not found in this round")
    updated = applications.update_status(
        application, "rejected", user["_id"], f"Removed from {round_doc['name']}"
    )
    return APIResponse(message="Candidate removed from round", data={"application": serialize_doc(updated)})
