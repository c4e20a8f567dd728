"""
Company Routes

GET /companies - List companies with application stats
GET /companies/active - Companies currently accepting applications
GET /companies/search - Search by name, industry, location, skills
GET /companies/stats - Counts by status and industry
GET /companies/{company_id} - Company details with rounds and stats
POST /companies - Create company (also creates default rounds)
PUT /companies/{company_id} - Update company
DELETE /companies/{company_id} - Delete company with applications and rounds
GET /companies/{company_id}/rounds - List recruitment rounds
POST /companies/{company_id}/rounds - Add a recruitment round
"""

from typing import Optional, Literal

from fastapi import APIRouter, HTTPException, Depends, Query

from app.core.auth import (
    get_current_user, get_optional_user, get_student_for_user, ensure_admin, ensure_company_access, ensure_staff
)
from app.schemas.schemas import (
    APIResponse, CompanyCreate, CompanyUpdate, CompanyStatus, Industry, RoundCreate
)
from app.services.application_service import get_application_service
from app.services.company_service import get_company_service, is_application_open
from app.services.mongo_service import serialize_doc, serialize_docs
from app.services.round_service import get_round_service

router = APIRouter(prefix="/companies", tags=["Companies"])

SORT_FIELDS = {"name", "created_at", "application_deadline", "total_positions"}


@router.get("", response_model=APIResponse)
async def list_companies(
    status: Optional[CompanyStatus] = None,
    industry: Optional[Industry] = None,
    search: Optional[str] = None,
    sort_by: str = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user: Optional[dict] = Depends(get_optional_user)
):
    """List companies with filters, sorting and per-company application stats."""
    if sort_by not in SORT_FIELDS:
        raise HTTPException(status_code=400, detail=f"sort_by must be one of: {', '.join(sorted(SORT_FIELDS))}")

    service = get_company_service()
    query = service.build_filter(
        status.value if status else None, industry.value if industry else None, search
    )
    companies, pagination = service.find_page(
        query, page, limit, sort=[(sort_by, 1 if sort_order == "asc" else -1)]
    )

    applications = get_application_service()
    for company in companies:
        company["application_stats"] = applications.stats({"company_id": company["_id"]})
        company["is_application_open"] = is_application_open(company)
    return APIResponse(data={"companies": serialize_docs(companies), "pagination": pagination})


@router.get("/active", response_model=APIResponse)
async def active_companies():
    """Active companies whose deadline has not passed, nearest deadline first."""
    companies = get_company_service().list_active()
    return APIResponse(data={"companies": serialize_docs(companies)})


@router.get("/search", response_model=APIResponse)
async def search_companies(q: str = Query(..., min_length=1)):
    """Regex search over name, industry, location and skills."""
    companies = get_company_service().search(q)
    return APIResponse(data={"companies": serialize_docs(companies), "count": len(companies)})


@router.get("/stats", response_model=APIResponse)
async def company_stats(user: dict = Depends(get_current_user)):
    """Totals by status and industry."""
    return APIResponse(data=get_company_service().stats())


@router.get("/{company_id}", response_model=APIResponse)
async def get_company(company_id: str, user: Optional[dict] = Depends(get_optional_user)):
    """Company details, its rounds, application stats and whether it is open."""
    company = get_company_service().get_or_404(company_id)
    applications = get_application_service()

    company["application_stats"] = applications.stats({"company_id": company["_id"]})
    company["rounds"] = get_round_service().list_for_company(company["_id"])
    company["is_application_open"] = is_application_open(company)

    if user and user.get("role") == "student":
        student = get_student_for_user(user)
        company["has_applied"] = bool(student) and applications.count(
            {"student_id": student["_id"], "company_id": company["_id"]}
        ) > 0
    return APIResponse(data={"company": serialize_doc(company)})


@router.post("", response_model=APIResponse, status_code=201)
async def create_company(data: CompanyCreate, user: dict = Depends(get_current_user)):
    """Create a company; default recruitment rounds are added automatically."""
    ensure_admin(user)
    company = get_company_service().create_company(data.model_dump(), user["_id"])
    return APIResponse(message="Company created successfully", data={"company": serialize_doc(company)})


@router.put("/{company_id}", response_model=APIResponse)
async def update_company(company_id: str, data: CompanyUpdate, user: dict = Depends(get_current_user)):
    """Update company fields. Only provided fields are changed."""
    service = get_company_service()
    company = service.get_or_404(company_id)
    ensure_staff(user)
    ensure_company_access(user, company["_id"])
    changes = data.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")
    updated = service.update_company(company, changes)
    return APIResponse(message="Company updated successfully", data={"company": serialize_doc(updated)})


@router.delete("/{company_id}", response_model=APIResponse)
async def delete_company(company_id: str, user: dict = Depends(get_current_user)):
    """Delete a company together with its applications, rounds and windows."""
    service = get_company_service()
    company = service.get_or_404(company_id)
    ensure_admin(user)
    result = service.delete_company(company)
    return APIResponse(message="Company deleted successfully", data=result)


@router.get("/{company_id}/rounds", response_model=APIResponse)
async def company_rounds(company_id: str, include_inactive: bool = False):
    company = get_company_service().get_or_404(company_id)
    rounds = get_round_service().list_for_company(company["_id"], include_inactive)
    return APIResponse(data={"rounds": serialize_docs(rounds)})


@router.post("/{company_id}/rounds", response_model=APIResponse, status_code=201)
async def add_company_round(company_id: str, data: RoundCreate, user: dict = Depends(get_current_user)):
    """Add a round; the next free round number is used when none is given."""
    company = get_company_service().get_or_404(company_id)
    ensure_staff(user)
    ensure_company_access(user, company["_id"])
    round_doc = get_round_service().create_round(company["_id"], data.model_dump(), user["_id"])
    return APIResponse(message="Round created successfully", data={"round": serialize_doc(round_doc)})
