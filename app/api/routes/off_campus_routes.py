"""
Off-Campus Opportunity Routes

GET /off-campus-opportunities - List live opportunities with filters
GET /off-campus-opportunities/featured - Most viewed live opportunities
GET /off-campus-opportunities/search - Text search (q required)
GET /off-campus-opportunities/by-skills - Match on comma separated skills
GET /off-campus-opportunities/my-opportunities - Caller's postings
GET /off-campus-opportunities/{opportunity_id} - Details (counts a view)
POST /off-campus-opportunities - Post an opportunity
PUT /off-campus-opportunities/{opportunity_id} - Update (creator or admin)
DELETE /off-campus-opportunities/{opportunity_id} - Delete (creator or admin)
POST /off-campus-opportunities/{opportunity_id}/track-application - Count an application
"""

from typing import Optional, List, Literal

from fastapi import APIRouter, HTTPException, Depends, Query

from app.core.auth import get_current_user, get_optional_user
from app.schemas.schemas import (
    APIResponse, ExperienceLevel, OpportunityCreate, OpportunityIndustry, OpportunityType, OpportunityUpdate
)
from app.services.mongo_service import serialize_doc, serialize_docs
from app.services.opportunity_service import get_opportunity_service, is_still_active

router = APIRouter(prefix="/off-campus-opportunities", tags=["Off-Campus Opportunities"])


def split_skills(skills: Optional[str]) -> List[str]:
    return [s.strip() for s in (skills or "").split(",") if s.strip()]


def ensure_owner(opportunity: dict, user: dict) -> None:
    if user.get("role") != "admin" and opportunity.get("created_by") != user["_id"]:
        raise HTTPException(status_code=403, detail="You can only modify opportunities you posted")


@router.get("", response_model=APIResponse)
async def list_opportunities(
    type: Optional[OpportunityType] = None,
    location: Optional[str] = None,
    industry: Optional[OpportunityIndustry] = None,
    experience: Optional[ExperienceLevel] = None,
    is_remote: Optional[bool] = None,
    skills: Optional[str] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100)
):
    """Active, unexpired opportunities, newest first."""
    service = get_opportunity_service()
    query = service.build_filter(
        type.value if type else None,
        location,
        industry.value if industry else None,
        experience.value if experience else None,
        is_remote,
        split_skills(skills),
        search,
    )
    opportunities, pagination = service.find_page(query, page, limit, sort=[("posted_date", -1)])
    return APIResponse(data={"opportunities": serialize_docs(opportunities), "pagination": pagination})


@router.get("/featured", response_model=APIResponse)
async def featured_opportunities(limit: int = Query(10, ge=1, le=50)):
    opportunities = get_opportunity_service().featured(limit)
    return APIResponse(data={"opportunities": serialize_docs(opportunities)})


@router.get("/search", response_model=APIResponse)
async def search_opportunities(
    q: Optional[str] = None,
    type: Optional[OpportunityType] = None,
    location: Optional[str] = None,
    skills: Optional[str] = None,
    experience: Optional[ExperienceLevel] = None
):
    """Regex search over title, company, location, industry, skills and tags."""
    if not q or not q.strip():
        raise HTTPException(status_code=400, detail="Search query is required")
    filters = {}
    if type:
        filters["type"] = type.value
    if location:
        filters["location"] = location
    if skills:
        filters["skills"] = {"$in": split_skills(skills)}
    if experience:
        filters["experience"] = experience.value
    opportunities = get_opportunity_service().search(q, filters)
    return APIResponse(data={"opportunities": serialize_docs(opportunities)})


@router.get("/by-skills", response_model=APIResponse)
async def opportunities_by_skills(skills: Optional[str] = None):
    skill_list = split_skills(skills)
    if not skill_list:
        raise HTTPException(status_code=400, detail="Skills parameter is required")
    opportunities = get_opportunity_service().by_skills(skill_list)
    return APIResponse(data={"opportunities": serialize_docs(opportunities)})


@router.get("/my-opportunities", response_model=APIResponse)
async def my_opportunities(
    status: Optional[Literal["active", "expired", "inactive"]] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user: dict = Depends(get_current_user)
):
    """Opportunities posted by the caller."""
    service = get_opportunity_service()
    opportunities, pagination = service.find_page(service.mine_filter(user["_id"], status), page, limit)
    return APIResponse(data={"opportunities": serialize_docs(opportunities), "pagination": pagination})


@router.get("/{opportunity_id}", response_model=APIResponse)
async def get_opportunity(opportunity_id: str, user: Optional[dict] = Depends(get_optional_user)):
    """Opportunity details; signed-in views are counted."""
    service = get_opportunity_service()
    opportunity = service.get_or_404(opportunity_id)
    if not is_still_active(opportunity):
        raise HTTPException(status_code=404, detail="Opportunity not found or expired")
    if user:
        opportunity = service.increment(opportunity["_id"], "views")
    return APIResponse(data={"opportunity": serialize_doc(opportunity)})


@router.post("", response_model=APIResponse, status_code=201)
async def create_opportunity(data: OpportunityCreate, user: dict = Depends(get_current_user)):
    opportunity = get_opportunity_service().create_opportunity(data.model_dump(), user["_id"])
    return APIResponse(message="Opportunity created successfully", data={"opportunity": serialize_doc(opportunity)})


@router.put("/{opportunity_id}", response_model=APIResponse)
async def update_opportunity(opportunity_id: str, data: OpportunityUpdate, user: dict = Depends(get_current_user)):
    service = get_opportunity_service()
    opportunity = service.get_or_404(opportunity_id)
    ensure_owner(opportunity, user)

    changes = data.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")
    merged = {**opportunity, **changes}
    if merged.get("max_experience") is not None and merged.get("min_experience", 0) > merged["max_experience"]:
        raise HTTPException(status_code=400, detail="Minimum experience cannot be greater than maximum experience")

    updated = service.update(opportunity["_id"], changes)
    return APIResponse(message="Opportunity updated successfully", data={"opportunity": serialize_doc(updated)})


@router.delete("/{opportunity_id}", response_model=APIResponse)
async def delete_opportunity(opportunity_id: str, user: dict = Depends(get_current_user)):
    service = get_opportunity_service()
    opportunity = service.get_or_404(opportunity_id)
    ensure_owner(opportunity, user)
    service.delete(opportunity["_id"])
    return APIResponse(message="Opportunity deleted successfully")


@router.post("/{opportunity_id}/track-application", response_model=APIResponse)
async def track_application(opportunity_id: str, user: dict = Depends(get_current_user)):
    """Count an outbound application and hand back the external link."""
    service = get_opportunity_service()
    opportunity = service.get_or_404(opportunity_id)
    if not is_still_active(opportunity):
        raise HTTPException(status_code=400, detail="This opportunity is no longer accepting applications")
    opportunity = service.increment(opportunity["_id"], "applications")
    return APIResponse(
        message="Application tracked successfully",
        data={"application_link": opportunity["application_link"], "applications": opportunity["applications"]}
    )
