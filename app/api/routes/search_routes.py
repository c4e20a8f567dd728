"""
Search Routes

GET /search/global - Search students, companies, opportunities and applications at once
GET /search/suggestions - Type-ahead values for companies, skills, locations, branches
POST /search/advanced - Structured filters on one entity, paginated
"""

from typing import Optional, Literal, Dict, Any

from fastapi import APIRouter, HTTPException, Depends, Query

from app.core.auth import get_current_user, get_optional_user, company_scope
from app.schemas.schemas import APIResponse, AdvancedSearchRequest, Branch
from app.services.application_service import get_application_service
from app.services.company_service import get_company_service
from app.services.mongo_service import regex_filter, serialize_docs, to_object_id
from app.services.opportunity_service import get_opportunity_service
from app.services.student_service import get_student_service

router = APIRouter(prefix="/search", tags=["Search"])

RESULT_LIMIT = 10

SearchType = Literal["all", "students", "companies", "opportunities", "applications"]


def search_students(term: str, limit: int):
    service = get_student_service()
    return service.with_user(service.find(service.build_filter(search=term), limit=limit))


def search_applications(term: str, user: dict, limit: int):
    students = get_student_service()
    student_ids = [s["_id"] for s in students.collection.find(students.build_filter(search=term), {"_id": 1})]
    company_ids = [c["_id"] for c in get_company_service().collection.find({"name": regex_filter(term)}, {"_id": 1})]
    query: Dict[str, Any] = {"$or": [{"student_id": {"$in": student_ids}}, {"company_id": {"$in": company_ids}}]}
    scope = company_scope(user)
    if scope is not None:
        query["company_id"] = {"$in": scope}
    service = get_application_service()
    return service.with_company_names(service.find(query, limit=limit))


@router.get("/global", response_model=APIResponse)
async def global_search(
    q: str = Query(..., min_length=2),
    type: SearchType = "all",
    limit: int = Query(RESULT_LIMIT, ge=1, le=50),
    user: Optional[dict] = Depends(get_optional_user)
):
    """Companies and opportunities for everyone; students and applications for signed-in staff."""
    results: Dict[str, list] = {}
    staff = user is not None and user.get("role") in ("admin", "recruiter")

    if type in ("all", "companies"):
        results["companies"] = get_company_service().search(q, limit)
    if type in ("all", "opportunities"):
        results["opportunities"] = get_opportunity_service().search(q)[:limit]
    if type in ("all", "students") and staff:
        results["students"] = search_students(q, limit)
    if type in ("all", "applications") and staff:
        results["applications"] = search_applications(q, user, limit)

    return APIResponse(data={
        "query": q,
        "results": {key: serialize_docs(value) for key, value in results.items()},
        "total": sum(len(value) for value in results.values()),
    })


@router.get("/suggestions", response_model=APIResponse)
async def suggestions(
    q: str = Query(..., min_length=1),
    type: Literal["companies", "skills", "locations", "branches"] = "companies"
):
    """Distinct matching values for type-ahead boxes."""
    pattern = regex_filter(q)
    if type == "companies":
        values = [c["name"] for c in get_company_service().find({"name": pattern}, sort=[("name", 1)], limit=RESULT_LIMIT)]
    elif type == "skills":
        found = set(get_student_service().collection.distinct("skills"))
        found.update(get_company_service().collection.distinct("skills"))
        found.update(get_opportunity_service().collection.distinct("skills"))
        values = sorted(s for s in found if s and q.lower() in s.lower())[:RESULT_LIMIT]
    elif type == "locations":
        found = set(get_company_service().collection.distinct("location"))
        found.update(get_opportunity_service().collection.distinct("location"))
        values = sorted(s for s in found if s and q.lower() in s.lower())[:RESULT_LIMIT]
    else:
        values = [b.value for b in Branch if q.lower() in b.value.lower()]
    return APIResponse(data={"type": type, "suggestions": values})


@router.post("/advanced", response_model=APIResponse)
async def advanced_search(data: AdvancedSearchRequest, user: dict = Depends(get_current_user)):
    """
    Structured search on one entity.

    Supported filters:
        students: branch, batch, placed, min_cgpa, max_cgpa, max_backlogs, skills, search
        companies: status, industry, location, skills, search
        opportunities: type, industry, experience, is_remote, location, skills, search
        applications: status, company_id, min_score, max_score
    """
    f = data.filters
    sort = [(data.sort_by, 1 if data.sort_order == "asc" else -1)]

    if data.entity == "students":
        service = get_student_service()
        query = service.build_filter(f.get("branch"), f.get("placed"), f.get("batch"),
                                     f.get("min_cgpa"), f.get("max_cgpa"), f.get("search"))
        if f.get("max_backlogs") is not None:
            query["backlogs"] = {"$lte": f["max_backlogs"]}
        if f.get("skills"):
            query["skills"] = {"$all": list(f["skills"])}
        docs, pagination = service.find_page(query, data.page, data.limit, sort)
        docs = service.with_user(docs)
    elif data.entity == "companies":
        service = get_company_service()
        query = service.build_filter(f.get("status"), f.get("industry"), f.get("search"))
        if f.get("location"):
            query["location"] = regex_filter(f["location"])
        if f.get("skills"):
            query["skills"] = {"$in": list(f["skills"])}
        docs, pagination = service.find_page(query, data.page, data.limit, sort)
    elif data.entity == "opportunities":
        service = get_opportunity_service()
        query = service.build_filter(f.get("type"), f.get("location"), f.get("industry"), f.get("experience"),
                                     f.get("is_remote"), f.get("skills"), f.get("search"))
        docs, pagination = service.find_page(query, data.page, data.limit, sort)
    else:
        if user.get("role") == "student":
            raise HTTPException(status_code=403, detail="Access denied")
        service = get_application_service()
        query = {}
        scope = company_scope(user)
        if scope is not None:
            query["company_id"] = {"$in": scope}
        if f.get("status"):
            query["status"] = f["status"]
        if f.get("company_id") and scope is None:
            query["company_id"] = to_object_id(f["company_id"], "company ID")
        if f.get("min_score") is not None or f.get("max_score") is not None:
            query["score"] = {}
            if f.get("min_score") is not None:
                query["score"]["$gte"] = f["min_score"]
            if f.get("max_score") is not None:
                query["score"]["$lte"] = f["max_score"]
        docs, pagination = service.find_page(query, data.page, data.limit, sort)
        docs = service.with_company_names(docs)

    return APIResponse(data={"entity": data.entity, "results": serialize_docs(docs), "pagination": pagination})
