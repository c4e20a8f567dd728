"""
Off-Campus Opportunity Service - openings posted outside campus recruitment.

Only active postings whose deadline has not passed are shown publicly.
"""

from typing import Optional, List, Dict, Any

from pymongo import ASCENDING, DESCENDING, ReturnDocument

from app.services.mongo_service import MongoService, regex_filter, to_object_id, utcnow

SEARCH_LIMIT = 50


def is_still_active(opportunity: dict) -> bool:
    return bool(opportunity.get("is_active")) and opportunity["application_deadline"] >= utcnow()


class OpportunityService(MongoService):
    collection_key = "opportunities"
    entity_name = "Opportunity"

    @staticmethod
    def live_filter() -> dict:
        return {"is_active": True, "application_deadline": {"$gte": utcnow()}}

    def create_opportunity(self, data: dict, created_by) -> dict:
        return self.insert({
            **data,
            "posted_date": utcnow(),
            "views": 0,
            "applications": 0,
            "created_by": created_by,
        })

    def build_filter(
        self,
        type: Optional[str] = None,
        location: Optional[str] = None,
        industry: Optional[str] = None,
        experience: Optional[str] = None,
        is_remote: Optional[bool] = None,
        skills: Optional[List[str]] = None,
        search: Optional[str] = None
    ) -> dict:
        query: Dict[str, Any] = self.live_filter()
        if type:
            query["type"] = type
        if location:
            query["location"] = regex_filter(location)
        if industry:
            query["industry"] = industry
        if experience:
            query["experience"] = experience
        if is_remote is not None:
            query["is_remote"] = is_remote
        if skills:
            query["skills"] = {"$in": skills}
        if search:
            query["$or"] = self._search_clauses(search)
        return query

    @staticmethod
    def _search_clauses(term: str) -> List[dict]:
        pattern = regex_filter(term)
        return [{field: pattern} for field in ("title", "company", "location", "industry", "skills", "tags")]

    def featured(self, limit: int = 10) -> List[dict]:
        return self.find(
            self.live_filter(),
            sort=[("views", DESCENDING), ("applications", DESCENDING), ("posted_date", DESCENDING)],
            limit=limit
        )

    def search(self, term: str, filters: Optional[dict] = None) -> List[dict]:
        query = {**self.live_filter(), **(filters or {}), "$or": self._search_clauses(term)}
        return self.find(query, sort=[("posted_date", DESCENDING)], limit=SEARCH_LIMIT)

    def by_skills(self, skills: List[str]) -> List[dict]:
        patterns = [regex_filter(skill) for skill in skills]
        query = {**self.live_filter(), "$or": [{"skills": p} for p in patterns]}
        return self.find(query, sort=[("application_deadline", ASCENDING)], limit=SEARCH_LIMIT)

    def mine_filter(self, user_id, status: Optional[str]) -> dict:
        query: Dict[str, Any] = {"created_by": user_id}
        now = utcnow()
        if status == "active":
            query.update({"is_active": True, "application_deadline": {"$gte": now}})
        elif status == "expired":
            query["application_deadline"] = {"$lt": now}
        elif status == "inactive":
            query["is_active"] = False
        return query

    def increment(self, opportunity_id, field: str) -> dict:
        return self.collection.find_one_and_update(
            {"_id": to_object_id(opportunity_id, "opportunity ID")},
            {"$inc": {field: 1}},
            return_document=ReturnDocument.AFTER
        )


def get_opportunity_service() -> OpportunityService:
    return OpportunityService()
