"""
Company Service - recruiting companies and their openings.
"""

import logging
from datetime import datetime
from typing import Optional, List, Dict, Any

from fastapi import HTTPException
from pymongo import ASCENDING

from app.db.mongodb import get_collection, COLLECTIONS
from app.services.eligibility_service import effective_criteria, build_eligibility_filter
from app.services.mongo_service import MongoService, regex_filter, utcnow
from app.services.notification_service import NotificationService
from app.services.round_service import RoundService

logger = logging.getLogger(__name__)


def is_application_open(company: dict, now: Optional[datetime] = None) -> bool:
    return company.get("status") == "active" and (now or utcnow()) <= company["application_deadline"]


class CompanyService(MongoService):
    collection_key = "companies"
    entity_name = "Company"

    def get_by_name(self, name: str) -> Optional[dict]:
        return self.collection.find_one({"name": {"$regex": f"^{regex_filter(name)['$regex']}$", "$options": "i"}})

    def create_company(self, data: dict, created_by) -> dict:
        """Store a company, seed its default rounds and notify eligible students."""
        if self.get_by_name(data["name"]):
            raise HTTPException(status_code=400, detail="Company with this name already exists")
        if data["application_deadline"] <= utcnow():
            raise HTTPException(status_code=400, detail="Application deadline must be in the future")

        company = self.insert({**data, "created_by": created_by})
        RoundService().create_default_rounds(company["_id"], created_by)

        if company["status"] == "active":
            criteria = effective_criteria(company)
            students = get_collection(COLLECTIONS["students"]).find(
                {**build_eligibility_filter(criteria), "placed": False}, {"_id": 1}
            )
            NotificationService().notify_new_company(company, [s["_id"] for s in students])

        logger.info("Company %s created", company["name"])
        return company

    def update_company(self, company: dict, changes: dict) -> dict:
        if "name" in changes and changes["name"].lower() != company["name"].lower():
            if self.get_by_name(changes["name"]):
                raise HTTPException(status_code=400, detail="Company with this name already exists")
        return self.update(company["_id"], changes)

    def delete_company(self, company: dict) -> dict:
        """Remove the company with its applications, rounds and windows."""
        company_id = company["_id"]
        counts = {
            "applications_deleted": get_collection(COLLECTIONS["applications"]).delete_many(
                {"company_id": company_id}).deleted_count,
            "rounds_deleted": get_collection(COLLECTIONS["rounds"]).delete_many(
                {"company_id": company_id}).deleted_count,
            "windows_deleted": get_collection(COLLECTIONS["windows"]).delete_many(
                {"company_id": company_id}).deleted_count,
        }
        get_collection(COLLECTIONS["review_history"]).delete_many({"company_id": company_id})
        self.delete(company_id)
        logger.info("Company %s deleted: %s", company["name"], counts)
        return counts

    def build_filter(self, status: Optional[str], industry: Optional[str], search: Optional[str]) -> dict:
        query: Dict[str, Any] = {}
        if status:
            query["status"] = status
        if industry:
            query["industry"] = industry
        if search:
            query["$or"] = [
                {"name": regex_filter(search)},
                {"description": regex_filter(search)},
                {"location": regex_filter(search)},
            ]
        return query

    def list_active(self) -> List[dict]:
        return self.find(
            {"status": "active", "application_deadline": {"$gte": utcnow()}},
            sort=[("application_deadline", ASCENDING)]
        )

    def search(self, term: str, limit: int = 50) -> List[dict]:
        """Regex match over name, industry, location and skills."""
        pattern = regex_filter(term)
        return self.find({"$or": [
            {"name": pattern},
            {"industry": pattern},
            {"location": pattern},
            {"skills": pattern},
        ]}, sort=[("name", ASCENDING)], limit=limit)

    def stats(self) -> dict:
        by_status = self.count_by("status")
        by_industry = self.count_by("industry")
        top = sorted(by_industry.items(), key=lambda item: item[1], reverse=True)[:5]
        return {
            "total": sum(by_status.values()),
            "active": by_status.get("active", 0),
            "inactive": by_status.get("inactive", 0),
            "completed": by_status.get("completed", 0),
            "by_industry": [{"industry": k, "count": v} for k, v in sorted(by_industry.items())],
            "top_industries": [{"industry": k, "count": v} for k, v in top],
        }


def get_company_service() -> CompanyService:
    return CompanyService()
