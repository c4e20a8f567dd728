"""
Recruitment Round Service - the ordered stages of a company's hiring process.

Round numbers are unique per company; applications point at their current
round through `round_id`.
"""

import logging
from datetime import timedelta
from typing import Optional, List

from fastapi import HTTPException
from pymongo import ASCENDING

from app.db.mongodb import get_collection, COLLECTIONS
from app.services.mongo_service import MongoService, to_object_id, utcnow

logger = logging.getLogger(__name__)

DEFAULT_ROUNDS = [
    ("Aptitude Test", "aptitude_test", "Online aptitude and reasoning assessment"),
    ("Technical Interview", "technical_interview", "Technical skills and problem solving interview"),
    ("HR Interview", "hr_interview", "Final HR discussion"),
]


class RoundService(MongoService):
    collection_key = "rounds"
    entity_name = "Round"

    @property
    def applications(self):
        return get_collection(COLLECTIONS["applications"])

    def next_round_number(self, company_id) -> int:
        last = self.find({"company_id": company_id}, sort=[("round_number", -1)], limit=1)
        return last[0]["round_number"] + 1 if last else 1

    def create_round(self, company_id, data: dict, created_by) -> dict:
        """Create a round, 400 on a past date or a taken round number."""
        company_id = to_object_id(company_id, "company ID")
        if data["scheduled_date"] < utcnow():
            raise HTTPException(status_code=400, detail="Scheduled date cannot be in the past")

        round_number = data.get("round_number") or self.next_round_number(company_id)
        if self.collection.find_one({"company_id": company_id, "round_number": round_number}):
            raise HTTPException(status_code=400, detail="Round number already exists for this company")

        doc = {
            **{k: v for k, v in data.items() if k != "company_id"},
            "company_id": company_id,
            "round_number": round_number,
            "is_active": True,
            "created_by": created_by,
        }
        round_doc = self.insert(doc)
        logger.info("Round %d (%s) created for company %s", round_number, doc["name"], company_id)
        return round_doc

    def create_default_rounds(self, company_id, created_by) -> List[dict]:
        """Aptitude, technical and HR rounds, one week apart."""
        now = utcnow()
        return [
            self.insert({
                "company_id": company_id,
                "name": name,
                "type": round_type,
                "description": description,
                "round_number": number,
                "scheduled_date": now + timedelta(weeks=number),
                "status": "upcoming",
                "is_online": round_type == "aptitude_test",
                "max_score": 100,
                "required_documents": [],
                "evaluation_criteria": [],
                "is_active": True,
                "created_by": created_by,
            })
            for number, (name, round_type, description) in enumerate(DEFAULT_ROUNDS, start=1)
        ]

    def list_for_company(self, company_id, include_inactive: bool = False) -> List[dict]:
        query = {"company_id": to_object_id(company_id, "company ID")}
        if not include_inactive:
            query["is_active"] = True
        return self.find(query, sort=[("round_number", ASCENDING)])

    def next_round(self, company_id, after: int = 0) -> Optional[dict]:
        """First non-cancelled active round numbered above `after`."""
        rounds = self.find({
            "company_id": company_id,
            "round_number": {"$gt": after},
            "status": {"$ne": "cancelled"},
            "is_active": True,
        }, sort=[("round_number", ASCENDING)], limit=1)
        return rounds[0] if rounds else None

    def upcoming(self, days: int = 7, company_ids: Optional[List] = None) -> List[dict]:
        now = utcnow()
        query = {
            "status": "upcoming",
            "scheduled_date": {"$gte": now, "$lte": now + timedelta(days=days)},
        }
        if company_ids is not None:
            query["company_id"] = {"$in": company_ids}
        return self.find(query, sort=[("scheduled_date", ASCENDING)])

    def candidate_count(self, round_id) -> int:
        return self.applications.count_documents({"round_id": round_id})

    def candidates(self, round_id) -> List[dict]:
        return list(self.applications.find({"round_id": round_id}).sort("submitted_at", ASCENDING))

    def add_candidate(self, round_doc: dict, application: dict) -> dict:
        if application["company_id"] != round_doc["company_id"]:
            raise HTTPException(status_code=400, detail="Application does not belong to this company")
        if application.get("round_id") == round_doc["_id"]:
            raise HTTPException(status_code=400, detail="Candidate is already in this round")
        max_candidates = round_doc.get("max_candidates")
        if max_candidates and self.candidate_count(round_doc["_id"]) >= max_candidates:
            raise HTTPException(status_code=400, detail="Round is at maximum capacity")
        self.applications.update_one(
            {"_id": application["_id"]},
            {"$set": {"round_id": round_doc["_id"], "updated_at": utcnow()}}
        )
        return self.applications.find_one({"_id": application["_id"]})

    def reorder(self, round_doc: dict, new_sequence: int) -> List[dict]:
        """
        Move a round to `new_sequence`, shifting the rounds in between.

        Rounds are renumbered one at a time so the unique
        (company_id, round_number) index never sees a duplicate.
        """
        company_id = round_doc["company_id"]
        old_sequence = round_doc["round_number"]
        last = self.next_round_number(company_id) - 1
        if new_sequence > last:
            raise HTTPException(status_code=400, detail=f"Sequence must be between 1 and {last}")
        if new_sequence == old_sequence:
            return self.list_for_company(company_id, include_inactive=True)

        self.collection.update_one({"_id": round_doc["_id"]}, {"$set": {"round_number": 0}})
        if new_sequence < old_sequence:
            between = {"$gte": new_sequence, "$lt": old_sequence}
            order, step = -1, 1
        else:
            between = {"$gt": old_sequence, "$lte": new_sequence}
            order, step = 1, -1
        siblings = self.find({"company_id": company_id, "round_number": between},
                             sort=[("round_number", order)])
        for sibling in siblings:
            self.collection.update_one(
                {"_id": sibling["_id"]},
                {"$set": {"round_number": sibling["round_number"] + step, "updated_at": utcnow()}}
            )
        self.collection.update_one(
            {"_id": round_doc["_id"]},
            {"$set": {"round_number": new_sequence, "updated_at": utcnow()}}
        )
        return self.list_for_company(company_id, include_inactive=True)

    def delete_round(self, round_doc: dict) -> None:
        if self.candidate_count(round_doc["_id"]):
            raise HTTPException(status_code=400, detail="Cannot delete round with existing applications")
        self.delete(round_doc["_id"])


def get_round_service() -> RoundService:
    return RoundService()
