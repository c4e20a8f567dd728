"""
Application Service - student submissions and their review trail.

Status transitions are unconstrained: any status may follow any other.
Every status or score change is recorded in the review history, and a
status change notifies the student. Side effects of a new status:
    shortlisted -> moved to the company's next recruitment round
    selected    -> student marked placed with the company
"""

import logging
from typing import Optional, List, Any

from fastapi import HTTPException
from pymongo import DESCENDING
from pymongo.errors import DuplicateKeyError

from app.db.mongodb import get_collection, COLLECTIONS
from app.services.eligibility_service import effective_criteria, evaluate_student
from app.services.mongo_service import MongoService, to_object_id, utcnow
from app.services.notification_service import NotificationService
from app.services.round_service import RoundService
from app.services.window_service import ApplicationWindowService

logger = logging.getLogger(__name__)

STATUSES = ["submitted", "under-review", "shortlisted", "rejected", "selected"]


def review_type_for(status_changed: bool, score_changed: bool) -> str:
    if status_changed and score_changed:
        return "both"
    if score_changed and not status_changed:
        return "score_update"
    return "status_change"


def empty_status_counts() -> dict:
    return {status: 0 for status in STATUSES}


# ============================================================
# REVIEW HISTORY
# ============================================================

class ReviewHistoryService(MongoService):
    collection_key = "review_history"
    entity_name = "Review history"

    def record(
        self,
        application: dict,
        reviewer_id,
        new_status: str,
        new_score: Optional[float],
        notes: Optional[str] = None
    ) -> dict:
        old_status = application.get("status")
        old_score = application.get("score")
        return self.insert({
            "application_id": application["_id"],
            "company_id": application["company_id"],
            "reviewer_id": reviewer_id,
            "old_status": old_status,
            "new_status": new_status,
            "old_score": old_score,
            "new_score": new_score,
            "notes": notes,
            "review_type": review_type_for(old_status != new_status, old_score != new_score),
            "reviewed_at": utcnow(),
        })

    def for_application(self, application_id) -> List[dict]:
        return self.find({"application_id": application_id}, sort=[("reviewed_at", DESCENDING)])


# ============================================================
# APPLICATIONS
# ============================================================

class ApplicationService(MongoService):
    collection_key = "applications"
    entity_name = "Application"

    def __init__(self):
        super().__init__()
        self.history = ReviewHistoryService()
        self.notifications = NotificationService()
        self.rounds = RoundService()
        self.windows = ApplicationWindowService()
        self.students = get_collection(COLLECTIONS["students"])
        self.companies = get_collection(COLLECTIONS["companies"])

    def create_application(self, student: dict, company_id: Any, resume_url: Optional[str], form_data: dict) -> dict:
        """Validate the student against the company and store a new submission."""
        if student.get("placed"):
            raise HTTPException(status_code=400, detail="You are already placed and cannot apply to more companies")

        company = self.companies.find_one({"_id": to_object_id(company_id, "company ID")})
        if not company:
            raise HTTPException(status_code=404, detail="Company not found")
        if company.get("status") != "active":
            raise HTTPException(status_code=400, detail="Company is not currently accepting applications")

        now = utcnow()
        if now > company["application_deadline"]:
            raise HTTPException(status_code=400, detail="Application deadline has passed")

        window = self.windows.get_open_window(company["_id"], now)
        result = evaluate_student(student, effective_criteria(company, window), window, require_window=True)
        if not result["eligible"]:
            raise HTTPException(status_code=400, detail=result["reason"])

        if self.collection.find_one({"student_id": student["_id"], "company_id": company["_id"]}):
            raise HTTPException(status_code=400, detail="You have already applied to this company")

        try:
            application = self.insert({
                "student_id": student["_id"],
                "company_id": company["_id"],
                "round_id": None,
                "status": "submitted",
                "score": None,
                "recruiter_notes": None,
                "submitted_at": now,
                "reviewed_at": None,
                "reviewed_by": None,
                "resume_url": resume_url or student.get("resume_url"),
                "form_data": form_data,
                "window_id": window["_id"] if window else None,
            })
        except DuplicateKeyError:
            raise HTTPException(status_code=400, detail="You have already applied to this company")

        logger.info("Student %s applied to %s", student["roll_number"], company["name"])
        return application

    def update_status(
        self,
        application: dict,
        status: str,
        reviewer_id,
        notes: Optional[str] = None,
        score: Optional[float] = None
    ) -> dict:
        """Set a new status and apply its side effects."""
        company = self.companies.find_one({"_id": application["company_id"]})
        new_score = score if score is not None else application.get("score")

        changes = {
            "status": status,
            "reviewed_at": utcnow(),
            "reviewed_by": reviewer_id,
            "score": new_score,
        }
        if notes is not None:
            changes["recruiter_notes"] = notes

        if status == "shortlisted" and company:
            after = 0
            if application.get("round_id"):
                current = self.rounds.get_by_id(application["round_id"])
                if current:
                    after = current["round_number"]
            next_round = self.rounds.next_round(company["_id"], after)
            if next_round:
                changes["round_id"] = next_round["_id"]

        self.history.record(application, reviewer_id, status, new_score, notes)
        updated = self.update(application["_id"], changes)

        if status == "selected" and company:
            self.students.update_one(
                {"_id": application["student_id"]},
                {"$set": {
                    "placed": True,
                    "placed_company": company["_id"],
                    "package": company.get("package_offered"),
                    "updated_at": utcnow(),
                }}
            )

        if status != application.get("status") and company:
            self.notifications.notify_status_change(updated, company, status)

        logger.info("Application %s: %s -> %s", application["_id"], application.get("status"), status)
        return updated

    def update_score(self, application: dict, score: float, reviewer_id, notes: Optional[str] = None) -> dict:
        self.history.record(application, reviewer_id, application["status"], score, notes)
        changes = {"score": score, "reviewed_at": utcnow(), "reviewed_by": reviewer_id}
        if notes is not None:
            changes["recruiter_notes"] = notes
        return self.update(application["_id"], changes)

    def bulk_update_status(self, application_ids: List[str], status: str, reviewer_id,
                           notes: Optional[str] = None, company_ids: Optional[List] = None) -> dict:
        """Per-item outcome; one bad id never fails the whole batch."""
        updated, failed = 0, []
        for raw_id in application_ids:
            try:
                application = self.get_by_id(raw_id)
            except HTTPException as e:
                failed.append({"application_id": raw_id, "reason": e.detail})
                continue
            if not application:
                failed.append({"application_id": raw_id, "reason": "Application not found"})
                continue
            if company_ids is not None and application["company_id"] not in company_ids:
                failed.append({"application_id": raw_id, "reason": "Access denied"})
                continue
            self.update_status(application, status, reviewer_id, notes)
            updated += 1
        return {"requested": len(application_ids), "updated": updated, "failed": failed}

    def advance_round(self, round_doc: dict, reviewer_id) -> dict:
        """
        Complete a round: its shortlisted candidates move to the next round
        (status back to submitted) or, after the last round, are selected.
        """
        shortlisted = list(self.collection.find({"round_id": round_doc["_id"], "status": "shortlisted"}))
        next_round = self.rounds.next_round(round_doc["company_id"], round_doc["round_number"])
        advanced, selected = 0, 0
        for application in shortlisted:
            if next_round:
                self.history.record(application, reviewer_id, "submitted", application.get("score"),
                                    f"Advanced to {next_round['name']}")
                self.update(application["_id"], {"round_id": next_round["_id"], "status": "submitted"})
                advanced += 1
            else:
                self.update_status(application, "selected", reviewer_id, "Cleared final round")
                selected += 1
        logger.info("Round %s completed: %d advanced, %d selected", round_doc["_id"], advanced, selected)
        return {"advanced": advanced, "selected": selected, "next_round_id": next_round["_id"] if next_round else None}

    def stats(self, query: Optional[dict] = None) -> dict:
        """Totals per status plus the average score."""
        query = query or {}
        counts = empty_status_counts()
        counts.update(self.count_by("status", query))
        scored = [
            {"$match": {"$and": [query, {"score": {"$ne": None}}]}},
            {"$group": {"_id": None, "avg_score": {"$avg": "$score"}}},
        ]
        averages = list(self.collection.aggregate(scored))
        avg = averages[0]["avg_score"] if averages else None
        return {
            "total": sum(counts.values()),
            **counts,
            "avg_score": round(avg, 2) if avg is not None else 0,
        }

    def with_company_names(self, applications: List[dict]) -> List[dict]:
        names = {
            c["_id"]: c["name"]
            for c in self.companies.find({"_id": {"$in": list({a["company_id"] for a in applications})}},
                                         {"name": 1})
        }
        for application in applications:
            application["company_name"] = names.get(application["company_id"])
        return applications


def get_application_service() -> ApplicationService:
    return ApplicationService()
