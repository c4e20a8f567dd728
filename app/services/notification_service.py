"""
Notification Service - in-app messages for students and users.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional, List

from pymongo import DESCENDING

from app.services.mongo_service import MongoService, to_object_id, utcnow

logger = logging.getLogger(__name__)

MAX_MESSAGE_LENGTH = 500


def time_ago(timestamp: datetime, now: Optional[datetime] = None) -> str:
    """Human readable age, e.g. '3 hours ago'."""
    seconds = int(((now or utcnow()) - timestamp).total_seconds())
    for unit, size in (("day", 86400), ("hour", 3600), ("minute", 60)):
        amount = seconds // size
        if amount > 0:
            return f"{amount} {unit}{'s' if amount > 1 else ''} ago"
    return "Just now"


def status_message(status: str, company_name: str) -> str:
    if status == "selected":
        return f"Congratulations! You have been selected by {company_name}!"
    if status == "rejected":
        return f"Your application for {company_name} has been rejected."
    if status == "shortlisted":
        return f"Your application for {company_name} has been shortlisted for the next round."
    return f"Your application status for {company_name} has been updated to: {status}"


class NotificationService(MongoService):
    collection_key = "notifications"
    entity_name = "Notification"

    def create_notification(
        self,
        recipient_id,
        type: str,
        message: str,
        recipient_type: str = "student",
        metadata: Optional[dict] = None
    ) -> dict:
        return self.insert({
            "recipient_id": to_object_id(recipient_id, "recipient ID"),
            "recipient_type": recipient_type,
            "type": type,
            "message": message[:MAX_MESSAGE_LENGTH],
            "read": False,
            "timestamp": utcnow(),
            "metadata": metadata or {},
        })

    def notify_status_change(self, application: dict, company: dict, status: str) -> dict:
        return self.create_notification(
            application["student_id"],
            "application_status",
            status_message(status, company["name"]),
            metadata={
                "application_id": application["_id"],
                "company_id": company["_id"],
                "company_name": company["name"],
                "status": status,
            },
        )

    def notify_new_company(self, company: dict, student_ids: List) -> int:
        """One notification per eligible student, returns how many were created."""
        if not student_ids:
            return 0
        now = utcnow()
        deadline = company["application_deadline"].strftime("%Y-%m-%d")
        docs = [{
            "recipient_id": student_id,
            "recipient_type": "student",
            "type": "new_company",
            "message": f"New company {company['name']} is now accepting applications. "
                       f"Apply before {deadline}!"[:MAX_MESSAGE_LENGTH],
            "read": False,
            "timestamp": now,
            "metadata": {"company_id": company["_id"], "company_name": company["name"]},
            "created_at": now,
            "updated_at": now,
        } for student_id in student_ids]
        self.collection.insert_many(docs)
        logger.info("Notified %d students about %s", len(docs), company["name"])
        return len(docs)

    def for_recipient(self, recipient_id, unread_only: bool, page: int, limit: int):
        query = {"recipient_id": to_object_id(recipient_id, "student ID")}
        if unread_only:
            query["read"] = False
        return self.find_page(query, page, limit, sort=[("timestamp", DESCENDING)])

    def unread_count(self, recipient_id) -> int:
        return self.count({"recipient_id": to_object_id(recipient_id, "student ID"), "read": False})

    def mark_read(self, recipient_id, notification_ids: Optional[List] = None) -> int:
        """Mark the given notifications (or all, when ids is None) as read."""
        query = {"recipient_id": to_object_id(recipient_id, "student ID"), "read": False}
        if notification_ids is not None:
            query["_id"] = {"$in": [to_object_id(n, "notification ID") for n in notification_ids]}
        result = self.collection.update_many(query, {"$set": {"read": True, "updated_at": utcnow()}})
        return result.modified_count

    def cleanup(self, recipient_id, days_old: int) -> int:
        """Delete read notifications older than `days_old` days."""
        cutoff = utcnow() - timedelta(days=days_old)
        result = self.collection.delete_many({
            "recipient_id": to_object_id(recipient_id, "student ID"),
            "read": True,
            "timestamp": {"$lt": cutoff},
        })
        return result.deleted_count


def get_notification_service() -> NotificationService:
    return NotificationService()
