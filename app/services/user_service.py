"""
User Service - accounts for admins, recruiters and students.
"""

import logging
from typing import Optional

from fastapi import HTTPException

from app.core.auth import hash_password
from app.services.mongo_service import MongoService, regex_filter, to_object_id

logger = logging.getLogger(__name__)


class UserService(MongoService):
    collection_key = "users"
    entity_name = "User"

    def get_by_email(self, email: str) -> Optional[dict]:
        return self.collection.find_one({"email": email.lower()})

    def create_user(
        self,
        name: str,
        email: str,
        password: str,
        role: str = "student",
        company_id: Optional[str] = None,
        is_active: bool = True
    ) -> dict:
        """Create an account, 400 if the email is taken."""
        email = email.lower()
        if self.get_by_email(email):
            raise HTTPException(status_code=400, detail="User with this email already exists")
        return self.insert({
            "name": name.strip(),
            "email": email,
            "password_hash": hash_password(password),
            "role": role,
            "company_id": to_object_id(company_id, "company ID") if company_id else None,
            "is_active": is_active,
            "last_login": None
        })

    def build_filter(self, role: Optional[str], is_active: Optional[bool], search: Optional[str]) -> dict:
        query = {}
        if role:
            query["role"] = role
        if is_active is not None:
            query["is_active"] = is_active
        if search:
            query["$or"] = [{"name": regex_filter(search)}, {"email": regex_filter(search)}]
        return query

    def ids_matching(self, search: str) -> list:
        """User ids whose name or email matches the search term."""
        cursor = self.collection.find(
            {"$or": [{"name": regex_filter(search)}, {"email": regex_filter(search)}]},
            {"_id": 1}
        )
        return [doc["_id"] for doc in cursor]

    def set_active(self, user_id, is_active: bool) -> dict:
        user = self.update(user_id, {"is_active": is_active})
        if not user:
            raise HTTPException(status_code=404, detail="User not found")
        logger.info("User %s %s", user["email"], "activated" if is_active else "deactivated")
        return user

    def ensure_admin(self, name: str, email: str, password: str) -> Optional[dict]:
        """Seed the default admin account when no admin exists yet."""
        if self.collection.find_one({"role": "admin"}):
            return None
        admin = self.create_user(name, email, password, role="admin")
        logger.info("Default admin user created: %s", email)
        return admin


def get_user_service() -> UserService:
    return UserService()
