"""
Student Service - student profiles and their user accounts.

A student is two documents: the `users` account (name, email, password)
and the `students` profile (academics, placement) linked by `user_id`.
"""

import logging
from typing import Optional, List, Dict, Any

from fastapi import HTTPException
from pydantic import ValidationError
from pymongo.errors import DuplicateKeyError

from app.core.config import get_settings
from app.db.mongodb import get_collection, COLLECTIONS
from app.schemas.schemas import StudentCreate
from app.services.mongo_service import MongoService, regex_filter, to_object_id
from app.services.user_service import UserService

logger = logging.getLogger(__name__)

settings = get_settings()

# Fields a student may edit on their own profile
SELF_EDITABLE = {"name", "phone", "skills"}


def _row_error(error: ValidationError) -> str:
    first = error.errors()[0]
    field = ".".join(str(part) for part in first["loc"]) or "row"
    return f"{field}: {first['msg']}"


class StudentService(MongoService):
    collection_key = "students"
    entity_name = "Student"

    def __init__(self):
        super().__init__()
        self.users = UserService()

    def get_by_roll_number(self, roll_number: str) -> Optional[dict]:
        return self.collection.find_one({"roll_number": roll_number.upper()})

    def create_student(self, data: StudentCreate) -> dict:
        """Create the user account and the profile, 400 on duplicate email/roll number."""
        if self.get_by_roll_number(data.roll_number):
            raise HTTPException(status_code=400, detail="Student with this roll number already exists")
        if self.users.get_by_email(data.email):
            raise HTTPException(status_code=400, detail="User with this email already exists")

        user = self.users.create_user(
            data.name, data.email, data.password or settings.default_student_password, role="student"
        )
        try:
            student = self.insert({
                "user_id": user["_id"],
                "roll_number": data.roll_number,
                "branch": data.branch,
                "cgpa": data.cgpa,
                "phone": data.phone,
                "batch": data.batch,
                "backlogs": data.backlogs,
                "skills": data.skills,
                "resume_url": data.resume_url,
                "placed": False,
                "placed_company": None,
                "package": None,
            })
        except DuplicateKeyError:
            # keep the pair consistent
            self.users.delete(user["_id"])
            raise HTTPException(status_code=400, detail="Student with this roll number already exists")

        logger.info("Student %s created", data.roll_number)
        return student

    def bulk_import(self, rows: List[Dict[str, Any]]) -> dict:
        """
        Create students row by row.

        Returns:
            {total, created, duplicates: [{row, reason}], errors: [{row, reason}]}
            Row numbers are 1-based.
        """
        created, duplicates, errors = 0, [], []
        for index, row in enumerate(rows, start=1):
            try:
                data = StudentCreate.model_validate(row)
            except ValidationError as e:
                errors.append({"row": index, "reason": _row_error(e)})
                continue
            try:
                self.create_student(data)
            except HTTPException as e:
                duplicates.append({"row": index, "roll_number": data.roll_number, "reason": e.detail})
                continue
            created += 1

        logger.info("Bulk import: %d created, %d duplicates, %d errors", created, len(duplicates), len(errors))
        return {"total": len(rows), "created": created, "duplicates": duplicates, "errors": errors}

    def build_filter(
        self,
        branch: Optional[str] = None,
        placed: Optional[bool] = None,
        batch: Optional[int] = None,
        min_cgpa: Optional[float] = None,
        max_cgpa: Optional[float] = None,
        search: Optional[str] = None
    ) -> dict:
        query: Dict[str, Any] = {}
        if branch:
            query["branch"] = branch
        if placed is not None:
            query["placed"] = placed
        if batch:
            query["batch"] = batch
        if min_cgpa is not None or max_cgpa is not None:
            query["cgpa"] = {}
            if min_cgpa is not None:
                query["cgpa"]["$gte"] = min_cgpa
            if max_cgpa is not None:
                query["cgpa"]["$lte"] = max_cgpa
        if search:
            query["$or"] = [
                {"roll_number": regex_filter(search)},
                {"skills": regex_filter(search)},
                {"user_id": {"$in": self.users.ids_matching(search)}},
            ]
        return query

    def with_user(self, students: List[dict]) -> List[dict]:
        """Attach name/email from the user accounts."""
        users = {
            u["_id"]: u
            for u in self.users.collection.find(
                {"_id": {"$in": [s["user_id"] for s in students]}},
                {"name": 1, "email": 1, "is_active": 1}
            )
        }
        for student in students:
            user = users.get(student["user_id"], {})
            student["name"] = user.get("name")
            student["email"] = user.get("email")
        return students

    def update_student(self, student: dict, changes: dict, self_edit: bool = False) -> dict:
        if self_edit:
            changes = {k: v for k, v in changes.items() if k in SELF_EDITABLE}
        if not changes:
            raise HTTPException(status_code=400, detail="No fields to update")

        if "roll_number" in changes and changes["roll_number"] != student["roll_number"]:
            if self.get_by_roll_number(changes["roll_number"]):
                raise HTTPException(status_code=400, detail="Student with this roll number already exists")
        if changes.get("placed_company"):
            changes["placed_company"] = to_object_id(changes["placed_company"], "company ID")

        name = changes.pop("name", None)
        if name:
            self.users.update(student["user_id"], {"name": name.strip()})
        return self.update(student["_id"], changes) if changes else self.get_by_id(student["_id"])

    def delete_student(self, student: dict) -> dict:
        """Remove profile, applications and user account."""
        applications = get_collection(COLLECTIONS["applications"])
        removed = applications.delete_many({"student_id": student["_id"]}).deleted_count
        get_collection(COLLECTIONS["notifications"]).delete_many({"recipient_id": student["_id"]})
        self.delete(student["_id"])
        self.users.delete(student["user_id"])
        logger.info("Student %s deleted with %d applications", student["roll_number"], removed)
        return {"applications_deleted": removed}


def get_student_service() -> StudentService:
    return StudentService()
