"""
Shared fixtures: an in-memory MongoDB per test and signed-in callers.
"""

from datetime import datetime, timedelta

import mongomock
import pytest
from fastapi.testclient import TestClient

from app.core.auth import create_access_token
from app.db.mongodb import init_mongo_indexes, set_mongo_client
from app.main import app
from app.schemas.schemas import CompanyCreate, StudentCreate, WindowCreate
from app.services.company_service import CompanyService
from app.services.student_service import StudentService
from app.services.user_service import UserService
from app.services.window_service import ApplicationWindowService


def auth_header(user: dict) -> dict:
    token = create_access_token({"sub": str(user["_id"])})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture(autouse=True)
def mongo():
    client = mongomock.MongoClient()
    set_mongo_client(client, "placement_test")
    init_mongo_indexes()
    yield client["placement_test"]
    set_mongo_client(None)


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture
def admin(mongo) -> dict:
    return UserService().create_user("Admin User", "admin@test.com", "secret123", role="admin")


@pytest.fixture
def admin_headers(admin) -> dict:
    return auth_header(admin)


@pytest.fixture
def make_company(admin):
    def factory(name: str = "Acme Corp", **overrides) -> dict:
        fields = {
            "name": name,
            "description": "Product engineering",
            "industry": "Information Technology",
            "location": "Bangalore",
            "package_offered": "12 LPA",
            "total_positions": 5,
            "application_deadline": datetime.utcnow() + timedelta(days=30),
            "skills": ["Python", "SQL"],
        }
        fields.update(overrides)
        return CompanyService().create_company(CompanyCreate(**fields).model_dump(), admin["_id"])
    return factory


@pytest.fixture
def make_student():
    def factory(roll_number: str = "CS001", **overrides) -> dict:
        fields = {
            "name": f"Student {roll_number}",
            "email": f"{roll_number.lower()}@college.edu",
            "password": "student123",
            "roll_number": roll_number,
            "branch": "Computer Science",
            "cgpa": 8.0,
            "phone": "9876543210",
            "batch": 2025,
            "backlogs": 0,
            "skills": ["Python"],
        }
        fields.update(overrides)
        return StudentService().create_student(StudentCreate(**fields))
    return factory


@pytest.fixture
def open_window(admin):
    """Open an application window for a company covering today."""
    def factory(company: dict, **overrides) -> dict:
        today = datetime.utcnow().date()
        fields = {
            "company_id": str(company["_id"]),
            "start_date": today - timedelta(days=1),
            "end_date": today + timedelta(days=1),
            "start_time": "00:00",
            "end_time": "23:59",
        }
        fields.update(overrides)
        return ApplicationWindowService().create_window(WindowCreate(**fields).model_dump(), admin["_id"])
    return factory


@pytest.fixture
def student_headers(mongo):
    """Headers for the user account behind a student profile."""
    def factory(student: dict) -> dict:
        return auth_header(mongo["users"].find_one({"_id": student["user_id"]}))
    return factory


@pytest.fixture
def recruiter_for(mongo):
    def factory(company: dict) -> dict:
        recruiter = UserService().create_user(
            "Recruiter", f"hr@{company['name'].split()[0].lower()}.com", "secret123",
            role="recruiter", company_id=str(company["_id"])
        )
        return auth_header(recruiter)
    return factory
