"""
User Routes

GET /users - List users (role, is_active, search filters)
GET /users/stats - Counts by role and activity
POST /users - Create an account
GET /users/{user_id} - Get user
PUT /users/{user_id} - Update user
DELETE /users/{user_id} - Delete user (and student profile)
POST /users/{user_id}/activate - Activate account
POST /users/{user_id}/deactivate - Deactivate account
"""

from typing import Optional

from fastapi import APIRouter, HTTPException, Depends, Query

from app.core.auth import get_current_user, ensure_admin
from app.schemas.schemas import APIResponse, UserCreate, UserUpdate, UserRole
from app.services.mongo_service import serialize_doc, serialize_docs, to_object_id
from app.services.student_service import get_student_service
from app.services.user_service import get_user_service

router = APIRouter(prefix="/users", tags=["Users"])

ADMIN_FIELDS = {"role", "is_active", "company_id"}


def ensure_self_or_admin(user: dict, user_id: str) -> None:
    if user.get("role") != "admin" and to_object_id(user_id, "user ID") != user["_id"]:
        raise HTTPException(status_code=403, detail="Access denied. You can only access your own profile.")


@router.get("", response_model=APIResponse)
async def list_users(
    role: Optional[UserRole] = None,
    is_active: Optional[bool] = None,
    search: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    user: dict = Depends(get_current_user)
):
    """List users with filters and pagination."""
    ensure_admin(user)
    service = get_user_service()
    query = service.build_filter(role.value if role else None, is_active, search)
    users, pagination = service.find_page(query, page, limit)
    return APIResponse(data={"users": serialize_docs(users), "pagination": pagination})


@router.get("/stats", response_model=APIResponse)
async def user_stats(user: dict = Depends(get_current_user)):
    """Totals by role and activity."""
    ensure_admin(user)
    service = get_user_service()
    by_role = service.count_by("role")
    active = service.count({"is_active": True})
    total = sum(by_role.values())
    return APIResponse(data={
        "total": total,
        "active": active,
        "inactive": total - active,
        "by_role": {role.value: by_role.get(role.value, 0) for role in UserRole},
    })


@router.post("", response_model=APIResponse, status_code=201)
async def create_user(data: UserCreate, user: dict = Depends(get_current_user)):
    """Create an account with a hashed password."""
    ensure_admin(user)
    service = get_user_service()
    created = service.create_user(
        data.name, data.email, data.password, data.role, data.company_id, data.is_active
    )
    return APIResponse(message="User created successfully", data={"user": serialize_doc(created)})


@router.get("/{user_id}", response_model=APIResponse)
async def get_user(user_id: str, user: dict = Depends(get_current_user)):
    """Get a user account."""
    ensure_self_or_admin(user, user_id)
    found = get_user_service().get_or_404(user_id)
    return APIResponse(data={"user": serialize_doc(found)})


@router.put("/{user_id}", response_model=APIResponse)
async def update_user(user_id: str, data: UserUpdate, user: dict = Depends(get_current_user)):
    """Update a user. Role and activation changes need an admin caller."""
    ensure_self_or_admin(user, user_id)
    service = get_user_service()
    target = service.get_or_404(user_id)
    changes = data.model_dump(exclude_unset=True)

    if ADMIN_FIELDS & changes.keys() and user.get("role") != "admin":
        raise HTTPException(status_code=403, detail="Only administrators can change role, status or company")

    if "email" in changes:
        changes["email"] = changes["email"].lower()
        existing = service.get_by_email(changes["email"])
        if existing and existing["_id"] != target["_id"]:
            raise HTTPException(status_code=400, detail="Email is already in use")
    if changes.get("company_id"):
        changes["company_id"] = to_object_id(changes["company_id"], "company ID")
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")

    updated = service.update(target["_id"], changes)
    return APIResponse(message="User updated successfully", data={"user": serialize_doc(updated)})


@router.delete("/{user_id}", response_model=APIResponse)
async def delete_user(user_id: str, user: dict = Depends(get_current_user)):
    """Delete a user; a student account takes its profile and applications with it."""
    ensure_admin(user)
    service = get_user_service()
    target = service.get_or_404(user_id)
    if target["_id"] == user["_id"]:
        raise HTTPException(status_code=400, detail="You cannot delete your own account")

    students = get_student_service()
    student = students.collection.find_one({"user_id": target["_id"]})
    if student:
        students.delete_student(student)
    else:
        service.delete(target["_id"])
    return APIResponse(message="User deleted successfully")


@router.post("/{user_id}/activate", response_model=APIResponse)
async def activate_user(user_id: str, user: dict = Depends(get_current_user)):
    ensure_admin(user)
    updated = get_user_service().set_active(user_id, True)
    return APIResponse(message="User activated successfully", data={"user": serialize_doc(updated)})


@router.post("/{user_id}/deactivate", response_model=APIResponse)
async def deactivate_user(user_id: str, user: dict = Depends(get_current_user)):
    ensure_admin(user)
    if to_object_id(user_id, "user ID") == user["_id"]:
        raise HTTPException(status_code=400, detail="You cannot deactivate your own account")
    updated = get_user_service().set_active(user_id, False)
    return APIResponse(message="User deactivated successfully", data={"user": serialize_doc(updated)})
