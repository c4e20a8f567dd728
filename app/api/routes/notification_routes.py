"""
Notification Routes

GET /notifications/student/{student_id} - Notifications, newest first
GET /notifications/student/{student_id}/count - Unread count
PUT /notifications/student/{student_id}/mark-read - Mark some or all as read
DELETE /notifications/student/{student_id}/cleanup - Delete old read notifications
POST /notifications - Create a notification
POST /notifications/generate-application-update - Notify a student about their application
"""

from fastapi import APIRouter, HTTPException, Depends, Query

from app.core.auth import get_current_user, ensure_company_access, ensure_staff, ensure_student_access
from app.schemas.schemas import APIResponse, NotificationCreate, MarkReadRequest, ApplicationUpdateNotice
from app.services.application_service import get_application_service
from app.services.mongo_service import serialize_doc, serialize_docs
from app.services.notification_service import get_notification_service, time_ago
from app.services.student_service import get_student_service

router = APIRouter(prefix="/notifications", tags=["Notifications"])


def load_student(student_id: str, user: dict) -> dict:
    """Students may only reach their own notifications."""
    student = get_student_service().get_or_404(student_id)
    ensure_student_access(user, student)
    return student


@router.get("/student/{student_id}", response_model=APIResponse)
async def student_notifications(
    student_id: str,
    unread_only: bool = False,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    user: dict = Depends(get_current_user)
):
    student = load_student(student_id, user)
    service = get_notification_service()
    notifications, pagination = service.for_recipient(student["_id"], unread_only, page, limit)
    for notification in notifications:
        notification["time_ago"] = time_ago(notification["timestamp"])
    return APIResponse(data={
        "notifications": serialize_docs(notifications),
        "unread_count": service.unread_count(student["_id"]),
        "pagination": pagination,
    })


@router.get("/student/{student_id}/count", response_model=APIResponse)
async def unread_count(student_id: str, user: dict = Depends(get_current_user)):
    student = load_student(student_id, user)
    return APIResponse(data={"unread_count": get_notification_service().unread_count(student["_id"])})


@router.put("/student/{student_id}/mark-read", response_model=APIResponse)
async def mark_read(student_id: str, data: MarkReadRequest, user: dict = Depends(get_current_user)):
    """Mark the listed notifications, or all of them with mark_all."""
    student = load_student(student_id, user)
    if not data.mark_all and not data.notification_ids:
        raise HTTPException(status_code=400, detail="Provide notification_ids or set mark_all")
    modified = get_notification_service().mark_read(
        student["_id"], None if data.mark_all else data.notification_ids
    )
    return APIResponse(message=f"{modified} notifications marked as read", data={"modified": modified})


@router.delete("/student/{student_id}/cleanup", response_model=APIResponse)
async def cleanup(
    student_id: str,
    days_old: int = Query(30, ge=1, le=365),
    user: dict = Depends(get_current_user)
):
    student = load_student(student_id, user)
    deleted = get_notification_service().cleanup(student["_id"], days_old)
    return APIResponse(message=f"{deleted} old notifications deleted", data={"deleted": deleted})


@router.post("", response_model=APIResponse, status_code=201)
async def create_notification(data: NotificationCreate, user: dict = Depends(get_current_user)):
    ensure_staff(user)
    notification = get_notification_service().create_notification(
        data.recipient_id, data.type, data.message, data.recipient_type, data.metadata
    )
    return APIResponse(message="Notification created successfully",
                       data={"notification": serialize_doc(notification)})


@router.post("/generate-application-update", response_model=APIResponse, status_code=201)
async def generate_application_update(data: ApplicationUpdateNotice, user: dict = Depends(get_current_user)):
    """Send the standard status message for an application to its student."""
    ensure_staff(user)
    applications = get_application_service()
    application = applications.get_or_404(data.application_id)
    ensure_company_access(user, application["company_id"])
    company = applications.companies.find_one({"_id": application["company_id"]})
    if not company:
        raise HTTPException(status_code=404, detail="Company not found")
    notification = get_notification_service().notify_status_change(application, company, data.status)
    return APIResponse(message="Notification sent successfully",
                       data={"notification": serialize_doc(notification)})
