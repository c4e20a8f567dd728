"""
API Routes - Combines all route modules into single router.
"""

from fastapi import APIRouter

from app.api.routes.user_routes import router as user_router
from app.api.routes.student_routes import router as student_router
from app.api.routes.company_routes import router as company_router
from app.api.routes.application_review_routes import router as application_review_router
from app.api.routes.application_routes import router as application_router
from app.api.routes.application_window_routes import router as application_window_router
from app.api.routes.off_campus_routes import router as off_campus_router
from app.api.routes.round_routes import router as round_router
from app.api.routes.eligibility_routes import router as eligibility_router
from app.api.routes.notification_routes import router as notification_router
from app.api.routes.dashboard_routes import router as dashboard_router
from app.api.routes.report_routes import router as report_router
from app.api.routes.search_routes import router as search_router
from app.api.routes.recruiter_routes import router as recruiter_router

# Main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(user_router)
api_router.include_router(student_router)
api_router.include_router(company_router)
# Review paths share the /applications prefix and must match before /{application_id}
api_router.include_router(application_review_router)
api_router.include_router(application_router)
api_router.include_router(application_window_router)
api_router.include_router(off_campus_router)
api_router.include_router(round_router)
api_router.include_router(eligibility_router)
api_router.include_router(notification_router)
api_router.include_router(dashboard_router)
api_router.include_router(report_router)
api_router.include_router(search_router)
api_router.include_router(recruiter_router)
