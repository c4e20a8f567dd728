"""
College Placement API - Main Application

FastAPI backend with:
- MongoDB for every collection (users, students, companies, applications, rounds...)
- JWT bearer authentication
- Uniform {success, message, data} response envelope

Run: uvicorn app.main:app --reload
"""

import logging
from datetime import datetime

from fastapi import FastAPI
from pymongo.errors import PyMongoError

from app.api.routes import api_router
from app.core.config import get_settings
from app.core.errors import register_exception_handlers
from app.core.logging import setup_logging
from app.db.mongodb import init_mongo_indexes, test_mongo_connection
from app.services.user_service import get_user_service

settings = get_settings()
setup_logging(settings.log_level, settings.log_file)
logger = logging.getLogger(__name__)

# Create FastAPI app
app = FastAPI(
    title="College Placement API",
    description="""
    Campus placement management backend.

    ## Features
    - **Users**: Admin, recruiter and student accounts
    - **Students**: Profiles, bulk import (JSON or CSV)
    - **Companies**: Drives with eligibility criteria and recruitment rounds
    - **Applications**: Eligibility-checked applications, review history, bulk updates
    - **Windows**: Time-boxed application windows per company
    - **Off-campus**: External opportunities board
    - **Dashboards & Reports**: Placement analytics
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

register_exception_handlers(app)

# Include API routes
app.include_router(api_router, prefix="/api")


# Startup event
@app.on_event("startup")
async def startup_event():
    """Initialize MongoDB indexes and seed the default admin."""
    try:
        init_mongo_indexes()
        logger.info("MongoDB indexes initialized")
    except PyMongoError as e:
        logger.error("MongoDB index initialization failed: %s", e)

    if settings.seed_admin:
        try:
            get_user_service().ensure_admin(settings.admin_name, settings.admin_email, settings.admin_password)
        except PyMongoError as e:
            logger.error("Default admin seeding failed: %s", e)


@app.get("/api/health", tags=["Health"])
async def health_check():
    """Service status and MongoDB connectivity."""
    return {
        "status": "OK",
        "timestamp": datetime.utcnow().isoformat(),
        "mongodb": "connected" if test_mongo_connection() else "disconnected"
    }
