"""
Schemas module - Request/Response schemas for API endpoints.

Request bodies are validated here; stored documents stay plain dicts
(see app.services.mongo_service).
"""
