"""
College Placement API
Campus placement management over MongoDB.

Layout:
- core: settings, logging, auth, error envelope
- db: MongoDB client and collections
- services: business rules per collection
- api: FastAPI routers
"""

__version__ = "1.0.0"
