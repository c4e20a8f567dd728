"""
Error handlers - every failure leaves the API as {success: false, message, errors?}.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pymongo.errors import DuplicateKeyError
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


def error_body(message: str, errors: list = None) -> dict:
    body = {"success": False, "message": message}
    if errors is not None:
        body["errors"] = errors
    return body


def _field_name(loc) -> str:
    parts = [str(part) for part in loc if part not in ("body", "query", "path")]
    return ".".join(parts) or "request"


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    message = exc.detail
    if exc.status_code == 404 and message == "Not Found":
        message = "API endpoint not found"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(message),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"field": _field_name(error["loc"]), "message": error["msg"]}
        for error in exc.errors()
    ]
    return JSONResponse(status_code=400, content=error_body("Validation Error", errors))


async def duplicate_key_handler(request: Request, exc: DuplicateKeyError):
    details = exc.details or {}
    fields = list((details.get("keyValue") or details.get("keyPattern") or {}).keys())
    message = f"{fields[0]} already exists" if fields else "Duplicate value"
    return JSONResponse(status_code=400, content=error_body(message))


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content=error_body("Internal server error"))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(DuplicateKeyError, duplicate_key_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
