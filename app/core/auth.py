"""
Authentication Utility - JWT and Password handling.

Provides:
- Password hashing with bcrypt
- JWT token creation/verification
- FastAPI dependencies for protected routes

Tokens are not issued by any endpoint; see scripts/issue_token.py.
"""

from datetime import datetime, timedelta
from typing import Optional
from bson import ObjectId
from bson.errors import InvalidId
from jose import JWTError, jwt
from passlib.context import CryptContext
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from app.core.config import get_settings
from app.db.mongodb import get_collection, COLLECTIONS

settings = get_settings()

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Bearer token extractor (missing header handled below so it maps to 401)
bearer_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    """Hash password with bcrypt."""
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against hash."""
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token."""
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=settings.jwt_expire_minutes))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Optional[dict]:
    """Decode and verify JWT token."""
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None


def _load_user(token: str) -> Optional[dict]:
    payload = decode_token(token)
    if not payload or not payload.get("sub"):
        return None
    try:
        user_id = ObjectId(payload["sub"])
    except (InvalidId, TypeError):
        return None
    return get_collection(COLLECTIONS["users"]).find_one({"_id": user_id})


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> dict:
    """
    FastAPI dependency - Get current authenticated user document.

    Usage:
        @router.get("/protected")
        async def route(user: dict = Depends(get_current_user)):
            return user
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access denied. No token provided.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = _load_user(credentials.credentials)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.get("is_active", True):
        raise HTTPException(status_code=403, detail="Account deactivated")

    return user


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> Optional[dict]:
    """Dependency for public routes that behave differently for signed-in callers."""
    if credentials is None:
        return None
    user = _load_user(credentials.credentials)
    if not user or not user.get("is_active", True):
        return None
    return user


def get_student_for_user(user: dict) -> Optional[dict]:
    """Student profile attached to a user account, if any."""
    return get_collection(COLLECTIONS["students"]).find_one({"user_id": user["_id"]})


def company_scope(user: dict) -> Optional[list]:
    """Companies a caller manages: None means every company, recruiters get their own."""
    if user.get("role") == "recruiter":
        return [user["company_id"]] if user.get("company_id") else []
    return None


def ensure_company_access(user: dict, company_id) -> None:
    scope = company_scope(user)
    if scope is not None and company_id not in scope:
        raise HTTPException(status_code=403, detail="Access denied to this company")


def ensure_admin(user: dict) -> None:
    if user.get("role") != "admin":
        raise HTTPException(status_code=403, detail="Access denied. Administrators only.")


def ensure_staff(user: dict) -> None:
    """Admins and recruiters only."""
    if user.get("role") == "student":
        raise HTTPException(status_code=403, detail="Access denied. Recruiters and admins only.")


def ensure_student_access(user: dict, student: dict) -> None:
    """Student callers may only reach their own profile."""
    if user.get("role") != "student":
        return
    own = get_student_for_user(user)
    if not own or own["_id"] != student["_id"]:
        raise HTTPException(status_code=403, detail="Access denied to this student")
