"""
Configuration module - loads all env vars using pydantic-settings.
This is the SINGLE SOURCE OF TRUTH for all config values.
"""

from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # MongoDB
    mongodb_uri: str = "mongodb://localhost:27017"
    mongodb_db: str = "college_placement"

    # JWT Auth (tokens are verified here, issued by scripts/issue_token.py)
    jwt_secret_key: str = "change-this-secret"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 1440

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None

    # Students created by admins or bulk import without a password
    default_student_password: str = "tempPassword123"

    # Bulk import
    max_upload_size_mb: int = 5
    max_bulk_rows: int = 1000

    # Default admin seeded on startup
    seed_admin: bool = True
    admin_name: str = "System Administrator"
    admin_email: str = "admin@collegeplacement.com"
    admin_password: str = "admin123"

    # App
    debug: bool = True

    # Pydantic v2 config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8"
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
