"""
File Upload Utility - Read student rows from a CSV bulk-import upload.

Supported formats:
- Comma separated values (.csv), UTF-8 with or without BOM

Max file size: configurable (max_upload_size_mb, default 5MB)
"""

import csv
import io
import re
from typing import List, Dict, Any
from fastapi import UploadFile, HTTPException

from app.core.config import get_settings

settings = get_settings()

ALLOWED_EXTENSIONS = {'.csv'}

# Header spellings accepted for each student field
HEADER_ALIASES = {
    "rollnumber": "roll_number",
    "roll_no": "roll_number",
    "roll": "roll_number",
    "emailaddress": "email",
    "phone_number": "phone",
    "mobile": "phone",
    "cgpa_score": "cgpa",
    "graduation_year": "batch",
    "year": "batch",
}

LIST_FIELDS = {"skills"}


def get_file_extension(filename: str) -> str:
    """Get lowercase file extension."""
    if '.' not in filename:
        return ''
    return '.' + filename.rsplit('.', 1)[1].lower()


def normalize_header(header: str) -> str:
    key = re.sub(r"(?<=[a-z])(?=[A-Z])", "_", header.strip())
    key = re.sub(r"[\s\-]+", "_", key).lower()
    return HEADER_ALIASES.get(key.replace("_", ""), HEADER_ALIASES.get(key, key))


def clean_row(row: Dict[str, str]) -> Dict[str, Any]:
    """Drop blank cells, split list columns, leave type coercion to the schema."""
    cleaned: Dict[str, Any] = {}
    for key, value in row.items():
        if key is None or value is None:
            continue
        value = value.strip()
        if value == "":
            continue
        if key in LIST_FIELDS:
            cleaned[key] = [part.strip() for part in re.split(r"[;,]", value) if part.strip()]
        else:
            cleaned[key] = value
    return cleaned


def parse_student_csv(content: bytes) -> List[Dict[str, Any]]:
    """
    Parse CSV bytes into row dicts keyed by student field names.

    Raises:
        HTTPException on undecodable or empty files
    """
    try:
        text = content.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise HTTPException(status_code=400, detail="CSV file must be UTF-8 encoded")

    reader = csv.DictReader(io.StringIO(text))
    if not reader.fieldnames:
        raise HTTPException(status_code=400, detail="CSV file is empty")
    reader.fieldnames = [normalize_header(h) for h in reader.fieldnames]

    rows = [clean_row(row) for row in reader]
    rows = [row for row in rows if row]
    if not rows:
        raise HTTPException(status_code=400, detail="CSV file has no data rows")
    if len(rows) > settings.max_bulk_rows:
        raise HTTPException(
            status_code=400,
            detail=f"Too many rows. Maximum per upload: {settings.max_bulk_rows}"
        )
    return rows


async def read_student_csv(file: UploadFile) -> List[Dict[str, Any]]:
    """
    Validate and parse an uploaded CSV file.

    Args:
        file: FastAPI UploadFile

    Returns:
        List of row dicts

    Raises:
        HTTPException on validation errors
    """
    if not file.filename:
        raise HTTPException(status_code=400, detail="No filename provided")

    ext = get_file_extension(file.filename)
    if ext not in ALLOWED_EXTENSIONS:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported file type '{ext}'. Allowed: CSV"
        )

    content = await file.read()

    max_bytes = settings.max_upload_size_mb * 1024 * 1024
    if len(content) > max_bytes:
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Maximum size: {settings.max_upload_size_mb}MB"
        )

    return parse_student_csv(content)
