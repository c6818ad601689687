"""Shared request handling for bulk import and clear endpoints."""

from pathlib import Path

from fastapi import HTTPException, UploadFile, status
from pydantic import BaseModel

from app.core.config import get_settings
from app.services.csv_import import (
    ALLOWED_EXTENSIONS,
    CsvImportError,
    CsvRecord,
    decode_upload,
    parse_csv,
    require_columns,
)

settings = get_settings()


class ImportResult(BaseModel):
    message: str
    success: int
    failed: int
    errors: list[str]


class ClearResult(BaseModel):
    success: bool
    message: str
    count: int


async def read_csv_upload(file: UploadFile, columns: tuple[str, ...]) -> list[CsvRecord]:
    """Validate an uploaded CSV and return its data rows."""
    ext = Path(file.filename or "").suffix.lower()
    if ext not in ALLOWED_EXTENSIONS:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
            detail=f"Unsupported file type: {ext or 'none'}. Upload a .csv file.",
        )

    content = await file.read()
    if len(content) > settings.max_import_bytes:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
            detail=f"File too large. Maximum size is {settings.max_import_bytes // 1024} KB.",
        )

    try:
        rows = parse_csv(decode_upload(content))
        require_columns(rows, columns)
    except CsvImportError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT, detail=str(exc),
        ) from exc

    if len(rows) > settings.max_import_rows:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_CONTENT,
            detail=f"Too many rows. Maximum is {settings.max_import_rows}.",
        )
    return rows
