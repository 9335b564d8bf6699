"""
Validation helpers for spreadsheet uploads.
"""

from __future__ import annotations

from pathlib import Path

from db.repositories.errors import UploadValidationError
from db.repositories.types import UploadFileInput

ALLOWED_EXTENSIONS = {".csv", ".xls", ".xlsx"}
ALLOWED_CONTENT_TYPES = {
    "text/csv",
    "text/plain",
    "application/csv",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/octet-stream",
}
DEFAULT_MAX_UPLOAD_BYTES = 50 * 1024 * 1024


def validate_upload_payload(
    payload: UploadFileInput,
    *,
    max_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
) -> None:
    """
    Validate an uploaded spreadsheet before it reaches storage or the parser.
    """

    if not payload.file_name or not payload.file_name.strip():
        raise UploadValidationError("file_name is required.")

    extension = Path(payload.file_name).suffix.lower()
    if extension not in ALLOWED_EXTENSIONS:
        raise UploadValidationError(
            f"{payload.file_name} is not a supported spreadsheet. "
            f"Allowed: {sorted(ALLOWED_EXTENSIONS)}."
        )

    if payload.content_type and payload.content_type.lower() not in ALLOWED_CONTENT_TYPES:
        raise UploadValidationError(
            f"Unsupported content_type '{payload.content_type}'."
        )

    if not payload.content:
        raise UploadValidationError(f"{payload.file_name} is empty.")

    if len(payload.content) > max_bytes:
        raise UploadValidationError(
            f"{payload.file_name} exceeds the configured size limit of {max_bytes} bytes."
        )
