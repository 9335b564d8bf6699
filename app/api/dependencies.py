"""
app/api/dependencies.py

Shared FastAPI dependencies for request validation.
"""

from __future__ import annotations

import uuid

from fastapi import File, Header, HTTPException, UploadFile, status

from db.repositories.validators import ALLOWED_EXTENSIONS


def get_owner_id(x_owner_id: str | None = Header(default=None)) -> uuid.UUID:
    """
    Resolve the authenticated owner from the X-Owner-Id header.

    The header is set by the authentication layer in front of this API;
    a missing or malformed value means the request never passed it.
    """

    if not x_owner_id or not x_owner_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-Owner-Id header.",
        )
    try:
        return uuid.UUID(x_owner_id.strip())
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-Owner-Id must be a UUID.",
        ) from exc


def get_spreadsheet_upload(file: UploadFile = File(...)) -> UploadFile:
    """
    Validate that a single uploaded file is a spreadsheet by extension.
    """

    _require_spreadsheet_name(file)
    return file


def get_spreadsheet_uploads(files: list[UploadFile] = File(...)) -> list[UploadFile]:
    """
    Validate a multipart batch: at least one file, every file named.

    Unsupported extensions are not rejected here; they become failed
    outcomes of the batch so the other files still go through.
    """

    if not files:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="At least one file is required.",
        )
    for upload in files:
        if not (upload.filename or "").strip():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Every uploaded file needs a file name.",
            )
    return files


def _require_spreadsheet_name(file: UploadFile) -> None:
    filename = (file.filename or "").strip().lower()
    if not any(filename.endswith(extension) for extension in ALLOWED_EXTENSIONS):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Only spreadsheet files are allowed: {', '.join(sorted(ALLOWED_EXTENSIONS))}.",
        )
