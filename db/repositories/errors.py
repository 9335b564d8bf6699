"""
Repository-layer exceptions for upload/storage flows.
"""

from __future__ import annotations


class UploadRepositoryError(Exception):
    """Base exception for upload repository failures."""


class UploadValidationError(UploadRepositoryError):
    """Raised when an uploaded spreadsheet is rejected before storage."""


class FileStorageError(UploadRepositoryError):
    """Raised when storing, reading or deleting raw file bytes fails."""


class StoredFileNotFoundError(FileStorageError):
    """Raised when a storage key has no stored object."""
