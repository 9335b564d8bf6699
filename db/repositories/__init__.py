"""
Repository layer exports.
"""

from db.repositories.errors import (
    FileStorageError,
    StoredFileNotFoundError,
    UploadRepositoryError,
    UploadValidationError,
)
from db.repositories.storage import FileStorageBackend, LocalFileStorage, build_storage_key
from db.repositories.types import StoredFileMetadata, UploadFileInput
from db.repositories.uploaded_file_repository import UploadedFileRepository

__all__ = [
    "UploadedFileRepository",
    "UploadFileInput",
    "StoredFileMetadata",
    "FileStorageBackend",
    "LocalFileStorage",
    "build_storage_key",
    "UploadRepositoryError",
    "UploadValidationError",
    "FileStorageError",
    "StoredFileNotFoundError",
]
