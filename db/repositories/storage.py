"""
Object store abstractions for raw spreadsheet bytes.

Keys are opaque to callers; the pipeline only uploads, downloads,
lists and deletes by key.
"""

from __future__ import annotations

import hashlib
import uuid
from datetime import datetime, timezone
from mimetypes import guess_type
from pathlib import Path, PurePosixPath
from typing import Protocol

from db.repositories.errors import FileStorageError, StoredFileNotFoundError
from db.repositories.types import StoredFileMetadata


class FileStorageBackend(Protocol):
    """
    Storage backend used by the upload service.
    """

    def upload(
        self,
        *,
        key: str,
        content: bytes,
        content_type: str | None = None,
    ) -> StoredFileMetadata:
        ...

    def download(self, *, key: str) -> bytes:
        ...

    def list(self, *, prefix: str = "") -> list[str]:
        ...

    def delete(self, *, key: str) -> None:
        ...


def _sanitize_file_name(file_name: str) -> str:
    safe_name = Path(file_name).name.strip()
    if not safe_name or safe_name in {".", ".."}:
        raise FileStorageError("Invalid file name.")
    return safe_name


def build_storage_key(owner_id: uuid.UUID, file_name: str) -> str:
    """
    Per-owner key for an uploaded file. Re-uploading the same name maps to
    the same key, which is what makes re-ingestion replace the old records.
    """

    return f"{owner_id}/{_sanitize_file_name(file_name)}"


def _validate_key(key: str) -> PurePosixPath:
    path = PurePosixPath(key)
    if not key or path.is_absolute() or ".." in path.parts:
        raise FileStorageError(f"Invalid storage key: {key!r}")
    return path


class LocalFileStorage:
    """
    Local filesystem object store.
    """

    def __init__(self, root_dir: str | Path = "data/uploads") -> None:
        self._root_dir = Path(root_dir)

    def upload(
        self,
        *,
        key: str,
        content: bytes,
        content_type: str | None = None,
    ) -> StoredFileMetadata:
        relative_path = _validate_key(key)
        absolute_path = self._root_dir / relative_path
        absolute_path.parent.mkdir(parents=True, exist_ok=True)

        tmp_path = absolute_path.with_suffix(f"{absolute_path.suffix}.tmp")
        try:
            with tmp_path.open("wb") as handle:
                handle.write(content)
            tmp_path.replace(absolute_path)
        except OSError as exc:
            raise FileStorageError(f"Failed to write {key} to storage.") from exc
        finally:
            if tmp_path.exists():
                try:
                    tmp_path.unlink()
                except OSError:
                    pass

        file_name = relative_path.name
        return StoredFileMetadata(
            file_name=file_name,
            storage_path=relative_path.as_posix(),
            mime_type=content_type or guess_type(file_name)[0],
            file_size_bytes=len(content),
            checksum=hashlib.sha256(content).hexdigest(),
            stored_at=datetime.now(timezone.utc),
        )

    def download(self, *, key: str) -> bytes:
        target = self._root_dir / _validate_key(key)
        if not target.is_file():
            raise StoredFileNotFoundError(f"No stored file for key {key!r}.")
        try:
            return target.read_bytes()
        except OSError as exc:
            raise FileStorageError(f"Failed to read {key} from storage.") from exc

    def list(self, *, prefix: str = "") -> list[str]:
        if not self._root_dir.exists():
            return []
        keys = [
            path.relative_to(self._root_dir).as_posix()
            for path in self._root_dir.rglob("*")
            if path.is_file() and not path.name.endswith(".tmp")
        ]
        return sorted(key for key in keys if key.startswith(prefix))

    def delete(self, *, key: str) -> None:
        target = self._root_dir / _validate_key(key)
        if not target.exists():
            return
        try:
            target.unlink()
        except OSError as exc:
            raise FileStorageError(f"Failed to delete {key} from storage.") from exc
