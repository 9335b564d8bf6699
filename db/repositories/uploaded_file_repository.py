"""
File registry repository: which owner uploaded which storage key.
"""

from __future__ import annotations

import uuid

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from db.models.uploaded_file import UploadedFile
from db.repositories.types import StoredFileMetadata


class UploadedFileRepository:
    def __init__(self, session: Session) -> None:
        self._session = session

    def get_by_storage_path(self, storage_path: str) -> UploadedFile | None:
        stmt = select(UploadedFile).where(UploadedFile.storage_path == storage_path)
        return self._session.scalars(stmt).one_or_none()

    def get_owner(self, storage_path: str) -> uuid.UUID | None:
        stmt = select(UploadedFile.owner_id).where(UploadedFile.storage_path == storage_path)
        return self._session.scalar(stmt)

    def register(
        self,
        *,
        owner_id: uuid.UUID,
        stored_file: StoredFileMetadata,
    ) -> UploadedFile:
        """
        Insert or refresh the registry entry for a stored file.

        The caller is responsible for checking that an existing entry
        belongs to *owner_id* before calling this.
        """

        entry = self.get_by_storage_path(stored_file.storage_path)
        if entry is None:
            entry = UploadedFile(
                owner_id=owner_id,
                storage_path=stored_file.storage_path,
            )
            self._session.add(entry)

        entry.file_name = stored_file.file_name
        entry.mime_type = stored_file.mime_type
        entry.file_size_bytes = stored_file.file_size_bytes
        entry.checksum = stored_file.checksum
        self._session.flush()
        return entry

    def list_for_owner(self, owner_id: uuid.UUID, *, limit: int = 500) -> list[UploadedFile]:
        stmt = (
            select(UploadedFile)
            .where(UploadedFile.owner_id == owner_id)
            .order_by(UploadedFile.created_at.desc(), UploadedFile.file_name)
            .limit(limit)
        )
        return list(self._session.scalars(stmt).all())

    def delete(self, *, owner_id: uuid.UUID, storage_path: str) -> int:
        stmt = delete(UploadedFile).where(
            UploadedFile.owner_id == owner_id,
            UploadedFile.storage_path == storage_path,
        )
        return self._session.execute(stmt).rowcount or 0
