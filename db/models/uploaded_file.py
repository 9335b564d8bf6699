"""
db/models/uploaded_file.py

File registry entry: maps an object-store key to the user who uploaded it.
"""

import uuid

from sqlalchemy import BigInteger, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base, TimestampMixin


class UploadedFile(Base, TimestampMixin):
    """
    One raw spreadsheet held in object storage.

    storage_path is the opaque key shared with sales_records.source_file_key,
    so ownership of a key can be checked before any record is replaced.
    """

    __tablename__ = "uploaded_files"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )

    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        nullable=False,
    )

    storage_path: Mapped[str] = mapped_column(
        String(500),
        nullable=False,
        unique=True,
        comment="Object store key",
    )

    file_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Original upload filename; carries the sales period",
    )

    mime_type: Mapped[str | None] = mapped_column(String(120), nullable=True)

    file_size_bytes: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    checksum: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
        comment="SHA-256 of the stored bytes",
    )

    __table_args__ = (Index("ix_uploaded_files_owner_id", "owner_id"),)

    def __repr__(self) -> str:
        return (
            f"<UploadedFile id={self.id} owner_id={self.owner_id} "
            f"storage_path={self.storage_path!r}>"
        )
