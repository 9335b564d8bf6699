"""
tests/conftest.py

Shared fixtures: an in-memory SQLite record store and in-memory
spreadsheet builders.
"""

from __future__ import annotations

import io
import uuid
from collections.abc import Callable, Iterator, Sequence
from datetime import datetime, timezone
from typing import Any

import pytest
from openpyxl import Workbook
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

import db.models  # noqa: F401 registers the ORM models on Base.metadata
from db.base import Base
from db.repositories.types import StoredFileMetadata
from db.repositories.uploaded_file_repository import UploadedFileRepository


@pytest.fixture()
def engine() -> Iterator[Engine]:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    session = factory()
    yield session
    session.close()


@pytest.fixture()
def owner_id() -> uuid.UUID:
    return uuid.UUID("11111111-1111-1111-1111-111111111111")


@pytest.fixture()
def other_owner_id() -> uuid.UUID:
    return uuid.UUID("22222222-2222-2222-2222-222222222222")


@pytest.fixture()
def register_file(db_session: Session) -> Callable[..., str]:
    """
    Register a storage key in the file registry and commit.
    """

    def _register(owner: uuid.UUID, storage_path: str, file_name: str | None = None) -> str:
        UploadedFileRepository(db_session).register(
            owner_id=owner,
            stored_file=StoredFileMetadata(
                file_name=file_name or storage_path.rsplit("/", 1)[-1],
                storage_path=storage_path,
                mime_type=None,
                file_size_bytes=1,
                checksum="0" * 64,
                stored_at=datetime.now(timezone.utc),
            ),
        )
        db_session.commit()
        return storage_path

    return _register


@pytest.fixture()
def xlsx_bytes() -> Callable[..., bytes]:
    """
    Build an .xlsx payload. Each positional argument is one sheet given as
    a list of rows; the first row is the header.
    """

    def _build(*sheets: Sequence[Sequence[Any]]) -> bytes:
        workbook = Workbook()
        for index, rows in enumerate(sheets):
            sheet = workbook.active if index == 0 else workbook.create_sheet(f"Sheet{index + 1}")
            for row in rows:
                sheet.append(list(row))
        buffer = io.BytesIO()
        workbook.save(buffer)
        return buffer.getvalue()

    return _build
