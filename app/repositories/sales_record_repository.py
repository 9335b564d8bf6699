"""
app/repositories/sales_record_repository.py

Record store for canonical sales records.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from typing import Any, Protocol

from sqlalchemy import delete, insert, select
from sqlalchemy.orm import Session

from db.models.sales_record import SalesRecord

_RECORD_COLUMNS: tuple[str, ...] = (
    "owner_id",
    "product",
    "quantity",
    "unit_price",
    "total_revenue",
    "month",
    "year",
    "transaction_date",
    "transaction_id",
    "category",
    "region",
    "source_filename",
    "source_file_key",
)


class RecordStore(Protocol):
    """
    Operations the ingestion and facts services need from the record store.
    """

    def insert_many(self, rows: Sequence[SalesRecord]) -> int:
        ...

    def delete_for_file(self, *, owner_id: uuid.UUID, source_file_key: str) -> int:
        ...

    def list_for_owner(self, owner_id: uuid.UUID) -> list[SalesRecord]:
        ...


class SalesRecordRepository:
    """
    SQLAlchemy-backed record store. Never commits; the caller owns the
    transaction so a replace can be made atomic.
    """

    def __init__(self, session: Session) -> None:
        self._session = session

    def insert_many(self, rows: Sequence[SalesRecord]) -> int:
        """
        Insert one chunk with a single multi-row INSERT.
        """

        if not rows:
            return 0

        payloads: list[dict[str, Any]] = []
        for row in rows:
            payload = {column: getattr(row, column) for column in _RECORD_COLUMNS}
            payload["id"] = row.id or uuid.uuid4()
            payloads.append(payload)

        self._session.execute(insert(SalesRecord), payloads)
        return len(payloads)

    def delete_for_file(self, *, owner_id: uuid.UUID, source_file_key: str) -> int:
        stmt = delete(SalesRecord).where(
            SalesRecord.owner_id == owner_id,
            SalesRecord.source_file_key == source_file_key,
        )
        return self._session.execute(stmt).rowcount or 0

    def list_for_owner(self, owner_id: uuid.UUID) -> list[SalesRecord]:
        stmt = (
            select(SalesRecord)
            .where(SalesRecord.owner_id == owner_id)
            # Rows of one insert share created_at; the tie-breakers keep reads stable.
            .order_by(
                SalesRecord.created_at.asc(),
                SalesRecord.source_file_key.asc(),
                SalesRecord.year.asc(),
                SalesRecord.month.asc(),
                SalesRecord.id.asc(),
            )
        )
        return list(self._session.scalars(stmt).all())
