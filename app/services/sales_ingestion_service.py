"""
app/services/sales_ingestion_service.py

Persists parsed sales records for one owner with replace-on-reupload
semantics.

A call with a source_file_key first deletes every record previously
stored for (owner, source_file_key) and then inserts the new records in
fixed-size chunks, so ingesting the same file twice leaves exactly one
copy of its rows.

Transaction contract:
  - atomic mode (default): the delete and every chunk share one
    transaction; any failure rolls all of it back and the file's previous
    records stay untouched.
  - non-atomic mode: the delete is committed on its own and each chunk is
    committed as it lands; a failing chunk stops the remaining ones and
    the chunks already committed stand.
"""

from __future__ import annotations

import logging
import uuid
from functools import lru_cache
from typing import Callable, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import get_sales_ingestion_settings
from app.domain.errors import (
    ChunkInsertError,
    ForbiddenError,
    IngestionPersistenceError,
    NotFoundError,
)
from app.domain.sales import IngestionSummary, SalesRecordInput
from app.mappers.schema_mapper import SchemaMapper
from app.repositories.sales_record_repository import RecordStore, SalesRecordRepository
from db.models.sales_record import (
    DESCRIPTIVE_MAX_LENGTH,
    MAX_QUANTITY,
    MAX_TOTAL_REVENUE,
    MAX_UNIT_PRICE,
    MAX_YEAR,
    MIN_YEAR,
    PRODUCT_MAX_LENGTH,
    SalesMonth,
    SalesRecord,
)
from db.repositories.uploaded_file_repository import UploadedFileRepository

logger = logging.getLogger(__name__)

RecordStoreFactory = Callable[[Session], RecordStore]


class SalesIngestionService:
    """
    Ownership check, sanitation, delete-by-key and chunked insert.
    """

    def __init__(
        self,
        *,
        batch_size: int,
        atomic_replace: bool = True,
        mapper: SchemaMapper | None = None,
        record_store_factory: RecordStoreFactory | None = None,
    ) -> None:
        self._batch_size = max(1, batch_size)
        self._atomic_replace = atomic_replace
        self._mapper = mapper or SchemaMapper()
        self._record_store_factory = record_store_factory or SalesRecordRepository

    def ingest(
        self,
        *,
        db: Session,
        owner_id: uuid.UUID,
        records: Sequence[SalesRecordInput],
        source_file_key: str | None = None,
        source_filename: str | None = None,
    ) -> IngestionSummary:
        """
        Persist *records* for *owner_id*.

        Args:
            db:              Active SQLAlchemy session; committed here.
            owner_id:        Authenticated owner. Overrides anything the
                             records might claim.
            records:         Parsed records, usually ParseResult.records.
            source_file_key: Registry key of the file the records came from.
                             When given, the key must belong to owner_id and
                             prior records for it are replaced.
            source_filename: Provenance for records that lack one.

        Raises:
            NotFoundError:     source_file_key is not in the file registry.
            ForbiddenError:    source_file_key belongs to another owner.
            ChunkInsertError:  a chunk could not be written.
        """

        received = len(records)
        if source_file_key is not None:
            self._check_ownership(
                db=db,
                owner_id=owner_id,
                source_file_key=source_file_key,
                source_filename=source_filename,
            )

        rows = self._sanitize(
            owner_id=owner_id,
            records=records,
            source_file_key=source_file_key,
            source_filename=source_filename,
        )
        store = self._record_store_factory(db)

        if self._atomic_replace:
            replaced, inserted = self._replace_atomically(
                db=db,
                store=store,
                owner_id=owner_id,
                rows=rows,
                received=received,
                source_file_key=source_file_key,
                source_filename=source_filename,
            )
        else:
            replaced, inserted = self._replace_incrementally(
                db=db,
                store=store,
                owner_id=owner_id,
                rows=rows,
                received=received,
                source_file_key=source_file_key,
                source_filename=source_filename,
            )

        summary = IngestionSummary(
            received=received,
            inserted=inserted,
            dropped=received - len(rows),
            replaced=replaced,
            source_file_key=source_file_key,
        )
        logger.info(
            "Sales records ingested owner=%s source_file_key=%r received=%s "
            "inserted=%s dropped=%s replaced=%s atomic=%s",
            owner_id,
            source_file_key,
            summary.received,
            summary.inserted,
            summary.dropped,
            summary.replaced,
            self._atomic_replace,
        )
        return summary

    # ------------------------------------------------------------------
    # Ownership and sanitation
    # ------------------------------------------------------------------

    @staticmethod
    def _check_ownership(
        *,
        db: Session,
        owner_id: uuid.UUID,
        source_file_key: str,
        source_filename: str | None,
    ) -> None:
        registered_owner = UploadedFileRepository(db).get_owner(source_file_key)
        if registered_owner is None:
            raise NotFoundError(
                f'Source file "{source_file_key}" is not registered.',
                filename=source_filename,
            )
        if registered_owner != owner_id:
            logger.warning(
                "Ingestion refused owner=%s source_file_key=%r registered_owner=%s",
                owner_id,
                source_file_key,
                registered_owner,
            )
            raise ForbiddenError(
                f'Source file "{source_file_key}" belongs to another owner.',
                filename=source_filename,
            )

    def _sanitize(
        self,
        *,
        owner_id: uuid.UUID,
        records: Sequence[SalesRecordInput],
        source_file_key: str | None,
        source_filename: str | None,
    ) -> list[SalesRecord]:
        rows: list[SalesRecord] = []
        for index, record in enumerate(records, start=1):
            problem = constraint_violation(record)
            if problem is not None:
                logger.warning(
                    "Dropping record before insert owner=%s index=%s product=%r reason=%s",
                    owner_id,
                    index,
                    record.product,
                    problem,
                )
                continue

            row = self._mapper.to_sales_record(record, owner_id=owner_id)
            if source_file_key is not None:
                row.source_file_key = source_file_key
            if row.source_filename is None:
                row.source_filename = source_filename
            rows.append(row)
        return rows

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _replace_atomically(
        self,
        *,
        db: Session,
        store: RecordStore,
        owner_id: uuid.UUID,
        rows: list[SalesRecord],
        received: int,
        source_file_key: str | None,
        source_filename: str | None,
    ) -> tuple[int, int]:
        replaced = 0
        if source_file_key is not None:
            try:
                replaced = store.delete_for_file(owner_id=owner_id, source_file_key=source_file_key)
            except SQLAlchemyError as exc:
                db.rollback()
                logger.exception(
                    "Delete of previous records failed owner=%s source_file_key=%r",
                    owner_id,
                    source_file_key,
                )
                raise IngestionPersistenceError(
                    "Failed to replace previous records of this file.",
                    received=received,
                    inserted=0,
                    filename=source_filename,
                ) from exc

        inserted = 0
        for chunk_index, chunk in enumerate(self._chunks(rows)):
            try:
                inserted += store.insert_many(chunk)
            except SQLAlchemyError as exc:
                db.rollback()
                logger.exception(
                    "Chunk insert failed, transaction rolled back owner=%s "
                    "source_file_key=%r chunk=%s",
                    owner_id,
                    source_file_key,
                    chunk_index,
                )
                raise ChunkInsertError(
                    f"Failed to persist chunk {chunk_index + 1}; no records were saved.",
                    received=received,
                    inserted=0,
                    chunk_index=chunk_index,
                    filename=source_filename,
                ) from exc

        try:
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            raise IngestionPersistenceError(
                "Failed to commit sales records.",
                received=received,
                inserted=0,
                filename=source_filename,
            ) from exc
        return replaced, inserted

    def _replace_incrementally(
        self,
        *,
        db: Session,
        store: RecordStore,
        owner_id: uuid.UUID,
        rows: list[SalesRecord],
        received: int,
        source_file_key: str | None,
        source_filename: str | None,
    ) -> tuple[int, int]:
        replaced = 0
        if source_file_key is not None:
            try:
                replaced = store.delete_for_file(owner_id=owner_id, source_file_key=source_file_key)
                db.commit()
            except SQLAlchemyError:
                db.rollback()
                # Stale rows may remain next to the new ones; inserts still proceed.
                logger.exception(
                    "Delete of previous records failed owner=%s source_file_key=%r",
                    owner_id,
                    source_file_key,
                )

        inserted = 0
        for chunk_index, chunk in enumerate(self._chunks(rows)):
            try:
                written = store.insert_many(chunk)
                db.commit()
            except SQLAlchemyError as exc:
                db.rollback()
                logger.exception(
                    "Chunk insert failed owner=%s source_file_key=%r chunk=%s persisted=%s",
                    owner_id,
                    source_file_key,
                    chunk_index,
                    inserted,
                )
                raise ChunkInsertError(
                    f"Failed to persist chunk {chunk_index + 1}; "
                    f"{inserted} of {received} records were saved.",
                    received=received,
                    inserted=inserted,
                    chunk_index=chunk_index,
                    filename=source_filename,
                ) from exc
            inserted += written
        return replaced, inserted

    def _chunks(self, rows: list[SalesRecord]) -> list[list[SalesRecord]]:
        return [rows[start : start + self._batch_size] for start in range(0, len(rows), self._batch_size)]


def constraint_violation(record: SalesRecordInput) -> str | None:
    """
    Return why *record* cannot be stored, or None when it satisfies every
    column constraint of the sales_records table.
    """

    product = (record.product or "").strip()
    if not product:
        return "product is empty"
    if len(product) > PRODUCT_MAX_LENGTH:
        return f"product longer than {PRODUCT_MAX_LENGTH} characters"
    if isinstance(record.quantity, bool) or not isinstance(record.quantity, int):
        return "quantity is not an integer"
    if not 0 <= record.quantity <= MAX_QUANTITY:
        return f"quantity outside 0..{MAX_QUANTITY}"
    if record.month not in SalesMonth.ORDERED:
        return f"unknown month {record.month!r}"
    if not MIN_YEAR <= record.year <= MAX_YEAR:
        return f"year outside {MIN_YEAR}..{MAX_YEAR}"
    if record.unit_price is not None and not 0 <= record.unit_price <= MAX_UNIT_PRICE:
        return f"unit_price outside 0..{MAX_UNIT_PRICE}"
    if record.total_revenue is not None and not 0 <= record.total_revenue <= MAX_TOTAL_REVENUE:
        return f"total_revenue outside 0..{MAX_TOTAL_REVENUE}"
    for name in ("transaction_id", "category", "region"):
        value = getattr(record, name)
        if value is not None and len(value) > DESCRIPTIVE_MAX_LENGTH:
            return f"{name} longer than {DESCRIPTIVE_MAX_LENGTH} characters"
    return None


@lru_cache(maxsize=1)
def get_sales_ingestion_service() -> SalesIngestionService:
    """
    Build and cache the ingestion service with env-driven settings.
    """

    settings = get_sales_ingestion_settings()
    return SalesIngestionService(
        batch_size=settings.batch_size,
        atomic_replace=settings.atomic_replace,
    )
