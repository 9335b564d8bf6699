"""
app/services/sales_upload_service.py

Batch upload orchestration: validate -> parse -> store -> register -> ingest.

Files of one batch are processed strictly one after the other. A failure
on one file is recorded on its FileOutcome and the loop moves on; it never
aborts the batch.
"""

from __future__ import annotations

import logging
import uuid
from functools import lru_cache
from typing import Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import get_upload_settings
from app.domain.errors import (
    ForbiddenError,
    IngestionPersistenceError,
    NotFoundError,
    SalesPipelineError,
)
from app.domain.sales import BatchUploadResult, FileOutcome, ParseResult
from app.repositories.sales_record_repository import SalesRecordRepository
from app.services.sales_ingestion_service import SalesIngestionService, get_sales_ingestion_service
from app.services.spreadsheet_parser import SpreadsheetParser, get_spreadsheet_parser
from db.models.uploaded_file import UploadedFile
from db.repositories.errors import StoredFileNotFoundError, UploadRepositoryError
from db.repositories.storage import FileStorageBackend, LocalFileStorage, build_storage_key
from db.repositories.types import UploadFileInput
from db.repositories.uploaded_file_repository import UploadedFileRepository
from db.repositories.validators import DEFAULT_MAX_UPLOAD_BYTES, validate_upload_payload
from llm_synthesis.prompt_builder import build_raw_context

logger = logging.getLogger(__name__)

STATUS_INGESTED = "ingested"
STATUS_FAILED = "failed"


class SalesUploadService:
    """
    Coordinates storage, the file registry, parsing and ingestion.
    """

    def __init__(
        self,
        *,
        storage: FileStorageBackend,
        parser: SpreadsheetParser,
        ingestion_service: SalesIngestionService,
        max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
    ) -> None:
        self._storage = storage
        self._parser = parser
        self._ingestion_service = ingestion_service
        self._max_upload_bytes = max_upload_bytes

    def process_batch(
        self,
        *,
        db: Session,
        owner_id: uuid.UUID,
        files: Sequence[UploadFileInput],
    ) -> BatchUploadResult:
        """
        Process every file of an upload batch, in order.
        """

        outcomes = [self._process_file(db=db, owner_id=owner_id, payload=payload) for payload in files]
        result = BatchUploadResult(outcomes=outcomes)
        logger.info(
            "Upload batch finished owner=%s files=%s succeeded=%s failed=%s",
            owner_id,
            len(outcomes),
            result.succeeded,
            result.failed,
        )
        return result

    def _process_file(
        self,
        *,
        db: Session,
        owner_id: uuid.UUID,
        payload: UploadFileInput,
    ) -> FileOutcome:
        parsed: ParseResult | None = None
        storage_path: str | None = None
        try:
            validate_upload_payload(payload, max_bytes=self._max_upload_bytes)
            storage_path = build_storage_key(owner_id, payload.file_name)
            self._ensure_not_foreign(db=db, owner_id=owner_id, storage_path=storage_path)

            parsed = self._parser.parse(
                payload.content,
                payload.file_name,
                source_file_key=storage_path,
            )

            stored = self._storage.upload(
                key=storage_path,
                content=payload.content,
                content_type=payload.content_type,
            )
            UploadedFileRepository(db).register(owner_id=owner_id, stored_file=stored)
            db.commit()

            summary = self._ingestion_service.ingest(
                db=db,
                owner_id=owner_id,
                records=parsed.records,
                source_file_key=storage_path,
                source_filename=payload.file_name,
            )
        except IngestionPersistenceError as exc:
            logger.warning(
                "Upload ingestion failed owner=%s file=%r inserted=%s: %s",
                owner_id,
                payload.file_name,
                exc.inserted,
                exc.message,
            )
            return self._failed(payload, storage_path, parsed, exc.message, inserted=exc.inserted)
        except SalesPipelineError as exc:
            logger.warning("Upload rejected owner=%s file=%r: %s", owner_id, payload.file_name, exc.message)
            return self._failed(payload, storage_path, parsed, exc.message)
        except UploadRepositoryError as exc:
            logger.warning("Upload rejected owner=%s file=%r: %s", owner_id, payload.file_name, exc)
            return self._failed(payload, storage_path, parsed, str(exc))
        except SQLAlchemyError:
            db.rollback()
            logger.exception("File registry write failed owner=%s file=%r", owner_id, payload.file_name)
            return self._failed(payload, storage_path, parsed, "Failed to register the uploaded file.")

        return FileOutcome(
            file_name=payload.file_name,
            status=STATUS_INGESTED,
            storage_path=storage_path,
            period=parsed.period,
            read=parsed.read,
            kept=parsed.kept,
            received=summary.received,
            inserted=summary.inserted,
            warnings=parsed.warnings,
        )

    @staticmethod
    def _failed(
        payload: UploadFileInput,
        storage_path: str | None,
        parsed: ParseResult | None,
        error: str,
        *,
        inserted: int = 0,
    ) -> FileOutcome:
        return FileOutcome(
            file_name=payload.file_name,
            status=STATUS_FAILED,
            storage_path=storage_path,
            period=parsed.period if parsed else None,
            read=parsed.read if parsed else 0,
            kept=parsed.kept if parsed else 0,
            received=parsed.kept if parsed else 0,
            inserted=inserted,
            warnings=parsed.warnings if parsed else (),
            error=error,
        )

    @staticmethod
    def _ensure_not_foreign(*, db: Session, owner_id: uuid.UUID, storage_path: str) -> None:
        registered_owner = UploadedFileRepository(db).get_owner(storage_path)
        if registered_owner is not None and registered_owner != owner_id:
            raise ForbiddenError(
                f'Storage key "{storage_path}" belongs to another owner.',
                filename=storage_path,
            )

    def list_files(self, *, db: Session, owner_id: uuid.UUID) -> list[UploadedFile]:
        return UploadedFileRepository(db).list_for_owner(owner_id)

    def remove_file(self, *, db: Session, owner_id: uuid.UUID, storage_path: str) -> int:
        """
        Delete a file's records, its registry entry and its stored bytes.

        Returns the number of sales records removed.
        """

        registry = UploadedFileRepository(db)
        registered_owner = registry.get_owner(storage_path)
        if registered_owner is None:
            raise NotFoundError(f'File "{storage_path}" is not registered.', filename=storage_path)
        if registered_owner != owner_id:
            raise ForbiddenError(f'File "{storage_path}" belongs to another owner.', filename=storage_path)

        try:
            removed = SalesRecordRepository(db).delete_for_file(
                owner_id=owner_id,
                source_file_key=storage_path,
            )
            registry.delete(owner_id=owner_id, storage_path=storage_path)
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            raise IngestionPersistenceError(
                "Failed to remove the file's records.",
                received=0,
                inserted=0,
                filename=storage_path,
            ) from exc

        try:
            self._storage.delete(key=storage_path)
        except StoredFileNotFoundError:
            logger.warning("Stored bytes already gone storage_path=%r", storage_path)

        logger.info(
            "Uploaded file removed owner=%s storage_path=%r records=%s",
            owner_id,
            storage_path,
            removed,
        )
        return removed

    def raw_context(self, *, owner_id: uuid.UUID) -> str:
        """
        Raw text of every stored spreadsheet of *owner_id*, each one cut
        to a fixed size. Unreadable files are skipped with a warning.
        """

        files: list[tuple[str, str]] = []
        for key in self._storage.list(prefix=f"{owner_id}/"):
            name = key.rsplit("/", 1)[-1]
            try:
                text = self._parser.to_text(self._storage.download(key=key), name)
            except (SalesPipelineError, UploadRepositoryError) as exc:
                logger.warning("Skipping stored file in raw context key=%r: %s", key, exc)
                continue
            files.append((name, text))
        return build_raw_context(files)


@lru_cache(maxsize=1)
def get_sales_upload_service() -> SalesUploadService:
    """
    Build and cache the upload service with env-driven settings.
    """

    settings = get_upload_settings()
    return SalesUploadService(
        storage=LocalFileStorage(settings.storage_dir),
        parser=get_spreadsheet_parser(),
        ingestion_service=get_sales_ingestion_service(),
        max_upload_bytes=settings.max_upload_bytes,
    )
