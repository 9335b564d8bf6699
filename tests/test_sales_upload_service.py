"""
tests/test_sales_upload_service.py

Batch upload orchestration over LocalFileStorage and SQLite.
"""

from __future__ import annotations

import pytest

from app.domain.errors import ForbiddenError, NotFoundError
from app.repositories.sales_record_repository import SalesRecordRepository
from app.services.sales_ingestion_service import SalesIngestionService
from app.services.sales_upload_service import STATUS_FAILED, STATUS_INGESTED, SalesUploadService
from app.services.spreadsheet_parser import SpreadsheetParser
from db.repositories.storage import LocalFileStorage
from db.repositories.types import UploadFileInput
from db.repositories.uploaded_file_repository import UploadedFileRepository

FEB_CSV = b"Produto,Quantidade\nCaneta,10\nCaderno,4\n,3\n"


@pytest.fixture()
def storage(tmp_path) -> LocalFileStorage:
    return LocalFileStorage(tmp_path / "uploads")


@pytest.fixture()
def service(storage) -> SalesUploadService:
    return SalesUploadService(
        storage=storage,
        parser=SpreadsheetParser(log_validation_errors=False),
        ingestion_service=SalesIngestionService(batch_size=500),
        max_upload_bytes=1024 * 1024,
    )


def _upload(owner_id, name, content, content_type=None) -> UploadFileInput:
    return UploadFileInput(owner_id=owner_id, file_name=name, content=content, content_type=content_type)


def test_batch_continues_past_failing_files(db_session, owner_id, service, xlsx_bytes) -> None:
    files = [
        _upload(owner_id, "relatorio.csv", FEB_CSV),
        _upload(owner_id, "notas.txt", b"hello"),
        _upload(owner_id, "Fevereiro-2025.csv", FEB_CSV),
        _upload(owner_id, "Marco 2025.xlsx", b"not a workbook"),
        _upload(owner_id, "Abril 2025.xlsx", xlsx_bytes([["Produto", "Qtd"], ["Borracha", 2]])),
    ]

    result = service.process_batch(db=db_session, owner_id=owner_id, files=files)

    assert [outcome.status for outcome in result.outcomes] == [
        STATUS_FAILED,
        STATUS_FAILED,
        STATUS_INGESTED,
        STATUS_FAILED,
        STATUS_INGESTED,
    ]
    assert (result.succeeded, result.failed) == (2, 3)
    assert "month" in result.outcomes[0].error
    assert "not a supported spreadsheet" in result.outcomes[1].error

    feb = result.outcomes[2]
    assert feb.storage_path == f"{owner_id}/Fevereiro-2025.csv"
    assert (feb.read, feb.kept, feb.received, feb.inserted) == (3, 2, 2, 2)
    assert feb.period.key == "Fevereiro/2025"
    assert len(feb.warnings) == 1


def test_reupload_replaces_records(db_session, owner_id, service) -> None:
    service.process_batch(db=db_session, owner_id=owner_id, files=[_upload(owner_id, "Fevereiro-2025.csv", FEB_CSV)])
    service.process_batch(
        db=db_session,
        owner_id=owner_id,
        files=[_upload(owner_id, "Fevereiro-2025.csv", b"Produto,Quantidade\nLapis,1\n")],
    )

    stored = SalesRecordRepository(db_session).list_for_owner(owner_id)
    assert [record.product for record in stored] == ["Lapis"]
    assert len(service.list_files(db=db_session, owner_id=owner_id)) == 1


def test_stores_bytes_and_registers_file(db_session, owner_id, service, storage) -> None:
    service.process_batch(db=db_session, owner_id=owner_id, files=[_upload(owner_id, "Fevereiro-2025.csv", FEB_CSV)])

    key = f"{owner_id}/Fevereiro-2025.csv"
    assert storage.download(key=key) == FEB_CSV
    entry = UploadedFileRepository(db_session).get_by_storage_path(key)
    assert entry.owner_id == owner_id
    assert entry.file_size_bytes == len(FEB_CSV)


def test_oversized_file_fails_validation(db_session, owner_id, storage) -> None:
    service = SalesUploadService(
        storage=storage,
        parser=SpreadsheetParser(),
        ingestion_service=SalesIngestionService(batch_size=500),
        max_upload_bytes=10,
    )

    result = service.process_batch(
        db=db_session, owner_id=owner_id, files=[_upload(owner_id, "Fevereiro-2025.csv", FEB_CSV)]
    )

    assert result.outcomes[0].status == STATUS_FAILED
    assert "size limit" in result.outcomes[0].error
    assert storage.list() == []


def test_remove_file_deletes_records_registry_and_bytes(db_session, owner_id, service, storage) -> None:
    service.process_batch(db=db_session, owner_id=owner_id, files=[_upload(owner_id, "Fevereiro-2025.csv", FEB_CSV)])
    key = f"{owner_id}/Fevereiro-2025.csv"

    removed = service.remove_file(db=db_session, owner_id=owner_id, storage_path=key)

    assert removed == 2
    assert SalesRecordRepository(db_session).list_for_owner(owner_id) == []
    assert UploadedFileRepository(db_session).get_by_storage_path(key) is None
    assert storage.list() == []


def test_remove_file_checks_ownership(db_session, owner_id, other_owner_id, service) -> None:
    service.process_batch(db=db_session, owner_id=owner_id, files=[_upload(owner_id, "Fevereiro-2025.csv", FEB_CSV)])

    with pytest.raises(ForbiddenError):
        service.remove_file(db=db_session, owner_id=other_owner_id, storage_path=f"{owner_id}/Fevereiro-2025.csv")
    with pytest.raises(NotFoundError):
        service.remove_file(db=db_session, owner_id=owner_id, storage_path=f"{owner_id}/Nada-2025.csv")


def test_raw_context_lists_owner_files_only(db_session, owner_id, other_owner_id, service) -> None:
    service.process_batch(db=db_session, owner_id=owner_id, files=[_upload(owner_id, "Fevereiro-2025.csv", FEB_CSV)])
    service.process_batch(
        db=db_session,
        owner_id=other_owner_id,
        files=[_upload(other_owner_id, "Marco-2025.csv", b"Produto,Quantidade\nSegredo,1\n")],
    )

    context = service.raw_context(owner_id=owner_id)

    assert "=== Spreadsheet: Fevereiro-2025.csv ===" in context
    assert "Caneta" in context
    assert "Segredo" not in context


def test_year_outside_storable_range_fails_the_file(db_session, owner_id, service, storage) -> None:
    result = service.process_batch(
        db=db_session,
        owner_id=owner_id,
        files=[_upload(owner_id, "Janeiro-1999.csv", b"Produto,Quantidade\nCaneta,1\n")],
    )

    outcome = result.outcomes[0]
    assert outcome.status == STATUS_FAILED
    assert outcome.inserted == 0
    assert "1999" in outcome.error
    assert storage.list(prefix=f"{owner_id}/") == []
