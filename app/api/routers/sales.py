"""
app/api/routers/sales.py

Sales spreadsheet HTTP endpoints: upload, preview, ingest, facts, prompt.
"""

from __future__ import annotations

import uuid
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query, UploadFile, status
from sqlalchemy.orm import Session

from app.api.dependencies import get_owner_id, get_spreadsheet_upload, get_spreadsheet_uploads
from app.domain.errors import (
    ForbiddenError,
    IngestionPersistenceError,
    InvalidQuestionError,
    NotFoundError,
    PeriodNotFoundError,
    SalesPipelineError,
    UnreadableFileError,
)
from app.domain.sales import FileOutcome, Period
from app.schemas.sales import (
    AggregatedFactResponse,
    BatchUploadResponse,
    FactSheetResponse,
    FileOutcomeResponse,
    PeriodResponse,
    ProductTotalResponse,
    PromptResponse,
    RemoveFileResponse,
    RowRejectedResponse,
    SalesIngestRequest,
    SalesIngestResponse,
    SalesRecordResponse,
    SpreadsheetPreviewResponse,
    UploadedFileResponse,
)
from app.services.aggregation_service import SalesFactsService, get_sales_facts_service
from app.services.sales_ingestion_service import SalesIngestionService, get_sales_ingestion_service
from app.services.sales_upload_service import SalesUploadService, get_sales_upload_service
from app.services.spreadsheet_parser import SpreadsheetParser, get_spreadsheet_parser
from db.repositories.types import UploadFileInput
from db.session import get_db
from llm_synthesis.prompt_builder import SalesPromptBuilder

router = APIRouter(prefix="/sales", tags=["sales"])


def _http_error(exc: SalesPipelineError) -> HTTPException:
    if isinstance(exc, ForbiddenError):
        status_code = status.HTTP_403_FORBIDDEN
    elif isinstance(exc, NotFoundError):
        status_code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, IngestionPersistenceError):
        status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    else:
        status_code = status.HTTP_400_BAD_REQUEST
    return HTTPException(status_code=status_code, detail=exc.to_dict())


def _period_response(period: Period | None) -> PeriodResponse | None:
    if period is None:
        return None
    return PeriodResponse(month=period.month, year=period.year, key=period.key)


def _outcome_response(outcome: FileOutcome) -> FileOutcomeResponse:
    return FileOutcomeResponse(
        file_name=outcome.file_name,
        status=outcome.status,
        storage_path=outcome.storage_path,
        period=_period_response(outcome.period),
        read=outcome.read,
        kept=outcome.kept,
        received=outcome.received,
        inserted=outcome.inserted,
        warnings=list(outcome.warnings),
        error=outcome.error,
    )


@router.post("/uploads", response_model=BatchUploadResponse)
def upload_spreadsheets(
    files: list[UploadFile] = Depends(get_spreadsheet_uploads),
    owner_id: uuid.UUID = Depends(get_owner_id),
    db: Session = Depends(get_db),
    upload_service: SalesUploadService = Depends(get_sales_upload_service),
) -> BatchUploadResponse:
    """
    Store, parse and ingest a batch of spreadsheets, one file at a time.
    """

    payloads: list[UploadFileInput] = []
    try:
        for upload in files:
            payloads.append(
                UploadFileInput(
                    owner_id=owner_id,
                    file_name=(upload.filename or "").strip(),
                    content=upload.file.read(),
                    content_type=upload.content_type,
                )
            )
    finally:
        for upload in files:
            upload.file.close()

    result = upload_service.process_batch(db=db, owner_id=owner_id, files=payloads)
    return BatchUploadResponse(
        succeeded=result.succeeded,
        failed=result.failed,
        files=[_outcome_response(outcome) for outcome in result.outcomes],
    )


@router.post("/preview", response_model=SpreadsheetPreviewResponse)
def preview_spreadsheet(
    file: UploadFile = Depends(get_spreadsheet_upload),
    parser: SpreadsheetParser = Depends(get_spreadsheet_parser),
) -> SpreadsheetPreviewResponse:
    """
    Parse one spreadsheet without storing anything.
    """

    filename = (file.filename or "").strip()
    try:
        parsed = parser.parse(file.file.read(), filename)
    except (PeriodNotFoundError, UnreadableFileError) as exc:
        raise _http_error(exc) from exc
    finally:
        file.file.close()

    return SpreadsheetPreviewResponse(
        filename=parsed.filename,
        period=_period_response(parsed.period),
        read=parsed.read,
        kept=parsed.kept,
        sample=[SalesRecordResponse.model_validate(record) for record in parsed.sample],
        warnings=list(parsed.warnings),
        rejections=[
            RowRejectedResponse(
                row_number=rejection.row_number,
                column=rejection.column,
                message=rejection.message,
                value=rejection.value,
            )
            for rejection in parsed.rejections
        ],
    )


@router.post("/ingest", response_model=SalesIngestResponse)
def ingest_rows(
    request: SalesIngestRequest,
    owner_id: uuid.UUID = Depends(get_owner_id),
    db: Session = Depends(get_db),
    ingestion_service: SalesIngestionService = Depends(get_sales_ingestion_service),
) -> SalesIngestResponse:
    """
    Persist already-parsed rows, replacing earlier rows of the same file.
    """

    try:
        summary = ingestion_service.ingest(
            db=db,
            owner_id=owner_id,
            records=[row.to_domain() for row in request.rows],
            source_file_key=request.storage_path,
            source_filename=request.source_filename,
        )
    except SalesPipelineError as exc:
        raise _http_error(exc) from exc

    return SalesIngestResponse(received=summary.received, inserted=summary.inserted)


@router.get("/facts", response_model=FactSheetResponse)
def get_facts(
    owner_id: uuid.UUID = Depends(get_owner_id),
    db: Session = Depends(get_db),
    facts_service: SalesFactsService = Depends(get_sales_facts_service),
) -> FactSheetResponse:
    """
    Aggregated per-period product totals of the caller's records.
    """

    owner_facts = facts_service.facts_for_owner(db=db, owner_id=owner_id)
    return FactSheetResponse(
        record_count=owner_facts.record_count,
        fact_sheet=owner_facts.text,
        facts=[
            AggregatedFactResponse(
                period=fact.period_key,
                products=[
                    ProductTotalResponse(product=item.product, total_quantity=item.total_quantity)
                    for item in fact.products
                ],
            )
            for fact in owner_facts.sheet.facts
        ],
    )


@router.get("/files", response_model=list[UploadedFileResponse])
def list_files(
    owner_id: uuid.UUID = Depends(get_owner_id),
    db: Session = Depends(get_db),
    upload_service: SalesUploadService = Depends(get_sales_upload_service),
) -> list[UploadedFileResponse]:
    return [
        UploadedFileResponse.model_validate(entry)
        for entry in upload_service.list_files(db=db, owner_id=owner_id)
    ]


@router.delete("/files/{storage_path:path}", response_model=RemoveFileResponse)
def remove_file(
    storage_path: str,
    owner_id: uuid.UUID = Depends(get_owner_id),
    db: Session = Depends(get_db),
    upload_service: SalesUploadService = Depends(get_sales_upload_service),
) -> RemoveFileResponse:
    """
    Delete an uploaded file together with every record ingested from it.
    """

    try:
        removed = upload_service.remove_file(db=db, owner_id=owner_id, storage_path=storage_path)
    except SalesPipelineError as exc:
        raise _http_error(exc) from exc
    return RemoveFileResponse(storage_path=storage_path, records_removed=removed)


@router.get("/prompt", response_model=PromptResponse)
def build_prompt(
    question: str = Query(..., description="Question for the sales assistant"),
    mode: Literal["facts", "raw"] = Query(default="facts"),
    owner_id: uuid.UUID = Depends(get_owner_id),
    db: Session = Depends(get_db),
    facts_service: SalesFactsService = Depends(get_sales_facts_service),
    upload_service: SalesUploadService = Depends(get_sales_upload_service),
) -> PromptResponse:
    """
    Assistant prompt for *question*, built from the aggregated fact sheet
    (mode=facts) or from the raw stored spreadsheets (mode=raw).
    """

    if mode == "raw":
        context = upload_service.raw_context(owner_id=owner_id)
    else:
        context = facts_service.facts_for_owner(db=db, owner_id=owner_id).text

    try:
        prompt = SalesPromptBuilder().build_prompt(context, question)
    except InvalidQuestionError as exc:
        raise _http_error(exc) from exc
    return PromptResponse(prompt=prompt)
