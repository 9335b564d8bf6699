"""
app/schemas/sales.py

Request and response schemas for the sales endpoints.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.domain.sales import SalesRecordInput
from db.models.sales_record import (
    DESCRIPTIVE_MAX_LENGTH,
    MAX_QUANTITY,
    MAX_TOTAL_REVENUE,
    MAX_UNIT_PRICE,
    MAX_YEAR,
    MIN_YEAR,
    PRODUCT_MAX_LENGTH,
    SalesMonth,
)

MAX_ROWS_PER_REQUEST = 10_000
STORAGE_PATH_PATTERN = r"^[\w\-. /()]+$"


class SalesRowRequest(BaseModel):
    """
    One already-parsed sales row sent by a client.
    """

    product: str = Field(..., min_length=1, max_length=PRODUCT_MAX_LENGTH)
    quantity: int = Field(..., ge=0, le=MAX_QUANTITY)
    month: str
    year: int = Field(..., ge=MIN_YEAR, le=MAX_YEAR)
    unit_price: Decimal | None = Field(default=None, ge=0, le=MAX_UNIT_PRICE)
    total_revenue: Decimal | None = Field(default=None, ge=0, le=MAX_TOTAL_REVENUE)
    transaction_date: datetime | None = None
    transaction_id: str | None = Field(default=None, max_length=DESCRIPTIVE_MAX_LENGTH)
    category: str | None = Field(default=None, max_length=DESCRIPTIVE_MAX_LENGTH)
    region: str | None = Field(default=None, max_length=DESCRIPTIVE_MAX_LENGTH)

    @field_validator("product")
    @classmethod
    def _product_not_blank(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("product must not be blank")
        return stripped

    @field_validator("month")
    @classmethod
    def _canonical_month(cls, value: str) -> str:
        if value not in SalesMonth.ORDERED:
            raise ValueError(f"month must be one of: {', '.join(SalesMonth.ORDERED)}")
        return value

    def to_domain(self) -> SalesRecordInput:
        return SalesRecordInput(
            product=self.product,
            quantity=self.quantity,
            month=self.month,
            year=self.year,
            unit_price=self.unit_price,
            total_revenue=self.total_revenue,
            transaction_date=self.transaction_date,
            transaction_id=self.transaction_id,
            category=self.category,
            region=self.region,
        )


class SalesIngestRequest(BaseModel):
    rows: list[SalesRowRequest] = Field(..., min_length=1, max_length=MAX_ROWS_PER_REQUEST)
    storage_path: str | None = Field(default=None, max_length=500, pattern=STORAGE_PATH_PATTERN)
    source_filename: str | None = Field(default=None, max_length=255)

    @field_validator("storage_path")
    @classmethod
    def _no_parent_segments(cls, value: str | None) -> str | None:
        if value is not None and ".." in value.split("/"):
            raise ValueError("storage_path must not contain '..' segments")
        return value


class SalesIngestResponse(BaseModel):
    received: int = Field(..., ge=0)
    inserted: int = Field(..., ge=0)


class RowRejectedResponse(BaseModel):
    row_number: int = Field(..., ge=1)
    message: str
    column: str | None = None
    value: str | None = None


class SalesRecordResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    product: str
    quantity: int
    month: str
    year: int
    unit_price: Decimal | None = None
    total_revenue: Decimal | None = None
    transaction_date: datetime | None = None
    transaction_id: str | None = None
    category: str | None = None
    region: str | None = None


class PeriodResponse(BaseModel):
    month: str
    year: int
    key: str


class SpreadsheetPreviewResponse(BaseModel):
    """
    Parse-only result of one file: "read N, kept M" plus a short sample.
    """

    filename: str
    period: PeriodResponse
    read: int = Field(..., ge=0)
    kept: int = Field(..., ge=0)
    sample: list[SalesRecordResponse] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    rejections: list[RowRejectedResponse] = Field(default_factory=list)


class FileOutcomeResponse(BaseModel):
    file_name: str
    status: str
    storage_path: str | None = None
    period: PeriodResponse | None = None
    read: int = 0
    kept: int = 0
    received: int = 0
    inserted: int = 0
    warnings: list[str] = Field(default_factory=list)
    error: str | None = None


class BatchUploadResponse(BaseModel):
    succeeded: int = Field(..., ge=0)
    failed: int = Field(..., ge=0)
    files: list[FileOutcomeResponse] = Field(default_factory=list)


class ProductTotalResponse(BaseModel):
    product: str
    total_quantity: int


class AggregatedFactResponse(BaseModel):
    period: str
    products: list[ProductTotalResponse] = Field(default_factory=list)


class FactSheetResponse(BaseModel):
    record_count: int = Field(..., ge=0)
    fact_sheet: str
    facts: list[AggregatedFactResponse] = Field(default_factory=list)


class PromptResponse(BaseModel):
    prompt: str


class UploadedFileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    storage_path: str
    file_name: str
    mime_type: str | None = None
    file_size_bytes: int | None = None
    checksum: str | None = None
    created_at: datetime | None = None


class RemoveFileResponse(BaseModel):
    storage_path: str
    records_removed: int = Field(..., ge=0)
