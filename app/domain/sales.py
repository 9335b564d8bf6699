"""
app/domain/sales.py

Domain models used by the spreadsheet ingestion flow.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal

SAMPLE_SIZE = 5


@dataclass(frozen=True)
class Period:
    """
    Aggregation bucket of a file, derived from its filename only.
    """

    month: str
    year: int

    @property
    def key(self) -> str:
        return f"{self.month}/{self.year}"


@dataclass(frozen=True)
class SalesRecordInput:
    """
    Typed canonical sales row prepared for persistence.

    The owner is deliberately absent: it is attached by the ingestion
    service from the authenticated caller, never from file content.
    """

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
    source_filename: str | None = None
    source_file_key: str | None = None


@dataclass(frozen=True)
class RowRejected:
    """
    One rejected spreadsheet row. row_number is 1-based over data rows.
    """

    row_number: int
    message: str
    column: str | None = None
    value: str | None = None


@dataclass(frozen=True)
class ParseResult:
    """
    Outcome of parsing one spreadsheet file.
    """

    filename: str
    period: Period
    read: int
    records: tuple[SalesRecordInput, ...]
    warnings: tuple[str, ...] = ()
    rejections: tuple[RowRejected, ...] = ()

    @property
    def kept(self) -> int:
        return len(self.records)

    @property
    def sample(self) -> tuple[SalesRecordInput, ...]:
        return self.records[:SAMPLE_SIZE]


@dataclass(frozen=True)
class IngestionSummary:
    """
    End-of-run ingestion counts for one file.
    """

    received: int
    inserted: int
    dropped: int = 0
    replaced: int = 0
    source_file_key: str | None = None


@dataclass(frozen=True)
class ProductTotal:
    product: str
    total_quantity: int


@dataclass(frozen=True)
class AggregatedFact:
    """
    Per-period product totals, already in rendering order.
    """

    period_key: str
    products: tuple[ProductTotal, ...] = ()


@dataclass(frozen=True)
class FactSheet:
    facts: tuple[AggregatedFact, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not any(fact.products for fact in self.facts)


@dataclass(frozen=True)
class FileOutcome:
    """
    Result of one file inside an upload batch.
    """

    file_name: str
    status: str
    storage_path: str | None = None
    period: Period | None = None
    read: int = 0
    kept: int = 0
    received: int = 0
    inserted: int = 0
    warnings: tuple[str, ...] = ()
    error: str | None = None


@dataclass(frozen=True)
class BatchUploadResult:
    outcomes: list[FileOutcome] = field(default_factory=list)

    @property
    def succeeded(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status == "ingested")

    @property
    def failed(self) -> int:
        return len(self.outcomes) - self.succeeded
