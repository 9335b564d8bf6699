"""
app/domain package marker.
"""

from app.domain.errors import (
    ChunkInsertError,
    ForbiddenError,
    IngestionPersistenceError,
    InvalidQuestionError,
    NotFoundError,
    PeriodNotFoundError,
    SalesPipelineError,
    UnreadableFileError,
)
from app.domain.sales import (
    AggregatedFact,
    BatchUploadResult,
    FactSheet,
    FileOutcome,
    IngestionSummary,
    ParseResult,
    Period,
    ProductTotal,
    RowRejected,
    SalesRecordInput,
)

__all__ = [
    "AggregatedFact",
    "BatchUploadResult",
    "ChunkInsertError",
    "FactSheet",
    "FileOutcome",
    "ForbiddenError",
    "IngestionPersistenceError",
    "IngestionSummary",
    "InvalidQuestionError",
    "NotFoundError",
    "ParseResult",
    "Period",
    "PeriodNotFoundError",
    "ProductTotal",
    "RowRejected",
    "SalesPipelineError",
    "SalesRecordInput",
    "UnreadableFileError",
]
