"""
app/schemas package marker.
"""

from app.schemas.sales import (
    BatchUploadResponse,
    FactSheetResponse,
    SalesIngestRequest,
    SalesIngestResponse,
    SpreadsheetPreviewResponse,
)

__all__ = [
    "BatchUploadResponse",
    "FactSheetResponse",
    "SalesIngestRequest",
    "SalesIngestResponse",
    "SpreadsheetPreviewResponse",
]
