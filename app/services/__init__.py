"""
app/services package marker.
"""

from app.services.aggregation_service import (
    SalesFactsService,
    get_sales_facts_service,
    render_fact_sheet,
    summarize,
)
from app.services.period_extractor import extract_period
from app.services.sales_ingestion_service import SalesIngestionService, get_sales_ingestion_service
from app.services.sales_upload_service import SalesUploadService, get_sales_upload_service
from app.services.spreadsheet_parser import SpreadsheetParser, get_spreadsheet_parser

__all__ = [
    "extract_period",
    "render_fact_sheet",
    "summarize",
    "SalesFactsService",
    "get_sales_facts_service",
    "SalesIngestionService",
    "get_sales_ingestion_service",
    "SalesUploadService",
    "get_sales_upload_service",
    "SpreadsheetParser",
    "get_spreadsheet_parser",
]
