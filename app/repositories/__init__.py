"""
app/repositories package marker.
"""

from app.repositories.sales_record_repository import SalesRecordRepository

__all__ = [
    "SalesRecordRepository",
]
