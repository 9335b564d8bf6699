"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.sales_record import SalesMonth, SalesRecord
from db.models.uploaded_file import UploadedFile

__all__ = [
    "SalesMonth",
    "SalesRecord",
    "UploadedFile",
]
