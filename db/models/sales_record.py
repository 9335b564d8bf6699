"""
db/models/sales_record.py

Canonical sales record: one validated spreadsheet line item owned by one user.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal

from sqlalchemy import CheckConstraint, DateTime, Index, Integer, Numeric, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base


class SalesMonth:
    """Canonical month names, in calendar order."""

    JANEIRO = "Janeiro"
    FEVEREIRO = "Fevereiro"
    MARCO = "Março"
    ABRIL = "Abril"
    MAIO = "Maio"
    JUNHO = "Junho"
    JULHO = "Julho"
    AGOSTO = "Agosto"
    SETEMBRO = "Setembro"
    OUTUBRO = "Outubro"
    NOVEMBRO = "Novembro"
    DEZEMBRO = "Dezembro"

    ORDERED: tuple[str, ...] = (
        JANEIRO,
        FEVEREIRO,
        MARCO,
        ABRIL,
        MAIO,
        JUNHO,
        JULHO,
        AGOSTO,
        SETEMBRO,
        OUTUBRO,
        NOVEMBRO,
        DEZEMBRO,
    )


MIN_YEAR = 2000
MAX_YEAR = 2100
MAX_QUANTITY = 1_000_000
MAX_UNIT_PRICE = Decimal("1000000")
MAX_TOTAL_REVENUE = Decimal("10000000")
PRODUCT_MAX_LENGTH = 200
DESCRIPTIVE_MAX_LENGTH = 100


class SalesRecord(Base):
    __tablename__ = "sales_records"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        nullable=False,
        comment="Authenticated owner; never taken from file content",
    )
    product: Mapped[str] = mapped_column(String(PRODUCT_MAX_LENGTH), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[Decimal | None] = mapped_column(Numeric(14, 2), nullable=True)
    total_revenue: Mapped[Decimal | None] = mapped_column(Numeric(16, 2), nullable=True)
    month: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        comment="Canonical month name taken from the source filename",
    )
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    transaction_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Derived from the row; not authoritative for aggregation",
    )
    transaction_id: Mapped[str | None] = mapped_column(String(DESCRIPTIVE_MAX_LENGTH), nullable=True)
    category: Mapped[str | None] = mapped_column(String(DESCRIPTIVE_MAX_LENGTH), nullable=True)
    region: Mapped[str | None] = mapped_column(String(DESCRIPTIVE_MAX_LENGTH), nullable=True)
    source_filename: Mapped[str | None] = mapped_column(String(255), nullable=True)
    source_file_key: Mapped[str | None] = mapped_column(
        String(500),
        nullable=True,
        comment="Storage key of the uploaded file; replace scope on re-upload",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="quantity_non_negative"),
        CheckConstraint(f"year BETWEEN {MIN_YEAR} AND {MAX_YEAR}", name="year_range"),
        CheckConstraint("unit_price IS NULL OR unit_price >= 0", name="unit_price_non_negative"),
        CheckConstraint(
            "total_revenue IS NULL OR total_revenue >= 0",
            name="total_revenue_non_negative",
        ),
        Index("ix_sales_records_owner_id", "owner_id"),
        Index("ix_sales_records_owner_file", "owner_id", "source_file_key"),
        Index("ix_sales_records_owner_period", "owner_id", "year", "month"),
    )

    def __repr__(self) -> str:
        return (
            f"<SalesRecord id={self.id} owner_id={self.owner_id} "
            f"product={self.product!r} period={self.month}/{self.year}>"
        )
