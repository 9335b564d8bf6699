"""create sales_records table

Revision ID: 20261019_0002
Revises: 20261019_0001
Create Date: 2026-10-19 09:30:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "20261019_0002"
down_revision = "20261019_0001"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "sales_records",
        sa.Column("id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column(
            "owner_id",
            sa.Uuid(as_uuid=True),
            nullable=False,
            comment="Authenticated owner; never taken from file content",
        ),
        sa.Column("product", sa.String(length=200), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price", sa.Numeric(14, 2), nullable=True),
        sa.Column("total_revenue", sa.Numeric(16, 2), nullable=True),
        sa.Column(
            "month",
            sa.String(length=16),
            nullable=False,
            comment="Canonical month name taken from the source filename",
        ),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column(
            "transaction_date",
            sa.DateTime(timezone=True),
            nullable=True,
            comment="Derived from the row; not authoritative for aggregation",
        ),
        sa.Column("transaction_id", sa.String(length=100), nullable=True),
        sa.Column("category", sa.String(length=100), nullable=True),
        sa.Column("region", sa.String(length=100), nullable=True),
        sa.Column("source_filename", sa.String(length=255), nullable=True),
        sa.Column(
            "source_file_key",
            sa.String(length=500),
            nullable=True,
            comment="Storage key of the uploaded file; replace scope on re-upload",
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_sales_records"),
        sa.CheckConstraint("quantity >= 0", name="ck_sales_records_quantity_non_negative"),
        sa.CheckConstraint("year BETWEEN 2000 AND 2100", name="ck_sales_records_year_range"),
        sa.CheckConstraint(
            "unit_price IS NULL OR unit_price >= 0",
            name="ck_sales_records_unit_price_non_negative",
        ),
        sa.CheckConstraint(
            "total_revenue IS NULL OR total_revenue >= 0",
            name="ck_sales_records_total_revenue_non_negative",
        ),
    )
    op.create_index("ix_sales_records_owner_id", "sales_records", ["owner_id"], unique=False)
    op.create_index(
        "ix_sales_records_owner_file",
        "sales_records",
        ["owner_id", "source_file_key"],
        unique=False,
    )
    op.create_index(
        "ix_sales_records_owner_period",
        "sales_records",
        ["owner_id", "year", "month"],
        unique=False,
    )


def downgrade() -> None:
    op.drop_index("ix_sales_records_owner_period", table_name="sales_records")
    op.drop_index("ix_sales_records_owner_file", table_name="sales_records")
    op.drop_index("ix_sales_records_owner_id", table_name="sales_records")
    op.drop_table("sales_records")
