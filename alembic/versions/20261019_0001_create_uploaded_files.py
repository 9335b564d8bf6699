"""create uploaded_files table

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 09:10:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "uploaded_files",
        sa.Column("id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("owner_id", sa.Uuid(as_uuid=True), nullable=False),
        sa.Column("storage_path", sa.String(length=500), nullable=False, comment="Object store key"),
        sa.Column(
            "file_name",
            sa.String(length=255),
            nullable=False,
            comment="Original upload filename; carries the sales period",
        ),
        sa.Column("mime_type", sa.String(length=120), nullable=True),
        sa.Column("file_size_bytes", sa.BigInteger(), nullable=True),
        sa.Column("checksum", sa.String(length=64), nullable=True, comment="SHA-256 of the stored bytes"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_uploaded_files"),
        sa.UniqueConstraint("storage_path", name="uq_uploaded_files_storage_path"),
    )
    op.create_index("ix_uploaded_files_owner_id", "uploaded_files", ["owner_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_uploaded_files_owner_id", table_name="uploaded_files")
    op.drop_table("uploaded_files")
