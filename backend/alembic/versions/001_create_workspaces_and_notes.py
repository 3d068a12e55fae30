"""Create workspaces and notes tables

Revision ID: 001
Revises: None
Create Date: 2026-10-19 00:00:00.000000+00:00

What:  Initial schema: workspaces (unique nullable path) and notes (optional
       attachment stored as three all-or-nothing columns, its blob handle
       unique across notes).
How:   PostgreSQL UUID keys with gen_random_uuid(), TIMESTAMPTZ columns.

notes.workspace_id has no foreign key: the workspace cascade is carried out
by the application so attachment blobs are deleted together with the rows.
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "workspaces",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column(
            "owner_user_id",
            sa.String(255),
            nullable=False,
            comment="Identity provider subject of the creator; never changes",
        ),
        sa.Column("name", sa.String(255), nullable=False),
        # NULL only for legacy rows awaiting migrate-paths
        sa.Column("path", sa.String(255), nullable=True),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        # Postgres treats NULLs as distinct, so many path-less rows may coexist
        sa.UniqueConstraint("path", name="uq_workspaces_path"),
    )
    op.create_index("idx_workspaces_owner", "workspaces", ["owner_user_id"])

    op.create_table(
        "notes",
        sa.Column(
            "id",
            postgresql.UUID(as_uuid=True),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("owner_user_id", sa.String(255), nullable=False),
        sa.Column("workspace_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("text", sa.Text(), nullable=False, server_default=sa.text("''")),
        sa.Column("attachment_blob_handle", sa.String(64), nullable=True),
        sa.Column("attachment_file_name", sa.String(255), nullable=True),
        sa.Column("attachment_mime_type", sa.String(100), nullable=True),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("CURRENT_TIMESTAMP"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint(
            "(attachment_blob_handle IS NULL AND attachment_file_name IS NULL "
            "AND attachment_mime_type IS NULL) OR "
            "(attachment_blob_handle IS NOT NULL AND attachment_file_name IS NOT NULL "
            "AND attachment_mime_type IS NOT NULL)",
            name="ck_notes_attachment_all_or_none",
        ),
    )
    op.create_index("idx_notes_owner", "notes", ["owner_user_id"])
    op.create_index("idx_notes_workspace", "notes", ["workspace_id"])
    op.create_index("idx_notes_created_at", "notes", [sa.text("created_at DESC")])
    op.create_index(
        "uq_notes_attachment_blob_handle", "notes", ["attachment_blob_handle"], unique=True
    )


def downgrade() -> None:
    """Destructive: drops both tables with their data."""
    op.drop_index("uq_notes_attachment_blob_handle", table_name="notes")
    op.drop_index("idx_notes_created_at", table_name="notes")
    op.drop_index("idx_notes_workspace", table_name="notes")
    op.drop_index("idx_notes_owner", table_name="notes")
    op.drop_table("notes")
    op.drop_index("idx_workspaces_owner", table_name="workspaces")
    op.drop_table("workspaces")
