"""
Notespace Backend — Note SQLAlchemy Model
===========================================

What:  ORM model representing the `notes` table.
Why:   Maps notes and their optional file attachment to database rows.
How:   Inherits from the shared DeclarativeBase; Alembic reads this for migrations.

Table Design Rationale:
    - workspace_id: Plain indexed column, NOT a foreign key. Workspace
      ownership is checked when a note is created; the cascade on workspace
      delete is performed by WorkspaceService so that attachment blobs are
      removed along with the rows.
    - attachment_*: Three columns that are all NULL or all set, guarded by
      a CHECK constraint. Application code goes through `Note.attachment`,
      which reads and writes them as a single value.
    - attachment_blob_handle is unique: one blob backs at most one note.
    - created_at DESC index: notes are listed newest first.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import CheckConstraint, DateTime, Index, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base


@dataclass(frozen=True)
class Attachment:
    """A file stored in the blob store and linked to exactly one note."""

    blob_handle: str
    file_name: str
    mime_type: str


class Note(Base):
    """
    Represents a user's note.

    Attachment state machine:
        NoAttachment → HasAttachment   (create/update with an uploaded blob)
        HasAttachment → NoAttachment   (explicit removal; old blob deleted)
        HasAttachment → HasAttachment  (replacement; old blob deleted)
        * → deleted                    (note deleted; final blob deleted)
    """

    __tablename__ = "notes"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    owner_user_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Identity provider subject of the creator; never changes",
    )

    workspace_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid,
        nullable=True,
    )

    text: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
    )

    attachment_blob_handle: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    attachment_file_name: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    attachment_mime_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        Index("idx_notes_owner", "owner_user_id"),
        Index("idx_notes_workspace", "workspace_id"),
        Index("idx_notes_created_at", created_at.desc()),
        # A blob belongs to at most one note; NULLs do not collide
        Index("uq_notes_attachment_blob_handle", "attachment_blob_handle", unique=True),
        CheckConstraint(
            "(attachment_blob_handle IS NULL AND attachment_file_name IS NULL "
            "AND attachment_mime_type IS NULL) OR "
            "(attachment_blob_handle IS NOT NULL AND attachment_file_name IS NOT NULL "
            "AND attachment_mime_type IS NOT NULL)",
            name="ck_notes_attachment_all_or_none",
        ),
    )

    @property
    def attachment(self) -> Optional[Attachment]:
        if self.attachment_blob_handle is None:
            return None
        return Attachment(
            blob_handle=self.attachment_blob_handle,
            file_name=self.attachment_file_name,
            mime_type=self.attachment_mime_type,
        )

    @attachment.setter
    def attachment(self, value: Optional[Attachment]) -> None:
        if value is None:
            self.attachment_blob_handle = None
            self.attachment_file_name = None
            self.attachment_mime_type = None
        else:
            self.attachment_blob_handle = value.blob_handle
            self.attachment_file_name = value.file_name
            self.attachment_mime_type = value.mime_type

    def __repr__(self) -> str:
        return (
            f"<Note(id={self.id}, workspace_id={self.workspace_id}, "
            f"has_attachment={self.attachment_blob_handle is not None})>"
        )
