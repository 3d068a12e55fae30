"""
Notespace Backend — Workspace SQLAlchemy Model
================================================

What:  ORM model representing the `workspaces` table.
Why:   A workspace is a named, owned collection of notes addressable by a
       unique URL-safe path.
How:   Inherits from the shared DeclarativeBase; Alembic reads this for migrations.

Table Design Rationale:
    - owner_user_id: Opaque identity-provider subject; no users table here
    - path: UNIQUE across all workspaces. The index, not an application
      lookup, is what guarantees uniqueness under concurrent inserts.
      Nullable only for legacy rows created before paths existed; the
      backfill operation fills them in.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from app.database import Base

# Column width of workspaces.path; generated paths must fit it including the suffix
PATH_MAX_LENGTH = 255


class Workspace(Base):
    """
    Represents a user's workspace.

    Lifecycle:
        1. Created by the owner; path derived from the name
        2. Renamed by the owner (path stays the same)
        3. Deleted by the owner, cascading to every note inside it
    """

    __tablename__ = "workspaces"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        primary_key=True,
        default=uuid.uuid4,
    )

    owner_user_id: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Identity provider subject of the owner",
    )

    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    path: Mapped[Optional[str]] = mapped_column(
        String(PATH_MAX_LENGTH),
        nullable=True,
        unique=True,
        comment="URL-safe unique slug; assigned once at creation",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        Index("idx_workspaces_owner", "owner_user_id"),
    )

    def __repr__(self) -> str:
        return f"<Workspace(id={self.id}, path='{self.path}', owner='{self.owner_user_id}')>"
