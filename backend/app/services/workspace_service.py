"""
Notespace Backend — Workspace Service
=======================================

What:  Workspace CRUD, ownership enforcement, cascading delete, and the
       path backfill for legacy workspaces.
Why:   Keeps the business rules out of the HTTP layer.
How:   Stateless methods taking an AsyncSession and the caller id; blob
       deletions go through the injected BlobStore.

Path allocation:
    candidate = slugify(name) or "workspace-<suffix>"
    if candidate is taken:      candidate-<suffix>
    if that is taken as well:   draw another suffix (up to slug_max_attempts)
    insert; the unique index rejects anything that slipped through a race
    and the caller gets ConflictError.

Cascading delete (delete):
    1. Load every note whose workspace_id is the workspace
    2. Delete their attachment blobs concurrently, waiting for all
    3. Delete the note rows, then the workspace row

    A failed blob deletion aborts the operation. The request transaction
    rolls back, so all rows survive, but blobs deleted before the failure
    stay deleted and their notes keep dangling handles. Nothing
    reconciles this afterwards.
"""

import asyncio
import logging
from typing import List, Optional, Set
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.exceptions import ConflictError, DatabaseError, ForbiddenError, ValidationError
from app.models.note import Note
from app.models.workspace import PATH_MAX_LENGTH, Workspace
from app.schemas.workspace import WorkspaceResponse
from app.services.blob_store import BlobStore, blob_store
from app.services.ownership import (
    OwnershipCheck,
    assert_owner,
    check_owner,
    require_caller,
)
from app.services.slug import random_suffix, slugify, truncate, with_suffix

logger = logging.getLogger(__name__)

EMPTY_SLUG_PREFIX = "workspace"


def _clean_name(name: str) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValidationError(message="Workspace name cannot be empty.", field="name")
    return cleaned


class WorkspaceService:
    """
    Business logic layer for workspace operations.

    Responsibilities:
        - list_for_caller(): the caller's workspaces ([] when signed out)
        - create(): slug allocation + insert
        - rename(): name only; path is stable
        - delete(): cascade to notes and attachment blobs
        - backfill_missing_paths(): idempotent repair of legacy rows
    """

    def __init__(self, blobs: BlobStore):
        self.blobs = blobs

    # ── Path allocation ───────────────────────────────────────────────────

    async def _path_taken(
        self, db: AsyncSession, path: str, reserved: Optional[Set[str]] = None
    ) -> bool:
        if reserved and path in reserved:
            return True
        result = await db.execute(
            select(Workspace.id).where(Workspace.path == path).limit(1)
        )
        return result.first() is not None

    async def _allocate_path(
        self, db: AsyncSession, name: str, reserved: Optional[Set[str]] = None
    ) -> str:
        """
        Pick a path for `name` that no workspace currently uses.

        `reserved` holds paths handed out earlier in the same operation
        that may not be visible to the lookup yet.

        Raises:
            ConflictError: every suffixed candidate was taken
        """
        suffix_length = settings.slug_suffix_length
        # Leave room for "-<suffix>" so every candidate fits the column
        base = truncate(slugify(name), PATH_MAX_LENGTH - 1 - suffix_length)
        if not base:
            base = with_suffix(EMPTY_SLUG_PREFIX, random_suffix(suffix_length))
            logger.info("Name %r has no slug characters; using %s", name, base)

        if not await self._path_taken(db, base, reserved):
            return base

        for attempt in range(1, settings.slug_max_attempts + 1):
            candidate = with_suffix(base, random_suffix(suffix_length))
            if not await self._path_taken(db, candidate, reserved):
                if attempt > 1:
                    logger.info("Path %s needed %d suffix draws", candidate, attempt)
                return candidate

        logger.warning("Exhausted %d suffixes for path %s", settings.slug_max_attempts, base)
        raise ConflictError(context={"path": base})

    # ── Queries ───────────────────────────────────────────────────────────

    async def list_for_caller(
        self, db: AsyncSession, caller_id: Optional[str]
    ) -> List[WorkspaceResponse]:
        """Caller's workspaces, oldest first. Signed-out callers get []."""
        if not caller_id:
            return []
        try:
            result = await db.execute(
                select(Workspace)
                .where(Workspace.owner_user_id == caller_id)
                .order_by(Workspace.created_at, Workspace.id)
            )
        except SQLAlchemyError as e:
            logger.error("Database error listing workspaces: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve workspaces. Please try again.",
                context={"error_type": type(e).__name__},
            ) from e
        return [WorkspaceResponse.model_validate(ws) for ws in result.scalars().all()]

    # ── Mutations ─────────────────────────────────────────────────────────

    async def create(self, db: AsyncSession, caller_id: Optional[str], name: str) -> UUID:
        """
        Create a workspace owned by the caller.

        Raises:
            UnauthenticatedError: no caller
            ValidationError:      blank name
            ConflictError:        no free path / lost a concurrent insert race
        """
        owner = require_caller(caller_id, "add a workspace")
        name = _clean_name(name)
        path = await self._allocate_path(db, name)

        workspace = Workspace(owner_user_id=owner, name=name, path=path)
        db.add(workspace)
        try:
            await db.flush()
        except IntegrityError as e:
            logger.warning("Unique path race lost for %s", path)
            raise ConflictError(context={"path": path}) from e

        logger.info("Workspace created: %s (path=%s, owner=%s)", workspace.id, path, owner)
        return workspace.id

    async def rename(
        self, db: AsyncSession, caller_id: Optional[str], workspace_id: UUID, name: str
    ) -> None:
        """
        Change a workspace's display name. The path is deliberately untouched.

        Raises:
            UnauthenticatedError / NotFoundError / ForbiddenError / ValidationError
        """
        owner = require_caller(caller_id, "update a workspace")
        workspace = assert_owner(
            await db.get(Workspace, workspace_id),
            owner,
            resource_name="workspace",
            resource_id=str(workspace_id),
        )
        workspace.name = _clean_name(name)
        await db.flush()
        logger.info("Workspace %s renamed", workspace_id)

    async def delete(
        self, db: AsyncSession, caller_id: Optional[str], workspace_id: UUID
    ) -> None:
        """
        Delete a workspace with all of its notes and their attachments.

        Unknown ids are a silent no-op.

        Raises:
            UnauthenticatedError: no caller
            ForbiddenError:       workspace belongs to someone else
            BlobStoreError:       an attachment could not be deleted (see module doc)
        """
        owner = require_caller(caller_id, "remove a workspace")
        workspace = await db.get(Workspace, workspace_id)

        outcome = check_owner(workspace, owner)
        if outcome is OwnershipCheck.NOT_FOUND:
            logger.info("Delete of unknown workspace %s ignored", workspace_id)
            return
        if outcome is OwnershipCheck.FORBIDDEN:
            raise ForbiddenError(resource="workspace", resource_id=str(workspace_id))

        result = await db.execute(select(Note).where(Note.workspace_id == workspace_id))
        notes = list(result.scalars().all())
        handles = [n.attachment.blob_handle for n in notes if n.attachment is not None]

        # Fan out, wait for all; the first failure propagates
        try:
            await asyncio.gather(*(self.blobs.delete(h) for h in handles))
        except Exception:
            logger.error(
                "Workspace %s delete aborted: attachment cleanup failed (%d blobs requested)",
                workspace_id,
                len(handles),
            )
            raise

        for note in notes:
            await db.delete(note)
        await db.flush()

        await db.delete(workspace)
        await db.flush()
        logger.info(
            "Workspace %s deleted with %d notes and %d attachments",
            workspace_id,
            len(notes),
            len(handles),
        )

    async def backfill_missing_paths(self, db: AsyncSession, caller_id: Optional[str]) -> int:
        """
        Assign paths to the caller's workspaces that lack one.

        Idempotent: workspaces that already have a path are skipped, so a
        second call returns 0. Signed-out callers are a no-op.

        Returns:
            Number of workspaces updated
        """
        if not caller_id:
            return 0

        result = await db.execute(
            select(Workspace)
            .where(Workspace.owner_user_id == caller_id, Workspace.path.is_(None))
            .order_by(Workspace.created_at, Workspace.id)
        )
        pending = list(result.scalars().all())

        assigned: Set[str] = set()
        for workspace in pending:
            path = await self._allocate_path(db, workspace.name, reserved=assigned)
            workspace.path = path
            assigned.add(path)

        if pending:
            try:
                await db.flush()
            except IntegrityError as e:
                raise ConflictError(context={"operation": "backfill"}) from e
            logger.info("Backfilled paths for %d workspaces of %s", len(pending), caller_id)
        return len(pending)


# ── Singleton Instance ────────────────────────────────────────────────────
workspace_service = WorkspaceService(blob_store)
