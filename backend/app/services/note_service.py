"""
Notespace Backend — Note Service
==================================

What:  Note CRUD with ownership enforcement and the attachment lifecycle.
Why:   Encapsulates business rules, independent of HTTP concerns.
How:   Stateless methods taking an AsyncSession and the caller id; blob
       operations go through the injected BlobStore.
Who:   Called by routes/notes.py.

Attachment lifecycle:
    create  → attachment (if any) must already be uploaded, by the caller,
              and not be linked to any other note
    update  → UNSET: untouched
              None:  old blob deleted, fields cleared together
              value: MIME type always checked; if the handle changed the
                     new blob gets the create checks, the old blob is
                     deleted, then the new one linked
    delete  → blob deleted, then the row

    Blob deletions happen before the row change and are not undone if the
    transaction later rolls back.

Deployment scope (settings.note_scope):
    workspace → list/create need a workspace_id; results are the caller's
                notes in that workspace
    user      → workspace_id is optional; list returns all caller notes
"""

import enum
import logging
from typing import List, Optional, Union
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import NOTE_SCOPE_WORKSPACE, settings
from app.exceptions import ConflictError, DatabaseError, ForbiddenError, ValidationError
from app.models.note import Attachment, Note
from app.models.workspace import Workspace
from app.schemas.note import AttachmentSchema, NoteResponse
from app.services.blob_store import ALLOWED_MIME_TYPES, BlobStore, UploadTicket, blob_store
from app.services.ownership import assert_owner, require_caller

logger = logging.getLogger(__name__)


class _Unset(enum.Enum):
    UNSET = "UNSET"


# Marker for "attachment not mentioned in this update"
UNSET = _Unset.UNSET

AttachmentChange = Union[Attachment, None, _Unset]

ATTACHMENT_IN_USE_MESSAGE = "This attachment is already linked to another note."


def to_response(note: Note) -> NoteResponse:
    attachment = note.attachment
    return NoteResponse(
        id=note.id,
        workspace_id=note.workspace_id,
        text=note.text,
        attachment=AttachmentSchema.model_validate(attachment) if attachment else None,
        created_at=note.created_at,
        updated_at=note.updated_at,
    )


class NoteService:
    """
    Business logic layer for note operations.

    Responsibilities:
        - list_for_caller(): scoped listing, newest first
        - create() / update() / delete(): owner-only mutations
        - generate_upload_url() / get_file_url(): blob store pass-throughs
    """

    def __init__(self, blobs: BlobStore):
        self.blobs = blobs

    @property
    def workspace_scoped(self) -> bool:
        return settings.note_scope == NOTE_SCOPE_WORKSPACE

    def _check_mime_type(self, attachment: Attachment) -> None:
        if attachment.mime_type not in ALLOWED_MIME_TYPES:
            raise ValidationError(
                message=f"Attachment type '{attachment.mime_type}' is not supported.",
                field="attachment.mime_type",
                context={"allowed": sorted(ALLOWED_MIME_TYPES)},
            )

    async def _validate_attachment(
        self,
        db: AsyncSession,
        caller_id: str,
        attachment: Attachment,
        note_id: Optional[UUID] = None,
    ) -> None:
        """
        Check that `attachment` may be linked to the caller's note `note_id`
        (None for a note being created).

        Raises:
            ValidationError: MIME type not allowed, or the blob was never uploaded
            ForbiddenError:  the blob was uploaded by someone else
            ConflictError:   another note already links this blob
        """
        self._check_mime_type(attachment)
        handle = attachment.blob_handle

        if not await self.blobs.exists(handle):
            raise ValidationError(
                message="Attachment upload was not found. Upload the file again.",
                field="attachment.blob_handle",
            )
        if await self.blobs.owner_of(handle) != caller_id:
            logger.warning("Blob %s is not owned by caller %s", handle, caller_id)
            raise ForbiddenError(resource="attachment", resource_id=handle)

        query = select(Note.id).where(Note.attachment_blob_handle == handle)
        if note_id is not None:
            query = query.where(Note.id != note_id)
        if (await db.execute(query.limit(1))).first() is not None:
            raise ConflictError(
                message=ATTACHMENT_IN_USE_MESSAGE,
                context={"blob_handle": handle},
            )

    async def _flush_attachment(self, db: AsyncSession, handle: Optional[str]) -> None:
        """Flush, turning a lost race on the unique attachment index into a 409."""
        try:
            await db.flush()
        except IntegrityError as e:
            logger.warning("Attachment %s linked concurrently to another note", handle)
            raise ConflictError(
                message=ATTACHMENT_IN_USE_MESSAGE,
                context={"blob_handle": handle},
            ) from e

    async def _load_owned_workspace(
        self, db: AsyncSession, caller_id: str, workspace_id: UUID
    ) -> Workspace:
        return assert_owner(
            await db.get(Workspace, workspace_id),
            caller_id,
            resource_name="workspace",
            resource_id=str(workspace_id),
        )

    async def _load_owned_note(self, db: AsyncSession, caller_id: str, note_id: UUID) -> Note:
        return assert_owner(
            await db.get(Note, note_id),
            caller_id,
            resource_name="note",
            resource_id=str(note_id),
        )

    # ── Queries ───────────────────────────────────────────────────────────

    async def list_for_caller(
        self,
        db: AsyncSession,
        caller_id: Optional[str],
        workspace_id: Optional[UUID] = None,
    ) -> List[NoteResponse]:
        """
        List the caller's notes, most recently created first.

        Signed-out callers get [] (not an error).

        Raises:
            ValidationError: workspace scope and no workspace_id
            DatabaseError:   query failed
        """
        if not caller_id:
            return []
        if self.workspace_scoped and workspace_id is None:
            raise ValidationError(message="workspace_id is required.", field="workspace_id")

        query = select(Note).where(Note.owner_user_id == caller_id)
        if self.workspace_scoped:
            query = query.where(Note.workspace_id == workspace_id)
        query = query.order_by(Note.created_at.desc(), Note.id)

        try:
            result = await db.execute(query)
        except SQLAlchemyError as e:
            logger.error("Database error listing notes: %s", str(e), exc_info=True)
            raise DatabaseError(
                message="Could not retrieve notes. Please try again.",
                context={"error_type": type(e).__name__},
            ) from e
        return [to_response(note) for note in result.scalars().all()]

    # ── Mutations ─────────────────────────────────────────────────────────

    async def create(
        self,
        db: AsyncSession,
        caller_id: Optional[str],
        text: str,
        workspace_id: Optional[UUID] = None,
        attachment: Optional[Attachment] = None,
    ) -> UUID:
        """
        Create a note owned by the caller.

        Raises:
            UnauthenticatedError: no caller
            ValidationError:      missing workspace_id (workspace scope) or bad attachment
            NotFoundError:        workspace_id does not resolve
            ForbiddenError:       workspace or attachment belongs to someone else
            ConflictError:        attachment is linked to another note
        """
        owner = require_caller(caller_id, "create a note")

        if workspace_id is None:
            if self.workspace_scoped:
                raise ValidationError(message="workspace_id is required.", field="workspace_id")
        else:
            await self._load_owned_workspace(db, owner, workspace_id)

        if attachment is not None:
            await self._validate_attachment(db, owner, attachment)

        note = Note(owner_user_id=owner, workspace_id=workspace_id, text=text)
        note.attachment = attachment
        db.add(note)
        await self._flush_attachment(db, attachment.blob_handle if attachment else None)

        logger.info(
            "Note created: %s (workspace=%s, attachment=%s)",
            note.id,
            workspace_id,
            attachment.blob_handle if attachment else None,
        )
        return note.id

    async def update(
        self,
        db: AsyncSession,
        caller_id: Optional[str],
        note_id: UUID,
        text: str,
        attachment: AttachmentChange = UNSET,
    ) -> None:
        """
        Replace a note's text and optionally change its attachment.

        The owner and workspace of a note never change here.

        Raises:
            UnauthenticatedError / NotFoundError / ForbiddenError
            ValidationError: new attachment invalid (a re-sent handle is still
                             checked for an allowed MIME type)
            ForbiddenError:  new attachment was uploaded by someone else
            ConflictError:   new attachment is linked to another note
            BlobStoreError:  old blob could not be deleted (note left unchanged)
        """
        owner = require_caller(caller_id, "update a note")
        note = await self._load_owned_note(db, owner, note_id)
        current = note.attachment

        if attachment is not UNSET:
            new_handle = attachment.blob_handle if attachment is not None else None
            old_handle = current.blob_handle if current is not None else None

            if attachment is not None:
                if new_handle == old_handle:
                    # Same blob: only the metadata changes
                    self._check_mime_type(attachment)
                else:
                    await self._validate_attachment(db, owner, attachment, note_id=note.id)

            if old_handle is not None and old_handle != new_handle:
                await self.blobs.delete(old_handle)
                logger.info("Note %s: attachment %s released", note_id, old_handle)

            note.attachment = attachment

        note.text = text
        linked = note.attachment
        await self._flush_attachment(db, linked.blob_handle if linked else None)
        logger.info("Note %s updated", note_id)

    async def delete(self, db: AsyncSession, caller_id: Optional[str], note_id: UUID) -> None:
        """
        Delete a note and its attachment blob.

        Raises:
            UnauthenticatedError / NotFoundError / ForbiddenError
            BlobStoreError: blob could not be deleted (note kept)
        """
        owner = require_caller(caller_id, "delete a note")
        note = await self._load_owned_note(db, owner, note_id)

        attachment = note.attachment
        if attachment is not None:
            await self.blobs.delete(attachment.blob_handle)

        await db.delete(note)
        await db.flush()
        logger.info("Note %s deleted", note_id)

    # ── Blob pass-throughs ────────────────────────────────────────────────

    async def generate_upload_url(self, caller_id: Optional[str]) -> UploadTicket:
        owner = require_caller(caller_id, "upload a file")
        return await self.blobs.generate_upload_url(owner)

    async def get_file_url(self, handle: str) -> Optional[str]:
        return await self.blobs.get_url(handle)


# ── Singleton Instance ────────────────────────────────────────────────────
note_service = NoteService(blob_store)
