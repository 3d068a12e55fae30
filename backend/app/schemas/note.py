"""
Notespace Backend — Note Request/Response Schemas
===================================================

What:  Pydantic models defining the note API contract.
Why:   Strict input validation, automatic serialization, and OpenAPI docs.

Attachment modeling:
    The attachment travels as ONE optional object, never as three loose
    fields. A body that omits `attachment` leaves the stored attachment
    alone; `"attachment": null` removes it; an object replaces it. Because
    every field of AttachmentSchema is required, a partial attachment is
    rejected by validation before it reaches the service.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from app.models.note import Attachment


class AttachmentSchema(BaseModel):
    """A blob previously uploaded through an upload URL."""
    blob_handle: str = Field(min_length=1, max_length=64, description="Opaque blob store handle")
    file_name: str = Field(min_length=1, max_length=255, description="Original file name")
    mime_type: str = Field(min_length=1, max_length=100, description="e.g. image/png, application/pdf")

    model_config = {"from_attributes": True}

    def to_domain(self) -> Attachment:
        return Attachment(
            blob_handle=self.blob_handle,
            file_name=self.file_name,
            mime_type=self.mime_type,
        )


class NoteCreate(BaseModel):
    """Body of POST /api/notes."""
    text: str = Field(default="", description="Note text; may be empty")
    workspace_id: Optional[uuid.UUID] = Field(
        default=None,
        description="Required when the deployment scopes notes per workspace",
    )
    attachment: Optional[AttachmentSchema] = None


class NoteUpdate(BaseModel):
    """
    Body of PATCH /api/notes/{id}.

    `attachment` semantics depend on presence, not just value (see the
    module docstring). Routes inspect `model_fields_set` to tell them apart.
    """
    text: str = Field(description="Replacement note text")
    attachment: Optional[AttachmentSchema] = None


class NoteResponse(BaseModel):
    """
    What:  Full representation of a note for its owner.
    Who:   Returned by GET /api/notes as array items.
    """
    id: uuid.UUID
    workspace_id: Optional[uuid.UUID] = None
    text: str
    attachment: Optional[AttachmentSchema] = None
    created_at: datetime
    updated_at: datetime


class UploadUrlResponse(BaseModel):
    """One-time URL the client POSTs raw file bytes to."""
    upload_url: str = Field(description="Single-use upload URL")
    expires_at: datetime = Field(description="When the URL stops being accepted (UTC)")


class FileUrlResponse(BaseModel):
    """Resolved download URL; null when the handle is unknown."""
    url: Optional[str] = None


class BlobUploadResponse(BaseModel):
    """Returned by the upload URL; pass `blob_handle` to notes.add/update."""
    blob_handle: str
    mime_type: str
    size_bytes: int
