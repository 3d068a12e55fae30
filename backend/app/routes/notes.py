"""
Notespace Backend — Notes Route Handlers
==========================================

What:  HTTP surface of NoteService.
How:   Thin handlers: resolve the caller, call the service, shape the response.

Endpoints:
    GET    /api/notes?workspace_id=     → list, newest first
    POST   /api/notes                   → create, 201 {id}
    PATCH  /api/notes/{id}              → replace text / change attachment, 204
    DELETE /api/notes/{id}              → delete with attachment, 204
    POST   /api/notes/upload-url        → one-time upload URL
    GET    /api/notes/file-url?handle=  → download URL or null

PATCH attachment semantics:
    key absent         → attachment untouched
    "attachment": null → attachment removed
    "attachment": {..} → attachment replaced
"""

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth import get_caller_id
from app.database import get_db_session
from app.schemas.common import CreatedResponse, ErrorResponse
from app.schemas.note import (
    FileUrlResponse,
    NoteCreate,
    NoteResponse,
    NoteUpdate,
    UploadUrlResponse,
)
from app.services.note_service import UNSET, NoteService, note_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Notes"])


def get_note_service() -> NoteService:
    """Dependency hook; tests override it to inject a fake blob store."""
    return note_service


@router.get(
    "/notes",
    response_model=List[NoteResponse],
    responses={400: {"description": "workspace_id required", "model": ErrorResponse}},
    summary="List the caller's notes, newest first",
)
async def list_notes(
    response: Response,
    workspace_id: Optional[UUID] = Query(default=None),
    caller_id: Optional[str] = Depends(get_caller_id),
    db: AsyncSession = Depends(get_db_session),
    service: NoteService = Depends(get_note_service),
) -> List[NoteResponse]:
    notes = await service.list_for_caller(db, caller_id, workspace_id)
    # Per-user data; shared caches must not keep it
    response.headers["Cache-Control"] = "private, no-store"
    return notes


@router.post(
    "/notes",
    response_model=CreatedResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
    summary="Create a note",
)
async def create_note(
    body: NoteCreate,
    caller_id: Optional[str] = Depends(get_caller_id),
    db: AsyncSession = Depends(get_db_session),
    service: NoteService = Depends(get_note_service),
) -> CreatedResponse:
    note_id = await service.create(
        db,
        caller_id,
        text=body.text,
        workspace_id=body.workspace_id,
        attachment=body.attachment.to_domain() if body.attachment else None,
    )
    return CreatedResponse(id=note_id)


@router.post(
    "/notes/upload-url",
    response_model=UploadUrlResponse,
    responses={401: {"model": ErrorResponse}},
    summary="Get a one-time URL for uploading an attachment",
)
async def generate_upload_url(
    caller_id: Optional[str] = Depends(get_caller_id),
    service: NoteService = Depends(get_note_service),
) -> UploadUrlResponse:
    ticket = await service.generate_upload_url(caller_id)
    return UploadUrlResponse(upload_url=ticket.upload_url, expires_at=ticket.expires_at)


@router.get(
    "/notes/file-url",
    response_model=FileUrlResponse,
    summary="Resolve an attachment handle to a download URL",
)
async def get_file_url(
    handle: str = Query(min_length=1, max_length=64),
    service: NoteService = Depends(get_note_service),
) -> FileUrlResponse:
    return FileUrlResponse(url=await service.get_file_url(handle))


@router.patch(
    "/notes/{note_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
    summary="Replace a note's text and optionally its attachment",
)
async def update_note(
    note_id: UUID,
    body: NoteUpdate,
    caller_id: Optional[str] = Depends(get_caller_id),
    db: AsyncSession = Depends(get_db_session),
    service: NoteService = Depends(get_note_service),
) -> Response:
    if "attachment" not in body.model_fields_set:
        attachment = UNSET
    elif body.attachment is None:
        attachment = None
    else:
        attachment = body.attachment.to_domain()

    await service.update(db, caller_id, note_id, text=body.text, attachment=attachment)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete(
    "/notes/{note_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
    summary="Delete a note and its attachment",
)
async def delete_note(
    note_id: UUID,
    caller_id: Optional[str] = Depends(get_caller_id),
    db: AsyncSession = Depends(get_db_session),
    service: NoteService = Depends(get_note_service),
) -> Response:
    await service.delete(db, caller_id, note_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
