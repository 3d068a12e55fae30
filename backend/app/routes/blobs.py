"""
Notespace Backend — Blob Upload/Download Routes
=================================================

What:  The URLs handed out by the blob store.
Why:   Clients upload attachment bytes directly, then reference the
       returned handle when creating or updating a note.

Endpoints:
    POST /api/blobs/upload?token=   → raw request body stored under the
                                      token's handle (one use per token)
    GET  /api/blobs/{handle}        → file bytes

Upload bodies over MAX_FILE_SIZE are refused as soon as the limit is
passed; the full body is never buffered first.

Download URLs are capability URLs: the handle is an unguessable UUID4 and
is only ever returned to the note's owner.
"""

import logging

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import FileResponse

from app.exceptions import NotFoundError
from app.schemas.common import ErrorResponse
from app.schemas.note import BlobUploadResponse
from app.services.blob_store import (
    LocalBlobStore,
    blob_store,
    detect_content_type,
    is_valid_handle,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/blobs", tags=["Blobs"])


def get_blob_store() -> LocalBlobStore:
    return blob_store


async def read_capped_body(request: Request, store: LocalBlobStore) -> bytes:
    """
    Read the request body, stopping as soon as it passes max_file_size.

    A declared Content-Length over the limit is rejected before any byte
    is read; chunked bodies are counted as they stream in.

    Raises:
        ValidationError: body is (or claims to be) over the limit
    """
    declared = request.headers.get("content-length")
    if declared is not None and declared.isdigit():
        store.check_size(int(declared))

    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        store.check_size(len(body))
    return bytes(body)


@router.post(
    "/upload",
    response_model=BlobUploadResponse,
    status_code=201,
    responses={
        400: {"description": "Bad token or unsupported file", "model": ErrorResponse},
        500: {"description": "Storage failure", "model": ErrorResponse},
    },
    summary="Upload attachment bytes to a one-time upload URL",
)
async def upload_blob(
    request: Request,
    token: str = Query(min_length=1),
    store: LocalBlobStore = Depends(get_blob_store),
) -> BlobUploadResponse:
    content = await read_capped_body(request, store)
    stored = await store.accept_upload(token, content)
    return BlobUploadResponse(
        blob_handle=stored.blob_handle,
        mime_type=stored.mime_type,
        size_bytes=stored.size_bytes,
    )


@router.get(
    "/{handle}",
    responses={
        200: {"description": "Attachment bytes"},
        404: {"description": "Unknown handle", "model": ErrorResponse},
    },
    summary="Download an attachment",
)
async def download_blob(
    handle: str,
    store: LocalBlobStore = Depends(get_blob_store),
) -> FileResponse:
    if not is_valid_handle(handle) or not await store.exists(handle):
        raise NotFoundError(resource="file", resource_id=handle)

    media_type = detect_content_type(await store.read_head(handle)) or "application/octet-stream"
    return FileResponse(
        path=str(store.resolve_path(handle)),
        media_type=media_type,
        # Content behind a handle never changes
        headers={"Cache-Control": "private, max-age=86400"},
    )
