"""
Notespace Backend — Blob Store
================================

What:  Stores note attachments (images and PDFs) behind opaque handles.
Why:   Notes reference files by handle only; the store owns the bytes, the
       upload protocol, and the URLs clients fetch them from.
How:   BlobStore is the interface services depend on. LocalBlobStore keeps
       files on the local volume with async I/O (aiofiles).
Who:   NoteService and WorkspaceService (delete, exists, URLs);
       routes/blobs.py (upload and download).

Upload Protocol (two steps, mirrors managed blob stores):
    1. Client asks for an upload URL → generate_upload_url(caller)
       The URL carries a signed token bound to a freshly minted handle.
    2. Client POSTs raw bytes to that URL → accept_upload(token, content)
       Bytes are validated and written; the handle is returned.
    3. Client passes the handle to notes.add / notes.update.

    An upload URL works once: writing to a handle that already exists is
    rejected, so the same token cannot overwrite a stored file.

Security Model:
    1. Size check:        Rejects empty and oversized bodies
    2. Magic-byte check:  Content type is sniffed, not taken from headers
    3. Opaque handles:    UUID4 hex; validated before touching the disk,
                          so a handle can never traverse out of the root
    4. Uploader record:   The token's subject is stored beside the blob;
                          only that user may attach it to a note
"""

import logging
import re
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional, Tuple

import aiofiles
import aiofiles.os
import jwt
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError

from app.config import settings
from app.exceptions import BlobStoreError, ValidationError

logger = logging.getLogger(__name__)

# ── Allowed Attachment Types ──────────────────────────────────────────────
# Magic-byte prefixes for every MIME type a note may carry.
# WebP is RIFF....WEBP; the RIFF prefix is narrowed in detect_content_type().
MAGIC_PREFIXES = (
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
    (b"%PDF-", "application/pdf"),
)

ALLOWED_MIME_TYPES = frozenset(
    {"image/png", "image/jpeg", "image/gif", "image/webp", "application/pdf"}
)

UPLOAD_TOKEN_PURPOSE = "upload"

# Sidecar file holding the uploader's user id, next to the blob
OWNER_SUFFIX = ".owner"

_HANDLE_RE = re.compile(r"^[0-9a-f]{32}$")


def detect_content_type(head: bytes) -> Optional[str]:
    """
    Identify an allowed file type from its first bytes.

    Returns None for anything that is not a supported image or a PDF.
    """
    for prefix, mime_type in MAGIC_PREFIXES:
        if head.startswith(prefix):
            return mime_type
    if head[:4] == b"RIFF" and head[8:12] == b"WEBP":
        return "image/webp"
    return None


def is_valid_handle(handle: str) -> bool:
    return bool(_HANDLE_RE.match(handle or ""))


@dataclass(frozen=True)
class UploadTicket:
    """A one-time upload URL and the handle the upload will be stored under."""

    upload_url: str
    blob_handle: str
    expires_at: datetime


@dataclass(frozen=True)
class StoredBlob:
    blob_handle: str
    mime_type: str
    size_bytes: int
    owner_user_id: str


class BlobStore(ABC):
    """
    Contract services rely on.

    delete() must raise BlobStoreError on failure; a missing handle is
    not a failure.
    """

    @abstractmethod
    async def generate_upload_url(self, owner_user_id: str) -> UploadTicket:
        ...

    @abstractmethod
    async def exists(self, handle: str) -> bool:
        ...

    @abstractmethod
    async def owner_of(self, handle: str) -> Optional[str]:
        """User id the blob was uploaded by, or None when unknown."""
        ...

    @abstractmethod
    async def get_url(self, handle: str) -> Optional[str]:
        """Download URL for `handle`, or None when nothing is stored there."""
        ...

    @abstractmethod
    async def delete(self, handle: str) -> None:
        ...


class LocalBlobStore(BlobStore):
    """
    Filesystem-backed blob store.

    Directory Structure (sharded by the first two hex chars of the handle):
        storage/
        └── 3f/
            ├── 3fa85f6457174562b3fc2c963f66afa6
            └── 3fa85f6457174562b3fc2c963f66afa6.owner
    """

    def __init__(
        self,
        storage_root: Optional[str] = None,
        signing_secret: Optional[str] = None,
        public_base_url: Optional[str] = None,
    ):
        """
        Args:
            storage_root: Override settings.storage_root (used in tests).
            signing_secret: Override the upload-token secret (defaults to JWT_SECRET).
            public_base_url: Override the URL prefix handed to clients.
        """
        self.storage_root = Path(storage_root or settings.storage_root).resolve()
        self.storage_root.mkdir(parents=True, exist_ok=True)
        self._secret = signing_secret or settings.jwt_secret
        self._base_url = (public_base_url or settings.public_base_url).rstrip("/")
        logger.info("LocalBlobStore initialized with storage_root=%s", self.storage_root)

    # ── Paths ─────────────────────────────────────────────────────────────

    def resolve_path(self, handle: str) -> Path:
        """
        Absolute path for a handle.

        Raises:
            ValidationError: handle is not a 32-char lowercase hex string
        """
        if not is_valid_handle(handle):
            raise ValidationError(
                message="Invalid blob handle.",
                field="blob_handle",
            )
        return self.storage_root / handle[:2] / handle

    def _owner_path(self, handle: str) -> Path:
        return self.resolve_path(handle).with_name(handle + OWNER_SUFFIX)

    # ── Upload URLs ───────────────────────────────────────────────────────

    async def generate_upload_url(self, owner_user_id: str) -> UploadTicket:
        handle = uuid.uuid4().hex
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=settings.upload_url_ttl)
        token = jwt.encode(
            {
                "purpose": UPLOAD_TOKEN_PURPOSE,
                "sub": owner_user_id,
                "blob": handle,
                "exp": expires_at,
            },
            self._secret,
            algorithm="HS256",
        )
        logger.info("Issued upload URL for blob %s (owner=%s)", handle, owner_user_id)
        return UploadTicket(
            upload_url=f"{self._base_url}/api/blobs/upload?token={token}",
            blob_handle=handle,
            expires_at=expires_at,
        )

    def _decode_upload_token(self, token: str) -> Tuple[str, str]:
        """Returns (handle, uploader user id) from a valid upload token."""
        try:
            claims = jwt.decode(
                token,
                self._secret,
                algorithms=["HS256"],
                options={"require": ["exp", "blob", "purpose", "sub"]},
            )
        except ExpiredSignatureError as e:
            raise ValidationError(message="Upload URL has expired.", field="token") from e
        except InvalidTokenError as e:
            raise ValidationError(message="Upload URL is not valid.", field="token") from e

        if (
            claims.get("purpose") != UPLOAD_TOKEN_PURPOSE
            or not is_valid_handle(claims["blob"])
            or not claims["sub"]
        ):
            raise ValidationError(message="Upload URL is not valid.", field="token")
        return claims["blob"], claims["sub"]

    # ── Validation ────────────────────────────────────────────────────────

    def check_size(self, size: int) -> None:
        """
        Raises:
            ValidationError: `size` is over settings.max_file_size

        The upload route calls this on Content-Length and while the body
        streams in, so oversized uploads stop before they are buffered.
        """
        if size > settings.max_file_size:
            max_mb = settings.max_file_size / (1024 * 1024)
            raise ValidationError(
                message=f"File size ({size / (1024 * 1024):.1f}MB) exceeds maximum of {max_mb:.0f}MB.",
                field="file",
                context={"max_size_mb": max_mb, "actual_size": size},
            )

    def validate_content(self, content: bytes) -> str:
        """
        Check size and sniff the content type.

        Returns:
            Detected MIME type

        Raises:
            ValidationError: empty, oversized, or not an allowed type
        """
        if not content:
            raise ValidationError(message="Uploaded file is empty.", field="file")
        self.check_size(len(content))

        mime_type = detect_content_type(content[:16])
        if mime_type is None:
            raise ValidationError(
                message="File type is not supported. Attach an image (PNG, JPEG, GIF, WebP) or a PDF.",
                field="file",
                context={"allowed": sorted(ALLOWED_MIME_TYPES)},
            )
        return mime_type

    # ── Operations ────────────────────────────────────────────────────────

    async def accept_upload(self, token: str, content: bytes) -> StoredBlob:
        """
        Store the body of an upload-URL request.

        Raises:
            ValidationError: bad/expired token, URL already used, bad content
            BlobStoreError:  the file could not be written
        """
        handle, owner = self._decode_upload_token(token)
        mime_type = self.validate_content(content)
        path = self.resolve_path(handle)

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            # "x": fail if the handle was already written (one-time URL).
            # The owner record goes first so a stored blob always has one.
            async with aiofiles.open(self._owner_path(handle), "x", encoding="utf-8") as f:
                await f.write(owner)
            async with aiofiles.open(path, "xb") as f:
                await f.write(content)
        except FileExistsError as e:
            raise ValidationError(
                message="This upload URL has already been used.",
                field="token",
            ) from e
        except OSError as e:
            logger.error("Failed to store blob %s: %s", handle, str(e))
            raise BlobStoreError(
                message="Failed to save uploaded file. Please try again.",
                context={"blob_handle": handle, "os_error": str(e)},
            ) from e

        logger.info(
            "Blob stored: %s (%s, %d bytes, owner=%s)", handle, mime_type, len(content), owner
        )
        return StoredBlob(
            blob_handle=handle,
            mime_type=mime_type,
            size_bytes=len(content),
            owner_user_id=owner,
        )

    async def exists(self, handle: str) -> bool:
        if not is_valid_handle(handle):
            return False
        return await aiofiles.os.path.isfile(self.resolve_path(handle))

    async def owner_of(self, handle: str) -> Optional[str]:
        if not is_valid_handle(handle):
            return None
        try:
            async with aiofiles.open(self._owner_path(handle), "r", encoding="utf-8") as f:
                return (await f.read()) or None
        except FileNotFoundError:
            return None

    async def get_url(self, handle: str) -> Optional[str]:
        if not await self.exists(handle):
            return None
        return f"{self._base_url}/api/blobs/{handle}"

    async def read_head(self, handle: str, size: int = 16) -> bytes:
        async with aiofiles.open(self.resolve_path(handle), "rb") as f:
            return await f.read(size)

    async def delete(self, handle: str) -> None:
        """
        Remove a blob.

        Missing handles are ignored. Any other OS error propagates as
        BlobStoreError; unlike upload cleanup, attachment deletion is part
        of the caller's operation and must not fail silently.
        """
        if not is_valid_handle(handle):
            logger.warning("Ignoring delete of malformed blob handle %r", handle)
            return
        path = self.resolve_path(handle)
        try:
            await aiofiles.os.remove(path)
            logger.info("Deleted blob: %s", handle)
        except FileNotFoundError:
            logger.debug("Blob already gone: %s", handle)
        except OSError as e:
            logger.error("Failed to delete blob %s: %s", handle, str(e))
            raise BlobStoreError(
                message="Failed to delete an attached file.",
                context={"blob_handle": handle, "os_error": str(e)},
            ) from e

        # Orphaned owner records are harmless: owner_of() is only consulted
        # for handles whose blob exists
        try:
            await aiofiles.os.remove(self._owner_path(handle))
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning("Owner record for blob %s left behind: %s", handle, str(e))


# ── Singleton Instance ────────────────────────────────────────────────────
blob_store = LocalBlobStore()
