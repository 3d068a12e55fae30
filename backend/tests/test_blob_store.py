"""
Notespace Backend — Local Blob Store Tests
============================================

What:  Upload tokens, content validation, storage, URLs and deletion.
Why:   The upload URL is the only way bytes get in; it is a security boundary.
How:   A LocalBlobStore in pytest's tmp_path.

Test Strategy:
    - Content sniffing by magic bytes, never by the client's claim
    - Upload tokens: expiry, signature, purpose, subject, single use
    - The uploader is recorded and removed with the blob
    - Handles cannot escape the storage root
    - delete(): missing is fine, OS failures surface as BlobStoreError
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, patch
from urllib.parse import parse_qs, urlparse

import jwt
import pytest

from app.config import settings
from app.exceptions import BlobStoreError, ValidationError
from app.services.blob_store import (
    OWNER_SUFFIX,
    UPLOAD_TOKEN_PURPOSE,
    LocalBlobStore,
    detect_content_type,
    is_valid_handle,
)
from conftest import ALICE, BOB, PDF_BYTES, PNG_BYTES, TEST_JWT_SECRET, make_token


def token_from(upload_url: str) -> str:
    return parse_qs(urlparse(upload_url).query)["token"][0]


class TestDetectContentType:

    @pytest.mark.parametrize(
        "head, expected",
        [
            (PNG_BYTES, "image/png"),
            (b"\xff\xd8\xff\xe0\x00\x10JFIF", "image/jpeg"),
            (b"GIF89a\x01\x00", "image/gif"),
            (b"RIFF\x24\x00\x00\x00WEBPVP8 ", "image/webp"),
            (PDF_BYTES, "application/pdf"),
        ],
    )
    def test_allowed_types(self, head, expected):
        assert detect_content_type(head) == expected

    @pytest.mark.parametrize(
        "head",
        [b"MZ\x90\x00", b"RIFF\x24\x00\x00\x00WAVEfmt ", b"plain text", b""],
    )
    def test_everything_else_rejected(self, head):
        assert detect_content_type(head) is None


class TestHandles:

    def test_valid_handle(self):
        assert is_valid_handle("0123456789abcdef0123456789abcdef")

    @pytest.mark.parametrize("handle", ["../../etc/passwd", "ABCDEF", "", "0" * 33])
    def test_invalid_handles(self, handle):
        assert not is_valid_handle(handle)

    def test_resolve_path_rejects_traversal(self, local_blobs):
        with pytest.raises(ValidationError):
            local_blobs.resolve_path("../../etc/passwd")

    def test_resolve_path_is_sharded(self, local_blobs):
        handle = "3fa85f6457174562b3fc2c963f66afa6"
        assert local_blobs.resolve_path(handle) == local_blobs.storage_root / "3f" / handle


class TestUpload:

    @pytest.mark.asyncio
    async def test_round_trip(self, local_blobs):
        ticket = await local_blobs.generate_upload_url(ALICE)
        assert ticket.upload_url.startswith("http://test/api/blobs/upload?token=")

        stored = await local_blobs.accept_upload(token_from(ticket.upload_url), PNG_BYTES)

        assert stored.blob_handle == ticket.blob_handle
        assert stored.mime_type == "image/png"
        assert stored.size_bytes == len(PNG_BYTES)
        assert stored.owner_user_id == ALICE
        assert await local_blobs.exists(stored.blob_handle)
        assert await local_blobs.get_url(stored.blob_handle) == f"http://test/api/blobs/{stored.blob_handle}"
        assert await local_blobs.read_head(stored.blob_handle, 8) == PNG_BYTES[:8]

    @pytest.mark.asyncio
    async def test_trailing_slash_in_base_url_is_dropped(self, tmp_path):
        store = LocalBlobStore(
            storage_root=str(tmp_path / "blobs"),
            signing_secret=TEST_JWT_SECRET,
            public_base_url="http://test/",
        )
        ticket = await store.generate_upload_url(ALICE)
        assert ticket.upload_url.startswith("http://test/api/blobs/upload?token=")

    @pytest.mark.asyncio
    async def test_upload_url_is_single_use(self, local_blobs):
        token = token_from((await local_blobs.generate_upload_url(ALICE)).upload_url)
        await local_blobs.accept_upload(token, PDF_BYTES)

        with pytest.raises(ValidationError, match="already been used"):
            await local_blobs.accept_upload(token, PNG_BYTES)

    @pytest.mark.asyncio
    async def test_expired_token(self, local_blobs):
        token = jwt.encode(
            {
                "purpose": UPLOAD_TOKEN_PURPOSE,
                "sub": ALICE,
                "blob": "0123456789abcdef0123456789abcdef",
                "exp": datetime.now(timezone.utc) - timedelta(minutes=5),
            },
            TEST_JWT_SECRET,
            algorithm="HS256",
        )
        with pytest.raises(ValidationError, match="expired"):
            await local_blobs.accept_upload(token, PNG_BYTES)

    @pytest.mark.asyncio
    async def test_identity_token_is_not_an_upload_token(self, local_blobs):
        with pytest.raises(ValidationError, match="not valid"):
            await local_blobs.accept_upload(make_token(ALICE), PNG_BYTES)

    @pytest.mark.asyncio
    async def test_token_signed_elsewhere(self, local_blobs):
        token = jwt.encode(
            {
                "purpose": UPLOAD_TOKEN_PURPOSE,
                "blob": "0123456789abcdef0123456789abcdef",
                "exp": datetime.now(timezone.utc) + timedelta(minutes=5),
            },
            "another-secret-that-is-also-32-characters",
            algorithm="HS256",
        )
        with pytest.raises(ValidationError, match="not valid"):
            await local_blobs.accept_upload(token, PNG_BYTES)

    @pytest.mark.asyncio
    async def test_token_without_subject(self, local_blobs):
        token = jwt.encode(
            {
                "purpose": UPLOAD_TOKEN_PURPOSE,
                "blob": "0123456789abcdef0123456789abcdef",
                "exp": datetime.now(timezone.utc) + timedelta(minutes=5),
            },
            TEST_JWT_SECRET,
            algorithm="HS256",
        )
        with pytest.raises(ValidationError, match="not valid"):
            await local_blobs.accept_upload(token, PNG_BYTES)
        assert not await local_blobs.exists("0123456789abcdef0123456789abcdef")

    @pytest.mark.asyncio
    async def test_rejected_content_does_not_consume_url(self, local_blobs):
        ticket = await local_blobs.generate_upload_url(ALICE)
        token = token_from(ticket.upload_url)

        with pytest.raises(ValidationError, match="not supported"):
            await local_blobs.accept_upload(token, b"MZ\x90\x00 definitely not an image")
        assert not await local_blobs.exists(ticket.blob_handle)

        await local_blobs.accept_upload(token, PNG_BYTES)
        assert await local_blobs.exists(ticket.blob_handle)


class TestOwnerRecord:

    @pytest.mark.asyncio
    async def test_uploader_is_recorded(self, local_blobs):
        ticket = await local_blobs.generate_upload_url(BOB)
        await local_blobs.accept_upload(token_from(ticket.upload_url), PNG_BYTES)

        assert await local_blobs.owner_of(ticket.blob_handle) == BOB

    @pytest.mark.asyncio
    async def test_unknown_or_malformed_handle_has_no_owner(self, local_blobs):
        assert await local_blobs.owner_of("0123456789abcdef0123456789abcdef") is None
        assert await local_blobs.owner_of("../../etc/passwd") is None

    @pytest.mark.asyncio
    async def test_delete_removes_owner_record(self, local_blobs):
        ticket = await local_blobs.generate_upload_url(ALICE)
        await local_blobs.accept_upload(token_from(ticket.upload_url), PNG_BYTES)
        record = local_blobs.resolve_path(ticket.blob_handle).with_name(
            ticket.blob_handle + OWNER_SUFFIX
        )
        assert record.is_file()

        await local_blobs.delete(ticket.blob_handle)

        assert not record.exists()
        assert await local_blobs.owner_of(ticket.blob_handle) is None


class TestValidateContent:

    def test_empty(self, local_blobs):
        with pytest.raises(ValidationError, match="empty"):
            local_blobs.validate_content(b"")

    def test_too_large(self, local_blobs, monkeypatch):
        monkeypatch.setattr(settings, "max_file_size", 64)
        with pytest.raises(ValidationError, match="exceeds maximum"):
            local_blobs.validate_content(PNG_BYTES + b"\x00" * 64)

    def test_sniffed_type_returned(self, local_blobs):
        assert local_blobs.validate_content(PDF_BYTES) == "application/pdf"

    def test_check_size_at_and_over_limit(self, local_blobs, monkeypatch):
        monkeypatch.setattr(settings, "max_file_size", 64)
        local_blobs.check_size(64)
        with pytest.raises(ValidationError, match="exceeds maximum"):
            local_blobs.check_size(65)


class TestDelete:

    @pytest.mark.asyncio
    async def test_delete_removes_file(self, local_blobs):
        ticket = await local_blobs.generate_upload_url(ALICE)
        await local_blobs.accept_upload(token_from(ticket.upload_url), PNG_BYTES)

        await local_blobs.delete(ticket.blob_handle)

        assert not await local_blobs.exists(ticket.blob_handle)
        assert await local_blobs.get_url(ticket.blob_handle) is None

    @pytest.mark.asyncio
    async def test_missing_blob_is_not_an_error(self, local_blobs):
        await local_blobs.delete("0123456789abcdef0123456789abcdef")

    @pytest.mark.asyncio
    async def test_os_failure_raises(self, local_blobs):
        with patch(
            "aiofiles.os.remove",
            AsyncMock(side_effect=PermissionError("read-only volume")),
        ):
            with pytest.raises(BlobStoreError):
                await local_blobs.delete("0123456789abcdef0123456789abcdef")
