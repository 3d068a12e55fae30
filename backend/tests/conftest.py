"""
Notespace Backend — Test Configuration (conftest.py)
======================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Real SQLAlchemy sessions on in-memory SQLite (aiosqlite), a fake
       blob store that records deletions, and an HTTPX client bound to the
       ASGI app with dependencies overridden.

Fixture Hierarchy (all function-scoped):
    ├── db_engine:  fresh in-memory database with the schema created
    ├── db_session: AsyncSession on db_engine
    ├── fake_blobs: FakeBlobStore
    ├── workspace_service / note_service: services wired to fake_blobs
    ├── local_blobs: LocalBlobStore in a temp directory
    └── test_client: HTTPX AsyncClient with DB and services overridden
"""

import os
import tempfile

# Override settings for testing BEFORE any app imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///./test.db"
os.environ["JWT_SECRET"] = "test-secret-that-is-at-least-32-characters-long"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="notespace_test_")
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["RATE_LIMIT_REQUESTS"] = "10000"
os.environ["PUBLIC_BASE_URL"] = "http://test"

import uuid
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Set

import jwt
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

import app.models  # noqa: F401
from app.database import Base, build_engine, get_db_session
from app.exceptions import BlobStoreError
from app.services.blob_store import BlobStore, LocalBlobStore, UploadTicket
from app.services.note_service import NoteService
from app.services.workspace_service import WorkspaceService

TEST_JWT_SECRET = os.environ["JWT_SECRET"]

ALICE = "user_alice"
BOB = "user_bob"

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32
PDF_BYTES = b"%PDF-1.7\n%\xe2\xe3\xcf\xd3\n" + b"0" * 32


# ══════════════════════════════════════════════════════════════════════════
# Helpers
# ══════════════════════════════════════════════════════════════════════════

def make_token(sub: str, secret: str = TEST_JWT_SECRET, expires_in: int = 3600, **claims) -> str:
    payload = {
        "sub": sub,
        "exp": datetime.now(timezone.utc) + timedelta(seconds=expires_in),
        **claims,
    }
    return jwt.encode(payload, secret, algorithm="HS256")


def auth_headers(sub: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {make_token(sub)}"}


class FakeBlobStore(BlobStore):
    """
    In-memory BlobStore.

    `fail_on` makes delete() raise BlobStoreError for the listed handles;
    every successful deletion is appended to `deleted`. `owners` records
    the uploader of each stored handle.
    """

    def __init__(self):
        self.stored: Dict[str, str] = {}
        self.owners: Dict[str, str] = {}
        self.deleted: List[str] = []
        self.fail_on: Set[str] = set()

    def put(self, mime_type: str = "image/png", owner: str = ALICE) -> str:
        handle = uuid.uuid4().hex
        self.stored[handle] = mime_type
        self.owners[handle] = owner
        return handle

    async def generate_upload_url(self, owner_user_id: str) -> UploadTicket:
        handle = uuid.uuid4().hex
        return UploadTicket(
            upload_url=f"http://blobs.test/upload/{handle}",
            blob_handle=handle,
            expires_at=datetime.now(timezone.utc) + timedelta(hours=1),
        )

    async def exists(self, handle: str) -> bool:
        return handle in self.stored

    async def owner_of(self, handle: str):
        return self.owners.get(handle)

    async def get_url(self, handle: str):
        if handle not in self.stored:
            return None
        return f"http://blobs.test/{handle}"

    async def delete(self, handle: str) -> None:
        if handle in self.fail_on:
            raise BlobStoreError(context={"blob_handle": handle})
        self.stored.pop(handle, None)
        self.owners.pop(handle, None)
        self.deleted.append(handle)


# ══════════════════════════════════════════════════════════════════════════
# Database
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def db_engine():
    engine = build_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine):
    factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session


# ══════════════════════════════════════════════════════════════════════════
# Services
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def fake_blobs():
    return FakeBlobStore()


@pytest.fixture
def workspace_service(fake_blobs):
    return WorkspaceService(fake_blobs)


@pytest.fixture
def note_service(fake_blobs):
    return NoteService(fake_blobs)


@pytest.fixture
def local_blobs(tmp_path):
    return LocalBlobStore(
        storage_root=str(tmp_path / "blobs"),
        signing_secret=TEST_JWT_SECRET,
        public_base_url="http://test",
    )


# ══════════════════════════════════════════════════════════════════════════
# HTTP
# ══════════════════════════════════════════════════════════════════════════

@pytest_asyncio.fixture
async def test_client(db_engine, fake_blobs, local_blobs):
    """
    HTTPX AsyncClient routed straight into the ASGI app.

    Workspaces use the fake blob store (so cascade deletes can be
    observed); notes and the blob routes share one LocalBlobStore so the
    full upload flow works end to end.
    """
    from app.main import app
    from app.routes.blobs import get_blob_store
    from app.routes.notes import get_note_service
    from app.routes.workspaces import get_workspace_service

    factory = async_sessionmaker(db_engine, class_=AsyncSession, expire_on_commit=False)

    async def override_db_session():
        async with factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    app.dependency_overrides[get_db_session] = override_db_session
    app.dependency_overrides[get_workspace_service] = lambda: WorkspaceService(fake_blobs)
    app.dependency_overrides[get_note_service] = lambda: NoteService(local_blobs)
    app.dependency_overrides[get_blob_store] = lambda: local_blobs

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()
