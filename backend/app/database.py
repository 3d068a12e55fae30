"""
Notespace Backend — Database Session Management
=================================================

What:  Async SQLAlchemy engine, session factory, and FastAPI dependency.
Why:   Centralizes all database connection logic in one place.
How:   Creates an async engine with connection pooling, provides a session
       dependency that auto-commits on success and auto-rolls-back on error.
Who:   Used by route handlers via FastAPI's dependency injection system.
When:  Engine is created at module import; sessions are created per-request.

Transaction model:
    One session = one transaction = one request. Every workspace/note
    mutation therefore commits atomically, including the record deletions
    of a workspace cascade. Blob store side effects are NOT part of the
    transaction and are not undone by a rollback.
"""

from typing import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from app.config import settings


def build_engine(database_url: str, echo: bool = False) -> AsyncEngine:
    """
    Create an async engine for the given URL.

    PostgreSQL gets the configured connection pool. SQLite (tests, local
    experiments) has no server-side pool to size; in-memory SQLite must
    share one connection or every session would see an empty database.
    """
    if database_url.startswith("sqlite"):
        if ":memory:" in database_url:
            return create_async_engine(database_url, echo=echo, poolclass=StaticPool)
        return create_async_engine(database_url, echo=echo)

    return create_async_engine(
        database_url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_pre_ping=settings.db_pool_pre_ping,
        pool_recycle=3600,  # Recycle after 1 hour to prevent stale connections
        echo=echo,
    )


# ── Engine Configuration ──────────────────────────────────────────────────
engine = build_engine(settings.database_url, echo=settings.log_level == "DEBUG")

# ── Session Factory ───────────────────────────────────────────────────────
# expire_on_commit=False: attributes stay readable after commit
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """
    Base class for all SQLAlchemy ORM models.

    Shares a single metadata object that Alembic reads for migrations.
    """
    pass


# ── Session Dependency ────────────────────────────────────────────────────
async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that provides a database session per request.

    How it works:
        1. Creates a new session from the factory
        2. Yields it to the route handler
        3. On success: commits the transaction
        4. On error: rolls back the transaction and re-raises
        5. Always: closes the session (returns connection to pool)
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── Lifecycle Helpers ─────────────────────────────────────────────────────
async def dispose_engine() -> None:
    """Gracefully closes all connections in the pool (application shutdown)."""
    await engine.dispose()
