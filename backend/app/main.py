"""
Notespace Backend — FastAPI Application Factory
=================================================

What:  Creates and configures the FastAPI application instance.
How:   Factory pattern: create_app() returns a configured FastAPI instance.
Who:   Called by uvicorn (uvicorn app.main:app).

Application Architecture:
    ┌─────────────────────────────────────────────────────┐
    │                   FastAPI App                       │
    │                                                     │
    │  Middleware Chain:                                  │
    │  ┌──────────────┐ ┌──────────┐ ┌─────────────────┐  │
    │  │  Rate Limit  │→│ Req ID   │→│  Logging        │  │
    │  └──────────────┘ └──────────┘ └─────────────────┘  │
    │                                                     │
    │  Routes:                                            │
    │  ┌────────────────┐ ┌────────────┐ ┌─────────────┐  │
    │  │ /api/workspaces│ │ /api/notes │ │ /api/blobs  │  │
    │  └────────────────┘ └────────────┘ └─────────────┘  │
    │                                   ┌─────────────┐   │
    │                                   │ GET /health │   │
    │                                   └─────────────┘   │
    │  Exception Handlers:                                │
    │  ┌──────────────────────────────────────────────┐   │
    │  │ 400 │ 401 │ 403 │ 404 │ 409 │ 429 │ 500      │   │
    │  └──────────────────────────────────────────────┘   │
    └─────────────────────────────────────────────────────┘

Lifecycle:
    Startup:  logging → config validation → storage directory
    Shutdown: dispose database engine
"""

import logging
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from app import __version__
from app.config import settings
from app.database import dispose_engine
from app.exceptions import (
    BlobStoreError,
    ConflictError,
    DatabaseError,
    ForbiddenError,
    NotespaceError,
    NotFoundError,
    RateLimitExceededError,
    UnauthenticatedError,
    ValidationError,
)
from app.middleware.logging import RequestLoggingMiddleware
from app.middleware.rate_limit import RateLimitMiddleware
from app.middleware.request_id import RequestIDLogFilter, RequestIDMiddleware, request_id_var
from app.routes import blobs, health, notes, workspaces

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Structured Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure root logging once at startup.

    Format: %(asctime)s [%(levelname)s] %(name)s [%(request_id)s] %(message)s

    RequestIDLogFilter sits on the handler so every record, including
    those from third-party loggers, has a request_id attribute.
    """
    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestIDLogFilter())

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s [%(request_id)s] %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[handler],
        force=True,
    )

    # Per-request noise from these is covered by notespace.access
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("Notespace Backend %s starting up...", __version__)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Keep serving so /health can report; identity tokens will not verify
        logger.error("Configuration error: %s", str(e))

    storage = Path(settings.storage_root)
    storage.mkdir(parents=True, exist_ok=True)
    logger.info("Storage directory: %s", storage.resolve())
    logger.info("Note scope: %s", settings.note_scope)
    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Notespace Backend shutting down...")
    await dispose_engine()
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_body(code: str, exc: NotespaceError, include_details: bool = True) -> dict:
    body = {
        "error": code,
        "message": exc.message,
        "request_id": request_id_var.get(""),
    }
    if include_details and exc.context:
        body["details"] = exc.context
    return body


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map the exception hierarchy onto HTTP responses.

    Handler hierarchy:
        ValidationError         → 400
        UnauthenticatedError    → 401
        ForbiddenError          → 403
        NotFoundError           → 404
        ConflictError           → 409
        RateLimitExceededError  → 429 (+ Retry-After)
        BlobStoreError          → 500
        DatabaseError           → 500 (generic message)
        NotespaceError (base)   → 500
        Exception (fallback)    → 500

    5xx responses never carry context; it is logged instead.
    """

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("Validation error: %s", exc.message)
        return JSONResponse(status_code=400, content=_error_body("validation_error", exc))

    @app.exception_handler(UnauthenticatedError)
    async def handle_unauthenticated(request: Request, exc: UnauthenticatedError):
        return JSONResponse(
            status_code=401,
            content=_error_body("unauthenticated", exc),
            headers={"WWW-Authenticate": "Bearer"},
        )

    @app.exception_handler(ForbiddenError)
    async def handle_forbidden(request: Request, exc: ForbiddenError):
        return JSONResponse(status_code=403, content=_error_body("forbidden", exc))

    @app.exception_handler(NotFoundError)
    async def handle_not_found(request: Request, exc: NotFoundError):
        return JSONResponse(status_code=404, content=_error_body("not_found", exc))

    @app.exception_handler(ConflictError)
    async def handle_conflict(request: Request, exc: ConflictError):
        logger.warning("Conflict: %s | Context: %s", exc.message, exc.context)
        return JSONResponse(status_code=409, content=_error_body("conflict", exc))

    @app.exception_handler(RateLimitExceededError)
    async def handle_rate_limit(request: Request, exc: RateLimitExceededError):
        return JSONResponse(
            status_code=429,
            content=_error_body("rate_limit_exceeded", exc),
            headers={"Retry-After": str(exc.retry_after)},
        )

    @app.exception_handler(BlobStoreError)
    async def handle_blob_store_error(request: Request, exc: BlobStoreError):
        logger.error("Blob store error: %s | Context: %s", exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content=_error_body("storage_error", exc, include_details=False),
        )

    @app.exception_handler(DatabaseError)
    async def handle_database_error(request: Request, exc: DatabaseError):
        logger.error("Database error: %s | Context: %s", exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content={
                "error": "server_error",
                "message": "An internal error occurred. Please try again later.",
                "request_id": request_id_var.get(""),
            },
        )

    @app.exception_handler(NotespaceError)
    async def handle_notespace_error(request: Request, exc: NotespaceError):
        logger.error("Unhandled application error: %s | Context: %s", exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content=_error_body("server_error", exc, include_details=False),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error("Unexpected error: %s", str(exc), exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred. Please try again or contact support.",
                "request_id": request_id_var.get(""),
            },
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="Notespace API",
        description=(
            "Multi-user notes backend: workspaces with unique URL paths, notes "
            "with an optional image or PDF attachment, and owner-only mutations."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first: RateLimit → RequestID → Logging → GZip → CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "Retry-After"],
    )
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.add_middleware(RateLimitMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(workspaces.router)
    app.include_router(notes.router)
    app.include_router(blobs.router)
    app.include_router(health.router)

    return app


# ── Application Instance ─────────────────────────────────────────────────
app = create_app()
