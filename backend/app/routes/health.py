"""
Notespace Backend — Health Check Route
========================================

What:  Liveness/readiness check for Docker and load balancers.
How:   SELECT 1 against the database and a test write in the storage root.

Status levels:
    healthy:   database and blob storage both usable
    unhealthy: either one is not (HTTP 503)
"""

import logging
import time
import uuid

import aiofiles
import aiofiles.os
from fastapi import APIRouter, Response
from sqlalchemy import text

from app import __version__
from app.database import engine
from app.schemas.common import HealthResponse
from app.services.blob_store import blob_store

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


async def _storage_writable() -> bool:
    marker = blob_store.storage_root / f".health-{uuid.uuid4().hex}"
    try:
        async with aiofiles.open(marker, "wb") as f:
            await f.write(b"ok")
        await aiofiles.os.remove(marker)
    except OSError as e:
        logger.warning("Health check: storage not writable: %s", str(e))
        return False
    return True


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"description": "A dependency is down", "model": HealthResponse}},
    summary="Service health check",
)
async def health_check(response: Response) -> HealthResponse:
    db_status = "connected"
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        logger.warning("Health check: database unreachable: %s", str(e))

    storage_status = "writable" if await _storage_writable() else "unavailable"

    overall = "healthy"
    if db_status != "connected" or storage_status != "writable":
        overall = "unhealthy"
        response.status_code = 503

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        blob_store=storage_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
