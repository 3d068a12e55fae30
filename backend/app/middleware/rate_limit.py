"""
Notespace Backend — Rate Limiting Middleware
==============================================

What:  Sliding window rate limiter keyed by caller.
Why:   Uploads and workspace cascades are the expensive operations; one
       client should not be able to monopolize them.
How:   In-memory map of key → request timestamps. The key is the verified
       caller id when a valid bearer token is present, else the client IP.

Algorithm: Sliding Window Log
    1. Drop timestamps older than the window
    2. If the remaining count >= limit → 429 with Retry-After
    3. Otherwise record now and pass the request on

Single-process only: each uvicorn worker keeps its own counters.
"""

import logging
import time
from collections import defaultdict
from typing import Dict, List

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from app.auth import caller_id_from_authorization
from app.config import settings
from app.exceptions import RateLimitExceededError

logger = logging.getLogger(__name__)

CLEANUP_EVERY = 1000


def rate_limit_key(request: Request) -> str:
    caller_id = caller_id_from_authorization(request.headers.get("Authorization"))
    if caller_id:
        return f"caller:{caller_id}"
    client_ip = request.client.host if request.client else "unknown"
    return f"ip:{client_ip}"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Configuration (from settings):
        rate_limit_requests: Max requests per window
        rate_limit_window:   Window duration in seconds

    Health checks and API docs are never limited.
    """

    EXCLUDED_PATHS = {"/health", "/docs", "/openapi.json", "/redoc"}

    def __init__(self, app, **kwargs):
        super().__init__(app, **kwargs)
        self._requests: Dict[str, List[float]] = defaultdict(list)
        self._seen = 0

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self.EXCLUDED_PATHS:
            return await call_next(request)

        key = rate_limit_key(request)
        now = time.time()
        window_start = now - settings.rate_limit_window

        recent = [ts for ts in self._requests[key] if ts > window_start]
        self._requests[key] = recent

        if len(recent) >= settings.rate_limit_requests:
            retry_after = int(recent[0] + settings.rate_limit_window - now) + 1
            logger.warning(
                "Rate limit exceeded for %s: %d requests in %ds window",
                key,
                len(recent),
                settings.rate_limit_window,
            )
            # Middleware runs outside the exception handlers; build the
            # same body the RateLimitExceededError handler would
            exc = RateLimitExceededError(retry_after=retry_after)
            return JSONResponse(
                status_code=429,
                content={
                    "error": "rate_limit_exceeded",
                    "message": exc.message,
                    "details": exc.context,
                },
                headers={"Retry-After": str(retry_after)},
            )

        recent.append(now)

        self._seen += 1
        if self._seen % CLEANUP_EVERY == 0:
            self._cleanup_inactive_keys(window_start)

        return await call_next(request)

    def _cleanup_inactive_keys(self, window_start: float) -> None:
        inactive = [
            key for key, timestamps in self._requests.items()
            if not timestamps or timestamps[-1] < window_start
        ]
        for key in inactive:
            del self._requests[key]
        if inactive:
            logger.debug("Cleaned up %d inactive rate limit keys", len(inactive))
