"""
Notespace Backend — Request Logging Middleware
================================================

What:  One access log line per request: method, path, status, duration,
       caller, client IP.
Why:   Correlates API traffic with the service logs of the same request.
How:   Times call_next(); the caller id is read from request.state, where
       the get_caller_id dependency leaves it.

What we log vs what we DON'T log (privacy):
    Log:       method, path, status, duration, IP, caller id, request ID
    Don't log: bodies (note text, file bytes), Authorization header,
               upload tokens (the query string is dropped)
"""

import logging
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from app.middleware.request_id import request_id_var

logger = logging.getLogger("notespace.access")

QUIET_PATHS = {"/health"}


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Log level follows the status code:
        5xx → ERROR, 4xx → WARNING, otherwise INFO
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if path in QUIET_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        duration_ms = (time.perf_counter() - start_time) * 1000

        status = response.status_code
        if status >= 500:
            log_level = logging.ERROR
        elif status >= 400:
            log_level = logging.WARNING
        else:
            log_level = logging.INFO

        client_ip = request.client.host if request.client else "unknown"
        caller_id = getattr(request.state, "caller_id", None) or "anonymous"

        logger.log(
            log_level,
            "%s %s %d %.1fms caller=%s from %s",
            request.method,
            path,
            status,
            duration_ms,
            caller_id,
            client_ip,
            extra={
                "request_id": request_id_var.get(""),
                "method": request.method,
                "path": path,
                "status": status,
                "duration_ms": round(duration_ms, 2),
                "caller_id": caller_id,
                "client_ip": client_ip,
            },
        )
        return response
