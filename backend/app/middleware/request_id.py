"""
Notespace Backend — Request ID Middleware
===========================================

What:  Assigns a short correlation ID to each request and echoes it back.
Why:   Every log line from one request carries the same ID, and clients can
       quote it from an error response.
How:   ContextVar for loggers (via RequestIDLogFilter), request.state for
       handlers, X-Request-ID response header for the client.
When:  Runs before the logging middleware.
"""

import logging
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one thread each see their own ID
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class RequestIDLogFilter(logging.Filter):
    """
    Stamps `record.request_id` on every log record.

    Installed on the root handler by setup_logging() so the format string
    can reference %(request_id)s. Records emitted outside a request get "-".
    """

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "request_id", None):
            record.request_id = request_id_var.get("") or "-"
        return True


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Behavior:
        1. Use the client's X-Request-ID header when present
        2. Otherwise generate an 8-char ID
        3. Store it in the ContextVar and request.state
        4. Return it in the X-Request-ID response header
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())[:8]

        token = request_id_var.set(rid)
        request.state.request_id = rid
        try:
            response = await call_next(request)
        finally:
            request_id_var.reset(token)

        response.headers["X-Request-ID"] = rid
        return response
