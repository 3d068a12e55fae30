"""
Notespace Backend — Custom Exception Hierarchy
================================================

What:  Defines application-specific exceptions for different error scenarios.
Why:   Custom exceptions enable targeted error handling with appropriate HTTP
       status codes and user-friendly messages.
How:   Each exception class carries a message and optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return structured JSON error responses with correct HTTP status codes.
Who:   Raised by services and middleware; caught by global handlers.

Exception Hierarchy:
    NotespaceError (base)
    ├── ValidationError          → 400 Bad Request (client can fix)
    ├── UnauthenticatedError     → 401 Unauthorized (no caller identity)
    ├── ForbiddenError           → 403 Forbidden (caller is not the owner)
    ├── NotFoundError            → 404 Not Found
    ├── ConflictError            → 409 Conflict (workspace path race)
    ├── RateLimitExceededError   → 429 Too Many Requests
    ├── BlobStoreError           → 500 Internal Server Error
    └── DatabaseError            → 500 Internal Server Error

Errors are terminal for the operation that raised them: nothing is retried
and side effects already issued (e.g. deleted blobs) are not rolled back.
"""

from typing import Any, Dict, Optional


class NotespaceError(Exception):
    """
    Base exception for all Notespace application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged, returned only for 4xx errors)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(NotespaceError):
    """
    Raised when client input fails a business rule.

    When:    Blank workspace name, missing workspace_id in workspace scope,
             unknown attachment handle, unsupported upload type or size.
    HTTP:    400 Bad Request
    """

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class UnauthenticatedError(NotespaceError):
    """
    Raised when a mutating operation is invoked without a caller identity.

    Read operations never raise this; they return an empty result instead.
    HTTP:    401 Unauthorized
    """

    def __init__(
        self,
        message: str = "You must be signed in to perform this action.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ForbiddenError(NotespaceError):
    """
    Raised when the caller is not the owner of the resource.

    HTTP:    403 Forbidden
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"You are not authorized to modify this {resource}."
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class NotFoundError(NotespaceError):
    """
    Raised when a referenced id does not resolve to a record.

    HTTP:    404 Not Found
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class ConflictError(NotespaceError):
    """
    Raised when a write collides with a unique index.

    When:    Every suffixed workspace path candidate was taken, a concurrent
             insert won the race on the unique path index, or an attachment
             is already linked to another note.
    HTTP:    409 Conflict
    """

    def __init__(
        self,
        message: str = "Could not allocate a unique workspace path. Please try again.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class BlobStoreError(NotespaceError):
    """
    Raised when a blob store operation fails.

    When:    Disk full, permission denied, I/O error while writing or deleting.
    HTTP:    500 Internal Server Error (paths are logged, never returned)
    """

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(NotespaceError):
    """
    Raised when database operations fail unexpectedly.

    The message returned to the client is always generic; SQL details stay
    in the server log.
    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(NotespaceError):
    """
    Raised when a client exceeds its request budget.

    HTTP:    429 Too Many Requests (with Retry-After header)
    """

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Rate limit exceeded. Please wait {retry_after} seconds before making more requests."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after
