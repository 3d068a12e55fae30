"""
Notespace Backend — Shared Response Schemas
=============================================

What:  Response models used across several routers.
Why:   Clients need one consistent shape for errors and created ids.
"""

import uuid
from typing import Optional

from pydantic import BaseModel, Field


class CreatedResponse(BaseModel):
    """Returned with HTTP 201 by every create endpoint."""
    id: uuid.UUID = Field(description="Identifier of the created record")


class ErrorResponse(BaseModel):
    """
    What:  Standardized error response format for all API errors.

    Example:
        {
            "error": "forbidden",
            "message": "You are not authorized to modify this workspace.",
            "details": {"resource": "workspace"},
            "request_id": "a1b2c3d4"
        }
    """
    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Health check response showing service and dependency status."""
    status: str = Field(description="Overall service status: healthy, degraded, unhealthy")
    version: str = Field(description="Application version")
    database: str = Field(description="Database connectivity: connected, disconnected")
    blob_store: str = Field(description="Blob storage: writable, unavailable")
    uptime_seconds: float = Field(description="Seconds since service started")
