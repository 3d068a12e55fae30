"""
Notespace Backend — Workspace Request/Response Schemas
=======================================================

What:  Pydantic models defining the workspace API contract.
Why:   Input validation, serialization, and OpenAPI doc generation.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class WorkspaceCreate(BaseModel):
    """Body of POST /api/workspaces."""
    name: str = Field(min_length=1, max_length=255, description="Display name")


class WorkspaceRename(BaseModel):
    """Body of PATCH /api/workspaces/{id}. The path is not recomputed."""
    name: str = Field(min_length=1, max_length=255, description="New display name")


class WorkspaceResponse(BaseModel):
    """
    What:  A workspace as returned to its owner.
    Why path is optional: legacy workspaces may not have been backfilled yet.
    """
    id: uuid.UUID
    name: str
    path: Optional[str] = Field(default=None, description="Unique URL-safe slug")
    created_at: datetime

    model_config = {"from_attributes": True}


class BackfillResponse(BaseModel):
    """Result of POST /api/workspaces/migrate-paths."""
    updated: int = Field(description="Number of workspaces that received a path")
