"""
Notespace Backend — Workspace Route Handlers
==============================================

What:  HTTP surface of WorkspaceService.
How:   Thin handlers: resolve the caller, call the service, shape the response.

Endpoints:
    GET    /api/workspaces                 → list (empty when signed out)
    POST   /api/workspaces                 → create, 201 {id}
    PATCH  /api/workspaces/{id}            → rename, 204
    DELETE /api/workspaces/{id}            → cascade delete, 204 (unknown id too)
    POST   /api/workspaces/migrate-paths   → backfill paths, {updated}
"""

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth import get_caller_id
from app.database import get_db_session
from app.schemas.common import CreatedResponse, ErrorResponse
from app.schemas.workspace import (
    BackfillResponse,
    WorkspaceCreate,
    WorkspaceRename,
    WorkspaceResponse,
)
from app.services.workspace_service import WorkspaceService, workspace_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Workspaces"])


def get_workspace_service() -> WorkspaceService:
    """Dependency hook; tests override it to inject a fake blob store."""
    return workspace_service


@router.get(
    "/workspaces",
    response_model=List[WorkspaceResponse],
    summary="List the caller's workspaces",
)
async def list_workspaces(
    caller_id: Optional[str] = Depends(get_caller_id),
    db: AsyncSession = Depends(get_db_session),
    service: WorkspaceService = Depends(get_workspace_service),
) -> List[WorkspaceResponse]:
    return await service.list_for_caller(db, caller_id)


@router.post(
    "/workspaces",
    response_model=CreatedResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Blank name", "model": ErrorResponse},
        401: {"description": "Not signed in", "model": ErrorResponse},
        409: {"description": "Could not allocate a unique path", "model": ErrorResponse},
    },
    summary="Create a workspace",
)
async def create_workspace(
    body: WorkspaceCreate,
    caller_id: Optional[str] = Depends(get_caller_id),
    db: AsyncSession = Depends(get_db_session),
    service: WorkspaceService = Depends(get_workspace_service),
) -> CreatedResponse:
    workspace_id = await service.create(db, caller_id, body.name)
    return CreatedResponse(id=workspace_id)


@router.patch(
    "/workspaces/{workspace_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
    },
    summary="Rename a workspace (path unchanged)",
)
async def rename_workspace(
    workspace_id: UUID,
    body: WorkspaceRename,
    caller_id: Optional[str] = Depends(get_caller_id),
    db: AsyncSession = Depends(get_db_session),
    service: WorkspaceService = Depends(get_workspace_service),
) -> Response:
    await service.rename(db, caller_id, workspace_id, body.name)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete(
    "/workspaces/{workspace_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        500: {"description": "Attachment cleanup failed", "model": ErrorResponse},
    },
    summary="Delete a workspace with its notes and attachments",
)
async def delete_workspace(
    workspace_id: UUID,
    caller_id: Optional[str] = Depends(get_caller_id),
    db: AsyncSession = Depends(get_db_session),
    service: WorkspaceService = Depends(get_workspace_service),
) -> Response:
    await service.delete(db, caller_id, workspace_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/workspaces/migrate-paths",
    response_model=BackfillResponse,
    summary="Assign paths to the caller's workspaces that lack one",
)
async def migrate_paths(
    caller_id: Optional[str] = Depends(get_caller_id),
    db: AsyncSession = Depends(get_db_session),
    service: WorkspaceService = Depends(get_workspace_service),
) -> BackfillResponse:
    updated = await service.backfill_missing_paths(db, caller_id)
    return BackfillResponse(updated=updated)
