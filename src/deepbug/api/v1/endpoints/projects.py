"""Project showcase endpoints: public reads, administrator writes."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Header, HTTPException, Query, Response, status

from deepbug.api.v1.dependencies import (
    CurrentAdminDep,
    SessionDep,
    require_access_token,
    respond,
)
from deepbug.core import messages
from deepbug.models import Project
from deepbug.schemas.article import AccessTokenOut, ProjectCreate, ProjectOut, ProjectUpdate
from deepbug.schemas.common import ActionResult, CreatedResult
from deepbug.services.articles import ProjectService
from deepbug.services.tokens import generate_access_token

router = APIRouter(prefix="/projects", tags=["projects"])


def project_resource(project_id: int) -> str:
    return f"project_{project_id}"


@router.get("", response_model=list[ProjectOut])
async def list_projects(
    db: SessionDep,
    limit: int = Query(20, ge=1, le=100),
) -> list[Project]:
    return ProjectService(db).get_projects(limit)


@router.get("/featured", response_model=list[ProjectOut])
async def list_featured_projects(
    db: SessionDep,
    limit: int = Query(6, ge=1, le=50),
) -> list[Project]:
    return ProjectService(db).get_featured_projects(limit)


@router.get("/{project_id}", response_model=ProjectOut)
async def get_project(project_id: int, db: SessionDep) -> Project:
    project = ProjectService(db).get_project(project_id)
    if project is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=messages.PROJECT_NOT_FOUND,
        )
    return project


@router.post("", response_model=CreatedResult)
async def create_project(
    payload: ProjectCreate,
    admin: CurrentAdminDep,
    db: SessionDep,
    response: Response,
) -> CreatedResult:
    result = ProjectService(db).create_project(payload)
    if result.success:
        response.status_code = status.HTTP_201_CREATED
    return respond(result, response)


@router.post("/{project_id}/access-token", response_model=AccessTokenOut)
async def issue_access_token(
    project_id: int,
    admin: CurrentAdminDep,
    db: SessionDep,
) -> AccessTokenOut:
    if ProjectService(db).get_project(project_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=messages.PROJECT_NOT_FOUND,
        )
    return AccessTokenOut(token=generate_access_token(admin.id, project_resource(project_id)))


@router.put("/{project_id}", response_model=ActionResult)
async def update_project(
    project_id: int,
    payload: ProjectUpdate,
    admin: CurrentAdminDep,
    db: SessionDep,
    response: Response,
    x_access_token: Annotated[str | None, Header()] = None,
) -> ActionResult:
    require_access_token(admin, project_resource(project_id), x_access_token)
    return respond(ProjectService(db).update_project(project_id, payload), response)


@router.delete("/{project_id}", response_model=ActionResult)
async def delete_project(
    project_id: int,
    admin: CurrentAdminDep,
    db: SessionDep,
    response: Response,
    x_access_token: Annotated[str | None, Header()] = None,
) -> ActionResult:
    require_access_token(admin, project_resource(project_id), x_access_token)
    return respond(ProjectService(db).delete_project(project_id), response)
