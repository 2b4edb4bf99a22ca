"""Project Routes — ownership-scoped CRUD, duplication, thumbnails and export.

Invariants:
    - Every route is scoped by the caller id; foreign projects are 404
    - PATCH forwards only the fields present in the body (exclude_unset)
"""

import logging
from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response, status

from contentforge.api.deps import (
    get_caller_id, get_export_orchestrator, get_project_store, page_request,
)
from contentforge.core.domain_types import ProjectStatus
from contentforge.core.paging import PageRequest
from contentforge.schemas.common import PageResponse
from contentforge.schemas.project import (
    ExportBody, ExportResponse, ProjectCreate, ProjectDuplicate,
    ProjectResponse, ProjectSummary, ProjectUpdate, ThumbnailUpdate,
)
from contentforge.services.export_orchestrator import ExportOrchestrator, ExportRequest
from contentforge.services.project_store import ProjectFilter, ProjectStore

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/projects", tags=["projects"])


@router.get("", response_model=PageResponse[ProjectSummary])
async def list_projects(
    status_filter: ProjectStatus | None = Query(None, alias="status"),
    search: str | None = Query(None, max_length=100),
    created_from: datetime | None = None,
    created_to: datetime | None = None,
    sort_by: str | None = None,
    sort_desc: bool = True,
    page: PageRequest = Depends(page_request),
    user_id: UUID = Depends(get_caller_id),
    store: ProjectStore = Depends(get_project_store),
):
    filters = ProjectFilter(
        status=status_filter,
        search_term=search,
        created_from=created_from,
        created_to=created_to,
        sort_by=sort_by,
        sort_descending=sort_desc,
    )
    result = (await store.list_projects(user_id, filters, page)).unwrap()
    return PageResponse.from_page(result, ProjectSummary.model_validate)


@router.get("/recent", response_model=list[ProjectSummary])
async def recent_projects(
    count: int = Query(5, ge=1, le=50),
    user_id: UUID = Depends(get_caller_id),
    store: ProjectStore = Depends(get_project_store),
):
    projects = (await store.recent(user_id, count)).unwrap()
    return [ProjectSummary.model_validate(p) for p in projects]


@router.post("", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(
    body: ProjectCreate,
    user_id: UUID = Depends(get_caller_id),
    store: ProjectStore = Depends(get_project_store),
):
    project = (await store.create(
        user_id,
        body.name,
        template_id=body.template_id,
        canvas_data=body.canvas_data,
        width=body.width,
        height=body.height,
    )).unwrap()
    return ProjectResponse.model_validate(project)


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: UUID,
    user_id: UUID = Depends(get_caller_id),
    store: ProjectStore = Depends(get_project_store),
):
    project = (await store.get_by_id(project_id, user_id)).unwrap()
    return ProjectResponse.model_validate(project)


@router.patch("/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: UUID,
    body: ProjectUpdate,
    user_id: UUID = Depends(get_caller_id),
    store: ProjectStore = Depends(get_project_store),
):
    fields = body.model_dump(exclude_unset=True, mode="json")
    project = (await store.update(project_id, user_id, fields)).unwrap()
    return ProjectResponse.model_validate(project)


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project_id: UUID,
    user_id: UUID = Depends(get_caller_id),
    store: ProjectStore = Depends(get_project_store),
):
    (await store.delete(project_id, user_id)).unwrap()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{project_id}/duplicate",
    response_model=ProjectResponse,
    status_code=status.HTTP_201_CREATED,
)
async def duplicate_project(
    project_id: UUID,
    body: ProjectDuplicate | None = None,
    user_id: UUID = Depends(get_caller_id),
    store: ProjectStore = Depends(get_project_store),
):
    new_name = body.new_name if body else None
    project = (await store.duplicate(project_id, user_id, new_name)).unwrap()
    return ProjectResponse.model_validate(project)


@router.put("/{project_id}/thumbnail", response_model=ProjectResponse)
async def update_thumbnail(
    project_id: UUID,
    body: ThumbnailUpdate,
    user_id: UUID = Depends(get_caller_id),
    store: ProjectStore = Depends(get_project_store),
):
    project = (await store.update_thumbnail(project_id, user_id, body.thumbnail_url)).unwrap()
    return ProjectResponse.model_validate(project)


@router.post("/{project_id}/export", response_model=ExportResponse)
async def export_project(
    project_id: UUID,
    body: ExportBody | None = None,
    user_id: UUID = Depends(get_caller_id),
    orchestrator: ExportOrchestrator = Depends(get_export_orchestrator),
):
    body = body or ExportBody()
    request = ExportRequest(format=body.format.value, quality=body.quality)
    result = (await orchestrator.export(project_id, user_id, request)).unwrap()
    return ExportResponse.model_validate(result)
