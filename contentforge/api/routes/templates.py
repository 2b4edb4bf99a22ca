"""Template Routes — public catalog reads plus admin lifecycle endpoints.

Invariants:
    - Admin endpoints call authorize() against the service method's privilege marker
    - DELETE is a soft delete (the template stays referenced by old projects)
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from contentforge.api.deps import (
    Caller, authorize, get_caller, get_template_catalog, page_request,
)
from contentforge.core.domain_types import TemplateCategory
from contentforge.core.paging import PageRequest
from contentforge.schemas.common import PageResponse
from contentforge.schemas.template import TemplateCreate, TemplateResponse, TemplateUpdate
from contentforge.services.template_catalog import TemplateCatalog, TemplateFilter

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/templates", tags=["templates"])


@router.get("", response_model=PageResponse[TemplateResponse])
async def list_templates(
    category: TemplateCategory | None = None,
    is_premium: bool | None = None,
    search: str | None = Query(None, max_length=100),
    sort_by: str | None = None,
    sort_desc: bool = False,
    page: PageRequest = Depends(page_request),
    caller: Caller = Depends(get_caller),
    catalog: TemplateCatalog = Depends(get_template_catalog),
):
    filters = TemplateFilter(
        category=category,
        is_premium=is_premium,
        search_term=search,
        sort_by=sort_by,
        sort_descending=sort_desc,
    )
    result = (await catalog.list_templates(filters, page)).unwrap()
    return PageResponse.from_page(result, TemplateResponse.model_validate)


@router.get("/featured", response_model=list[TemplateResponse])
async def featured_templates(
    count: int = Query(10, ge=1, le=50),
    caller: Caller = Depends(get_caller),
    catalog: TemplateCatalog = Depends(get_template_catalog),
):
    templates = (await catalog.list_featured(count)).unwrap()
    return [TemplateResponse.model_validate(t) for t in templates]


@router.get("/search", response_model=list[TemplateResponse])
async def search_templates(
    q: str = Query(..., min_length=1, max_length=100),
    caller: Caller = Depends(get_caller),
    catalog: TemplateCatalog = Depends(get_template_catalog),
):
    templates = (await catalog.search(q)).unwrap()
    return [TemplateResponse.model_validate(t) for t in templates]


@router.get("/category/{category}", response_model=list[TemplateResponse])
async def templates_by_category(
    category: TemplateCategory,
    count: int = Query(20, ge=1, le=100),
    caller: Caller = Depends(get_caller),
    catalog: TemplateCatalog = Depends(get_template_catalog),
):
    templates = (await catalog.list_by_category(category, count)).unwrap()
    return [TemplateResponse.model_validate(t) for t in templates]


@router.get("/{template_id}", response_model=TemplateResponse)
async def get_template(
    template_id: UUID,
    caller: Caller = Depends(get_caller),
    catalog: TemplateCatalog = Depends(get_template_catalog),
):
    template = (await catalog.get_by_id(template_id)).unwrap()
    return TemplateResponse.model_validate(template)


# ─── Admin ───────────────────────────────────────────────────────

@router.post("", response_model=TemplateResponse, status_code=status.HTTP_201_CREATED)
async def create_template(
    body: TemplateCreate,
    caller: Caller = Depends(get_caller),
    catalog: TemplateCatalog = Depends(get_template_catalog),
):
    authorize(caller, TemplateCatalog.create)
    template = (await catalog.create(
        body.name,
        body.category,
        template_data=body.template_data,
        description=body.description,
        thumbnail_url=body.thumbnail_url,
        is_premium=body.is_premium,
        created_by=caller.user_id,
    )).unwrap()
    return TemplateResponse.model_validate(template)


@router.patch("/{template_id}", response_model=TemplateResponse)
async def update_template(
    template_id: UUID,
    body: TemplateUpdate,
    caller: Caller = Depends(get_caller),
    catalog: TemplateCatalog = Depends(get_template_catalog),
):
    authorize(caller, TemplateCatalog.update)
    fields = body.model_dump(exclude_unset=True, mode="json")
    template = (await catalog.update(template_id, fields)).unwrap()
    return TemplateResponse.model_validate(template)


@router.delete("/{template_id}", response_model=TemplateResponse)
async def delete_template(
    template_id: UUID,
    caller: Caller = Depends(get_caller),
    catalog: TemplateCatalog = Depends(get_template_catalog),
):
    authorize(caller, TemplateCatalog.delete)
    template = (await catalog.delete(template_id)).unwrap()
    return TemplateResponse.model_validate(template)


@router.post("/{template_id}/toggle", response_model=TemplateResponse)
async def toggle_template(
    template_id: UUID,
    caller: Caller = Depends(get_caller),
    catalog: TemplateCatalog = Depends(get_template_catalog),
):
    authorize(caller, TemplateCatalog.toggle_active)
    template = (await catalog.toggle_active(template_id)).unwrap()
    return TemplateResponse.model_validate(template)
