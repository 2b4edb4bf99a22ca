"""History Routes — the caller's audit trail: paged query, recent, clear."""

import logging
from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from contentforge.api.deps import get_audit_log, get_caller_id, page_request
from contentforge.core.domain_types import ActionType
from contentforge.core.paging import PageRequest
from contentforge.schemas.common import PageResponse
from contentforge.schemas.history import ClearHistoryResponse, HistoryResponse
from contentforge.services.audit_log import AuditLog, HistoryFilter

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/history", tags=["history"])


@router.get("", response_model=PageResponse[HistoryResponse])
async def list_history(
    action_type: ActionType | None = None,
    project_id: UUID | None = None,
    from_date: datetime | None = None,
    to_date: datetime | None = None,
    sort_by: str | None = None,
    sort_desc: bool = True,
    page: PageRequest = Depends(page_request),
    user_id: UUID = Depends(get_caller_id),
    audit: AuditLog = Depends(get_audit_log),
):
    filters = HistoryFilter(
        action_type=action_type,
        project_id=project_id,
        from_date=from_date,
        to_date=to_date,
        sort_by=sort_by,
        sort_descending=sort_desc,
    )
    result = (await audit.query(user_id, filters, page)).unwrap()
    return PageResponse.from_page(result, HistoryResponse.model_validate)


@router.get("/recent", response_model=list[HistoryResponse])
async def recent_history(
    count: int = Query(10, ge=1, le=100),
    user_id: UUID = Depends(get_caller_id),
    audit: AuditLog = Depends(get_audit_log),
):
    entries = (await audit.recent(user_id, count)).unwrap()
    return [HistoryResponse.model_validate(e) for e in entries]


@router.delete("", response_model=ClearHistoryResponse)
async def clear_history(
    older_than: datetime | None = None,
    user_id: UUID = Depends(get_caller_id),
    audit: AuditLog = Depends(get_audit_log),
):
    removed = (await audit.clear(user_id, older_than)).unwrap()
    return ClearHistoryResponse(removed=removed)
