"""Request Dependencies — caller identity, privilege checks, paging and service wiring.

Invariants:
    - The caller id comes from X-User-Id, set by the upstream identity provider;
      credentials are never verified here
    - Missing or malformed identity → 401 before any service runs
    - An operation marked ADMIN runs only for X-User-Role: admin → else 403

Design Decisions:
    - authorize() reads the privilege marker off the service method itself, so
      the shell cannot drift from what the core declares
    - Collaborators (renderer, blob store) live on app.state, built in lifespan
"""

from dataclasses import dataclass
from typing import Callable
from uuid import UUID

from fastapi import Depends, Header, HTTPException, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from contentforge.config import get_settings
from contentforge.core.domain_types import Privilege
from contentforge.core.errors import ForbiddenError
from contentforge.core.paging import PageRequest
from contentforge.core.privileges import required_privilege
from contentforge.infrastructure.database import (
    DatabaseSessionManager, get_db, get_db_manager,
)
from contentforge.services.audit_log import AuditLog
from contentforge.services.export_orchestrator import ExportOrchestrator
from contentforge.services.project_store import ProjectStore
from contentforge.services.quota_ledger import QuotaLedger
from contentforge.services.template_catalog import TemplateCatalog
from contentforge.services.user_accounts import UserAccounts


@dataclass(frozen=True)
class Caller:
    user_id: UUID
    privilege: Privilege


def _unauthenticated(message: str) -> HTTPException:
    return HTTPException(
        status.HTTP_401_UNAUTHORIZED,
        detail={"code": "UNAUTHENTICATED", "message": message},
    )


async def get_caller(
    x_user_id: str | None = Header(None),
    x_user_role: str | None = Header(None),
) -> Caller:
    if not x_user_id:
        raise _unauthenticated("Missing X-User-Id header")
    try:
        user_id = UUID(x_user_id)
    except ValueError:
        raise _unauthenticated("Malformed X-User-Id header")
    role = (x_user_role or "").strip().lower()
    privilege = Privilege.ADMIN if role == Privilege.ADMIN.value else Privilege.USER
    return Caller(user_id=user_id, privilege=privilege)


async def get_caller_id(caller: Caller = Depends(get_caller)) -> UUID:
    return caller.user_id


def require_admin(caller: Caller) -> None:
    if caller.privilege != Privilege.ADMIN:
        raise ForbiddenError("Administrator privilege required", code="ADMIN_REQUIRED")


def authorize(caller: Caller, operation: Callable) -> None:
    """Raise ForbiddenError when the operation's privilege marker exceeds the caller's."""
    if required_privilege(operation) == Privilege.ADMIN:
        require_admin(caller)


async def page_request(
    page: int = Query(1, ge=1),
    page_size: int | None = Query(None, ge=1),
) -> PageRequest:
    settings = get_settings()
    return PageRequest(page, page_size or settings.default_page_size).clamp(
        settings.max_page_size,
    )


async def get_project_store(db: AsyncSession = Depends(get_db)) -> ProjectStore:
    return ProjectStore(db)


async def get_template_catalog(db: AsyncSession = Depends(get_db)) -> TemplateCatalog:
    return TemplateCatalog(db)


async def get_audit_log(db: AsyncSession = Depends(get_db)) -> AuditLog:
    return AuditLog(db)


async def get_quota_ledger(db: AsyncSession = Depends(get_db)) -> QuotaLedger:
    return QuotaLedger(db)


async def get_user_accounts(db: AsyncSession = Depends(get_db)) -> UserAccounts:
    return UserAccounts(db, get_settings())


async def get_export_orchestrator(
    request: Request,
    manager: DatabaseSessionManager = Depends(get_db_manager),
) -> ExportOrchestrator:
    return ExportOrchestrator(
        manager.session_factory,
        request.app.state.renderer,
        request.app.state.blob_store,
    )
