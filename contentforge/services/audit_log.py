"""Audit Log — append-only record of user actions, with paged queries and bulk clear.

Invariants:
    - append() is best-effort: a failure is rolled back, logged with
      error_code=AUDIT_APPEND_FAILED and returned; it never raises and never
      undoes the caller's already-committed primary write
    - append() writes through its own session, so a failed insert never rolls
      back or expires anything the caller still holds
    - No update path exists; clear() is the only explicit delete
    - clear(older_than=T) removes exactly entries with created_at < T
    - All queries are scoped by user_id

Design Decisions:
    - Best-effort over outbox: the caller commits first, then appends in a
      separate commit. The window where a primary write has no audit row is
      accepted and observable through logs (ADR: audit never blocks a write)
    - Project name resolved by outer join at read time, not copied into rows
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from contentforge.core.domain_types import ActionType
from contentforge.core.paging import Page, PageRequest, resolve_sort
from contentforge.core.result import Result, returns_result
from contentforge.core.rules import describe_action
from contentforge.db.base import as_utc
from contentforge.models.history_entry import HistoryEntry
from contentforge.models.project import Project

logger = logging.getLogger(__name__)

_SORT_COLUMNS = {
    "created_at": HistoryEntry.created_at,
    "action_type": HistoryEntry.action_type,
}


@dataclass(frozen=True)
class HistoryFilter:
    action_type: ActionType | None = None
    project_id: UUID | None = None
    from_date: datetime | None = None
    to_date: datetime | None = None
    sort_by: str | None = None
    sort_descending: bool = True


@dataclass(frozen=True)
class HistoryView:
    """Read model for one audit entry."""
    id: UUID
    user_id: UUID
    project_id: UUID | None
    project_name: str | None
    action_type: str
    action_data: dict | None
    description: str
    created_at: datetime


class _HistoryWriter:
    """Single-insert unit of work on a session owned by the audit log."""

    def __init__(self, db: AsyncSession):
        self.db = db

    @returns_result("audit.append")
    async def write(
        self,
        user_id: UUID,
        action_type: ActionType,
        project_id: UUID | None,
        action_data: dict[str, Any] | None,
    ) -> HistoryEntry:
        entry = HistoryEntry(
            user_id=user_id,
            project_id=project_id,
            action_type=ActionType(action_type).value,
            action_data=action_data,
        )
        self.db.add(entry)
        await self.db.commit()
        return entry


class AuditLog:
    """History service — append, query, recent, clear."""

    def __init__(
        self,
        db: AsyncSession,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
    ):
        self.db = db
        self.session_factory = session_factory or async_sessionmaker(
            db.bind, class_=AsyncSession, expire_on_commit=False,
        )

    async def append(
        self,
        user_id: UUID,
        action_type: ActionType,
        project_id: UUID | None = None,
        action_data: dict[str, Any] | None = None,
    ) -> Result[HistoryEntry]:
        """Record an action. Callers may ignore the returned failure."""
        async with self.session_factory() as db:
            result = await _HistoryWriter(db).write(
                user_id, action_type, project_id, action_data,
            )
        if not result.ok:
            token = getattr(action_type, "value", action_type)
            logger.error(
                f"Audit append failed for {token}: {result.error.message}",
                extra={
                    "error_code": "AUDIT_APPEND_FAILED",
                    "user_id": user_id,
                    "project_id": project_id,
                    "action_type": token,
                },
            )
        return result

    @returns_result("audit.query")
    async def query(
        self,
        user_id: UUID,
        filters: HistoryFilter | None = None,
        page: PageRequest | None = None,
    ) -> Page[HistoryView]:
        filters = filters or HistoryFilter()
        page = page or PageRequest()

        conditions = [HistoryEntry.user_id == user_id]
        if filters.action_type is not None:
            conditions.append(
                HistoryEntry.action_type == ActionType(filters.action_type).value,
            )
        if filters.project_id is not None:
            conditions.append(HistoryEntry.project_id == filters.project_id)
        if filters.from_date is not None:
            conditions.append(HistoryEntry.created_at >= as_utc(filters.from_date))
        if filters.to_date is not None:
            conditions.append(HistoryEntry.created_at <= as_utc(filters.to_date))

        total = await self.db.scalar(
            select(func.count()).select_from(HistoryEntry).where(*conditions),
        )

        column = resolve_sort(filters.sort_by, _SORT_COLUMNS, "created_at")
        order = column.desc() if filters.sort_descending else column.asc()
        rows = await self.db.execute(
            select(HistoryEntry, Project.name)
            .outerjoin(Project, HistoryEntry.project_id == Project.id)
            .where(*conditions)
            .order_by(order, HistoryEntry.id)
            .offset(page.offset)
            .limit(page.page_size),
        )
        return Page(
            items=[_to_view(entry, name) for entry, name in rows.all()],
            total_count=total or 0,
            page=page.page,
            page_size=page.page_size,
        )

    @returns_result("audit.recent")
    async def recent(self, user_id: UUID, count: int = 10) -> list[HistoryView]:
        rows = await self.db.execute(
            select(HistoryEntry, Project.name)
            .outerjoin(Project, HistoryEntry.project_id == Project.id)
            .where(HistoryEntry.user_id == user_id)
            .order_by(HistoryEntry.created_at.desc())
            .limit(max(count, 0)),
        )
        return [_to_view(entry, name) for entry, name in rows.all()]

    @returns_result("audit.clear")
    async def clear(self, user_id: UUID, older_than: datetime | None = None) -> int:
        """Delete the user's entries created strictly before older_than (all if None)."""
        stmt = delete(HistoryEntry).where(HistoryEntry.user_id == user_id).execution_options(
            synchronize_session=False,
        )
        if older_than is not None:
            stmt = stmt.where(HistoryEntry.created_at < as_utc(older_than))
        result = await self.db.execute(stmt)
        await self.db.commit()
        removed = result.rowcount or 0
        logger.info(
            f"Cleared {removed} history entries", extra={"user_id": user_id},
        )
        return removed


def _to_view(entry: HistoryEntry, project_name: str | None) -> HistoryView:
    return HistoryView(
        id=entry.id,
        user_id=entry.user_id,
        project_id=entry.project_id,
        project_name=project_name,
        action_type=entry.action_type,
        action_data=entry.action_data,
        description=describe_action(entry.action_type),
        created_at=entry.created_at,
    )
