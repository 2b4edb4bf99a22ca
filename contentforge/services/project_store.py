"""Project Store — ownership-scoped CRUD over projects, template application and duplication.

Invariants:
    - Every read and write resolves the project with ONE predicate
      (id AND user_id AND owner active): a foreign project is NotFound,
      never Forbidden
    - Partial update touches only supplied fields; absent != reset
    - Width/height stay within 100–5000 on create, update and duplicate
    - Duplicate always starts as draft with exported_at cleared and no thumbnail
    - Delete is hard and removes the project's history rows in the same
      transaction (templates, by contrast, are only ever soft-deleted)

Design Decisions:
    - Validation happens in core/rules before any query; the store raises the
      returned error inside its Result boundary
    - Audit entries are appended after the primary commit (best-effort,
      see AuditLog) so a logging failure never undoes a project write
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from contentforge.core.domain_types import (
    DEFAULT_DIMENSION, MAX_NAME_LENGTH, ActionType, ProjectStatus,
)
from contentforge.core.errors import InvalidInputError, ResourceNotFoundError
from contentforge.core.paging import Page, PageRequest, resolve_sort
from contentforge.core.result import returns_result
from contentforge.core.rules import (
    check_dimension,
    check_dimensions,
    check_project_name,
    check_template_eligibility,
    first_error,
)
from contentforge.db.base import as_utc
from contentforge.models.history_entry import HistoryEntry
from contentforge.models.project import Project
from contentforge.models.template import Template
from contentforge.models.user import User
from contentforge.services.audit_log import AuditLog
from contentforge.services.user_accounts import load_active_user

logger = logging.getLogger(__name__)

_SORT_COLUMNS = {
    "name": Project.name,
    "status": Project.status,
    "created_at": Project.created_at,
    "exported_at": Project.exported_at,
    "updated_at": Project.updated_at,
}

_UPDATABLE_FIELDS = {"name", "canvas_data", "thumbnail_url", "width", "height", "status"}
_NULLABLE_FIELDS = {"thumbnail_url"}


@dataclass(frozen=True)
class ProjectFilter:
    status: ProjectStatus | None = None
    search_term: str | None = None
    created_from: datetime | None = None
    created_to: datetime | None = None
    sort_by: str | None = None
    sort_descending: bool = True


def owned_project_query(project_id: UUID, user_id: UUID):
    """SELECT for a project visible to its (active) owner, as a single predicate."""
    return (
        select(Project)
        .join(User, User.id == Project.user_id)
        .where(
            Project.id == project_id,
            Project.user_id == user_id,
            User.is_active.is_(True),
        )
        .execution_options(populate_existing=True)
    )


class ProjectStore:
    """Project lifecycle for one caller-supplied user id at a time."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit = AuditLog(db)

    @returns_result("projects.create")
    async def create(
        self,
        user_id: UUID,
        name: str,
        template_id: UUID | None = None,
        canvas_data: dict[str, Any] | None = None,
        width: int = DEFAULT_DIMENSION,
        height: int = DEFAULT_DIMENSION,
    ) -> Project:
        error = first_error(check_project_name(name), check_dimensions(width, height))
        if error is not None:
            raise error

        user = await load_active_user(self.db, user_id)
        template = None
        if template_id is not None:
            template = await self.db.scalar(
                select(Template).where(Template.id == template_id),
            )
            error = check_template_eligibility(template, template_id, user.tier)
            if error is not None:
                raise error

        if canvas_data is not None:
            effective_canvas = canvas_data
        elif template is not None:
            effective_canvas = dict(template.template_data or {})
        else:
            effective_canvas = {}

        project = Project(
            user_id=user.id,
            template_id=template.id if template else None,
            name=name.strip(),
            canvas_data=effective_canvas,
            width=width,
            height=height,
            status=ProjectStatus.DRAFT.value,
        )
        self.db.add(project)
        await self.db.commit()

        await self.audit.append(
            user.id, ActionType.PROJECT_CREATED, project.id,
            {"projectName": project.name, "templateUsed": template.name if template else None},
        )
        if template is not None:
            await self.audit.append(
                user.id, ActionType.TEMPLATE_USED, project.id,
                {"templateName": template.name, "templateCategory": template.category},
            )
        logger.info(
            "Project created",
            extra={"user_id": user.id, "project_id": project.id, "template_id": template_id},
        )
        return project

    @returns_result("projects.get")
    async def get_by_id(self, project_id: UUID, user_id: UUID) -> Project:
        return await self._get_owned(project_id, user_id)

    @returns_result("projects.update")
    async def update(
        self, project_id: UUID, user_id: UUID, fields: dict[str, Any],
    ) -> Project:
        """Apply only the supplied fields. Unknown fields and nulls on required fields are rejected."""
        _check_update_fields(fields)
        project = await self._get_owned(project_id, user_id)

        for key, value in fields.items():
            if key == "name":
                value = value.strip()
            elif key == "status":
                value = ProjectStatus(value).value
            setattr(project, key, value)
        await self.db.commit()

        await self.audit.append(
            user_id, ActionType.PROJECT_UPDATED, project.id,
            {"projectName": project.name, "updatedFields": sorted(fields)},
        )
        return project

    @returns_result("projects.delete")
    async def delete(self, project_id: UUID, user_id: UUID) -> None:
        project = await self._get_owned(project_id, user_id)
        # Explicit cascade so the rule holds where FK enforcement is off.
        await self.db.execute(
            delete(HistoryEntry)
            .where(HistoryEntry.project_id == project.id)
            .execution_options(synchronize_session=False),
        )
        await self.db.delete(project)
        await self.db.commit()
        logger.info(
            "Project deleted", extra={"user_id": user_id, "project_id": project_id},
        )

    @returns_result("projects.duplicate")
    async def duplicate(
        self, project_id: UUID, user_id: UUID, new_name: str | None = None,
    ) -> Project:
        if new_name is not None:
            error = check_project_name(new_name)
            if error is not None:
                raise error
        source = await self._get_owned(project_id, user_id)
        name = new_name.strip() if new_name is not None else f"{source.name} (Copy)"
        name = name[:MAX_NAME_LENGTH]

        copy = Project(
            user_id=source.user_id,
            template_id=source.template_id,
            name=name,
            canvas_data=dict(source.canvas_data or {}),
            width=source.width,
            height=source.height,
            status=ProjectStatus.DRAFT.value,
            exported_at=None,
            thumbnail_url=None,
        )
        self.db.add(copy)
        await self.db.commit()

        await self.audit.append(
            user_id, ActionType.PROJECT_CREATED, copy.id,
            {"projectName": copy.name, "duplicatedFrom": str(source.id)},
        )
        return copy

    @returns_result("projects.list")
    async def list_projects(
        self,
        user_id: UUID,
        filters: ProjectFilter | None = None,
        page: PageRequest | None = None,
    ) -> Page[Project]:
        filters = filters or ProjectFilter()
        page = page or PageRequest()

        conditions = [Project.user_id == user_id]
        if filters.status is not None:
            conditions.append(Project.status == ProjectStatus(filters.status).value)
        if filters.search_term and filters.search_term.strip():
            conditions.append(Project.name.ilike(f"%{filters.search_term.strip()}%"))
        if filters.created_from is not None:
            conditions.append(Project.created_at >= as_utc(filters.created_from))
        if filters.created_to is not None:
            conditions.append(Project.created_at <= as_utc(filters.created_to))

        total = await self.db.scalar(
            select(func.count()).select_from(Project).where(*conditions),
        )
        column = resolve_sort(filters.sort_by, _SORT_COLUMNS, "updated_at")
        order = column.desc() if filters.sort_descending else column.asc()
        rows = await self.db.scalars(
            select(Project)
            .where(*conditions)
            .order_by(order, Project.id)
            .offset(page.offset)
            .limit(page.page_size),
        )
        return Page(
            items=list(rows),
            total_count=total or 0,
            page=page.page,
            page_size=page.page_size,
        )

    @returns_result("projects.recent")
    async def recent(self, user_id: UUID, count: int = 5) -> list[Project]:
        rows = await self.db.scalars(
            select(Project)
            .where(Project.user_id == user_id)
            .order_by(Project.updated_at.desc(), Project.id)
            .limit(max(count, 0)),
        )
        return list(rows)

    @returns_result("projects.thumbnail")
    async def update_thumbnail(
        self, project_id: UUID, user_id: UUID, thumbnail_url: str,
    ) -> Project:
        if not thumbnail_url or not thumbnail_url.strip():
            raise InvalidInputError("thumbnail_url is required", "thumbnail_url")
        project = await self._get_owned(project_id, user_id)
        project.thumbnail_url = thumbnail_url.strip()
        await self.db.commit()
        return project

    @returns_result("projects.count")
    async def count_for_user(self, user_id: UUID) -> int:
        total = await self.db.scalar(
            select(func.count()).select_from(Project).where(Project.user_id == user_id),
        )
        return total or 0

    async def _get_owned(self, project_id: UUID, user_id: UUID) -> Project:
        project = await self.db.scalar(owned_project_query(project_id, user_id))
        if project is None:
            raise ResourceNotFoundError("Project", str(project_id))
        return project


def _check_update_fields(fields: dict[str, Any]) -> None:
    unknown = set(fields) - _UPDATABLE_FIELDS
    if unknown:
        raise InvalidInputError(
            f"Unknown project fields: {', '.join(sorted(unknown))}",
            sorted(unknown)[0],
        )
    for key, value in fields.items():
        if value is None and key not in _NULLABLE_FIELDS:
            raise InvalidInputError(f"{key} cannot be null", key)

    checks = []
    if "name" in fields:
        checks.append(check_project_name(fields["name"]))
    for key in ("width", "height"):
        if key in fields:
            checks.append(check_dimension(fields[key], key))
    if "canvas_data" in fields and not isinstance(fields["canvas_data"], dict):
        checks.append(InvalidInputError("canvas_data must be an object", "canvas_data"))
    if "status" in fields:
        try:
            ProjectStatus(fields["status"])
        except ValueError:
            checks.append(InvalidInputError(
                "status must be one of: " + ", ".join(s.value for s in ProjectStatus),
                "status",
            ))
    error = first_error(*checks)
    if error is not None:
        raise error
