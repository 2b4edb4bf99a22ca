"""Template Catalog — read-mostly registry of canvas blueprints with admin lifecycle operations.

Invariants:
    - delete() is soft (is_active=False); no hard-delete path exists, so projects
      keep a valid template reference forever
    - Featured/category/search listings only return active templates
    - Mutating operations carry the ADMIN privilege marker; the caller's
      privilege is checked by the shell, never here

Design Decisions:
    - Partial update accepts a dict of supplied fields (absent != reset),
      mirroring ProjectStore.update
    - Creation by a known user is logged as template_used with
      action="template_created" (the taxonomy has no dedicated token)
"""

import logging
from dataclasses import dataclass
from typing import Any
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from contentforge.core.domain_types import (
    ActionType, Privilege, TemplateCategory,
)
from contentforge.core.errors import InvalidInputError, ResourceNotFoundError
from contentforge.core.paging import Page, PageRequest, resolve_sort
from contentforge.core.privileges import requires_privilege
from contentforge.core.result import returns_result
from contentforge.core.rules import check_project_name
from contentforge.models.template import Template
from contentforge.services.audit_log import AuditLog

logger = logging.getLogger(__name__)

_SORT_COLUMNS = {
    "name": Template.name,
    "category": Template.category,
    "is_premium": Template.is_premium,
    "created_at": Template.created_at,
}

_UPDATABLE_FIELDS = {
    "name", "description", "category", "thumbnail_url",
    "template_data", "is_premium", "is_active",
}
_NULLABLE_FIELDS = {"description"}


@dataclass(frozen=True)
class TemplateFilter:
    category: TemplateCategory | None = None
    is_premium: bool | None = None
    is_active: bool | None = True
    search_term: str | None = None
    sort_by: str | None = None
    sort_descending: bool = False


def _contains(term: str):
    pattern = f"%{term.strip()}%"
    return or_(
        Template.name.ilike(pattern),
        Template.description.ilike(pattern),
    )


class TemplateCatalog:
    """Catalog queries plus admin-only create/update/delete/toggle."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.audit = AuditLog(db)

    # ─── Reads ───────────────────────────────────────────────────

    @returns_result("templates.get")
    async def get_by_id(self, template_id: UUID) -> Template:
        return await self._get(template_id)

    @returns_result("templates.by_category")
    async def list_by_category(
        self, category: TemplateCategory, count: int = 20,
    ) -> list[Template]:
        rows = await self.db.scalars(
            select(Template)
            .where(
                Template.category == _category(category),
                Template.is_active.is_(True),
            )
            .order_by(Template.created_at.desc())
            .limit(max(count, 0)),
        )
        return list(rows)

    @returns_result("templates.featured")
    async def list_featured(self, count: int = 10) -> list[Template]:
        rows = await self.db.scalars(
            select(Template)
            .where(Template.is_active.is_(True))
            .order_by(Template.created_at.desc())
            .limit(max(count, 0)),
        )
        return list(rows)

    @returns_result("templates.search")
    async def search(self, term: str) -> list[Template]:
        if not term or not term.strip():
            return []
        rows = await self.db.scalars(
            select(Template)
            .where(Template.is_active.is_(True), _contains(term))
            .order_by(Template.created_at.desc()),
        )
        return list(rows)

    @returns_result("templates.list")
    async def list_templates(
        self,
        filters: TemplateFilter | None = None,
        page: PageRequest | None = None,
    ) -> Page[Template]:
        filters = filters or TemplateFilter()
        page = page or PageRequest()

        conditions = []
        if filters.is_active is not None:
            conditions.append(Template.is_active.is_(filters.is_active))
        if filters.category is not None:
            conditions.append(
                Template.category == _category(filters.category),
            )
        if filters.is_premium is not None:
            conditions.append(Template.is_premium.is_(filters.is_premium))
        if filters.search_term and filters.search_term.strip():
            conditions.append(_contains(filters.search_term))

        total = await self.db.scalar(
            select(func.count()).select_from(Template).where(*conditions),
        )
        column = resolve_sort(filters.sort_by, _SORT_COLUMNS, "created_at")
        order = column.desc() if filters.sort_descending else column.asc()
        rows = await self.db.scalars(
            select(Template)
            .where(*conditions)
            .order_by(order, Template.id)
            .offset(page.offset)
            .limit(page.page_size),
        )
        return Page(
            items=list(rows),
            total_count=total or 0,
            page=page.page,
            page_size=page.page_size,
        )

    # ─── Admin ───────────────────────────────────────────────────

    @requires_privilege(Privilege.ADMIN)
    @returns_result("templates.create")
    async def create(
        self,
        name: str,
        category: TemplateCategory,
        template_data: dict[str, Any] | None = None,
        description: str | None = None,
        thumbnail_url: str = "",
        is_premium: bool = False,
        created_by: UUID | None = None,
    ) -> Template:
        _check_name(name)
        template = Template(
            name=name.strip(),
            description=description,
            category=_category(category),
            thumbnail_url=thumbnail_url or "",
            template_data=template_data or {},
            is_premium=is_premium,
            is_active=True,
            created_by_id=created_by,
        )
        self.db.add(template)
        await self.db.commit()

        if created_by is not None:
            await self.audit.append(
                created_by, ActionType.TEMPLATE_USED,
                action_data={"action": "template_created", "templateName": template.name},
            )
        logger.info(
            f"Template created: {template.name}", extra={"template_id": template.id},
        )
        return template

    @requires_privilege(Privilege.ADMIN)
    @returns_result("templates.update")
    async def update(self, template_id: UUID, fields: dict[str, Any]) -> Template:
        unknown = set(fields) - _UPDATABLE_FIELDS
        if unknown:
            raise InvalidInputError(
                f"Unknown template fields: {', '.join(sorted(unknown))}",
                sorted(unknown)[0],
            )
        for key, value in fields.items():
            if value is None and key not in _NULLABLE_FIELDS:
                raise InvalidInputError(f"{key} cannot be null", key)
        if "name" in fields:
            _check_name(fields["name"])

        template = await self._get(template_id)
        for key, value in fields.items():
            if key == "category":
                value = _category(value)
            elif key == "name":
                value = value.strip()
            setattr(template, key, value)
        await self.db.commit()
        return template

    @requires_privilege(Privilege.ADMIN)
    @returns_result("templates.delete")
    async def delete(self, template_id: UUID) -> Template:
        """Soft delete: the row stays, listings stop returning it."""
        template = await self._get(template_id)
        template.is_active = False
        await self.db.commit()
        logger.info("Template deactivated", extra={"template_id": template_id})
        return template

    @requires_privilege(Privilege.ADMIN)
    @returns_result("templates.toggle")
    async def toggle_active(self, template_id: UUID) -> Template:
        template = await self._get(template_id)
        template.is_active = not template.is_active
        await self.db.commit()
        return template

    async def _get(self, template_id: UUID) -> Template:
        template = await self.db.scalar(
            select(Template)
            .where(Template.id == template_id)
            .execution_options(populate_existing=True),
        )
        if template is None:
            raise ResourceNotFoundError("Template", str(template_id))
        return template


def _check_name(name: str | None) -> None:
    error = check_project_name(name)
    if error is not None:
        raise error


def _category(value: TemplateCategory | str) -> str:
    try:
        return TemplateCategory(value).value
    except ValueError:
        raise InvalidInputError(f"Unknown template category: {value}", "category")
