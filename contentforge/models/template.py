"""Template ORM — reusable canvas blueprints in the catalog.

Invariants:
    - Never hard-deleted: retirement flips is_active to False
    - template_data is opaque to the core (schema owned by editor/renderer)
    - created_by_id is SET NULL when the creating user is removed

Design Decisions:
    - JSON column for template_data: stored as-is, copied into new projects
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from contentforge.db.base import Base, utcnow


class Template(Base):
    """Catalog entry — premium flag gates free-tier usage."""
    __tablename__ = "templates"
    __table_args__ = (
        Index("ix_templates_category_active", "category", "is_active"),
    )

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(String(30), nullable=False)
    thumbnail_url: Mapped[str] = mapped_column(
        String(500), nullable=False, default="",
    )
    template_data: Mapped[dict] = mapped_column(
        JSON, nullable=False, default=dict,
    )
    is_premium: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True,
    )
    created_by_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow,
    )
