"""Project ORM — a user's canvas, its dimensions and export state.

Invariants:
    - user_id is immutable after creation (no transfer operation exists)
    - width/height within 100–5000 (validated by core/rules before any write)
    - status transitions draft -> completed on export; duplicate resets to draft
    - template_id is SET NULL if the template row ever disappears

Design Decisions:
    - JSON column for canvas_data: opaque document handed to the renderer
    - No ORM relationships: every read goes through an explicit id+owner query,
      and async sessions cannot lazy-load
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, JSON, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from contentforge.core.domain_types import DEFAULT_DIMENSION, ProjectStatus
from contentforge.db.base import Base, utcnow


class Project(Base):
    """Project entity — owned by exactly one user."""
    __tablename__ = "projects"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    template_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("templates.id", ondelete="SET NULL"),
        nullable=True,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    canvas_data: Mapped[dict] = mapped_column(
        JSON, nullable=False, default=dict,
    )
    thumbnail_url: Mapped[str | None] = mapped_column(
        String(500), nullable=True,
    )
    width: Mapped[int] = mapped_column(
        Integer, nullable=False, default=DEFAULT_DIMENSION,
    )
    height: Mapped[int] = mapped_column(
        Integer, nullable=False, default=DEFAULT_DIMENSION,
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ProjectStatus.DRAFT.value, index=True,
    )
    exported_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, index=True,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow,
        index=True,
    )
