"""HistoryEntry ORM — append-only audit trail of user actions.

Invariants:
    - Never updated: no updated_at column, no update path in any service
    - Deleted only by AuditLog.clear or by cascade when the project is deleted
    - action_data is opaque; its shape depends on action_type

Design Decisions:
    - Observability table: no business rule ever reads it back
    - project_id cascades on project delete: audit views never show dangling
      project names
"""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, JSON, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from contentforge.db.base import Base, utcnow


class HistoryEntry(Base):
    """Audit log row."""
    __tablename__ = "history"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    project_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("projects.id", ondelete="CASCADE"),
        nullable=True,
    )
    action_type: Mapped[str] = mapped_column(
        String(40), nullable=False, index=True,
    )
    action_data: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, index=True,
    )
