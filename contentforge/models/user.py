"""User ORM — ownership root and home of the monthly export quota.

Invariants:
    - id is UUID primary key
    - monthly_exports_used <= monthly_exports_limit is enforced at increment time
      (conditional UPDATE in QuotaLedger.consume_export), not by a DB constraint
    - subscription_tier stores SubscriptionTier values as string tokens

Design Decisions:
    - Quota columns live on the user row: the quota charge and the project state
      change commit in one transaction that touches exactly two rows
    - Credentials are not stored: identity is owned by the external provider
"""

import uuid
from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from contentforge.core.domain_types import SubscriptionTier
from contentforge.db.base import Base, utcnow


class User(Base):
    """User aggregate — owns projects, history entries and the export quota."""
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    username: Mapped[str] = mapped_column(
        String(50), unique=True, nullable=False,
    )
    email: Mapped[str] = mapped_column(
        String(255), unique=True, nullable=False,
    )
    full_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    subscription_tier: Mapped[str] = mapped_column(
        String(20), nullable=False, default=SubscriptionTier.FREE.value,
    )
    subscription_expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    monthly_exports_used: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0,
    )
    monthly_exports_limit: Mapped[int] = mapped_column(
        Integer, nullable=False, default=5,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow,
    )

    @property
    def tier(self) -> SubscriptionTier:
        return SubscriptionTier(self.subscription_tier)
