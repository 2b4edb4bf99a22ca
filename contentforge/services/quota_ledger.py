"""Quota Ledger — monthly export counters stored on the user row.

Invariants:
    - consume_export is a single conditional UPDATE:
      used = used + 1 WHERE id = :id AND used < limit
      so two racing charges can never push used past limit
    - consume_export never commits: it joins the caller's transaction so the
      charge and the project state change become visible together
    - Resets zero the counter only; the limit is owned by the subscription

Design Decisions:
    - Compare-and-increment in SQL over SELECT ... FOR UPDATE: same guarantee,
      works on SQLite (tests) and PostgreSQL alike, one round trip
    - can_export is a plain read used for the optimistic pre-check; the UPDATE
      is the real guard
"""

import logging
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from contentforge.core.domain_types import Privilege, SubscriptionTier
from contentforge.core.errors import ResourceNotFoundError
from contentforge.core.privileges import requires_privilege
from contentforge.core.result import returns_result
from contentforge.core import rules
from contentforge.models.user import User

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QuotaSnapshot:
    user_id: UUID
    tier: SubscriptionTier
    exports_used: int
    exports_limit: int

    @property
    def remaining(self) -> int:
        return max(self.exports_limit - self.exports_used, 0)

    @property
    def can_export(self) -> bool:
        return rules.can_export(self.exports_used, self.exports_limit)


class QuotaLedger:
    """Export quota operations on the User aggregate."""

    def __init__(self, db: AsyncSession):
        self.db = db

    @staticmethod
    def can_export(user: User) -> bool:
        return rules.can_export(user.monthly_exports_used, user.monthly_exports_limit)

    async def consume_export(self, user_id: UUID) -> bool:
        """Charge one export inside the current transaction. False when the quota is spent."""
        result = await self.db.execute(
            update(User)
            .where(
                User.id == user_id,
                User.monthly_exports_used < User.monthly_exports_limit,
            )
            .values(monthly_exports_used=User.monthly_exports_used + 1)
            .execution_options(synchronize_session=False),
        )
        return result.rowcount == 1

    @returns_result("quota.get")
    async def get_quota(self, user_id: UUID) -> QuotaSnapshot:
        user = await self._get_user(user_id)
        return QuotaSnapshot(
            user_id=user.id,
            tier=user.tier,
            exports_used=user.monthly_exports_used,
            exports_limit=user.monthly_exports_limit,
        )

    @requires_privilege(Privilege.ADMIN)
    @returns_result("quota.reset")
    async def reset_monthly(self, user_id: UUID) -> User:
        user = await self._get_user(user_id)
        user.monthly_exports_used = 0
        await self.db.commit()
        logger.info("Monthly exports reset", extra={"user_id": user_id})
        return user

    @requires_privilege(Privilege.ADMIN)
    @returns_result("quota.reset_all")
    async def reset_all_monthly(self) -> int:
        """Zero every user's counter. Returns the number of rows touched."""
        result = await self.db.execute(
            update(User)
            .where(User.monthly_exports_used != 0)
            .values(monthly_exports_used=0)
            .execution_options(synchronize_session=False),
        )
        await self.db.commit()
        count = result.rowcount or 0
        logger.info(f"Monthly exports reset for {count} users")
        return count

    async def _get_user(self, user_id: UUID) -> User:
        user = await self.db.scalar(
            select(User)
            .where(User.id == user_id)
            .execution_options(populate_existing=True),
        )
        if user is None:
            raise ResourceNotFoundError("User", str(user_id))
        return user
