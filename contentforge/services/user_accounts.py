"""User Accounts — user records, subscription tier changes and tier-driven quota limits.

Invariants:
    - Credentials are never handled here: user ids arrive pre-verified
    - Inactive users are NotFound to every project/export operation
    - Tier changes log upgraded/downgraded by tier rank; same tier logs nothing
    - A new tier resets the monthly limit to the tier default unless the caller
      supplies an explicit limit

Design Decisions:
    - Subscription state lives on the user row (no payment-provider coupling);
      settlement is an external concern
"""

import logging
from datetime import datetime
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from contentforge.config import Settings, get_settings
from contentforge.core.domain_types import ActionType, Privilege, SubscriptionTier
from contentforge.core.errors import InvalidInputError, ResourceNotFoundError
from contentforge.core.privileges import requires_privilege
from contentforge.core.result import returns_result
from contentforge.core.rules import classify_tier_change
from contentforge.db.base import as_utc, utcnow
from contentforge.models.user import User
from contentforge.services.audit_log import AuditLog

logger = logging.getLogger(__name__)


async def load_active_user(db: AsyncSession, user_id: UUID) -> User:
    """Fetch an active user or raise NotFound."""
    user = await db.scalar(
        select(User)
        .where(User.id == user_id, User.is_active.is_(True))
        .execution_options(populate_existing=True),
    )
    if user is None:
        raise ResourceNotFoundError("User", str(user_id))
    return user


class UserAccounts:
    """User lifecycle operations that the project core depends on."""

    def __init__(self, db: AsyncSession, settings: Settings | None = None):
        self.db = db
        self.settings = settings or get_settings()
        self.audit = AuditLog(db)

    @returns_result("users.register")
    async def register(
        self,
        username: str,
        email: str,
        full_name: str | None = None,
        user_id: UUID | None = None,
    ) -> User:
        """Create the local record for an identity issued by the identity provider."""
        if not username or not username.strip():
            raise InvalidInputError("username is required", "username")
        if not email or "@" not in email:
            raise InvalidInputError("email is invalid", "email")
        username = username.strip()
        email = email.strip().lower()

        existing = await self.db.scalar(
            select(User.id).where(
                (User.username == username) | (User.email == email),
            ),
        )
        if existing is not None:
            raise InvalidInputError("username or email already registered", "email")

        user = User(
            username=username,
            email=email,
            full_name=full_name,
            subscription_tier=SubscriptionTier.FREE.value,
            monthly_exports_used=0,
            monthly_exports_limit=self.settings.exports_limit_for(SubscriptionTier.FREE),
            is_active=True,
        )
        if user_id is not None:
            user.id = user_id
        self.db.add(user)
        await self.db.commit()

        await self.audit.append(
            user.id, ActionType.USER_REGISTERED,
            action_data={"username": user.username},
        )
        logger.info("User registered", extra={"user_id": user.id})
        return user

    @returns_result("users.get")
    async def get(self, user_id: UUID) -> User:
        return await load_active_user(self.db, user_id)

    @requires_privilege(Privilege.ADMIN)
    @returns_result("users.update_subscription")
    async def update_subscription(
        self,
        user_id: UUID,
        tier: SubscriptionTier,
        expires_at: datetime | None = None,
        exports_limit: int | None = None,
    ) -> User:
        if exports_limit is not None and exports_limit < 0:
            raise InvalidInputError("exports_limit must be >= 0", "exports_limit")
        user = await load_active_user(self.db, user_id)
        old_tier = user.tier
        new_tier = SubscriptionTier(tier)

        user.subscription_tier = new_tier.value
        user.subscription_expires_at = as_utc(expires_at) if expires_at else None
        if exports_limit is not None:
            user.monthly_exports_limit = exports_limit
        elif new_tier != old_tier:
            user.monthly_exports_limit = self.settings.exports_limit_for(new_tier)
        await self.db.commit()

        action = classify_tier_change(old_tier, new_tier)
        if action is not None:
            await self.audit.append(
                user.id, action,
                action_data={"oldTier": old_tier.value, "newTier": new_tier.value},
            )
        return user

    @returns_result("users.cancel_subscription")
    async def cancel_subscription(self, user_id: UUID) -> User:
        user = await load_active_user(self.db, user_id)
        old_tier = user.tier
        user.subscription_tier = SubscriptionTier.FREE.value
        user.subscription_expires_at = None
        user.monthly_exports_limit = self.settings.exports_limit_for(SubscriptionTier.FREE)
        await self.db.commit()

        await self.audit.append(
            user.id, ActionType.SUBSCRIPTION_CANCELED,
            action_data={"oldTier": old_tier.value},
        )
        return user

    @requires_privilege(Privilege.ADMIN)
    @returns_result("users.downgrade_expired")
    async def downgrade_expired(self, now: datetime | None = None) -> int:
        """Move active paid users whose subscription lapsed back to the free tier."""
        moment = as_utc(now) if now else utcnow()
        rows = await self.db.scalars(
            select(User).where(
                User.is_active.is_(True),
                User.subscription_tier != SubscriptionTier.FREE.value,
                User.subscription_expires_at.is_not(None),
                User.subscription_expires_at < moment,
            ),
        )
        lapsed = list(rows)
        changes = []
        for user in lapsed:
            changes.append((user.id, user.tier))
            user.subscription_tier = SubscriptionTier.FREE.value
            user.subscription_expires_at = None
            user.monthly_exports_limit = self.settings.exports_limit_for(SubscriptionTier.FREE)
        await self.db.commit()

        for uid, old_tier in changes:
            await self.audit.append(
                uid, ActionType.SUBSCRIPTION_DOWNGRADED,
                action_data={
                    "oldTier": old_tier.value,
                    "newTier": SubscriptionTier.FREE.value,
                    "reason": "expired",
                },
            )
        if changes:
            logger.info(f"Downgraded {len(changes)} expired subscriptions")
        return len(changes)
