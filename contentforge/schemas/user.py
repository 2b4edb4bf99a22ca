"""User Schemas — registration, profile, quota and subscription payloads."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from contentforge.core.domain_types import SubscriptionTier
from contentforge.schemas.common import UtcDatetime


class UserRegister(BaseModel):
    """Local record for an identity the upstream provider already verified."""
    username: str = Field(min_length=3, max_length=50)
    email: str = Field(max_length=255, pattern=r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
    full_name: str | None = Field(None, max_length=100)

    @field_validator("username")
    @classmethod
    def strip_username(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("username cannot be empty or whitespace")
        return v


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    username: str
    email: str
    full_name: str | None
    subscription_tier: SubscriptionTier
    subscription_expires_at: UtcDatetime | None
    monthly_exports_used: int
    monthly_exports_limit: int
    created_at: UtcDatetime


class QuotaResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    tier: SubscriptionTier
    exports_used: int
    exports_limit: int
    remaining: int
    can_export: bool


class SubscriptionUpdate(BaseModel):
    tier: SubscriptionTier
    expires_at: datetime | None = None
    exports_limit: int | None = Field(None, ge=0)


class CountResponse(BaseModel):
    count: int
