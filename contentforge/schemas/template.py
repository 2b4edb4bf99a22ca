"""Template Schemas — catalog responses and admin create/update payloads."""

from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from contentforge.core.domain_types import MAX_NAME_LENGTH, TemplateCategory
from contentforge.schemas.common import UtcDatetime


class TemplateCreate(BaseModel):
    name: str = Field(min_length=1, max_length=MAX_NAME_LENGTH)
    category: TemplateCategory
    description: str | None = Field(None, max_length=2000)
    thumbnail_url: str = Field("", max_length=500)
    template_data: dict[str, Any] = Field(default_factory=dict)
    is_premium: bool = False


class TemplateUpdate(BaseModel):
    """Partial update — routes pass model_dump(exclude_unset=True)."""
    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(None, min_length=1, max_length=MAX_NAME_LENGTH)
    category: TemplateCategory | None = None
    description: str | None = Field(None, max_length=2000)
    thumbnail_url: str | None = Field(None, max_length=500)
    template_data: dict[str, Any] | None = None
    is_premium: bool | None = None
    is_active: bool | None = None


class TemplateResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    description: str | None
    category: TemplateCategory
    thumbnail_url: str
    template_data: dict[str, Any]
    is_premium: bool
    is_active: bool
    created_at: UtcDatetime
    updated_at: UtcDatetime
