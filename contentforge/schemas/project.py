"""Project Schemas — create/update/duplicate/export payloads and project responses.

Invariants:
    - ProjectUpdate is partial: routes pass model_dump(exclude_unset=True), so
      an omitted field is never confused with an explicit null
    - width/height 100–5000, quality 72–300, name 1–100 chars (stripped)
"""

from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from contentforge.core.domain_types import (
    DEFAULT_DIMENSION, DEFAULT_QUALITY, MAX_DIMENSION, MAX_NAME_LENGTH,
    MAX_QUALITY, MIN_DIMENSION, MIN_QUALITY, ExportFormat, ProjectStatus,
)
from contentforge.schemas.common import UtcDatetime


def _strip_name(v: str | None) -> str | None:
    if v is None:
        return v
    v = v.strip()
    if not v:
        raise ValueError("name cannot be empty or whitespace")
    return v


class ProjectCreate(BaseModel):
    name: str = Field(min_length=1, max_length=MAX_NAME_LENGTH)
    template_id: UUID | None = None
    canvas_data: dict[str, Any] | None = None
    width: int = Field(DEFAULT_DIMENSION, ge=MIN_DIMENSION, le=MAX_DIMENSION)
    height: int = Field(DEFAULT_DIMENSION, ge=MIN_DIMENSION, le=MAX_DIMENSION)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str) -> str:
        return _strip_name(v)


class ProjectUpdate(BaseModel):
    """Partial update — only fields present in the request body are applied."""
    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(None, min_length=1, max_length=MAX_NAME_LENGTH)
    canvas_data: dict[str, Any] | None = None
    thumbnail_url: str | None = Field(None, max_length=500)
    width: int | None = Field(None, ge=MIN_DIMENSION, le=MAX_DIMENSION)
    height: int | None = Field(None, ge=MIN_DIMENSION, le=MAX_DIMENSION)
    status: ProjectStatus | None = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str | None) -> str | None:
        return _strip_name(v)


class ProjectDuplicate(BaseModel):
    new_name: str | None = Field(None, min_length=1, max_length=MAX_NAME_LENGTH)


class ThumbnailUpdate(BaseModel):
    thumbnail_url: str = Field(min_length=1, max_length=500)


class ExportBody(BaseModel):
    format: ExportFormat = ExportFormat.PNG
    quality: int = Field(DEFAULT_QUALITY, ge=MIN_QUALITY, le=MAX_QUALITY)

    @field_validator("format", mode="before")
    @classmethod
    def lower_format(cls, v):
        return v.lower() if isinstance(v, str) else v


class ProjectResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    template_id: UUID | None
    name: str
    canvas_data: dict[str, Any]
    thumbnail_url: str | None
    width: int
    height: int
    status: ProjectStatus
    exported_at: UtcDatetime | None
    created_at: UtcDatetime
    updated_at: UtcDatetime


class ProjectSummary(BaseModel):
    """List row — canvas payload omitted."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    template_id: UUID | None
    name: str
    thumbnail_url: str | None
    width: int
    height: int
    status: ProjectStatus
    exported_at: UtcDatetime | None
    created_at: UtcDatetime
    updated_at: UtcDatetime


class ExportResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    url: str
    file_name: str
    format: ExportFormat
    quality: int
    exported_at: UtcDatetime
    exports_used: int
    exports_limit: int
