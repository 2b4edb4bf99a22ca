"""History Schemas — audit entry views."""

from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from contentforge.core.domain_types import ActionType
from contentforge.schemas.common import UtcDatetime


class HistoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    project_id: UUID | None
    project_name: str | None
    action_type: ActionType
    action_data: dict[str, Any] | None
    description: str
    created_at: UtcDatetime


class ClearHistoryResponse(BaseModel):
    removed: int
