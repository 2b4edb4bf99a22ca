"""Business Rules — pure checks for quota, template eligibility, bounds and export naming.

Invariants:
    - All functions are PURE: no IO, no async, no DB, no side effects
    - Checks return an error instance on violation, None on success
    - first_error chains checks — first violation wins
    - can_export is the single definition of "quota available": used < limit

Design Decisions:
    - Pure functions over service methods: testable without a database
    - Return errors (not raise): services decide whether to raise inside their
      Result boundary, tests assert on the returned value directly
"""

from datetime import datetime, timezone
from typing import Protocol
from uuid import UUID

from contentforge.core.domain_types import (
    ActionType,
    ExportFormat,
    MAX_DIMENSION,
    MAX_NAME_LENGTH,
    MAX_QUALITY,
    MIN_DIMENSION,
    MIN_QUALITY,
    SubscriptionTier,
)
from contentforge.core.errors import (
    ContentForgeError,
    ForbiddenError,
    InvalidInputError,
    QuotaExceededError,
    ResourceNotFoundError,
)


class TemplateLike(Protocol):
    """Structural contract for the template fields the eligibility rule reads."""
    id: UUID
    is_active: bool
    is_premium: bool


# ─── Quota ───────────────────────────────────────────────────────

def can_export(exports_used: int, exports_limit: int) -> bool:
    return exports_used < exports_limit


def check_export_quota(exports_used: int, exports_limit: int) -> QuotaExceededError | None:
    if not can_export(exports_used, exports_limit):
        return QuotaExceededError(exports_used, exports_limit)
    return None


# ─── Templates ───────────────────────────────────────────────────

def check_template_eligibility(
    template: TemplateLike | None, template_id: UUID, tier: SubscriptionTier,
) -> ContentForgeError | None:
    """Template must exist and be active; premium templates need a paid tier."""
    if template is None or not template.is_active:
        return ResourceNotFoundError("Template", str(template_id))
    if template.is_premium and tier == SubscriptionTier.FREE:
        return ForbiddenError(
            "Premium template requires subscription", code="PREMIUM_TEMPLATE",
        )
    return None


# ─── Input bounds ────────────────────────────────────────────────

def check_dimension(value: int, field: str) -> InvalidInputError | None:
    if not isinstance(value, int) or isinstance(value, bool):
        return InvalidInputError(f"{field} must be an integer", field)
    if value < MIN_DIMENSION or value > MAX_DIMENSION:
        return InvalidInputError(
            f"{field} must be between {MIN_DIMENSION} and {MAX_DIMENSION}", field,
        )
    return None


def check_dimensions(width: int, height: int) -> InvalidInputError | None:
    return first_error(
        check_dimension(width, "width"),
        check_dimension(height, "height"),
    )


def check_project_name(name: str | None) -> InvalidInputError | None:
    if name is None or not name.strip():
        return InvalidInputError("name is required", "name")
    if len(name) > MAX_NAME_LENGTH:
        return InvalidInputError(
            f"name must be at most {MAX_NAME_LENGTH} characters", "name",
        )
    return None


def parse_export_format(value: str | ExportFormat) -> ExportFormat | None:
    try:
        return ExportFormat(str(getattr(value, "value", value)).lower())
    except ValueError:
        return None


def check_export_request(fmt: str | ExportFormat, quality: int) -> InvalidInputError | None:
    if parse_export_format(fmt) is None:
        return InvalidInputError(
            "format must be one of: " + ", ".join(f.value for f in ExportFormat),
            "format",
        )
    if quality < MIN_QUALITY or quality > MAX_QUALITY:
        return InvalidInputError(
            f"quality must be between {MIN_QUALITY} and {MAX_QUALITY}", "quality",
        )
    return None


def first_error(*errors: ContentForgeError | None) -> ContentForgeError | None:
    """Return the first non-None error."""
    for error in errors:
        if error is not None:
            return error
    return None


# ─── Export artifacts ────────────────────────────────────────────

_CONTENT_TYPES = {
    ExportFormat.PNG: "image/png",
    ExportFormat.JPG: "image/jpeg",
    ExportFormat.PDF: "application/pdf",
}


def build_export_filename(
    project_id: UUID,
    fmt: ExportFormat,
    now: datetime | None = None,
    token: str | None = None,
) -> str:
    """Artifact name: export_<project>_<UTC yyyyMMddHHmmss>[_<token>].<ext>.

    Two exports of one project inside the same second share the timestamp;
    the per-request token keeps their artifacts apart.
    """
    moment = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    suffix = f"_{token}" if token else ""
    return f"export_{project_id}_{moment:%Y%m%d%H%M%S}{suffix}.{fmt.value}"


def content_type_for(fmt: ExportFormat) -> str:
    return _CONTENT_TYPES[fmt]


# ─── Subscriptions & history ─────────────────────────────────────

def classify_tier_change(
    old: SubscriptionTier, new: SubscriptionTier,
) -> ActionType | None:
    if new.rank > old.rank:
        return ActionType.SUBSCRIPTION_UPGRADED
    if new.rank < old.rank:
        return ActionType.SUBSCRIPTION_DOWNGRADED
    return None


_ACTION_DESCRIPTIONS = {
    ActionType.USER_REGISTERED: "Registered account",
    ActionType.PROJECT_CREATED: "Created a new project",
    ActionType.PROJECT_UPDATED: "Updated project",
    ActionType.PROJECT_EXPORTED: "Exported project",
    ActionType.TEMPLATE_USED: "Used a template",
    ActionType.SUBSCRIPTION_UPGRADED: "Upgraded subscription",
    ActionType.SUBSCRIPTION_DOWNGRADED: "Downgraded subscription",
    ActionType.SUBSCRIPTION_CANCELED: "Canceled subscription",
}


def describe_action(action_type: ActionType | str) -> str:
    try:
        return _ACTION_DESCRIPTIONS[ActionType(action_type)]
    except ValueError:
        return "Unknown action"
