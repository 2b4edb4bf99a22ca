"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - UserId, ProjectId, TemplateId, HistoryEntryId wrap UUIDs
    - Width/height bounded 100–5000 inclusive; export quality bounded 72–300 DPI inclusive
    - All valid states encoded as Enums — no raw string matching
    - Enum values are the persisted tokens: renaming a member never changes storage

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders
"""

from enum import Enum
from typing import NewType
from uuid import UUID


# ─── Identity Types ──────────────────────────────────────────────

UserId = NewType("UserId", UUID)
ProjectId = NewType("ProjectId", UUID)
TemplateId = NewType("TemplateId", UUID)
HistoryEntryId = NewType("HistoryEntryId", UUID)


# ─── Bounds ──────────────────────────────────────────────────────

MIN_DIMENSION = 100
MAX_DIMENSION = 5000
DEFAULT_DIMENSION = 1080

MIN_QUALITY = 72
MAX_QUALITY = 300
DEFAULT_QUALITY = 150

MAX_NAME_LENGTH = 100


# ─── Enums ───────────────────────────────────────────────────────

class SubscriptionTier(str, Enum):
    """Subscription tiers — premium templates require anything above FREE."""
    FREE = "free"
    PRO = "pro"
    AGENCY = "agency"

    @property
    def rank(self) -> int:
        return _TIER_RANK[self]


_TIER_RANK = {
    SubscriptionTier.FREE: 0,
    SubscriptionTier.PRO: 1,
    SubscriptionTier.AGENCY: 2,
}


class ProjectStatus(str, Enum):
    """Project lifecycle — Draft until first successful export."""
    DRAFT = "draft"
    COMPLETED = "completed"


class TemplateCategory(str, Enum):
    """Template catalog categories."""
    SOCIAL_MEDIA = "social_media"
    PRESENTATION = "presentation"
    POSTER = "poster"
    FLYER = "flyer"
    BANNER = "banner"
    BUSINESS_CARD = "business_card"
    LOGO = "logo"
    INFOGRAPHIC = "infographic"
    OTHER = "other"


class ActionType(str, Enum):
    """Closed audit-log taxonomy."""
    USER_REGISTERED = "user_registered"
    PROJECT_CREATED = "project_created"
    PROJECT_UPDATED = "project_updated"
    PROJECT_EXPORTED = "project_exported"
    TEMPLATE_USED = "template_used"
    SUBSCRIPTION_UPGRADED = "subscription_upgraded"
    SUBSCRIPTION_DOWNGRADED = "subscription_downgraded"
    SUBSCRIPTION_CANCELED = "subscription_canceled"


class ExportFormat(str, Enum):
    """Export artifact formats — value doubles as the file extension."""
    PNG = "png"
    JPG = "jpg"
    PDF = "pdf"


class Privilege(str, Enum):
    """Caller privilege levels asserted by the identity provider."""
    USER = "user"
    ADMIN = "admin"
