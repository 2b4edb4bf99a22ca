"""Domain Types — verifies identity wrappers, bounds and persisted enum tokens.

Tests:
    - NewType wrappers exist and are callable
    - Enum values are the stable storage tokens
    - Tier ranking orders free < pro < agency
"""

from uuid import uuid4

from contentforge.core.domain_types import (
    UserId, ProjectId, TemplateId, HistoryEntryId,
    MIN_DIMENSION, MAX_DIMENSION, MIN_QUALITY, MAX_QUALITY,
    ActionType, ExportFormat, ProjectStatus, SubscriptionTier, TemplateCategory,
)


def test_identity_types_wrap_uuid():
    uid = uuid4()
    assert UserId(uid) == uid
    assert ProjectId(uid) == uid
    assert TemplateId(uid) == uid
    assert HistoryEntryId(uid) == uid


def test_bounds_are_inclusive_ranges():
    assert (MIN_DIMENSION, MAX_DIMENSION) == (100, 5000)
    assert (MIN_QUALITY, MAX_QUALITY) == (72, 300)


def test_project_status_has_two_states():
    assert {s.value for s in ProjectStatus} == {"draft", "completed"}


def test_action_type_taxonomy_is_closed():
    assert {a.value for a in ActionType} == {
        "user_registered",
        "project_created",
        "project_updated",
        "project_exported",
        "template_used",
        "subscription_upgraded",
        "subscription_downgraded",
        "subscription_canceled",
    }


def test_export_format_values_double_as_extensions():
    assert [f.value for f in ExportFormat] == ["png", "jpg", "pdf"]


def test_tier_rank_orders_tiers():
    assert SubscriptionTier.FREE.rank < SubscriptionTier.PRO.rank < SubscriptionTier.AGENCY.rank


def test_enums_persist_value_not_name():
    assert str(ProjectStatus.DRAFT) != "draft"
    assert ProjectStatus.DRAFT.value == "draft"
    assert TemplateCategory("business_card") is TemplateCategory.BUSINESS_CARD
