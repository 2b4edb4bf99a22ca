"""Business Rules — tests for the pure quota, template, bounds and naming checks.

Tests cover:
    - can_export / check_export_quota boundary at used == limit
    - check_template_eligibility: missing, inactive, premium on free, paid tiers
    - dimension, name and export request bounds (inclusive)
    - build_export_filename is UTC-based and unique per request token
    - classify_tier_change and describe_action
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from uuid import UUID, uuid4

import pytest

from contentforge.core.domain_types import ActionType, ExportFormat, SubscriptionTier
from contentforge.core.errors import (
    ForbiddenError, InvalidInputError, QuotaExceededError, ResourceNotFoundError,
)
from contentforge.core.rules import (
    build_export_filename,
    can_export,
    check_dimension,
    check_dimensions,
    check_export_quota,
    check_export_request,
    check_project_name,
    check_template_eligibility,
    classify_tier_change,
    content_type_for,
    describe_action,
    first_error,
    parse_export_format,
)


@dataclass
class _Template:
    id: UUID
    is_active: bool = True
    is_premium: bool = False


# ─── Quota ───────────────────────────────────────────────────────

def test_can_export_below_limit():
    assert can_export(4, 5) is True


def test_cannot_export_at_limit():
    assert can_export(5, 5) is False


def test_check_export_quota_carries_counters():
    error = check_export_quota(5, 5)
    assert isinstance(error, QuotaExceededError)
    assert (error.used, error.limit) == (5, 5)
    assert error.kind == "quota_exceeded"


def test_check_export_quota_none_when_available():
    assert check_export_quota(0, 5) is None


# ─── Templates ───────────────────────────────────────────────────

def test_missing_template_is_not_found():
    tid = uuid4()
    error = check_template_eligibility(None, tid, SubscriptionTier.PRO)
    assert isinstance(error, ResourceNotFoundError)
    assert str(tid) in error.message


def test_inactive_template_is_not_found():
    template = _Template(id=uuid4(), is_active=False)
    error = check_template_eligibility(template, template.id, SubscriptionTier.AGENCY)
    assert isinstance(error, ResourceNotFoundError)


def test_premium_template_forbidden_on_free_tier():
    template = _Template(id=uuid4(), is_premium=True)
    error = check_template_eligibility(template, template.id, SubscriptionTier.FREE)
    assert isinstance(error, ForbiddenError)
    assert error.code == "PREMIUM_TEMPLATE"


@pytest.mark.parametrize("tier", [SubscriptionTier.PRO, SubscriptionTier.AGENCY])
def test_premium_template_allowed_on_paid_tiers(tier):
    template = _Template(id=uuid4(), is_premium=True)
    assert check_template_eligibility(template, template.id, tier) is None


# ─── Bounds ──────────────────────────────────────────────────────

@pytest.mark.parametrize("value", [100, 1080, 5000])
def test_dimension_bounds_inclusive(value):
    assert check_dimension(value, "width") is None


@pytest.mark.parametrize("value", [99, 5001, 0, -1])
def test_dimension_out_of_bounds(value):
    error = check_dimension(value, "height")
    assert isinstance(error, InvalidInputError)
    assert error.field == "height"


def test_dimension_rejects_bool():
    assert check_dimension(True, "width") is not None


def test_check_dimensions_reports_width_first():
    error = check_dimensions(50, 50)
    assert error.field == "width"


def test_project_name_required_and_bounded():
    assert check_project_name("Poster") is None
    assert check_project_name("   ").field == "name"
    assert check_project_name(None).field == "name"
    assert check_project_name("x" * 101) is not None
    assert check_project_name("x" * 100) is None


def test_export_request_accepts_bounds():
    assert check_export_request("png", 72) is None
    assert check_export_request("PDF", 300) is None
    assert check_export_request(ExportFormat.JPG, 150) is None


def test_export_request_rejects_unknown_format():
    error = check_export_request("gif", 150)
    assert error.field == "format"


@pytest.mark.parametrize("quality", [71, 301])
def test_export_request_rejects_quality(quality):
    error = check_export_request("png", quality)
    assert error.field == "quality"


def test_parse_export_format_case_insensitive():
    assert parse_export_format("JPG") is ExportFormat.JPG
    assert parse_export_format("webp") is None


def test_first_error_returns_first_violation():
    a = InvalidInputError("a", "a")
    b = InvalidInputError("b", "b")
    assert first_error(None, a, b) is a
    assert first_error(None, None) is None


# ─── Export artifacts ────────────────────────────────────────────

def test_export_filename_uses_project_id_utc_timestamp_and_extension():
    pid = UUID("12345678-1234-5678-1234-567812345678")
    moment = datetime(2024, 3, 9, 14, 5, 7, tzinfo=timezone.utc)
    assert build_export_filename(pid, ExportFormat.PNG, moment) == (
        "export_12345678-1234-5678-1234-567812345678_20240309140507.png"
    )


def test_export_filename_converts_offsets_to_utc():
    pid = uuid4()
    local = datetime(2024, 3, 9, 16, 5, 7, tzinfo=timezone(timedelta(hours=2)))
    assert build_export_filename(pid, ExportFormat.PDF, local).endswith("_20240309140507.pdf")


def test_export_filename_token_separates_exports_in_the_same_second():
    pid = UUID("12345678-1234-5678-1234-567812345678")
    moment = datetime(2024, 3, 9, 14, 5, 7, tzinfo=timezone.utc)
    first = build_export_filename(pid, ExportFormat.PNG, moment, token="a1b2c3d4")
    second = build_export_filename(pid, ExportFormat.PNG, moment, token="e5f6a7b8")
    assert first == f"export_{pid}_20240309140507_a1b2c3d4.png"
    assert first != second


def test_content_types():
    assert content_type_for(ExportFormat.PNG) == "image/png"
    assert content_type_for(ExportFormat.JPG) == "image/jpeg"
    assert content_type_for(ExportFormat.PDF) == "application/pdf"


# ─── Subscriptions & history ─────────────────────────────────────

def test_classify_tier_change():
    assert classify_tier_change(SubscriptionTier.FREE, SubscriptionTier.PRO) is ActionType.SUBSCRIPTION_UPGRADED
    assert classify_tier_change(SubscriptionTier.AGENCY, SubscriptionTier.PRO) is ActionType.SUBSCRIPTION_DOWNGRADED
    assert classify_tier_change(SubscriptionTier.PRO, SubscriptionTier.PRO) is None


def test_describe_action():
    assert describe_action("project_exported") == "Exported project"
    assert describe_action(ActionType.USER_REGISTERED) == "Registered account"
    assert describe_action("something_else") == "Unknown action"
