"""Quota Ledger — conditional charge, snapshots and resets."""

from uuid import uuid4

from sqlalchemy import select

from contentforge.core.domain_types import SubscriptionTier
from contentforge.models.user import User
from contentforge.services.quota_ledger import QuotaLedger


async def _used(test_session_factory, user_id):
    async with test_session_factory() as db:
        return await db.scalar(select(User.monthly_exports_used).where(User.id == user_id))


async def test_consume_export_charges_once_below_limit(test_db, test_session_factory, make_user):
    user = await make_user(used=4, limit=5)
    ledger = QuotaLedger(test_db)

    assert await ledger.consume_export(user.id) is True
    await test_db.commit()
    assert await _used(test_session_factory, user.id) == 5

    assert await ledger.consume_export(user.id) is False
    await test_db.commit()
    assert await _used(test_session_factory, user.id) == 5


async def test_consume_export_is_visible_only_after_commit(
    test_db, test_session_factory, make_user,
):
    user = await make_user(used=0, limit=5)
    assert await QuotaLedger(test_db).consume_export(user.id) is True
    await test_db.rollback()
    assert await _used(test_session_factory, user.id) == 0


async def test_get_quota_snapshot(test_db, make_user):
    user = await make_user(tier=SubscriptionTier.PRO, used=40, limit=100)
    snapshot = (await QuotaLedger(test_db).get_quota(user.id)).unwrap()
    assert snapshot.tier is SubscriptionTier.PRO
    assert snapshot.remaining == 60
    assert snapshot.can_export is True


async def test_can_export_reads_counters(make_user):
    spent = await make_user(used=5, limit=5)
    assert QuotaLedger.can_export(spent) is False


async def test_reset_monthly_zeroes_counter_only(test_db, make_user):
    user = await make_user(used=5, limit=5)
    reset = (await QuotaLedger(test_db).reset_monthly(user.id)).unwrap()
    assert reset.monthly_exports_used == 0
    assert reset.monthly_exports_limit == 5


async def test_reset_all_monthly_counts_touched_rows(test_db, test_session_factory, make_user):
    a = await make_user(used=3)
    b = await make_user(used=5)
    await make_user(used=0)

    count = (await QuotaLedger(test_db).reset_all_monthly()).unwrap()

    assert count == 2
    assert await _used(test_session_factory, a.id) == 0
    assert await _used(test_session_factory, b.id) == 0


async def test_unknown_user_quota_is_not_found(test_db):
    assert (await QuotaLedger(test_db).get_quota(uuid4())).kind == "not_found"
