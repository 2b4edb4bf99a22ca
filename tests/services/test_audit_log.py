"""Audit Log — append, paged query, recent, and the clear boundary.

Invariants:
    - clear(older_than=T) removes exactly entries with created_at < T
    - Queries are scoped to the user and resolve project names by join
    - append() never raises; failures come back as a Result
"""

from datetime import datetime, timedelta, timezone
from uuid import uuid4

from sqlalchemy import select

from contentforge.core.domain_types import ActionType
from contentforge.core.paging import PageRequest
from contentforge.models.history_entry import HistoryEntry
from contentforge.services.audit_log import AuditLog, HistoryFilter

T0 = datetime(2024, 4, 1, 9, 0, 0, tzinfo=timezone.utc)


async def _seed_entries(test_session_factory, user_id, project_id=None):
    """Three entries at T0-1h, T0, T0+1h."""
    async with test_session_factory() as db:
        for offset, action in (
            (-1, ActionType.PROJECT_CREATED),
            (0, ActionType.PROJECT_UPDATED),
            (1, ActionType.PROJECT_EXPORTED),
        ):
            db.add(HistoryEntry(
                user_id=user_id,
                project_id=project_id,
                action_type=action.value,
                action_data={"offset": offset},
                created_at=T0 + timedelta(hours=offset),
            ))
        await db.commit()


async def test_append_records_entry(test_db, make_user):
    user = await make_user()
    result = await AuditLog(test_db).append(
        user.id, ActionType.USER_REGISTERED, action_data={"username": "ana"},
    )
    assert result.ok
    assert result.value.action_type == "user_registered"
    assert result.value.action_data == {"username": "ana"}


async def test_append_failure_is_returned_not_raised(test_db, make_user, caplog):
    user = await make_user()
    result = await AuditLog(test_db).append(user.id, "not_an_action")
    assert not result.ok
    assert any(
        getattr(r, "error_code", None) == "AUDIT_APPEND_FAILED" for r in caplog.records
    )


async def test_clear_boundary_is_strictly_older_than(test_db, test_session_factory, make_user):
    user = await make_user()
    await _seed_entries(test_session_factory, user.id)

    removed = (await AuditLog(test_db).clear(user.id, older_than=T0)).unwrap()

    assert removed == 1
    async with test_session_factory() as db:
        left = list(await db.scalars(
            select(HistoryEntry.action_data).where(HistoryEntry.user_id == user.id),
        ))
    assert sorted(d["offset"] for d in left) == [0, 1]


async def test_clear_without_cutoff_removes_only_callers_entries(
    test_db, test_session_factory, make_user,
):
    user = await make_user()
    other = await make_user()
    await _seed_entries(test_session_factory, user.id)
    await _seed_entries(test_session_factory, other.id)

    removed = (await AuditLog(test_db).clear(user.id)).unwrap()

    assert removed == 3
    page = (await AuditLog(test_db).query(other.id)).unwrap()
    assert page.total_count == 3


async def test_query_filters_and_joins_project_name(
    test_db, test_session_factory, make_user, make_project,
):
    user = await make_user()
    project = await make_project(user, name="Menu Board")
    await _seed_entries(test_session_factory, user.id, project.id)
    audit = AuditLog(test_db)

    page = (await audit.query(
        user.id, HistoryFilter(action_type=ActionType.PROJECT_EXPORTED),
    )).unwrap()
    assert page.total_count == 1
    view = page.items[0]
    assert view.project_name == "Menu Board"
    assert view.description == "Exported project"

    ranged = (await audit.query(
        user.id, HistoryFilter(from_date=T0, to_date=T0 + timedelta(minutes=30)),
    )).unwrap()
    assert [v.action_type for v in ranged.items] == ["project_updated"]

    by_project = (await audit.query(
        user.id, HistoryFilter(project_id=uuid4()),
    )).unwrap()
    assert by_project.total_count == 0


async def test_query_sorts_newest_first_and_pages(test_db, test_session_factory, make_user):
    user = await make_user()
    await _seed_entries(test_session_factory, user.id)

    page = (await AuditLog(test_db).query(
        user.id, HistoryFilter(), PageRequest(page=1, page_size=2),
    )).unwrap()
    assert [v.action_data["offset"] for v in page.items] == [1, 0]
    assert page.total_count == 3
    assert page.has_next

    oldest_first = (await AuditLog(test_db).query(
        user.id, HistoryFilter(sort_descending=False),
    )).unwrap()
    assert [v.action_data["offset"] for v in oldest_first.items] == [-1, 0, 1]


async def test_recent_returns_newest(test_db, test_session_factory, make_user):
    user = await make_user()
    await _seed_entries(test_session_factory, user.id)
    recent = (await AuditLog(test_db).recent(user.id, 2)).unwrap()
    assert [v.action_data["offset"] for v in recent] == [1, 0]
