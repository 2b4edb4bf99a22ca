"""Export Orchestrator — quota gate, render, upload, atomic commit, best-effort audit.

Invariants:
    - Success charges exactly one export, completes the project, logs project_exported
    - Quota spent → QuotaExceeded with no renderer or blob store call
    - Render or upload failure → quota, status and exported_at unchanged
    - Audit failure never fails the export
    - Foreign projects are NotFound and nothing is rendered
    - Any commit failure deletes the request's own uploaded artifact
"""

from datetime import datetime, timezone
from itertools import count
from uuid import uuid4

import pytest
from sqlalchemy import select
from sqlalchemy.exc import DBAPIError

from contentforge.core.domain_types import ActionType, ExportFormat, ProjectStatus
from contentforge.core.errors import DatabaseError, UploadFailedError
from contentforge.core.result import Result
from contentforge.db.base import as_utc
from contentforge.models.history_entry import HistoryEntry
from contentforge.models.project import Project
from contentforge.models.user import User
from contentforge.services.export_orchestrator import ExportOrchestrator, ExportRequest

NOW = datetime(2024, 6, 1, 12, 30, 45, tzinfo=timezone.utc)


@pytest.fixture
def orchestrator(test_session_factory, renderer, blob_store):
    tokens = count(1)
    return ExportOrchestrator(
        test_session_factory, renderer, blob_store,
        clock=lambda: NOW, token_factory=lambda: f"t{next(tokens)}",
    )


async def _state(test_session_factory, user_id, project_id):
    async with test_session_factory() as db:
        user = await db.scalar(select(User).where(User.id == user_id))
        project = await db.scalar(select(Project).where(Project.id == project_id))
        history = list(await db.scalars(
            select(HistoryEntry).where(HistoryEntry.user_id == user_id),
        ))
        return user, project, history


# ─── the concrete scenario ───────────────────────────────────────

async def test_free_user_exports_last_quota_slot_then_is_refused(
    orchestrator, test_session_factory, renderer, blob_store, make_user, make_project,
):
    user = await make_user(used=4, limit=5)
    project = await make_project(user, name="Launch Poster")

    result = await orchestrator.export(project.id, user.id, ExportRequest("png", 150))

    assert result.ok, result.error
    export = result.value
    expected_name = f"export_{project.id}_20240601123045_t1.png"
    assert export.file_name == expected_name
    assert export.url == f"https://cdn.test/exports/{expected_name}"
    assert export.format is ExportFormat.PNG
    assert (export.exports_used, export.exports_limit) == (5, 5)
    assert blob_store.content_types[expected_name] == "image/png"

    user_row, project_row, history = await _state(test_session_factory, user.id, project.id)
    assert user_row.monthly_exports_used == 5
    assert project_row.status == ProjectStatus.COMPLETED.value
    assert as_utc(project_row.exported_at) == NOW
    assert [h.action_type for h in history] == [ActionType.PROJECT_EXPORTED.value]
    assert history[0].project_id == project.id
    assert history[0].action_data == {
        "projectName": "Launch Poster", "format": "png", "quality": 150,
    }

    second = await orchestrator.export(project.id, user.id, ExportRequest("png", 150))
    assert second.kind == "quota_exceeded"
    assert len(renderer.calls) == 1
    assert blob_store.upload_count == 1


async def test_renderer_receives_project_canvas_and_dimensions(
    orchestrator, renderer, make_user, make_project,
):
    user = await make_user()
    project = await make_project(user, canvas_data={"bg": "#fff"}, width=600, height=400)
    (await orchestrator.export(project.id, user.id, ExportRequest("JPG", 300))).unwrap()
    call = renderer.calls[0]
    assert call["canvas_data"] == {"bg": "#fff"}
    assert (call["width"], call["height"]) == (600, 400)
    assert call["format"] is ExportFormat.JPG
    assert call["quality"] == 300


# ─── quota monotonicity & ceiling ────────────────────────────────

async def test_n_exports_then_ceiling(
    orchestrator, test_session_factory, renderer, blob_store, make_user, make_project,
):
    user = await make_user(used=1, limit=4)
    project = await make_project(user)

    for expected_used in (2, 3, 4):
        result = await orchestrator.export(project.id, user.id)
        assert result.value.exports_used == expected_used

    refused = await orchestrator.export(project.id, user.id)
    assert refused.kind == "quota_exceeded"
    assert len(renderer.calls) == 3
    assert blob_store.upload_count == 3

    user_row, _, history = await _state(test_session_factory, user.id, project.id)
    assert user_row.monthly_exports_used == 4
    assert len(history) == 3


async def test_exhausted_quota_touches_nothing(
    orchestrator, test_session_factory, renderer, blob_store, make_user, make_project,
):
    user = await make_user(used=5, limit=5)
    project = await make_project(user)

    result = await orchestrator.export(project.id, user.id)

    assert result.kind == "quota_exceeded"
    assert renderer.calls == []
    assert blob_store.upload_count == 0
    user_row, project_row, history = await _state(test_session_factory, user.id, project.id)
    assert user_row.monthly_exports_used == 5
    assert project_row.status == ProjectStatus.DRAFT.value
    assert history == []


# ─── no-op on failure ────────────────────────────────────────────

@pytest.mark.parametrize("failure", [
    RuntimeError("renderer crashed"),
    TimeoutError("render timed out"),
])
async def test_render_failure_changes_nothing(
    failure, orchestrator, test_session_factory, renderer, blob_store,
    make_user, make_project,
):
    user = await make_user(used=2, limit=5)
    project = await make_project(user)
    renderer.fail_with = failure

    result = await orchestrator.export(project.id, user.id)

    assert result.kind == "dependency_failure"
    assert result.error.code == "RENDER_FAILED"
    assert blob_store.upload_count == 0
    user_row, project_row, history = await _state(test_session_factory, user.id, project.id)
    assert user_row.monthly_exports_used == 2
    assert project_row.status == ProjectStatus.DRAFT.value
    assert project_row.exported_at is None
    assert history == []


async def test_empty_render_output_is_render_failure(
    orchestrator, renderer, blob_store, make_user, make_project,
):
    user = await make_user()
    project = await make_project(user)
    renderer.output = b""

    result = await orchestrator.export(project.id, user.id)

    assert result.error.code == "RENDER_FAILED"
    assert blob_store.upload_count == 0


@pytest.mark.parametrize("failure", [UploadFailedError(), ConnectionError("bucket offline")])
async def test_upload_failure_changes_nothing(
    failure, orchestrator, test_session_factory, renderer, blob_store,
    make_user, make_project,
):
    user = await make_user(used=0, limit=5)
    project = await make_project(user)
    blob_store.fail_with = failure

    result = await orchestrator.export(project.id, user.id)

    assert result.error.code == "UPLOAD_FAILED"
    assert len(renderer.calls) == 1
    user_row, project_row, history = await _state(test_session_factory, user.id, project.id)
    assert user_row.monthly_exports_used == 0
    assert project_row.status == ProjectStatus.DRAFT.value
    assert project_row.exported_at is None
    assert history == []


# ─── resolution & validation ─────────────────────────────────────

async def test_foreign_or_missing_project_is_not_found(
    orchestrator, renderer, make_user, make_project,
):
    owner = await make_user()
    stranger = await make_user()
    project = await make_project(owner)

    assert (await orchestrator.export(project.id, stranger.id)).kind == "not_found"
    assert (await orchestrator.export(uuid4(), owner.id)).kind == "not_found"
    assert (await orchestrator.export(project.id, uuid4())).kind == "not_found"
    assert renderer.calls == []


async def test_invalid_format_or_quality_is_rejected_before_render(
    orchestrator, renderer, make_user, make_project,
):
    user = await make_user()
    project = await make_project(user)

    bad_format = await orchestrator.export(project.id, user.id, ExportRequest("gif", 150))
    bad_quality = await orchestrator.export(project.id, user.id, ExportRequest("png", 301))

    assert bad_format.kind == "invalid_input"
    assert bad_quality.error.field == "quality"
    assert renderer.calls == []


async def test_project_deleted_mid_export_is_conflict_and_uncharged(
    test_session_factory, blob_store, make_user, make_project,
):
    user = await make_user(used=0, limit=5)
    project = await make_project(user)

    class _DeletingRenderer:
        async def render(self, canvas_data, width, height, fmt, quality):
            async with test_session_factory() as db:
                row = await db.get(Project, project.id)
                await db.delete(row)
                await db.commit()
            return b"bytes"

    orchestrator = ExportOrchestrator(test_session_factory, _DeletingRenderer(), blob_store)
    result = await orchestrator.export(project.id, user.id)

    assert result.kind == "conflict"
    assert len(blob_store.deleted) == 1
    async with test_session_factory() as db:
        used = await db.scalar(select(User.monthly_exports_used).where(User.id == user.id))
    assert used == 0


async def test_driver_error_at_commit_discards_uploaded_artifact(
    orchestrator, test_session_factory, blob_store, monkeypatch, make_user, make_project,
):
    user = await make_user(used=0, limit=5)
    project = await make_project(user)

    async def _driver_gone(*args, **kwargs):
        raise DBAPIError("UPDATE projects", {}, Exception("driver gone"))

    monkeypatch.setattr(orchestrator, "_commit", _driver_gone)

    result = await orchestrator.export(project.id, user.id)

    assert result.kind == "database"
    name = f"export_{project.id}_20240601123045_t1.png"
    assert blob_store.deleted == [f"https://cdn.test/exports/{name}"]
    user_row, project_row, history = await _state(test_session_factory, user.id, project.id)
    assert user_row.monthly_exports_used == 0
    assert project_row.status != ProjectStatus.COMPLETED.value
    assert history == []


# ─── audit best-effort) ───────────────────────────────────────────

async def test_audit_failure_does_not_fail_export(
    orchestrator, test_session_factory, monkeypatch, make_user, make_project,
):
    user = await make_user(used=0, limit=5)
    project = await make_project(user)
    attempts = []

    class _FailingAuditLog:
        def __init__(self, db):
            pass

        async def append(self, *args, **kwargs):
            attempts.append(args)
            raise RuntimeError("history table unavailable")

    monkeypatch.setattr(
        "contentforge.services.export_orchestrator.AuditLog", _FailingAuditLog,
    )

    result = await orchestrator.export(project.id, user.id)

    assert result.ok
    assert len(attempts) == 1
    user_row, project_row, history = await _state(test_session_factory, user.id, project.id)
    assert user_row.monthly_exports_used == 1
    assert project_row.status == ProjectStatus.COMPLETED.value
    assert history == []


async def test_audit_failure_result_is_ignored(
    orchestrator, monkeypatch, make_user, make_project,
):
    user = await make_user()
    project = await make_project(user)

    class _RefusingAuditLog:
        def __init__(self, db):
            pass

        async def append(self, *args, **kwargs):
            return Result.failure(DatabaseError("disk full", "insert"))

    monkeypatch.setattr(
        "contentforge.services.export_orchestrator.AuditLog", _RefusingAuditLog,
    )

    result = await orchestrator.export(project.id, user.id)
    assert result.ok
    assert result.value.exports_used == 1
