"""Export Orchestrator — quota gate, render, upload, atomic commit, audit.

Invariants:
    - Strictly sequential, no retries across steps; the first failing step
      aborts and is reported as a typed failure
    - Steps 2–4 leave zero durable side effects: quota, project status and
      exported_at are untouched until the commit unit in step 5
    - No session (and therefore no row lock) is held while the renderer or the
      blob store is in flight; each DB step opens its own short unit of work
    - Step 5 charges the quota with a conditional UPDATE and completes the
      project in the SAME transaction: for concurrent exports by one user the
      number of charged commits never exceeds limit - used_at_start
    - Audit (step 6) is best-effort: a failure is logged, the export still succeeds

Design Decisions:
    - Optimistic quota read in step 2, real guard in step 5: a request that
      passed step 2 but loses the race fails with QuotaExceeded and its
      rendered artifact is discarded (wasted work, never a double charge)
    - Artifact names carry a per-request token, so discarding a loser's
      artifact can never remove the winner's file
    - A project deleted while rendering → Conflict, whole unit rolled back
    - SQLite "database is locked" on commit is reported as Conflict; the
      caller may retry
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable
from uuid import UUID, uuid4

from sqlalchemy import select, update
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from contentforge.core.boundary_protocols import BlobStore, Renderer
from contentforge.core.domain_types import (
    DEFAULT_QUALITY, ActionType, ExportFormat, ProjectStatus,
)
from contentforge.core.errors import (
    ConflictError,
    ErrorContext,
    QuotaExceededError,
    RenderFailedError,
    ResourceNotFoundError,
    UploadFailedError,
)
from contentforge.core.result import returns_result
from contentforge.core.rules import (
    build_export_filename,
    check_export_quota,
    check_export_request,
    content_type_for,
    parse_export_format,
)
from contentforge.db.base import utcnow
from contentforge.models.project import Project
from contentforge.models.user import User
from contentforge.services.audit_log import AuditLog
from contentforge.services.project_store import owned_project_query
from contentforge.services.quota_ledger import QuotaLedger
from contentforge.services.user_accounts import load_active_user

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExportRequest:
    format: str = ExportFormat.PNG.value
    quality: int = DEFAULT_QUALITY


@dataclass(frozen=True)
class ExportResult:
    url: str
    file_name: str
    format: ExportFormat
    quality: int
    exported_at: datetime
    exports_used: int
    exports_limit: int


@dataclass(frozen=True)
class _ExportSource:
    """What steps 3–6 need from the step-1 read, detached from any session."""
    project_id: UUID
    project_name: str
    canvas_data: dict
    width: int
    height: int


class ExportOrchestrator:
    """Runs one export request end to end."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        renderer: Renderer,
        blob_store: BlobStore,
        clock: Callable[[], datetime] = utcnow,
        token_factory: Callable[[], str] = lambda: uuid4().hex[:8],
    ):
        self.session_factory = session_factory
        self.renderer = renderer
        self.blob_store = blob_store
        self.clock = clock
        self.token_factory = token_factory

    @returns_result("projects.export")
    async def export(
        self, project_id: UUID, user_id: UUID, request: ExportRequest | None = None,
    ) -> ExportResult:
        request = request or ExportRequest()

        # 1–2. Resolve and gate, in a short read-only session.
        source = await self._resolve_and_gate(project_id, user_id)

        # 3. Render.
        error = check_export_request(request.format, request.quality)
        if error is not None:
            raise error
        fmt = parse_export_format(request.format)
        data = await self._render(source, fmt, request.quality, user_id)

        # 4. Persist artifact.
        exported_at = self.clock()
        file_name = build_export_filename(
            source.project_id, fmt, exported_at, token=self.token_factory(),
        )
        url = await self._upload(data, file_name, fmt, user_id, source.project_id)

        # 5. Commit quota charge and project completion together.
        try:
            used, limit = await self._commit(source.project_id, user_id, exported_at)
        except Exception:
            await self._discard_artifact(url)
            raise

        # 6. Audit, best-effort.
        await self._audit(user_id, source, fmt, request.quality)

        logger.info(
            f"Project exported as {fmt.value}",
            extra={
                "user_id": user_id,
                "project_id": source.project_id,
                "export_format": fmt.value,
            },
        )
        # 7.
        return ExportResult(
            url=url,
            file_name=file_name,
            format=fmt,
            quality=request.quality,
            exported_at=exported_at,
            exports_used=used,
            exports_limit=limit,
        )

    async def _resolve_and_gate(self, project_id: UUID, user_id: UUID) -> _ExportSource:
        async with self.session_factory() as db:
            user = await load_active_user(db, user_id)
            project = await db.scalar(owned_project_query(project_id, user_id))
            if project is None:
                raise ResourceNotFoundError("Project", str(project_id))

            error = check_export_quota(user.monthly_exports_used, user.monthly_exports_limit)
            if error is not None:
                logger.info(
                    "Export rejected: monthly quota spent",
                    extra={
                        "user_id": user_id,
                        "project_id": project_id,
                        "error_code": error.code,
                    },
                )
                raise error

            return _ExportSource(
                project_id=project.id,
                project_name=project.name,
                canvas_data=dict(project.canvas_data or {}),
                width=project.width,
                height=project.height,
            )

    async def _render(
        self, source: _ExportSource, fmt: ExportFormat, quality: int, user_id: UUID,
    ) -> bytes:
        try:
            data = await self.renderer.render(
                source.canvas_data, source.width, source.height, fmt, quality,
            )
        except RenderFailedError:
            raise
        except Exception as e:
            logger.error(
                f"Renderer raised {type(e).__name__}: {e}",
                extra={
                    "user_id": user_id,
                    "project_id": source.project_id,
                    "error_code": "RENDER_FAILED",
                },
            )
            raise RenderFailedError()
        if not data:
            logger.error(
                "Renderer returned no bytes",
                extra={"project_id": source.project_id, "error_code": "RENDER_FAILED"},
            )
            raise RenderFailedError()
        return data

    async def _upload(
        self, data: bytes, file_name: str, fmt: ExportFormat,
        user_id: UUID, project_id: UUID,
    ) -> str:
        try:
            url = await self.blob_store.upload(data, file_name, content_type_for(fmt))
        except UploadFailedError:
            raise
        except Exception as e:
            logger.error(
                f"Blob store raised {type(e).__name__}: {e}",
                extra={
                    "user_id": user_id,
                    "project_id": project_id,
                    "error_code": "UPLOAD_FAILED",
                },
            )
            raise UploadFailedError()
        if not url:
            raise UploadFailedError()
        return url

    async def _commit(
        self, project_id: UUID, user_id: UUID, exported_at: datetime,
    ) -> tuple[int, int]:
        """One transaction: charge the quota, complete the project, read back the counters."""
        try:
            async with self.session_factory() as db, db.begin():
                if not await QuotaLedger(db).consume_export(user_id):
                    counters = await self._counters(db, user_id)
                    logger.info(
                        "Export lost the quota race at commit",
                        extra={
                            "user_id": user_id,
                            "project_id": project_id,
                            "error_code": "QUOTA_EXCEEDED",
                        },
                    )
                    raise QuotaExceededError(*counters)

                completed = await db.execute(
                    update(Project)
                    .where(Project.id == project_id, Project.user_id == user_id)
                    .values(
                        status=ProjectStatus.COMPLETED.value,
                        exported_at=exported_at,
                        updated_at=exported_at,
                    )
                    .execution_options(synchronize_session=False),
                )
                if completed.rowcount != 1:
                    raise ConflictError("Project was removed while the export was running")

                return await self._counters(db, user_id)
        except OperationalError as e:
            logger.warning(
                f"Export commit contended: {e}",
                extra={"user_id": user_id, "project_id": project_id, "error_code": "CONFLICT"},
            )
            raise ConflictError(
                "Concurrent export in progress, retry later",
                ErrorContext(operation="projects.export", retry_after_ms=1000),
            )

    @staticmethod
    async def _counters(db: AsyncSession, user_id: UUID) -> tuple[int, int]:
        row = (await db.execute(
            select(User.monthly_exports_used, User.monthly_exports_limit)
            .where(User.id == user_id),
        )).one()
        return row.monthly_exports_used, row.monthly_exports_limit

    async def _discard_artifact(self, url: str) -> None:
        try:
            await self.blob_store.delete(url)
        except Exception as e:
            logger.warning(f"Could not discard uncommitted artifact {url}: {e}")

    async def _audit(
        self, user_id: UUID, source: _ExportSource, fmt: ExportFormat, quality: int,
    ) -> None:
        payload = {
            "projectName": source.project_name,
            "format": fmt.value,
            "quality": quality,
        }
        try:
            async with self.session_factory() as db:
                await AuditLog(db).append(
                    user_id, ActionType.PROJECT_EXPORTED, source.project_id, payload,
                )
        except Exception as e:
            logger.error(
                f"Audit append failed for project_exported: {e}",
                extra={
                    "user_id": user_id,
                    "project_id": source.project_id,
                    "action_type": ActionType.PROJECT_EXPORTED.value,
                    "error_code": "AUDIT_APPEND_FAILED",
                },
            )
