"""Service test fixtures — per-test SQLite database, seed factories, collaborator fakes, API client.

Invariants:
    - Every test gets a fresh file-backed SQLite database under tmp_path
      (file, not :memory:, so concurrent sessions get separate connections)
    - get_db dependency overridden to use the test session factory
    - db_manager patched so the export orchestrator opens units of work on the test DB
    - Renderer and blob store are in-process fakes that count their calls

Design Decisions:
    - Fakes are plain classes (structural typing against the boundary Protocols)
    - Seed factories write through their own session so the code under test
      never shares an identity map with the arrangement step
"""

import asyncio

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import Session

import contentforge.infrastructure.database as db_module
from contentforge.core.domain_types import ProjectStatus, SubscriptionTier
from contentforge.db.base import Base
from contentforge.infrastructure.database import DatabaseSessionManager, get_db
from contentforge.main import app
from contentforge.models.history_entry import HistoryEntry
from contentforge.models.project import Project
from contentforge.models.template import Template
from contentforge.models.user import User


class FakeRenderer:
    """Renderer double: records calls, returns fixed bytes or fails on demand."""

    def __init__(self, output: bytes = b"\x89PNG-fake", delay: float = 0.0):
        self.output = output
        self.delay = delay
        self.fail_with: Exception | None = None
        self.calls: list[dict] = []

    async def render(self, canvas_data, width, height, fmt, quality) -> bytes:
        self.calls.append({
            "canvas_data": canvas_data, "width": width, "height": height,
            "format": fmt, "quality": quality,
        })
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail_with is not None:
            raise self.fail_with
        return self.output


class FakeBlobStore:
    """Blob store double: keeps uploads in memory."""

    def __init__(self):
        self.fail_with: Exception | None = None
        self.uploads: dict[str, bytes] = {}
        self.content_types: dict[str, str] = {}
        self.deleted: list[str] = []

    async def upload(self, data: bytes, name: str, content_type: str) -> str:
        if self.fail_with is not None:
            raise self.fail_with
        self.uploads[name] = data
        self.content_types[name] = content_type
        return f"https://cdn.test/exports/{name}"

    async def delete(self, url: str) -> bool:
        self.deleted.append(url)
        return True

    async def signed_url(self, path: str, expiry_minutes: int = 60) -> str:
        return f"https://cdn.test/{path}?expires={expiry_minutes * 60}"

    @property
    def upload_count(self) -> int:
        return len(self.uploads)


@pytest.fixture
async def test_engine(tmp_path):
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'contentforge.db'}", echo=False,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def test_session_factory(test_engine):
    return async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False,
    )


@pytest.fixture
async def test_db(test_session_factory):
    async with test_session_factory() as session:
        yield session


@pytest.fixture
def renderer():
    return FakeRenderer()


@pytest.fixture
def blob_store():
    return FakeBlobStore()


@pytest.fixture
def failing_history_writes():
    """Every flush that carries a new history row raises; other writes go through."""
    attempts: list[HistoryEntry] = []

    def _refuse(session, flush_context, instances):
        pending = [obj for obj in session.new if isinstance(obj, HistoryEntry)]
        if pending:
            attempts.extend(pending)
            raise RuntimeError("history table unavailable")

    event.listen(Session, "before_flush", _refuse)
    yield attempts
    event.remove(Session, "before_flush", _refuse)


@pytest.fixture
def make_user(test_session_factory):
    """Factory: insert a user row and return it (detached)."""
    counter = {"n": 0}

    async def _make(
        tier: SubscriptionTier = SubscriptionTier.FREE,
        used: int = 0,
        limit: int = 5,
        is_active: bool = True,
        **fields,
    ) -> User:
        counter["n"] += 1
        n = counter["n"]
        user = User(
            username=fields.pop("username", f"user{n}"),
            email=fields.pop("email", f"user{n}@example.com"),
            subscription_tier=tier.value,
            monthly_exports_used=used,
            monthly_exports_limit=limit,
            is_active=is_active,
            **fields,
        )
        async with test_session_factory() as db:
            db.add(user)
            await db.commit()
        return user

    return _make


@pytest.fixture
def make_template(test_session_factory):
    """Factory: insert a template row and return it (detached)."""

    async def _make(
        name: str = "Instagram Post",
        category: str = "social_media",
        is_premium: bool = False,
        is_active: bool = True,
        template_data: dict | None = None,
        **fields,
    ) -> Template:
        template = Template(
            name=name,
            category=category,
            is_premium=is_premium,
            is_active=is_active,
            template_data=template_data if template_data is not None else {"layers": ["bg"]},
            **fields,
        )
        async with test_session_factory() as db:
            db.add(template)
            await db.commit()
        return template

    return _make


@pytest.fixture
def make_project(test_session_factory):
    """Factory: insert a project row for a user and return it (detached)."""

    async def _make(user: User, name: str = "Launch Poster", **fields) -> Project:
        project = Project(
            user_id=user.id,
            name=name,
            canvas_data=fields.pop("canvas_data", {"shapes": [{"type": "rect"}]}),
            width=fields.pop("width", 1080),
            height=fields.pop("height", 1350),
            status=fields.pop("status", ProjectStatus.DRAFT.value),
            **fields,
        )
        async with test_session_factory() as db:
            db.add(project)
            await db.commit()
        return project

    return _make


@pytest.fixture
async def client(test_engine, test_session_factory, renderer, blob_store):
    """FastAPI test client with DB dependency and collaborators overridden."""
    async def override_get_db():
        async with test_session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db

    original_manager = db_module.db_manager
    fake_manager = DatabaseSessionManager.__new__(DatabaseSessionManager)
    fake_manager.engine = test_engine
    fake_manager._session_factory = test_session_factory
    db_module.db_manager = fake_manager

    app.state.renderer = renderer
    app.state.blob_store = blob_store

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test",
    ) as c:
        yield c

    app.dependency_overrides.clear()
    db_module.db_manager = original_manager

