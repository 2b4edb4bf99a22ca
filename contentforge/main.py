"""ContentForge API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map ContentForgeError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Database and external collaborators initialized on startup via lifespan

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Renderer and blob store live on app.state so tests swap in fakes without
      monkeypatching modules
    - Local exports served under /uploads only when no object storage is configured
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from contentforge.api.error_handlers import register_error_handlers
from contentforge.api.routes import health, history, projects, templates, users
from contentforge.config import get_settings
from contentforge.infrastructure.collaborators import build_blob_store, build_renderer
from contentforge.infrastructure.database import init_db
from contentforge.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    manager = init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    app.state.renderer = build_renderer(settings)
    app.state.blob_store = build_blob_store(settings)
    if not settings.storage_url:
        (settings.local_storage_dir / "exports").mkdir(parents=True, exist_ok=True)
    logger.info("ContentForge API started")
    yield
    logger.info("ContentForge API shutting down")
    for collaborator in (app.state.renderer, app.state.blob_store):
        aclose = getattr(collaborator, "aclose", None)
        if aclose is not None:
            await aclose()
    await manager.dispose()


app = FastAPI(
    title="ContentForge API", version="1.0.0", lifespan=lifespan,
)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(projects.router)
app.include_router(templates.router)
app.include_router(history.router)
app.include_router(users.router)

if not settings.storage_url:
    app.mount(
        "/uploads",
        StaticFiles(directory=settings.local_storage_dir, check_dir=False),
        name="uploads",
    )

register_error_handlers(app)
