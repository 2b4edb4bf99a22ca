"""Health Checks — liveness and readiness for the ContentForge API.

Invariants:
    - Liveness never touches the database or collaborators
    - Readiness is 503 only when the database is unreachable; a missing renderer
      or local-disk storage is reported, not fatal (exports fail individually)
"""

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from contentforge.infrastructure import database
from contentforge.infrastructure.blob_store import LocalBlobStore
from contentforge.infrastructure.renderer_client import UnavailableRenderer

router = APIRouter(prefix="/api/v1/health", tags=["health"])


@router.get("/", status_code=status.HTTP_200_OK)
async def health_check():
    return {"status": "healthy", "service": "contentforge-api", "version": "1.0.0"}


@router.get("/ready")
async def readiness_check(request: Request):
    manager = database.db_manager
    db_ok = bool(manager) and await manager.health_check()
    checks = {
        "database": "healthy" if db_ok else "unavailable",
        "renderer": _renderer_state(request),
        "storage": _storage_state(request),
    }
    if not db_ok:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready", "checks": checks},
        )
    return {"status": "ready", "checks": checks}


def _renderer_state(request: Request) -> str:
    renderer = getattr(request.app.state, "renderer", None)
    if renderer is None or isinstance(renderer, UnavailableRenderer):
        return "not_configured"
    return "configured"


def _storage_state(request: Request) -> str:
    store = getattr(request.app.state, "blob_store", None)
    if store is None:
        return "not_configured"
    return "local" if isinstance(store, LocalBlobStore) else "remote"
