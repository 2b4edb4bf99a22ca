"""Collaborator Factories — build renderer and blob store clients from settings.

Design Decisions:
    - Missing renderer_url yields UnavailableRenderer: exports fail with
      RENDER_FAILED instead of the app refusing to start
    - Missing storage_url yields LocalBlobStore (dev fallback)
"""

import logging

from contentforge.config import Settings
from contentforge.core.boundary_protocols import BlobStore, Renderer
from contentforge.infrastructure.blob_store import HttpBlobStore, LocalBlobStore
from contentforge.infrastructure.renderer_client import HttpRenderer, UnavailableRenderer

logger = logging.getLogger(__name__)


def build_renderer(settings: Settings) -> Renderer:
    if not settings.renderer_url:
        logger.warning("renderer_url not configured; exports will fail")
        return UnavailableRenderer()
    return HttpRenderer(
        settings.renderer_url,
        max_retries=settings.renderer_max_retries,
        base_delay_ms=settings.renderer_base_delay_ms,
        max_delay_ms=settings.renderer_max_delay_ms,
        timeout_seconds=settings.renderer_timeout_seconds,
    )


def build_blob_store(settings: Settings) -> BlobStore:
    if not settings.storage_url:
        logger.warning(
            f"storage_url not configured; storing exports under {settings.local_storage_dir}",
        )
        return LocalBlobStore(settings.local_storage_dir, settings.public_base_url)
    return HttpBlobStore(
        settings.storage_url,
        settings.storage_service_key,
        bucket=settings.storage_bucket,
        timeout_seconds=settings.storage_timeout_seconds,
    )
