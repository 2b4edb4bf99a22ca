"""Resilient Renderer Client — HTTP client for the external render service with retry and error mapping.

Invariants:
    - Rate limits (429) and transient errors (5xx, connection): bounded retries
      with exponential backoff and jitter
    - Client errors (4xx except 429): immediate failure, no retry
    - Timeouts are NOT retried: the request budget is already spent
    - Every failure surfaces as RenderFailedError; empty bodies count as failures

Design Decisions:
    - Wrapper over raw httpx: isolates retry logic from the export orchestrator
    - ±25% jitter on backoff: prevents thundering herd against a shared renderer
    - Canvas document is posted as-is: the renderer owns its schema
"""

import asyncio
import logging
import random

import httpx

from contentforge.core.boundary_protocols import CanvasDocument
from contentforge.core.domain_types import ExportFormat
from contentforge.core.errors import RenderFailedError

logger = logging.getLogger(__name__)

_RETRYABLE_STATUS = {429, 500, 502, 503, 504}


class HttpRenderer:
    """Renderer implementation backed by an HTTP render service."""

    def __init__(
        self,
        base_url: str,
        max_retries: int = 2,
        base_delay_ms: int = 500,
        max_delay_ms: int = 10_000,
        timeout_seconds: int = 60,
        client: httpx.AsyncClient | None = None,
    ):
        self.client = client or httpx.AsyncClient(
            base_url=base_url, timeout=timeout_seconds,
        )
        self.max_retries = max_retries
        self.base_delay_ms = base_delay_ms
        self.max_delay_ms = max_delay_ms

    async def render(
        self,
        canvas_data: CanvasDocument,
        width: int,
        height: int,
        fmt: ExportFormat,
        quality: int,
    ) -> bytes:
        payload = {
            "canvas": canvas_data,
            "width": width,
            "height": height,
            "format": fmt.value,
            "dpi": quality,
        }
        for attempt in range(self.max_retries + 1):
            try:
                response = await self.client.post("/render", json=payload)
            except httpx.TimeoutException:
                raise RenderFailedError("Renderer timed out")
            except httpx.TransportError as e:
                await self._backoff_or_fail(f"connection error: {e}", attempt)
                continue

            if response.status_code in _RETRYABLE_STATUS:
                await self._backoff_or_fail(
                    f"status {response.status_code}", attempt,
                    retry_after=response.headers.get("retry-after"),
                )
                continue
            if response.status_code >= 400:
                logger.warning(
                    f"Renderer rejected request: {response.status_code}",
                    extra={"error_code": "RENDER_FAILED"},
                )
                raise RenderFailedError()
            if not response.content:
                raise RenderFailedError("Renderer returned an empty image")
            if attempt > 0:
                logger.info(
                    "Renderer succeeded after retry", extra={"attempt": attempt},
                )
            return response.content
        raise RenderFailedError()

    async def _backoff_or_fail(
        self, reason: str, attempt: int, retry_after: str | None = None,
    ) -> None:
        if attempt >= self.max_retries:
            logger.error(
                f"Renderer failed after {attempt + 1} attempts: {reason}",
                extra={"error_code": "RENDER_FAILED", "attempt": attempt},
            )
            raise RenderFailedError()
        delay_ms = self._calculate_delay(attempt, retry_after)
        logger.warning(
            f"Renderer transient failure ({reason}), retrying in {delay_ms}ms",
            extra={"attempt": attempt},
        )
        await asyncio.sleep(delay_ms / 1000)

    def _calculate_delay(self, attempt: int, retry_after: str | None) -> int:
        if retry_after:
            try:
                return min(int(float(retry_after) * 1000), self.max_delay_ms)
            except ValueError:
                pass
        delay = min(self.base_delay_ms * (2 ** attempt), self.max_delay_ms)
        jitter = delay * 0.25 * (2 * random.random() - 1)
        return max(0, int(delay + jitter))

    async def aclose(self) -> None:
        await self.client.aclose()


class UnavailableRenderer:
    """Stand-in when no render service is configured: every export fails cleanly."""

    async def render(
        self,
        canvas_data: CanvasDocument,
        width: int,
        height: int,
        fmt: ExportFormat,
        quality: int,
    ) -> bytes:
        raise RenderFailedError("Renderer is not configured")
