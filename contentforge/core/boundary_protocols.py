"""Boundary Protocols — contracts for the external collaborators the core consumes.

Invariants:
    - Core NEVER imports concrete renderer or storage clients
    - Implementations provided by infrastructure/ via dependency injection
    - Collaborators signal failure by raising; the export orchestrator maps every
      raised exception (timeouts included) to RenderFailed / UploadFailed

Design Decisions:
    - Protocol over ABC: structural subtyping, test fakes need no inheritance
    - Canvas data typed as a plain mapping: the document schema belongs to the
      editor/renderer and is opaque here
"""

from typing import Any, Protocol

from contentforge.core.domain_types import ExportFormat


CanvasDocument = dict[str, Any]


class Renderer(Protocol):
    """Turns a canvas document into encoded image bytes."""
    async def render(
        self,
        canvas_data: CanvasDocument,
        width: int,
        height: int,
        fmt: ExportFormat,
        quality: int,
    ) -> bytes: ...


class BlobStore(Protocol):
    """Stores rendered artifacts and hands back public URLs."""
    async def upload(self, data: bytes, name: str, content_type: str) -> str: ...
    async def delete(self, url: str) -> bool: ...
    async def signed_url(self, path: str, expiry_minutes: int = 60) -> str: ...
