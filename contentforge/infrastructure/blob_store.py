"""Blob Stores — object storage for exported artifacts (remote REST API or local directory).

Invariants:
    - upload() returns a public URL or raises UploadFailedError
    - delete() returns False instead of raising when the object is unknown
    - File names are sanitized before touching any path or URL

Design Decisions:
    - HttpBlobStore speaks the common storage REST dialect
      (/storage/v1/object/{bucket}/{name}): bearer service key, public URLs
      under /object/public, signed URLs via /object/sign
    - LocalBlobStore is the development fallback when no storage_url is set;
      writes run in a worker thread so the event loop is never blocked
"""

import asyncio
import logging
import re
from pathlib import Path
from urllib.parse import quote

import httpx

from contentforge.core.errors import UploadFailedError

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]")


def sanitize_file_name(name: str) -> str:
    cleaned = _UNSAFE_CHARS.sub("_", Path(name).name)
    return cleaned.lstrip(".") or "file"


class HttpBlobStore:
    """Blob store backed by a hosted object-storage REST API."""

    def __init__(
        self,
        base_url: str,
        service_key: str,
        bucket: str = "content-generator",
        timeout_seconds: int = 30,
        client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.bucket = bucket
        self.client = client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout_seconds,
            headers={"Authorization": f"Bearer {service_key}"},
        )

    def public_url(self, name: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{self.bucket}/{quote(name)}"

    async def upload(self, data: bytes, name: str, content_type: str) -> str:
        name = sanitize_file_name(name)
        try:
            response = await self.client.post(
                f"/storage/v1/object/{self.bucket}/{quote(name)}",
                content=data,
                headers={"Content-Type": content_type, "x-upsert": "false"},
            )
        except httpx.HTTPError as e:
            logger.error(
                f"Storage upload failed for {name}: {e}",
                extra={"error_code": "UPLOAD_FAILED"},
            )
            raise UploadFailedError()
        if response.status_code >= 400:
            logger.error(
                f"Storage rejected upload of {name}: {response.status_code}",
                extra={"error_code": "UPLOAD_FAILED"},
            )
            raise UploadFailedError()
        return self.public_url(name)

    async def delete(self, url: str) -> bool:
        name = url.rsplit("/", 1)[-1]
        try:
            response = await self.client.request(
                "DELETE",
                f"/storage/v1/object/{self.bucket}",
                json={"prefixes": [name]},
            )
        except httpx.HTTPError as e:
            logger.error(f"Storage delete failed for {name}: {e}")
            return False
        return response.status_code < 400

    async def signed_url(self, path: str, expiry_minutes: int = 60) -> str:
        try:
            response = await self.client.post(
                f"/storage/v1/object/sign/{self.bucket}/{quote(path)}",
                json={"expiresIn": expiry_minutes * 60},
            )
            response.raise_for_status()
            signed = response.json().get("signedURL")
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Storage signing failed for {path}: {e}")
            raise UploadFailedError("Failed to sign storage URL")
        if not signed:
            raise UploadFailedError("Failed to sign storage URL")
        return f"{self.base_url}/storage/v1{signed}"

    async def aclose(self) -> None:
        await self.client.aclose()


class LocalBlobStore:
    """Blob store writing into a local directory served under /uploads."""

    def __init__(self, root: Path, public_base_url: str):
        self.root = Path(root)
        self.exports_dir = self.root / "exports"
        self.public_base_url = public_base_url.rstrip("/")

    async def upload(self, data: bytes, name: str, content_type: str) -> str:
        name = sanitize_file_name(name)
        target = self.exports_dir / name
        try:
            await asyncio.to_thread(self._write, target, data)
        except OSError as e:
            logger.error(
                f"Local upload failed for {name}: {e}",
                extra={"error_code": "UPLOAD_FAILED"},
            )
            raise UploadFailedError()
        return f"{self.public_base_url}/uploads/exports/{name}"

    async def delete(self, url: str) -> bool:
        target = self.exports_dir / sanitize_file_name(url.rsplit("/", 1)[-1])
        if not target.exists():
            return False
        try:
            await asyncio.to_thread(target.unlink)
        except OSError as e:
            logger.error(f"Local delete failed for {target.name}: {e}")
            return False
        return True

    async def signed_url(self, path: str, expiry_minutes: int = 60) -> str:
        # Local files are public; the expiry is advisory only.
        return f"{self.public_base_url}/uploads/{path.lstrip('/')}?expires={expiry_minutes * 60}"

    @staticmethod
    def _write(target: Path, data: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
