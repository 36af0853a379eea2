"""Object storage backends used by the upload service."""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Protocol

import httpx

from zeelink.core.errors import UploadFailedError
from zeelink.core.settings import settings

logger = logging.getLogger(__name__)


class ObjectStorage(Protocol):
    async def put(self, key: str, data: bytes, content_type: str | None = None) -> None: ...


class LocalObjectStorage:
    """Write objects below a local directory, served by the app under ``/media``."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root).resolve()

    def path_for(self, key: str) -> Path:
        path = (self.root / key).resolve()
        if not path.is_relative_to(self.root):
            raise UploadFailedError("非法的文件路径")
        return path

    async def put(self, key: str, data: bytes, content_type: str | None = None) -> None:
        path = self.path_for(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(data)
        except OSError as exc:
            logger.error("Failed to write %s: %s", path, exc)
            raise UploadFailedError() from exc


class HttpObjectStorage:
    """PUT objects to ``<upload_url>/<key>`` on an HTTP object store."""

    def __init__(
        self,
        upload_url: str,
        token: str | None = None,
        timeout_seconds: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.upload_url = upload_url.rstrip("/")
        self.token = token
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    async def put(self, key: str, data: bytes, content_type: str | None = None) -> None:
        headers = {"Content-Type": content_type or "application/octet-stream"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout_seconds),
                transport=self._transport,
            ) as client:
                response = await client.put(f"{self.upload_url}/{key}", content=data, headers=headers)
                response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("Object storage upload of %s failed: %s", key, exc)
            raise UploadFailedError() from exc


@lru_cache(maxsize=1)
def get_object_storage() -> ObjectStorage:
    """Return the configured storage backend."""
    if settings.storage_backend == "http":
        if not settings.storage_upload_url:
            raise UploadFailedError("对象存储未配置")
        return HttpObjectStorage(
            settings.storage_upload_url,
            token=settings.storage_token,
            timeout_seconds=settings.storage_timeout_seconds,
        )
    return LocalObjectStorage(settings.storage_local_root)
