"""File upload: size checks, key generation and public URLs."""

from __future__ import annotations

import secrets
import string
import time
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import PurePosixPath

from zeelink.core.errors import FileTooLargeError, ValidationError
from zeelink.core.settings import settings
from zeelink.services.storage import ObjectStorage

_KEY_ALPHABET = string.ascii_lowercase + string.digits


@dataclass
class UploadedFile:
    """File contents received from a multipart request."""

    filename: str
    content: bytes
    content_type: str | None = None

    @property
    def size(self) -> int:
        return len(self.content)


def file_too_large(limit: int) -> FileTooLargeError:
    return FileTooLargeError(f"文件大小不能超过{limit // (1024 * 1024)}MB")


def ensure_size(files: Sequence[UploadedFile], max_size: int | None = None) -> None:
    """Reject the whole batch if any file exceeds the per-file ceiling."""
    limit = settings.upload_max_file_size if max_size is None else max_size
    for file in files:
        if file.size > limit:
            raise file_too_large(limit)


def resolve_base_path(directory: str | None = None) -> str:
    base = settings.storage_base_path.strip("/")
    if not directory:
        return base
    directory = directory.strip("/")
    if ".." in PurePosixPath(directory).parts or "\\" in directory:
        raise ValidationError("上传目录不合法")
    return f"{base}/{directory}" if base else directory


def generate_key(filename: str, base_path: str | None = None) -> str:
    """Return ``<base>/<epoch ms>-<6 random chars>.<ext>`` for `filename`."""
    base = settings.storage_base_path.strip("/") if base_path is None else base_path.strip("/")
    suffix = "".join(secrets.choice(_KEY_ALPHABET) for _ in range(6))
    name = f"{int(time.time() * 1000)}-{suffix}"
    ext = PurePosixPath(filename or "").suffix.lstrip(".").lower()
    if ext:
        name = f"{name}.{ext}"
    return f"{base}/{name}" if base else name


def get_file_url(key: str) -> str:
    return f"{settings.storage_public_domain.rstrip('/')}/{key}"


async def upload_single_file(
    storage: ObjectStorage,
    file: UploadedFile,
    directory: str | None = None,
) -> dict[str, str]:
    ensure_size([file])
    key = generate_key(file.filename, resolve_base_path(directory))
    await storage.put(key, file.content, file.content_type)
    return {"key": key, "url": get_file_url(key)}


async def upload_multiple_files(
    storage: ObjectStorage,
    files: Sequence[UploadedFile],
    directory: str | None = None,
) -> dict[str, list[dict[str, str]]]:
    """Upload files in order after checking every size up front."""
    if not files:
        raise ValidationError("请选择要上传的文件")
    ensure_size(files)
    base = resolve_base_path(directory)
    uploaded = []
    for file in files:
        key = generate_key(file.filename, base)
        await storage.put(key, file.content, file.content_type)
        uploaded.append({"key": key, "url": get_file_url(key)})
    return {"files": uploaded}
