# mypy: ignore-errors
# tests/services/test_upload_service.py
"""Tests for upload helpers and storage backends."""

import re

import httpx
import pytest

from zeelink.core.errors import FileTooLargeError, UploadFailedError, ValidationError
from zeelink.services.storage import HttpObjectStorage, LocalObjectStorage
from zeelink.services.upload import (
    UploadedFile,
    ensure_size,
    generate_key,
    get_file_url,
    resolve_base_path,
    upload_multiple_files,
    upload_single_file,
)


def test_generate_key_format() -> None:
    key = generate_key("Photo.JPEG", "uploads/posts")
    assert re.fullmatch(r"uploads/posts/\d{13}-[a-z0-9]{6}\.jpeg", key)


def test_generate_key_without_extension() -> None:
    assert re.fullmatch(r"\d{13}-[a-z0-9]{6}", generate_key("README", ""))


def test_resolve_base_path() -> None:
    assert resolve_base_path() == "uploads"
    assert resolve_base_path("/avatars/") == "uploads/avatars"
    with pytest.raises(ValidationError):
        resolve_base_path("avatars/../../etc")


def test_get_file_url() -> None:
    assert get_file_url("uploads/a.png") == "http://localhost:8000/media/uploads/a.png"


def test_ensure_size() -> None:
    ensure_size([UploadedFile("a.png", b"12345")], max_size=5)
    with pytest.raises(FileTooLargeError):
        ensure_size([UploadedFile("a.png", b"1"), UploadedFile("b.png", b"123456")], max_size=5)


@pytest.mark.asyncio
async def test_upload_single_file(storage) -> None:
    result = await upload_single_file(storage, UploadedFile("a.png", b"data", "image/png"), "avatars")
    assert result["key"].startswith("uploads/avatars/")
    assert result["url"] == get_file_url(result["key"])
    assert storage.objects == {result["key"]: b"data"}


@pytest.mark.asyncio
async def test_upload_multiple_files_requires_files(storage) -> None:
    with pytest.raises(ValidationError):
        await upload_multiple_files(storage, [])


@pytest.mark.asyncio
async def test_local_storage_writes_below_root(tmp_path) -> None:
    backend = LocalObjectStorage(tmp_path)
    await backend.put("uploads/posts/a.png", b"png")
    assert (tmp_path / "uploads" / "posts" / "a.png").read_bytes() == b"png"

    with pytest.raises(UploadFailedError):
        await backend.put("../escape.png", b"nope")


@pytest.mark.asyncio
async def test_http_storage_puts_object() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["method"] = request.method
        seen["url"] = str(request.url)
        seen["type"] = request.headers["Content-Type"]
        seen["body"] = request.content
        return httpx.Response(200)

    backend = HttpObjectStorage("https://oss.example.test/bucket/", transport=httpx.MockTransport(handler))
    await backend.put("uploads/a.png", b"png", "image/png")
    assert seen == {
        "method": "PUT",
        "url": "https://oss.example.test/bucket/uploads/a.png",
        "type": "image/png",
        "body": b"png",
    }


@pytest.mark.asyncio
async def test_http_storage_failure() -> None:
    backend = HttpObjectStorage(
        "https://oss.example.test/bucket",
        transport=httpx.MockTransport(lambda request: httpx.Response(403)),
    )
    with pytest.raises(UploadFailedError):
        await backend.put("uploads/a.png", b"png")
