"""File upload endpoints."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Annotated

from fastapi import APIRouter, File, Form, UploadFile
from fastapi.responses import JSONResponse

from zeelink.api.v1.dependencies import CurrentUserDep, StorageDep
from zeelink.api.v1.responses import success_response
from zeelink.core.errors import ValidationError
from zeelink.core.settings import settings
from zeelink.services import upload as upload_service
from zeelink.services.upload import UploadedFile

router = APIRouter(prefix="/upload", tags=["upload"])


async def read_uploads(files: Sequence[UploadFile] | None) -> list[UploadedFile]:
    """Read multipart parts into memory, skipping empty file inputs.

    Each part is read up to one byte past the size limit, so an oversized
    file is rejected without buffering all of it.
    """
    limit = settings.upload_max_file_size
    uploaded = []
    for part in files or ():
        if not part.filename:
            continue
        if part.size is not None and part.size > limit:
            raise upload_service.file_too_large(limit)
        data = await part.read(limit + 1)
        if len(data) > limit:
            raise upload_service.file_too_large(limit)
        uploaded.append(UploadedFile(part.filename, data, part.content_type))
    return uploaded


@router.post("")
async def upload_file(
    _user: CurrentUserDep,
    storage: StorageDep,
    file: Annotated[UploadFile, File()],
    directory: Annotated[str | None, Form()] = None,
) -> JSONResponse:
    files = await read_uploads([file])
    if not files:
        raise ValidationError("请选择要上传的文件")
    result = await upload_service.upload_single_file(storage, files[0], directory)
    return success_response(result, "上传成功")


@router.post("/batch")
async def upload_files(
    _user: CurrentUserDep,
    storage: StorageDep,
    files: Annotated[list[UploadFile], File()],
    directory: Annotated[str | None, Form()] = None,
) -> JSONResponse:
    result = await upload_service.upload_multiple_files(storage, await read_uploads(files), directory)
    return success_response(result, "上传成功")
