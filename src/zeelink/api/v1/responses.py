"""Response envelope and exception handlers for the v1 API."""

from __future__ import annotations

import logging
import time
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from zeelink.core.errors import AppError, ErrorCode, error_code_for
from zeelink.schemas.common import ApiResponse

logger = logging.getLogger(__name__)

# HTTP status per error code when no more specific status is known.
HTTP_STATUS_BY_CODE: dict[ErrorCode, int] = {
    ErrorCode.INVALID_PARAMS: status.HTTP_400_BAD_REQUEST,
    ErrorCode.SERVICE_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorCode.RATE_LIMIT_EXCEEDED: status.HTTP_429_TOO_MANY_REQUESTS,
    ErrorCode.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.TOKEN_EXPIRED: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.INVALID_TOKEN: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorCode.USER_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.INVALID_CREDENTIALS: status.HTTP_401_UNAUTHORIZED,
    ErrorCode.USER_ALREADY_EXISTS: status.HTTP_409_CONFLICT,
    ErrorCode.VERIFICATION_CODE_INVALID: status.HTTP_400_BAD_REQUEST,
    ErrorCode.UPLOAD_FAILED: status.HTTP_502_BAD_GATEWAY,
    ErrorCode.FILE_TOO_LARGE: status.HTTP_400_BAD_REQUEST,
    ErrorCode.CONTENT_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.DUPLICATE_CONTENT: status.HTTP_409_CONFLICT,
    ErrorCode.CONTENT_VALIDATION_FAILED: status.HTTP_400_BAD_REQUEST,
}

_CODE_BY_HTTP_STATUS: dict[int, ErrorCode] = {
    status.HTTP_400_BAD_REQUEST: ErrorCode.INVALID_PARAMS,
    status.HTTP_401_UNAUTHORIZED: ErrorCode.UNAUTHORIZED,
    status.HTTP_403_FORBIDDEN: ErrorCode.FORBIDDEN,
    status.HTTP_404_NOT_FOUND: ErrorCode.CONTENT_NOT_FOUND,
    status.HTTP_405_METHOD_NOT_ALLOWED: ErrorCode.INVALID_PARAMS,
    413: ErrorCode.FILE_TOO_LARGE,
    status.HTTP_429_TOO_MANY_REQUESTS: ErrorCode.RATE_LIMIT_EXCEEDED,
}


def _timestamp() -> int:
    return int(time.time() * 1000)


def _envelope(success: bool, code: ErrorCode, message: str, data: Any) -> dict[str, Any]:
    envelope = ApiResponse[Any](
        success=success,
        code=int(code),
        message=message,
        data=data,
        timestamp=_timestamp(),
    )
    payload: dict[str, Any] = jsonable_encoder(envelope)
    if payload.get("data") is None:
        payload.pop("data", None)
    return payload


def success_response(
    data: Any = None,
    message: str = "操作成功",
    status_code: int = status.HTTP_200_OK,
) -> JSONResponse:
    return JSONResponse(_envelope(True, ErrorCode.SUCCESS, message, data), status_code=status_code)


def error_response(
    code: ErrorCode,
    message: str,
    status_code: int | None = None,
    data: Any = None,
) -> JSONResponse:
    """Build an error envelope; the HTTP status follows the code unless given."""
    http_status = status_code or HTTP_STATUS_BY_CODE.get(code, status.HTTP_500_INTERNAL_SERVER_ERROR)
    return JSONResponse(_envelope(False, code, message, data), status_code=http_status)


async def handle_app_error(request: Request, exc: AppError) -> JSONResponse:
    return error_response(error_code_for(exc), exc.message, exc.status_code, exc.data)


async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"loc": [str(part) for part in err.get("loc", ())], "msg": str(err.get("msg", ""))}
        for err in exc.errors()
    ]
    message = "参数验证失败"
    if errors:
        field = ".".join(part for part in errors[0]["loc"] if part not in ("body", "query", "path"))
        message = f"参数验证失败: {field} {errors[0]['msg']}".strip()
    return error_response(ErrorCode.INVALID_PARAMS, message, status.HTTP_400_BAD_REQUEST, errors)


async def handle_http_exception(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    code = _CODE_BY_HTTP_STATUS.get(exc.status_code, ErrorCode.UNKNOWN_ERROR)
    message = exc.detail if isinstance(exc.detail, str) else "请求失败"
    return error_response(code, message, exc.status_code)


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled error on %s %s",
        request.method,
        request.url.path,
        exc_info=exc,
    )
    return error_response(
        ErrorCode.UNKNOWN_ERROR,
        "服务器内部错误，请稍后重试",
        status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


def install_exception_handlers(app: FastAPI) -> None:
    """Route every failure through the response envelope."""
    app.add_exception_handler(AppError, handle_app_error)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, handle_validation_error)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, handle_unexpected_error)
