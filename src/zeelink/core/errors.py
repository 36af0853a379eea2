"""Application error taxonomy.

Domain services raise `AppError` subclasses tagged with a string `code`; the
API layer maps each tag onto a numeric `ErrorCode` and an HTTP status when
building the response envelope.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Numeric error codes exposed in the response envelope."""

    SUCCESS = 0

    # General (1000-1999)
    UNKNOWN_ERROR = 1000
    INVALID_PARAMS = 1001
    SERVICE_UNAVAILABLE = 1002
    RATE_LIMIT_EXCEEDED = 1003

    # Authorization (2000-2999)
    UNAUTHORIZED = 2000
    FORBIDDEN = 2001
    TOKEN_EXPIRED = 2002
    INVALID_TOKEN = 2003

    # Users (3000-3999)
    USER_NOT_FOUND = 3000
    INVALID_CREDENTIALS = 3001
    ACCOUNT_LOCKED = 3002
    ACCOUNT_DISABLED = 3003
    USER_ALREADY_EXISTS = 3004
    VERIFICATION_CODE_INVALID = 3005

    # Uploads (4000-4999)
    UPLOAD_FAILED = 4000
    INVALID_FILE_TYPE = 4001
    FILE_TOO_LARGE = 4002

    # Content (5000-5999)
    CONTENT_NOT_FOUND = 5000
    DUPLICATE_CONTENT = 5001
    CONTENT_VALIDATION_FAILED = 5002


class AppError(Exception):
    """Base class for errors that carry a client-facing message."""

    def __init__(
        self,
        message: str,
        code: str,
        status_code: int = 400,
        data: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.status_code = status_code
        self.data = data


class UserNotFoundError(AppError):
    def __init__(self, message: str = "用户不存在") -> None:
        super().__init__(message, "user_not_found", 404)


class UserExistsError(AppError):
    def __init__(self, message: str = "该手机号已注册") -> None:
        super().__init__(message, "user_exists", 409)


class InvalidCredentialsError(AppError):
    def __init__(self, message: str = "手机号或密码错误") -> None:
        super().__init__(message, "invalid_credentials", 401)


class InvalidVerificationCodeError(AppError):
    def __init__(self, message: str = "验证码错误或已过期") -> None:
        super().__init__(message, "invalid_verification_code", 400)


class SendTooFrequentlyError(AppError):
    def __init__(self, message: str = "发送过于频繁，请稍后再试") -> None:
        super().__init__(message, "send_too_frequently", 429)


class ContentNotFoundError(AppError):
    def __init__(self, message: str = "内容不存在") -> None:
        super().__init__(message, "content_not_found", 404)


class DuplicateContentError(AppError):
    def __init__(self, message: str = "内容已存在") -> None:
        super().__init__(message, "duplicate_content", 409)


class UnauthorizedError(AppError):
    def __init__(self, message: str = "未授权访问") -> None:
        super().__init__(message, "unauthorized", 401)


class InvalidTokenError(AppError):
    def __init__(self, message: str = "登录已失效，请重新登录") -> None:
        super().__init__(message, "invalid_token", 401)


class ForbiddenError(AppError):
    def __init__(self, message: str = "没有操作权限") -> None:
        super().__init__(message, "forbidden", 403)


class ValidationError(AppError):
    def __init__(self, message: str = "参数验证失败", data: Any = None) -> None:
        super().__init__(message, "validation_error", 400, data)


class FileTooLargeError(AppError):
    def __init__(self, message: str = "文件大小不能超过10MB") -> None:
        super().__init__(message, "file_too_large", 400)


class UploadFailedError(AppError):
    def __init__(self, message: str = "文件上传失败") -> None:
        super().__init__(message, "upload_failed", 502)


class ServiceUnavailableError(AppError):
    def __init__(self, message: str = "服务不可用") -> None:
        super().__init__(message, "service_unavailable", 503)


# Tag -> numeric code used by the response layer.
ERROR_CODE_BY_TAG: dict[str, ErrorCode] = {
    "validation_error": ErrorCode.INVALID_PARAMS,
    "unauthorized": ErrorCode.UNAUTHORIZED,
    "invalid_token": ErrorCode.INVALID_TOKEN,
    "forbidden": ErrorCode.FORBIDDEN,
    "user_not_found": ErrorCode.USER_NOT_FOUND,
    "user_exists": ErrorCode.USER_ALREADY_EXISTS,
    "invalid_credentials": ErrorCode.INVALID_CREDENTIALS,
    "invalid_verification_code": ErrorCode.VERIFICATION_CODE_INVALID,
    "send_too_frequently": ErrorCode.RATE_LIMIT_EXCEEDED,
    "content_not_found": ErrorCode.CONTENT_NOT_FOUND,
    "duplicate_content": ErrorCode.DUPLICATE_CONTENT,
    "file_too_large": ErrorCode.FILE_TOO_LARGE,
    "upload_failed": ErrorCode.UPLOAD_FAILED,
    "service_unavailable": ErrorCode.SERVICE_UNAVAILABLE,
}


def error_code_for(error: AppError) -> ErrorCode:
    """Return the numeric code for an application error tag."""
    return ERROR_CODE_BY_TAG.get(error.code, ErrorCode.UNKNOWN_ERROR)
