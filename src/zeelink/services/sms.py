"""Outbound SMS dispatch."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Protocol

import httpx

from zeelink.core.errors import ServiceUnavailableError, ValidationError
from zeelink.core.security import is_valid_mobile
from zeelink.core.settings import settings

logger = logging.getLogger(__name__)

_SCENE_LABELS = {
    "login": "登录",
    "register": "注册",
    "resetPassword": "重置密码",
}


@dataclass
class SmsSendResult:
    success: bool
    message: str = ""
    request_id: str | None = None


def build_code_message(
    code: str,
    purpose: str = "login",
    expire_minutes: int = 5,
    signature: str | None = None,
) -> str:
    """Return the text message carrying a verification code for `purpose`."""
    label = _SCENE_LABELS.get(purpose, "")
    sig = settings.sms_signature if signature is None else signature
    return f"{sig}您的{label}验证码是: {code}, 有效期{expire_minutes}分钟, 请勿泄露给他人"


def normalize_recipients(mobile: str | Sequence[str]) -> list[str]:
    recipients = [mobile] if isinstance(mobile, str) else list(mobile)
    if not recipients:
        raise ValidationError("手机号不能为空")
    invalid = [m for m in recipients if not is_valid_mobile(m)]
    if invalid:
        raise ValidationError("手机号格式不正确", data={"invalid": invalid})
    return recipients


class SmsGateway(Protocol):
    async def send(self, mobile: str | Sequence[str], content: str) -> SmsSendResult: ...


class LoggingSmsGateway:
    """Development gateway that writes messages to the log instead of sending them."""

    def __init__(self) -> None:
        self.sent: list[tuple[list[str], str]] = []

    async def send(self, mobile: str | Sequence[str], content: str) -> SmsSendResult:
        recipients = normalize_recipients(mobile)
        self.sent.append((recipients, content))
        logger.info("SMS to %s: %s", ",".join(recipients), content)
        return SmsSendResult(success=True, message="发送成功")


class HttpSmsGateway:
    """Gateway that POSTs messages as JSON to an HTTP SMS relay.

    A single attempt is made; transport errors and non-2xx answers raise
    `ServiceUnavailableError`.
    """

    def __init__(
        self,
        url: str,
        token: str | None = None,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.url = url
        self.token = token
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def send(self, mobile: str | Sequence[str], content: str) -> SmsSendResult:
        recipients = normalize_recipients(mobile)
        payload = {"mobiles": recipients, "content": content}
        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self.timeout_seconds),
                transport=self._transport,
            ) as client:
                response = await client.post(self.url, json=payload, headers=self._headers())
                response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.warning("SMS gateway request failed: %s", exc)
            raise ServiceUnavailableError("短信发送失败") from exc

        try:
            body: Any = response.json()
        except ValueError:
            body = None
        request_id = body.get("request_id") if isinstance(body, dict) else None
        return SmsSendResult(success=True, message="发送成功", request_id=request_id)


@lru_cache(maxsize=1)
def get_sms_gateway() -> SmsGateway:
    """Return the configured SMS gateway."""
    if settings.sms_backend == "http":
        if not settings.sms_gateway_url:
            raise ServiceUnavailableError("短信服务未配置")
        return HttpSmsGateway(
            settings.sms_gateway_url,
            token=settings.sms_gateway_token,
            timeout_seconds=settings.sms_timeout_seconds,
        )
    return LoggingSmsGateway()
