"""One-time verification codes for login, registration and password resets.

Codes live in a `VerificationCodeStore`. The default store keeps them in
process memory and loses them on restart; set ``VERIFICATION_STORE=redis`` to
share them between instances.
"""

from __future__ import annotations

import json
import logging
import secrets
import threading
import time
from collections.abc import Callable
from dataclasses import asdict, dataclass
from functools import lru_cache
from typing import Any, Protocol

import redis

from zeelink.core.errors import SendTooFrequentlyError, ValidationError
from zeelink.core.settings import settings

logger = logging.getLogger(__name__)

PURPOSE_LOGIN = "login"
PURPOSE_REGISTER = "register"
PURPOSE_RESET_PASSWORD = "resetPassword"

_PURPOSE_ALIASES = {
    "login": PURPOSE_LOGIN,
    "register": PURPOSE_REGISTER,
    "resetPassword": PURPOSE_RESET_PASSWORD,
    "reset": PURPOSE_RESET_PASSWORD,
    "reset_password": PURPOSE_RESET_PASSWORD,
}


def normalize_purpose(purpose: str | None) -> str:
    """Map a client-supplied code type onto its canonical purpose."""
    try:
        return _PURPOSE_ALIASES[purpose or PURPOSE_LOGIN]
    except KeyError:
        raise ValidationError("验证码类型不正确") from None


@dataclass
class StoredCode:
    code: str
    issued_at: float
    expires_at: float


class VerificationCodeStore(Protocol):
    """Key-value store holding at most one code per key."""

    def save(self, key: str, record: StoredCode, ttl_seconds: int) -> None: ...

    def get(self, key: str) -> StoredCode | None: ...

    def delete(self, key: str) -> None: ...

    def consume(self, key: str, code: str, now: float) -> bool:
        """Atomically delete the record if `code` matches and has not expired.

        Expired records are deleted as well; a mismatch leaves the record.
        """
        ...


class InMemoryVerificationStore:
    """Process-local store; not shared between workers."""

    def __init__(self) -> None:
        self._codes: dict[str, StoredCode] = {}
        self._lock = threading.Lock()

    def save(self, key: str, record: StoredCode, ttl_seconds: int) -> None:
        with self._lock:
            # Drop codes nobody verified before they expired.
            now = record.issued_at
            self._codes = {k: r for k, r in self._codes.items() if r.expires_at >= now}
            self._codes[key] = record

    def get(self, key: str) -> StoredCode | None:
        with self._lock:
            return self._codes.get(key)

    def delete(self, key: str) -> None:
        with self._lock:
            self._codes.pop(key, None)

    def consume(self, key: str, code: str, now: float) -> bool:
        with self._lock:
            record = self._codes.get(key)
            if record is None:
                return False
            if now > record.expires_at:
                del self._codes[key]
                return False
            if not secrets.compare_digest(record.code, code):
                return False
            del self._codes[key]
            return True


# Compare-and-delete in one round trip so concurrent verifications of the
# same code cannot both succeed.
_CONSUME_SCRIPT = """
local raw = redis.call('GET', KEYS[1])
if not raw then
    return 0
end
local record = cjson.decode(raw)
if tonumber(ARGV[2]) > tonumber(record['expires_at']) then
    redis.call('DEL', KEYS[1])
    return 0
end
if record['code'] ~= ARGV[1] then
    return 0
end
redis.call('DEL', KEYS[1])
return 1
"""


class RedisVerificationStore:
    """Store backed by Redis keys that expire with the code."""

    def __init__(self, client: Any | None = None, url: str | None = None) -> None:
        self._client = client or redis.Redis.from_url(url or settings.redis_url, decode_responses=True)
        self._consume = self._client.register_script(_CONSUME_SCRIPT)

    def save(self, key: str, record: StoredCode, ttl_seconds: int) -> None:
        self._client.set(key, json.dumps(asdict(record)), ex=max(1, ttl_seconds))

    def get(self, key: str) -> StoredCode | None:
        raw = self._client.get(key)
        if raw is None:
            return None
        return StoredCode(**json.loads(raw))

    def delete(self, key: str) -> None:
        self._client.delete(key)

    def consume(self, key: str, code: str, now: float) -> bool:
        return bool(self._consume(keys=[key], args=[code, repr(now)]))


class VerificationService:
    """Issue and consume single-use six-digit codes."""

    def __init__(
        self,
        store: VerificationCodeStore,
        ttl_seconds: int = 300,
        resend_interval_seconds: int = 0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.ttl_seconds = ttl_seconds
        self.resend_interval_seconds = resend_interval_seconds
        self._clock = clock

    @staticmethod
    def key(mobile: str, purpose: str) -> str:
        return f"verification:{purpose}:{mobile}"

    @staticmethod
    def generate_code() -> str:
        return str(secrets.randbelow(900000) + 100000)

    def ensure_can_send(self, mobile: str, purpose: str) -> None:
        """Raise `SendTooFrequentlyError` while the resend cooldown is running."""
        if self.resend_interval_seconds <= 0:
            return
        existing = self.store.get(self.key(mobile, purpose))
        if existing is not None and self._clock() - existing.issued_at < self.resend_interval_seconds:
            raise SendTooFrequentlyError()

    def issue(self, mobile: str, purpose: str, code: str | None = None) -> str:
        """Store a code for (mobile, purpose), replacing any previous one."""
        code = code or self.generate_code()
        now = self._clock()
        record = StoredCode(code=code, issued_at=now, expires_at=now + self.ttl_seconds)
        self.store.save(self.key(mobile, purpose), record, self.ttl_seconds)
        return code

    def verify(self, mobile: str, code: str, purpose: str) -> bool:
        """Consume the code if it matches.

        Expired codes are dropped. A wrong guess leaves the stored code in place.
        """
        return self.store.consume(self.key(mobile, purpose), code, self._clock())


def build_store() -> VerificationCodeStore:
    if settings.verification_store == "redis":
        logger.info("Using Redis verification code store at %s", settings.redis_url)
        return RedisVerificationStore()
    return InMemoryVerificationStore()


@lru_cache(maxsize=1)
def get_verification_service() -> VerificationService:
    """Return the process-wide verification service."""
    return VerificationService(
        build_store(),
        ttl_seconds=settings.verification_code_ttl_seconds,
        resend_interval_seconds=settings.verification_resend_interval_seconds,
    )
