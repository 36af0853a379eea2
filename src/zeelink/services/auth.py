"""Authentication flows: password and code login, registration and resets.

Every flow validates its input and verifies any one-time code before touching
the database, so a rejected request leaves no trace.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from zeelink.core.errors import (
    ForbiddenError,
    InvalidCredentialsError,
    InvalidVerificationCodeError,
    ServiceUnavailableError,
    UserExistsError,
    UserNotFoundError,
    ValidationError,
)
from zeelink.core.security import (
    MAX_PASSWORD_BYTES,
    MIN_PASSWORD_LENGTH,
    create_access_token,
    hash_password,
    is_valid_code,
    is_valid_mobile,
    verify_password,
)
from zeelink.core.settings import settings
from zeelink.db.ezclient import EzClient, QueryArgs, Relation, eq
from zeelink.db.time import utcnow
from zeelink.models.user import ROLE_ADMIN, ROLE_USER
from zeelink.services.sites import SITE_FIELDS, get_default_site
from zeelink.services.sms import SmsGateway, build_code_message
from zeelink.services.verification import (
    PURPOSE_LOGIN,
    PURPOSE_REGISTER,
    PURPOSE_RESET_PASSWORD,
    VerificationService,
    normalize_purpose,
)

USER_FIELDS = [
    "id",
    "mobile",
    "nickname",
    "avatar_url",
    "bio",
    "role",
    "current_site_id",
    "last_login_at",
    "created_at",
    "updated_at",
]


@dataclass(frozen=True)
class AuthenticatedUser:
    """Identity carried by a verified access token."""

    id: int
    mobile: str
    nickname: str | None = None
    role: str = ROLE_USER
    current_site_id: int | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    @classmethod
    def from_payload(cls, payload: dict[str, Any]) -> AuthenticatedUser | None:
        raw_id = payload.get("id", payload.get("sub"))
        mobile = payload.get("mobile")
        try:
            user_id = int(raw_id)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return None
        if not mobile:
            return None
        return cls(
            id=user_id,
            mobile=mobile,
            nickname=payload.get("nickname"),
            role=payload.get("role") or ROLE_USER,
            current_site_id=payload.get("current_site_id"),
        )


def ensure_valid_mobile(mobile: str) -> None:
    if not is_valid_mobile(mobile):
        raise ValidationError("请输入正确的手机号")


def ensure_valid_code(code: str | None) -> None:
    if not is_valid_code(code):
        raise ValidationError("验证码格式错误")


def ensure_password_strength(password: str | None) -> None:
    """Reject passwords bcrypt would weaken or the client should not accept."""
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"密码长度不能少于{MIN_PASSWORD_LENGTH}位")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"密码长度不能超过{MAX_PASSWORD_BYTES}字节")


def default_nickname(mobile: str) -> str:
    return f"用户{mobile[-4:]}"


def _find_user_by_mobile(client: EzClient, mobile: str) -> dict[str, Any] | None:
    return client.query_first(
        "users",
        QueryArgs(where=eq("mobile", mobile)),
        [*USER_FIELDS, "password"],
    )


def _touch_last_login(client: EzClient, user_id: int) -> None:
    client.update("users", eq("id", user_id), {"last_login_at": utcnow()})


def _session_payload(client: EzClient, user_id: int, is_new_user: bool | None = None) -> dict[str, Any]:
    """Build ``{token, user}`` from the freshly stored user row."""
    user = get_current_user(client, user_id)
    token = create_access_token(
        {
            "id": user["id"],
            "mobile": user["mobile"],
            "nickname": user["nickname"] or "",
            "role": user["role"],
            "current_site_id": user["current_site_id"],
        }
    )
    if is_new_user is not None:
        user["isNewUser"] = is_new_user
    return {"token": token, "user": user}


def login_with_password(client: EzClient, mobile: str, password: str | None) -> dict[str, Any]:
    """Verify a mobile/password pair and return a token and the user."""
    ensure_valid_mobile(mobile)
    if not password:
        raise ValidationError("请输入密码")
    user = _find_user_by_mobile(client, mobile)
    if user is None or not verify_password(password, user["password"]):
        raise InvalidCredentialsError()
    _touch_last_login(client, user["id"])
    return _session_payload(client, user["id"])


def login_with_code(
    client: EzClient,
    verification: VerificationService,
    mobile: str,
    code: str | None,
) -> dict[str, Any]:
    """Log in with a one-time code, registering the mobile on first use."""
    ensure_valid_mobile(mobile)
    ensure_valid_code(code)
    if not verification.verify(mobile, code or "", PURPOSE_LOGIN):
        raise InvalidVerificationCodeError()

    user = _find_user_by_mobile(client, mobile)
    is_new_user = user is None
    if user is None:
        default_site = get_default_site(client)
        user = client.insert_one(
            "users",
            {
                "mobile": mobile,
                "nickname": default_nickname(mobile),
                "role": ROLE_USER,
                "current_site_id": default_site["id"] if default_site else None,
            },
            ["id"],
        )
    _touch_last_login(client, user["id"])
    return _session_payload(client, user["id"], is_new_user=is_new_user)


async def send_verification_code(
    verification: VerificationService,
    sms: SmsGateway,
    mobile: str,
    purpose: str | None = PURPOSE_LOGIN,
) -> dict[str, Any]:
    """Generate, text and store a code for (mobile, purpose).

    The code is stored only once the gateway accepted the message. Outside
    production it is echoed back so the flow can be exercised without SMS.
    """
    ensure_valid_mobile(mobile)
    purpose = normalize_purpose(purpose)
    verification.ensure_can_send(mobile, purpose)
    code = verification.generate_code()
    content = build_code_message(code, purpose, max(1, verification.ttl_seconds // 60))
    result = await sms.send(mobile, content)
    if not result.success:
        raise ServiceUnavailableError(result.message or "短信发送失败")
    verification.issue(mobile, purpose, code)
    if settings.expose_verification_codes:
        return {"code": code}
    return {}


def register(
    client: EzClient,
    verification: VerificationService,
    mobile: str,
    password: str,
    code: str,
    nickname: str | None = None,
) -> dict[str, Any]:
    ensure_valid_mobile(mobile)
    ensure_password_strength(password)
    ensure_valid_code(code)
    if client.count("users", eq("mobile", mobile)) > 0:
        raise UserExistsError()
    if not verification.verify(mobile, code, PURPOSE_REGISTER):
        raise InvalidVerificationCodeError()

    default_site = get_default_site(client)
    user = client.insert_one(
        "users",
        {
            "mobile": mobile,
            "password": hash_password(password),
            "nickname": (nickname or "").strip() or default_nickname(mobile),
            "role": ROLE_USER,
            "current_site_id": default_site["id"] if default_site else None,
            "last_login_at": utcnow(),
        },
        ["id"],
    )
    return _session_payload(client, user["id"], is_new_user=True)


def reset_password(
    client: EzClient,
    verification: VerificationService,
    mobile: str,
    new_password: str,
    code: str,
    actor: AuthenticatedUser | None = None,
) -> None:
    """Set a new password after verifying a reset code.

    When the request is authenticated the mobile must be the caller's own.
    """
    ensure_valid_mobile(mobile)
    ensure_password_strength(new_password)
    ensure_valid_code(code)
    if actor is not None and actor.mobile != mobile:
        raise ForbiddenError("只能重置自己账号的密码")
    user = _find_user_by_mobile(client, mobile)
    if user is None:
        raise UserNotFoundError()
    if not verification.verify(mobile, code, PURPOSE_RESET_PASSWORD):
        raise InvalidVerificationCodeError()
    client.update("users", eq("id", user["id"]), {"password": hash_password(new_password)})


def change_password(client: EzClient, user_id: int, old_password: str, new_password: str) -> None:
    user = client.query_first("users", QueryArgs(where=eq("id", user_id)), ["id", "password"])
    if user is None:
        raise UserNotFoundError()
    if not verify_password(old_password, user["password"]):
        raise InvalidCredentialsError("原密码错误")
    ensure_password_strength(new_password)
    if old_password == new_password:
        raise ValidationError("新密码不能与原密码相同")
    client.update("users", eq("id", user_id), {"password": hash_password(new_password)})


def logout() -> None:
    """Tokens are stateless; the client discards its copy."""
    return None


def get_current_user(client: EzClient, user_id: int) -> dict[str, Any]:
    """Return the user's own profile together with the current site."""
    user = client.query_first(
        "users",
        QueryArgs(where=eq("id", user_id)),
        [*USER_FIELDS, Relation("current_site", SITE_FIELDS)],
    )
    if user is None:
        raise UserNotFoundError()
    return user


def update_profile(
    client: EzClient,
    user_id: int,
    nickname: str | None = None,
    avatar_url: str | None = None,
    bio: str | None = None,
) -> dict[str, Any]:
    changes: dict[str, Any] = {}
    if nickname is not None:
        nickname = nickname.strip()
        if not nickname:
            raise ValidationError("昵称不能为空")
        changes["nickname"] = nickname
    if avatar_url is not None:
        changes["avatar_url"] = avatar_url
    if bio is not None:
        changes["bio"] = bio
    if changes:
        result = client.update("users", eq("id", user_id), changes)
        if result.affected_rows == 0:
            raise UserNotFoundError()
    return get_current_user(client, user_id)
