# mypy: ignore-errors
# tests/services/test_auth_service.py
"""Tests for the authentication service layer."""

import pytest

from zeelink.core.errors import (
    InvalidCredentialsError,
    InvalidVerificationCodeError,
    ServiceUnavailableError,
    ValidationError,
)
from zeelink.core.security import decode_access_token, verify_password
from zeelink.models import User
from zeelink.services import auth as auth_service
from zeelink.services.auth import AuthenticatedUser
from zeelink.services.sms import SmsSendResult
from zeelink.services.verification import InMemoryVerificationStore, VerificationService


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class RejectingGateway:
    async def send(self, mobile, content) -> SmsSendResult:
        return SmsSendResult(success=False, message="余额不足")


def test_authenticated_user_from_payload() -> None:
    user = AuthenticatedUser.from_payload({"sub": "7", "mobile": "13800138000", "role": "admin"})
    assert user == AuthenticatedUser(id=7, mobile="13800138000", role="admin")
    assert user.is_admin

    assert AuthenticatedUser.from_payload({"sub": "abc", "mobile": "13800138000"}) is None
    assert AuthenticatedUser.from_payload({"id": 7}) is None


def test_password_strength() -> None:
    auth_service.ensure_password_strength("abcdef")
    with pytest.raises(ValidationError):
        auth_service.ensure_password_strength("abc")
    with pytest.raises(ValidationError):
        auth_service.ensure_password_strength("密" * 25)


def test_default_nickname() -> None:
    assert auth_service.default_nickname("13812345678") == "用户5678"


def test_login_with_password_token_matches_mobile(ez, test_user) -> None:
    result = auth_service.login_with_password(ez, test_user.mobile, "secret123")
    payload = decode_access_token(result["token"])
    assert payload["mobile"] == test_user.mobile
    assert payload["id"] == test_user.id
    assert result["user"]["last_login_at"] is not None
    assert "isNewUser" not in result["user"]


def test_login_with_password_rejects_code_only_account(ez, db_session, site) -> None:
    db_session.add(User(mobile="13500135000", nickname="验证码用户"))
    db_session.flush()
    with pytest.raises(InvalidCredentialsError):
        auth_service.login_with_password(ez, "13500135000", "anything")


def test_bad_code_changes_nothing(ez, db_session, test_user, verification) -> None:
    verification.issue(test_user.mobile, "login", "123456")
    with pytest.raises(InvalidVerificationCodeError):
        auth_service.login_with_code(ez, verification, test_user.mobile, "999999")
    db_session.refresh(test_user)
    assert test_user.last_login_at is None


def test_code_login_without_any_site(ez, verification) -> None:
    code = verification.issue("13500135001", "login")
    result = auth_service.login_with_code(ez, verification, "13500135001", code)
    assert result["user"]["isNewUser"] is True
    assert result["user"]["current_site_id"] is None
    assert result["user"]["current_site"] is None


@pytest.mark.asyncio
async def test_send_code_stores_only_after_delivery(verification, sms_gateway) -> None:
    data = await auth_service.send_verification_code(verification, sms_gateway, "13800138000", "login")
    assert verification.store.get(verification.key("13800138000", "login")).code == data["code"]

    with pytest.raises(ServiceUnavailableError):
        await auth_service.send_verification_code(verification, RejectingGateway(), "13900139000", "login")
    assert verification.store.get(verification.key("13900139000", "login")) is None


def test_change_password_must_differ(ez, test_user) -> None:
    with pytest.raises(ValidationError):
        auth_service.change_password(ez, test_user.id, "secret123", "secret123")


def test_update_profile_rejects_blank_nickname(ez, test_user) -> None:
    with pytest.raises(ValidationError):
        auth_service.update_profile(ez, test_user.id, nickname="   ")


def test_expired_login_code_creates_no_user(ez, db_session, site) -> None:
    clock = FakeClock()
    verification = VerificationService(InMemoryVerificationStore(), ttl_seconds=300, clock=clock)
    code = verification.issue("13500135002", "login")
    clock.now += 301

    with pytest.raises(InvalidVerificationCodeError):
        auth_service.login_with_code(ez, verification, "13500135002", code)
    assert db_session.query(User).filter_by(mobile="13500135002").count() == 0


def test_expired_login_code_leaves_existing_user_untouched(ez, db_session, test_user) -> None:
    clock = FakeClock()
    verification = VerificationService(InMemoryVerificationStore(), ttl_seconds=300, clock=clock)
    code = verification.issue(test_user.mobile, "login")
    clock.now += 301

    with pytest.raises(InvalidVerificationCodeError):
        auth_service.login_with_code(ez, verification, test_user.mobile, code)
    db_session.refresh(test_user)
    assert test_user.last_login_at is None


def test_expired_reset_code_keeps_password(ez, db_session, test_user) -> None:
    clock = FakeClock()
    verification = VerificationService(InMemoryVerificationStore(), ttl_seconds=300, clock=clock)
    code = verification.issue(test_user.mobile, "resetPassword")
    clock.now += 301

    with pytest.raises(InvalidVerificationCodeError):
        auth_service.reset_password(ez, verification, test_user.mobile, "newpass456", code)
    db_session.refresh(test_user)
    assert verify_password("secret123", test_user.password)
    assert not verify_password("newpass456", test_user.password)


def test_reset_with_wrong_code_keeps_password(ez, db_session, test_user, verification) -> None:
    verification.issue(test_user.mobile, "resetPassword", "123456")

    with pytest.raises(InvalidVerificationCodeError):
        auth_service.reset_password(ez, verification, test_user.mobile, "newpass456", "654321")
    db_session.refresh(test_user)
    assert verify_password("secret123", test_user.password)
