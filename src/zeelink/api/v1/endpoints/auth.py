# src/zeelink/api/v1/endpoints/auth.py
"""Authentication endpoints: verification codes, login, registration and passwords."""

from __future__ import annotations

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from zeelink.api.v1.dependencies import (
    CurrentUserDep,
    EzClientDep,
    OptionalUserDep,
    SmsDep,
    VerificationDep,
)
from zeelink.api.v1.responses import success_response
from zeelink.core.settings import settings
from zeelink.schemas.auth import (
    ChangePasswordRequest,
    LoginRequest,
    PasswordLoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
    SendCodeRequest,
    SmsCodeRequest,
)
from zeelink.services import auth as auth_service

router = APIRouter(prefix="/auth", tags=["auth"])


def _set_auth_cookie(response: JSONResponse, token: str) -> None:
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token,
        max_age=settings.access_token_expire_minutes * 60,
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
        path="/",
    )


@router.post("/sendVerificationCode")
@router.post("/send-code")
async def send_verification_code(
    body: SendCodeRequest,
    verification: VerificationDep,
    sms: SmsDep,
) -> JSONResponse:
    """Text a one-time code to the mobile number."""
    data = await auth_service.send_verification_code(verification, sms, body.mobile, body.type)
    return success_response(data, "验证码已发送")


@router.post("/sms-code")
async def send_sms_code(
    body: SmsCodeRequest,
    verification: VerificationDep,
    sms: SmsDep,
) -> JSONResponse:
    """Scene-based variant of the send-code endpoint."""
    data = await auth_service.send_verification_code(verification, sms, body.mobile, body.scene)
    return success_response(data, "验证码已发送")


@router.post("/login")
async def login(
    body: LoginRequest,
    client: EzClientDep,
    verification: VerificationDep,
) -> JSONResponse:
    """Log in with a password or a verification code."""
    if body.login_type == "code":
        result = auth_service.login_with_code(client, verification, body.mobile, body.code)
    else:
        result = auth_service.login_with_password(client, body.mobile, body.password)
    response = success_response(result, "登录成功")
    _set_auth_cookie(response, result["token"])
    return response


@router.post("/loginWithPassword")
async def login_with_password(body: PasswordLoginRequest, client: EzClientDep) -> JSONResponse:
    result = auth_service.login_with_password(client, body.mobile, body.password)
    response = success_response(result, "登录成功")
    _set_auth_cookie(response, result["token"])
    return response


@router.post("/register")
async def register(
    body: RegisterRequest,
    client: EzClientDep,
    verification: VerificationDep,
) -> JSONResponse:
    result = auth_service.register(
        client,
        verification,
        body.mobile,
        body.password,
        body.code,
        body.nickname,
    )
    response = success_response(result, "注册成功", status.HTTP_201_CREATED)
    _set_auth_cookie(response, result["token"])
    return response


@router.post("/logout")
@router.get("/logout")
async def logout() -> JSONResponse:
    """Clear the auth cookie; bearer tokens are simply discarded by the client."""
    auth_service.logout()
    response = success_response(None, "退出登录成功")
    response.delete_cookie(settings.auth_cookie_name, path="/")
    return response


@router.post("/resetPassword")
@router.post("/reset-password")
async def reset_password(
    body: ResetPasswordRequest,
    client: EzClientDep,
    verification: VerificationDep,
    user: OptionalUserDep,
) -> JSONResponse:
    auth_service.reset_password(
        client,
        verification,
        body.mobile,
        body.new_password,
        body.code,
        actor=user,
    )
    return success_response(None, "密码重置成功")


@router.post("/change-password")
async def change_password(
    body: ChangePasswordRequest,
    client: EzClientDep,
    user: CurrentUserDep,
) -> JSONResponse:
    auth_service.change_password(client, user.id, body.old_password, body.new_password)
    return success_response(None, "密码修改成功")


@router.get("/me")
async def me(client: EzClientDep, user: CurrentUserDep) -> JSONResponse:
    """Return the caller's profile with the current site."""
    return success_response(auth_service.get_current_user(client, user.id), "获取成功")
