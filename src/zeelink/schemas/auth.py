"""Authentication request schemas."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field


class SendCodeRequest(BaseModel):
    """Request a verification code for a mobile number."""

    mobile: str = Field(..., description="Mainland China mobile number")
    type: str = Field("login", description="login, register or resetPassword")


class LoginRequest(BaseModel):
    """Password or verification-code login."""

    mobile: str
    password: str | None = None
    code: str | None = None
    login_type: Literal["password", "code"] = Field("password", alias="loginType")

    model_config = ConfigDict(populate_by_name=True)


class RegisterRequest(BaseModel):
    mobile: str
    password: str
    code: str
    nickname: str | None = Field(None, max_length=50)


class ResetPasswordRequest(BaseModel):
    mobile: str
    new_password: str = Field(..., alias="newPassword")
    code: str

    model_config = ConfigDict(populate_by_name=True)


class ChangePasswordRequest(BaseModel):
    old_password: str = Field(..., alias="oldPassword")
    new_password: str = Field(..., alias="newPassword")

    model_config = ConfigDict(populate_by_name=True)


class SmsCodeRequest(BaseModel):
    """Send-code request naming the SMS scene instead of a type."""

    mobile: str
    scene: str


class PasswordLoginRequest(BaseModel):
    mobile: str
    password: str = Field(..., min_length=1)
