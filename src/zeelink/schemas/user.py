"""User-related Pydantic schemas."""

from typing import Literal

from pydantic import BaseModel, Field


class ProfileUpdateRequest(BaseModel):
    """Fields a user may change on their own profile."""

    nickname: str | None = Field(None, min_length=1, max_length=50)
    avatar_url: str | None = Field(None, max_length=1024)
    bio: str | None = Field(None, max_length=500)


class UserCreateRequest(BaseModel):
    """Administrative account creation."""

    mobile: str
    password: str
    nickname: str | None = Field(None, max_length=50)
    bio: str | None = Field(None, max_length=500)
    avatar_url: str | None = None
    role: Literal["user", "admin"] = "user"
    current_site_id: int | None = None


class UserUpdateRequest(BaseModel):
    """Administrative account update; mobile and password are not writable."""

    nickname: str | None = Field(None, max_length=50)
    bio: str | None = Field(None, max_length=500)
    avatar_url: str | None = None
    role: Literal["user", "admin"] | None = None
    current_site_id: int | None = None
