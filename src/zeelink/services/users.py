"""Administrative user management."""
from __future__ import annotations

from typing import Any

from zeelink.core.errors import UserExistsError, UserNotFoundError, ValidationError
from zeelink.core.security import hash_password
from zeelink.db.ezclient import EzClient, QueryArgs, any_of, contains, eq
from zeelink.models.user import ROLE_ADMIN, ROLE_USER
from zeelink.services.auth import USER_FIELDS, ensure_password_strength, ensure_valid_mobile
from zeelink.services.pagination import order_by, page_data
from zeelink.services.sites import ensure_site_exists

__all__ = [
    "PUBLIC_USER_FIELDS",
    "create_user",
    "delete_user",
    "get_user",
    "get_user_list",
    "is_admin",
    "update_user",
]

PUBLIC_USER_FIELDS = ["id", "nickname", "avatar_url", "bio", "role", "created_at"]
USER_SORT_FIELDS = ("created_at", "updated_at", "last_login_at", "nickname", "mobile", "id")
_WRITABLE_FIELDS = ("nickname", "bio", "avatar_url", "role", "current_site_id")


def get_user_list(
    client: EzClient,
    page: int = 1,
    page_size: int = 10,
    sort_by: str | None = None,
    sort_order: str | None = None,
    keyword: str | None = None,
) -> dict[str, Any]:
    """Return a page of users; `keyword` matches nickname or mobile."""
    where = []
    keyword = (keyword or "").strip()
    if keyword:
        where.append(any_of(contains("nickname", keyword), contains("mobile", keyword, case_sensitive=True)))
    result = client.find(
        "users",
        page_number=page,
        page_size=page_size,
        args=QueryArgs(where=where, order_by=order_by(sort_by, sort_order, USER_SORT_FIELDS)),
        fields=USER_FIELDS,
    )
    return page_data(result.datas, result.count, page, page_size)


def get_user(client: EzClient, user_id: int, include_private: bool = False) -> dict[str, Any]:
    fields = USER_FIELDS if include_private else PUBLIC_USER_FIELDS
    user = client.query_first("users", QueryArgs(where=eq("id", user_id)), fields)
    if user is None:
        raise UserNotFoundError()
    user["post_count"] = client.count("posts", eq("author_id", user_id))
    return user


def _check_role(role: Any) -> None:
    if role not in (ROLE_USER, ROLE_ADMIN):
        raise ValidationError("角色不合法")


def create_user(client: EzClient, data: dict[str, Any]) -> dict[str, Any]:
    mobile = data.get("mobile") or ""
    ensure_valid_mobile(mobile)
    ensure_password_strength(data.get("password"))
    role = data.get("role") or ROLE_USER
    _check_role(role)
    if client.count("users", eq("mobile", mobile)) > 0:
        raise UserExistsError()
    site_id = data.get("current_site_id")
    if site_id is not None:
        ensure_site_exists(client, site_id)
    values = {
        "mobile": mobile,
        "password": hash_password(data["password"]),
        "nickname": data.get("nickname") or f"用户{mobile[-4:]}",
        "bio": data.get("bio"),
        "avatar_url": data.get("avatar_url"),
        "role": role,
        "current_site_id": site_id,
    }
    return client.insert_one("users", values, USER_FIELDS)


def update_user(client: EzClient, user_id: int, data: dict[str, Any]) -> dict[str, Any]:
    """Apply writable fields only; id, timestamps, mobile and password are ignored."""
    changes = {key: value for key, value in data.items() if key in _WRITABLE_FIELDS and value is not None}
    if client.count("users", eq("id", user_id)) == 0:
        raise UserNotFoundError()
    if "role" in changes:
        _check_role(changes["role"])
    if "current_site_id" in changes:
        ensure_site_exists(client, changes["current_site_id"])
    if not changes:
        return get_user(client, user_id, include_private=True)
    result = client.update("users", eq("id", user_id), changes, USER_FIELDS)
    return result.returning[0]


def delete_user(client: EzClient, user_id: int) -> dict[str, Any]:
    """Delete an account that no longer owns any content."""
    if client.count("users", eq("id", user_id)) == 0:
        raise UserNotFoundError()
    if client.count("posts", eq("author_id", user_id)) > 0:
        raise ValidationError("该用户仍有帖子，无法删除")
    if client.count("post_comments", eq("author_id", user_id)) > 0:
        raise ValidationError("该用户仍有评论，无法删除")
    result = client.delete("users", eq("id", user_id), ["id", "mobile", "nickname"])
    return result.returning[0]


def is_admin(client: EzClient, user_id: int) -> bool:
    """Check the stored role, which may be newer than the one in a token."""
    row = client.query_first("users", QueryArgs(where=eq("id", user_id)), ["role"])
    return row is not None and row["role"] == ROLE_ADMIN
