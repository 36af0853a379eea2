"""Site lookups, administration and the per-user current site."""
from __future__ import annotations

from typing import Any

from zeelink.core.errors import ContentNotFoundError, UserNotFoundError, ValidationError
from zeelink.db.ezclient import EzClient, OrderBy, QueryArgs, Relation, eq

__all__ = [
    "add_site_banner",
    "add_site_quicklink",
    "create_site",
    "ensure_site_exists",
    "get_default_site",
    "get_site_by_id",
    "get_site_list",
    "get_user_current_site",
    "update_user_current_site",
]

SITE_FIELDS = ["id", "name", "icon_url", "created_at", "updated_at"]
BANNER_FIELDS = ["id", "site_id", "name", "image_url", "link", "sort"]
QUICKLINK_FIELDS = ["id", "site_id", "name", "icon_url", "link", "sort"]
_BY_SORT = [OrderBy("sort", "asc")]


def get_site_list(client: EzClient) -> dict[str, list[dict[str, Any]]]:
    """Return every site, newest first."""
    sites = client.query(
        "sites",
        QueryArgs(order_by=[OrderBy("created_at", "desc")]),
        SITE_FIELDS,
    )
    return {"list": sites}


def get_default_site(client: EzClient) -> dict[str, Any] | None:
    """Return the earliest created site, if any."""
    return client.query_first(
        "sites",
        QueryArgs(order_by=[OrderBy("created_at", "asc")]),
        SITE_FIELDS,
    )


def get_site_by_id(client: EzClient, site_id: int) -> dict[str, Any]:
    """Return a site with its banners and quicklinks ordered by `sort`."""
    site = client.query_first(
        "sites",
        QueryArgs(where=eq("id", site_id)),
        [
            *SITE_FIELDS,
            Relation("site_banners", BANNER_FIELDS, _BY_SORT),
            Relation("site_quicklinks", QUICKLINK_FIELDS, _BY_SORT),
        ],
    )
    if site is None:
        raise ContentNotFoundError("站点不存在")
    return site


def ensure_site_exists(client: EzClient, site_id: int) -> None:
    if client.count("sites", eq("id", site_id)) == 0:
        raise ContentNotFoundError("站点不存在")


def create_site(client: EzClient, name: str, icon_url: str | None = None) -> dict[str, Any]:
    name = (name or "").strip()
    if not name:
        raise ValidationError("站点名称不能为空")
    return client.insert_one("sites", {"name": name, "icon_url": icon_url}, SITE_FIELDS)


def add_site_banner(client: EzClient, site_id: int, data: dict[str, Any]) -> dict[str, Any]:
    ensure_site_exists(client, site_id)
    values = {key: data.get(key) for key in ("name", "image_url", "link")}
    values["sort"] = data.get("sort") or 0
    return client.insert_one("site_banners", {**values, "site_id": site_id}, BANNER_FIELDS)


def add_site_quicklink(client: EzClient, site_id: int, data: dict[str, Any]) -> dict[str, Any]:
    ensure_site_exists(client, site_id)
    values = {key: data.get(key) for key in ("name", "icon_url", "link")}
    values["sort"] = data.get("sort") or 0
    return client.insert_one("site_quicklinks", {**values, "site_id": site_id}, QUICKLINK_FIELDS)


def update_user_current_site(client: EzClient, user_id: int, site_id: int) -> dict[str, Any]:
    """Point the user's current site at `site_id` and return that site."""
    site = client.query_first("sites", QueryArgs(where=eq("id", site_id)), SITE_FIELDS)
    if site is None:
        raise ContentNotFoundError("站点不存在")
    result = client.update("users", eq("id", user_id), {"current_site_id": site_id})
    if result.affected_rows == 0:
        raise UserNotFoundError()
    return site


def get_user_current_site(client: EzClient, user_id: int) -> dict[str, Any] | None:
    user = client.query_first(
        "users",
        QueryArgs(where=eq("id", user_id)),
        ["id", Relation("current_site", SITE_FIELDS)],
    )
    if user is None:
        return None
    return user["current_site"]
