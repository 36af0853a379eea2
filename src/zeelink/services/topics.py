"""Topic lookup, administration and name-based auto-creation."""
from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from zeelink.core.errors import ContentNotFoundError, DuplicateContentError, ValidationError
from zeelink.db.ezclient import EzClient, FindResult, OrderBy, QueryArgs, contains, eq, in_, neq
from zeelink.services import posts as post_service
from zeelink.services.pagination import page_data

TOPIC_FIELDS = ["id", "name", "created_at", "updated_at"]
TOPIC_SORT_FIELDS = ("created_at", "updated_at", "name", "id")


def _clean_names(names: Iterable[str | None]) -> list[str]:
    cleaned: list[str] = []
    for name in names:
        name = (name or "").strip()
        if name and name not in cleaned:
            cleaned.append(name)
    return cleaned


def autocomplete_topic_ids_by_names(client: EzClient, names: Iterable[str | None]) -> list[dict[str, Any]]:
    """Resolve topic names to ``{id, name}`` rows, creating the missing ones.

    Blank names and duplicates are ignored; the result follows input order.
    """
    cleaned = _clean_names(names)
    if not cleaned:
        return []
    existing = client.query("topics", QueryArgs(where=in_("name", cleaned)), ["id", "name"])
    by_name = {topic["name"]: topic for topic in existing}
    missing = [name for name in cleaned if name not in by_name]
    if missing:
        created = client.insert("topics", [{"name": name} for name in missing], ["id", "name"])
        by_name.update({topic["name"]: topic for topic in created.returning})
    return [by_name[name] for name in cleaned]


def _keyword_filter(keyword: str | None) -> list[Any]:
    keyword = (keyword or "").strip()
    return [contains("name", keyword)] if keyword else []


def get_topic_list(
    client: EzClient,
    page: int = 1,
    page_size: int = 10,
    keyword: str | None = None,
    order: list[OrderBy] | None = None,
) -> dict[str, Any]:
    result = client.find(
        "topics",
        page_number=page,
        page_size=page_size,
        args=QueryArgs(
            where=_keyword_filter(keyword),
            order_by=order or [OrderBy("created_at", "desc")],
        ),
        fields=TOPIC_FIELDS,
    )
    return page_data(result.datas, result.count, page, page_size)


def search_topics(
    client: EzClient,
    page_number: int = 1,
    page_size: int = 10,
    keyword: str | None = None,
    order: list[OrderBy] | None = None,
) -> FindResult:
    """Raw ``find`` over topic names for the composer's topic picker."""
    return client.find(
        "topics",
        page_number=page_number,
        page_size=page_size,
        args=QueryArgs(
            where=_keyword_filter(keyword),
            order_by=order or [OrderBy("created_at", "desc")],
        ),
        fields=["id", "name"],
    )


def get_topic_by_id(client: EzClient, topic_id: int) -> dict[str, Any]:
    topic = client.query_first("topics", QueryArgs(where=eq("id", topic_id)), TOPIC_FIELDS)
    if topic is None:
        raise ContentNotFoundError("话题不存在")
    topic["post_count"] = client.count("post_topics", eq("topic_id", topic_id))
    return topic


def _clean_name(name: str | None) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError("话题名称不能为空")
    return name


def create_topic(client: EzClient, name: str) -> dict[str, Any]:
    name = _clean_name(name)
    if client.count("topics", eq("name", name)) > 0:
        raise DuplicateContentError("话题已存在")
    return client.insert_one("topics", {"name": name}, TOPIC_FIELDS)


def update_topic(client: EzClient, topic_id: int, name: str) -> dict[str, Any]:
    name = _clean_name(name)
    if client.count("topics", eq("id", topic_id)) == 0:
        raise ContentNotFoundError("话题不存在")
    if client.count("topics", [eq("name", name), neq("id", topic_id)]) > 0:
        raise DuplicateContentError("话题已存在")
    result = client.update("topics", eq("id", topic_id), {"name": name}, TOPIC_FIELDS)
    return result.returning[0]


def delete_topic(client: EzClient, topic_id: int) -> dict[str, Any]:
    """Delete a topic after detaching it from every post."""
    if client.count("topics", eq("id", topic_id)) == 0:
        raise ContentNotFoundError("话题不存在")
    client.delete("post_topics", eq("topic_id", topic_id))
    result = client.delete("topics", eq("id", topic_id), ["id", "name"])
    return result.returning[0]


def get_topic_posts(
    client: EzClient,
    topic_id: int,
    page: int = 1,
    page_size: int = 10,
) -> dict[str, Any]:
    if client.count("topics", eq("id", topic_id)) == 0:
        raise ContentNotFoundError("话题不存在")
    return post_service.get_post_list(client, page=page, page_size=page_size, topic_id=topic_id)
