# src/zeelink/services/posts.py
"""Post listing, authoring and moderation by owners or administrators."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from zeelink.core.errors import ContentNotFoundError, ForbiddenError, ValidationError
from zeelink.db.ezclient import EzClient, QueryArgs, Relation, contains, eq, related
from zeelink.services import topics as topic_service
from zeelink.services.auth import AuthenticatedUser
from zeelink.services.pagination import order_by, page_data
from zeelink.services.sites import ensure_site_exists
from zeelink.services.storage import ObjectStorage
from zeelink.services.upload import UploadedFile, ensure_size, upload_multiple_files

logger = logging.getLogger(__name__)

__all__ = [
    "create_post",
    "delete_post",
    "get_post_by_id",
    "get_post_list",
    "update_post",
]

POST_FIELDS = [
    "id",
    "content",
    "media_data",
    "author_id",
    "site_id",
    "created_at",
    "updated_at",
    Relation("author", ["id", "nickname", "avatar_url"]),
    Relation("site", ["id", "name"]),
    Relation("post_topics", ["id", Relation("topic", ["id", "name"])]),
]
POST_SORT_FIELDS = ("created_at", "updated_at", "id")
POST_UPLOAD_DIRECTORY = "posts"


def _present(post: dict[str, Any]) -> dict[str, Any]:
    """Flatten the join rows into a plain ``topics`` list."""
    links = post.pop("post_topics", [])
    post["topics"] = [link["topic"] for link in links if link.get("topic")]
    return post


def get_post_list(
    client: EzClient,
    page: int = 1,
    page_size: int = 10,
    sort_by: str | None = None,
    sort_order: str | None = None,
    keyword: str | None = None,
    author_id: int | None = None,
    site_id: int | None = None,
    topic_id: int | None = None,
) -> dict[str, Any]:
    """Return a page of posts with author, site and topics."""
    where: list[Any] = []
    keyword = (keyword or "").strip()
    if keyword:
        where.append(contains("content", keyword))
    if author_id:
        where.append(eq("author_id", author_id))
    if site_id:
        where.append(eq("site_id", site_id))
    if topic_id:
        where.append(related("post_topics", eq("topic_id", topic_id)))

    result = client.find(
        "posts",
        page_number=page,
        page_size=page_size,
        args=QueryArgs(where=where, order_by=order_by(sort_by, sort_order, POST_SORT_FIELDS)),
        fields=POST_FIELDS,
    )
    return page_data([_present(post) for post in result.datas], result.count, page, page_size)


def get_post_by_id(client: EzClient, post_id: int) -> dict[str, Any]:
    post = client.query_first("posts", QueryArgs(where=eq("id", post_id)), POST_FIELDS)
    if post is None:
        raise ContentNotFoundError("帖子不存在")
    post["comment_count"] = client.count("post_comments", eq("post_id", post_id))
    return _present(post)


def _ensure_can_modify(client: EzClient, actor: AuthenticatedUser, post_id: int) -> dict[str, Any]:
    post = client.query_first("posts", QueryArgs(where=eq("id", post_id)), ["id", "author_id"])
    if post is None:
        raise ContentNotFoundError("帖子不存在")
    if post["author_id"] != actor.id and not actor.is_admin:
        raise ForbiddenError("无权操作该帖子")
    return post


def _link_topics(client: EzClient, post_id: int, topics: Sequence[dict[str, Any]]) -> None:
    if topics:
        client.insert(
            "post_topics",
            [{"post_id": post_id, "topic_id": topic["id"]} for topic in topics],
        )


def _current_site_id(client: EzClient, user_id: int) -> int | None:
    user = client.query_first("users", QueryArgs(where=eq("id", user_id)), ["current_site_id"])
    return user["current_site_id"] if user else None


async def create_post(
    client: EzClient,
    storage: ObjectStorage,
    author: AuthenticatedUser,
    content: str | None,
    site_id: int | None = None,
    topic_names: Sequence[str] = (),
    images: Sequence[UploadedFile] = (),
) -> dict[str, Any]:
    """Publish a post.

    Images are uploaded before anything is written and become ``media_data``
    descriptors. Missing topics are created by name.
    """
    content = (content or "").strip()
    if not content:
        raise ValidationError("帖子内容不能为空")
    if site_id is None:
        site_id = _current_site_id(client, author.id)
    if site_id is None:
        raise ValidationError("请先选择站点")
    ensure_site_exists(client, site_id)

    media_data: list[dict[str, Any]] | None = None
    if images:
        ensure_size(images)
        uploaded = await upload_multiple_files(storage, images, POST_UPLOAD_DIRECTORY)
        media_data = [{"type": "image", **item} for item in uploaded["files"]]

    topics = topic_service.autocomplete_topic_ids_by_names(client, topic_names)
    post = client.insert_one(
        "posts",
        {
            "content": content,
            "media_data": media_data,
            "author_id": author.id,
            "site_id": site_id,
        },
        ["id"],
    )
    _link_topics(client, post["id"], topics)
    logger.info("User %s created post %s", author.id, post["id"])
    return get_post_by_id(client, post["id"])


def update_post(
    client: EzClient,
    actor: AuthenticatedUser,
    post_id: int,
    data: dict[str, Any],
    topic_names: Sequence[str] | None = None,
) -> dict[str, Any]:
    """Edit content or media and optionally replace the topic set.

    Topic membership is replaced by deleting every join row and inserting the
    new set; the two steps commit separately.
    """
    _ensure_can_modify(client, actor, post_id)
    changes = {key: data[key] for key in ("content", "media_data") if data.get(key) is not None}
    if "content" in changes:
        changes["content"] = changes["content"].strip()
        if not changes["content"]:
            raise ValidationError("帖子内容不能为空")
    if changes:
        client.update("posts", eq("id", post_id), changes)

    if topic_names is not None:
        topics = topic_service.autocomplete_topic_ids_by_names(client, topic_names)
        client.delete("post_topics", eq("post_id", post_id))
        _link_topics(client, post_id, topics)
    return get_post_by_id(client, post_id)


def delete_post(client: EzClient, actor: AuthenticatedUser, post_id: int) -> dict[str, Any]:
    """Remove a post after its topic links and comments."""
    _ensure_can_modify(client, actor, post_id)
    client.delete("post_topics", eq("post_id", post_id))
    client.delete("post_comments", eq("post_id", post_id))
    result = client.delete("posts", eq("id", post_id), ["id"])
    logger.info("User %s deleted post %s", actor.id, post_id)
    return result.returning[0]
