"""Comments attached to posts."""
from __future__ import annotations

from typing import Any

from zeelink.core.errors import ContentNotFoundError, ValidationError
from zeelink.db.ezclient import EzClient, OrderBy, QueryArgs, Relation, eq
from zeelink.services.auth import AuthenticatedUser
from zeelink.services.pagination import page_data

COMMENT_FIELDS = [
    "id",
    "content",
    "media_data",
    "post_id",
    "parent_comment_id",
    "created_at",
    Relation("author", ["id", "nickname", "avatar_url"]),
]


def _ensure_post_exists(client: EzClient, post_id: int) -> None:
    if client.count("posts", eq("id", post_id)) == 0:
        raise ContentNotFoundError("帖子不存在")


def get_post_comments(
    client: EzClient,
    post_id: int,
    page: int = 1,
    page_size: int = 10,
) -> dict[str, Any]:
    """Return a page of a post's comments, oldest first."""
    _ensure_post_exists(client, post_id)
    result = client.find(
        "post_comments",
        page_number=page,
        page_size=page_size,
        args=QueryArgs(where=eq("post_id", post_id), order_by=[OrderBy("created_at", "asc")]),
        fields=COMMENT_FIELDS,
    )
    return page_data(result.datas, result.count, page, page_size)


def create_comment(
    client: EzClient,
    author: AuthenticatedUser,
    post_id: int,
    content: str,
    parent_comment_id: int | None = None,
    media_data: list[dict[str, Any]] | None = None,
) -> dict[str, Any]:
    _ensure_post_exists(client, post_id)
    content = (content or "").strip()
    if not content:
        raise ValidationError("评论内容不能为空")
    if parent_comment_id is not None:
        parent = client.query_first(
            "post_comments",
            QueryArgs(where=eq("id", parent_comment_id)),
            ["id", "post_id"],
        )
        if parent is None:
            raise ContentNotFoundError("评论不存在")
        if parent["post_id"] != post_id:
            raise ValidationError("回复的评论不属于该帖子")
    return client.insert_one(
        "post_comments",
        {
            "content": content,
            "media_data": media_data,
            "author_id": author.id,
            "post_id": post_id,
            "parent_comment_id": parent_comment_id,
        },
        COMMENT_FIELDS,
    )
