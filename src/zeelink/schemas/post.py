# src/zeelink/schemas/post.py
"""Post and comment request schemas."""

from typing import Any

from pydantic import BaseModel, Field


class PostUpdateRequest(BaseModel):
    """Schema for editing a post.

    `topics` replaces the post's topic membership when present.
    """

    content: str | None = Field(None, min_length=1, max_length=5000)
    media_data: list[dict[str, Any]] | None = None
    topics: list[str] | None = Field(None, description="Topic names")


class CommentCreateRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=2000)
    parent_comment_id: int | None = Field(None, description="Comment being replied to")
    media_data: list[dict[str, Any]] | None = None
