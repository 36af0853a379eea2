# src/zeelink/models/post.py
"""SQLAlchemy models for posts, their topics and comments."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import JSON, ForeignKey, Integer, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from zeelink.db.session import Base
from zeelink.models.mixins import TimestampedMixin

if TYPE_CHECKING:
    from zeelink.models.site import Site
    from zeelink.models.topic import Topic
    from zeelink.models.user import User


class Post(TimestampedMixin, Base):
    """Primary content entity produced by users.

    A post always has an author and belongs to exactly one site.
    """

    __tablename__ = "posts"

    content: Mapped[str] = mapped_column(Text, nullable=False)
    # List of uploaded asset descriptors: {"type", "key", "url"}.
    media_data: Mapped[list[dict[str, Any]] | None] = mapped_column(JSON(none_as_null=True), nullable=True)
    author_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id"),
        nullable=False,
        index=True,
    )
    site_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("sites.id"),
        nullable=False,
        index=True,
    )

    author: Mapped[User] = relationship("User")
    site: Mapped[Site] = relationship("Site")
    post_topics: Mapped[list[PostTopic]] = relationship(
        "PostTopic",
        back_populates="post",
        passive_deletes=True,
    )
    comments: Mapped[list[PostComment]] = relationship(
        "PostComment",
        back_populates="post",
        passive_deletes=True,
        foreign_keys="PostComment.post_id",
    )


class PostTopic(TimestampedMixin, Base):
    """Join table linking posts and topics."""

    __tablename__ = "post_topics"
    __table_args__ = (UniqueConstraint("post_id", "topic_id", name="uq_post_topic"),)

    post_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("posts.id", ondelete="CASCADE"),
        nullable=False,
    )
    topic_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("topics.id", ondelete="CASCADE"),
        nullable=False,
    )

    post: Mapped[Post] = relationship("Post", back_populates="post_topics")
    topic: Mapped[Topic] = relationship("Topic", back_populates="post_topics")


class PostComment(TimestampedMixin, Base):
    """Comment on a post; replies point at their parent comment."""

    __tablename__ = "post_comments"

    content: Mapped[str] = mapped_column(Text, nullable=False)
    media_data: Mapped[list[dict[str, Any]] | None] = mapped_column(JSON(none_as_null=True), nullable=True)
    author_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("users.id"),
        nullable=False,
    )
    post_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("posts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    parent_comment_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("post_comments.id", ondelete="CASCADE"),
        nullable=True,
    )

    author: Mapped[User] = relationship("User")
    post: Mapped[Post] = relationship(
        "Post",
        back_populates="comments",
        foreign_keys=[post_id],
    )
    parent: Mapped[PostComment | None] = relationship(
        "PostComment",
        remote_side="PostComment.id",
    )
