"""SQLAlchemy model for topics."""
from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from zeelink.db.session import Base
from zeelink.models.mixins import TimestampedMixin

if TYPE_CHECKING:
    from zeelink.models.post import PostTopic


class Topic(TimestampedMixin, Base):
    """User-facing tag attached to posts through `PostTopic`."""

    __tablename__ = "topics"

    name: Mapped[str] = mapped_column(Text, unique=True, nullable=False)

    post_topics: Mapped[list[PostTopic]] = relationship(
        "PostTopic",
        back_populates="topic",
        passive_deletes=True,
    )
