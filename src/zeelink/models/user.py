# src/zeelink/models/user.py
"""SQLAlchemy model for registered users."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from zeelink.db.session import Base
from zeelink.models.mixins import TimestampedMixin

if TYPE_CHECKING:
    from zeelink.models.site import Site

ROLE_USER = "user"
ROLE_ADMIN = "admin"


class User(TimestampedMixin, Base):
    """Account identified by a unique mobile number."""

    __tablename__ = "users"

    mobile: Mapped[str] = mapped_column(Text, unique=True, nullable=False)
    # bcrypt hash; NULL for accounts created through code login.
    password: Mapped[str | None] = mapped_column(Text, nullable=True)
    nickname: Mapped[str | None] = mapped_column(Text, nullable=True)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    role: Mapped[str] = mapped_column(Text, nullable=False, default=ROLE_USER)
    current_site_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("sites.id", ondelete="SET NULL"),
        nullable=True,
    )
    last_login_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    current_site: Mapped[Site | None] = relationship("Site")
