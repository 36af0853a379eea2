"""SQLAlchemy models for sites and their presentational assets."""
from __future__ import annotations

from sqlalchemy import BigInteger, ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from zeelink.db.session import Base
from zeelink.models.mixins import TimestampedMixin


class Site(TimestampedMixin, Base):
    """A community scope; posts, banners and quicklinks belong to one site."""

    __tablename__ = "sites"

    name: Mapped[str] = mapped_column(Text, nullable=False)
    icon_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    site_banners: Mapped[list[SiteBanner]] = relationship(
        "SiteBanner",
        back_populates="site",
        cascade="all, delete-orphan",
    )
    site_quicklinks: Mapped[list[SiteQuicklink]] = relationship(
        "SiteQuicklink",
        back_populates="site",
        cascade="all, delete-orphan",
    )


class SiteBanner(TimestampedMixin, Base):
    """Carousel entry shown on a site's home page."""

    __tablename__ = "site_banners"

    site_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("sites.id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str | None] = mapped_column(Text, nullable=True)
    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    link: Mapped[str | None] = mapped_column(Text, nullable=True)
    sort: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    site: Mapped[Site] = relationship("Site", back_populates="site_banners")


class SiteQuicklink(TimestampedMixin, Base):
    """Shortcut icon shown on a site's home page."""

    __tablename__ = "site_quicklinks"

    site_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("sites.id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str | None] = mapped_column(Text, nullable=True)
    icon_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    link: Mapped[str | None] = mapped_column(Text, nullable=True)
    sort: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)

    site: Mapped[Site] = relationship("Site", back_populates="site_quicklinks")
