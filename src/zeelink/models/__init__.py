# src/zeelink/models/__init__.py
"""SQLAlchemy models for the Zeelink application."""

from .post import Post, PostComment, PostTopic
from .site import Site, SiteBanner, SiteQuicklink
from .topic import Topic
from .user import User

__all__ = [
    "Post", "PostComment", "PostTopic",
    "Site", "SiteBanner", "SiteQuicklink",
    "Topic",
    "User",
]
