"""Version 1 API endpoints."""

from .endpoints import (
    auth_router,
    posts_router,
    site_router,
    sites_router,
    topics_router,
    upload_router,
    users_router,
)

__all__ = [
    "auth_router",
    "posts_router",
    "site_router",
    "sites_router",
    "topics_router",
    "upload_router",
    "users_router",
]
