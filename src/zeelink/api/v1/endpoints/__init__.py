# src/zeelink/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .auth import router as auth_router
from .posts import router as posts_router
from .sites import current_site_router as site_router
from .sites import router as sites_router
from .topics import router as topics_router
from .upload import router as upload_router
from .users import router as users_router

__all__ = [
    "auth_router",
    "posts_router",
    "site_router",
    "sites_router",
    "topics_router",
    "upload_router",
    "users_router",
]
