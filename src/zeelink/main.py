# src/zeelink/main.py
"""Main entry point for the Zeelink campus API."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.staticfiles import StaticFiles

from zeelink.api.v1 import (
    auth_router,
    posts_router,
    site_router,
    sites_router,
    topics_router,
    upload_router,
    users_router,
)
from zeelink.api.v1.responses import install_exception_handlers
from zeelink.core.settings import settings

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

# Initialize FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Campus community API: posts, topics, sites and accounts",
    version=settings.app_version,
    debug=settings.debug,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

install_exception_handlers(app)

# Include API routers
app.include_router(auth_router, prefix="/api/v1")
app.include_router(users_router, prefix="/api/v1")
app.include_router(posts_router, prefix="/api/v1")
app.include_router(topics_router, prefix="/api/v1")
app.include_router(sites_router, prefix="/api/v1")
app.include_router(site_router, prefix="/api/v1")
app.include_router(upload_router, prefix="/api/v1")

if settings.storage_backend == "local":
    # Files written by LocalObjectStorage; the directory may not exist yet.
    app.mount(
        "/media",
        StaticFiles(directory=settings.storage_local_root, check_dir=False),
        name="media",
    )


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "description": "Campus community API: posts, topics, sites and accounts",
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("zeelink.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
