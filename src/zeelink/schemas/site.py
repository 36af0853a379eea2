"""Site-related Pydantic schemas."""

from pydantic import BaseModel, Field


class SiteCreate(BaseModel):
    """Schema for creating a new site."""

    name: str = Field(..., min_length=1, max_length=100)
    icon_url: str | None = None


class SiteSwitchRequest(BaseModel):
    site_id: int = Field(..., ge=1)


class BannerCreate(BaseModel):
    name: str | None = None
    image_url: str
    link: str | None = None
    sort: int = 0


class QuicklinkCreate(BaseModel):
    name: str
    icon_url: str | None = None
    link: str | None = None
    sort: int = 0
