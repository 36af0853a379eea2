"""Site endpoints: public catalogue, administration and the caller's current site."""

from __future__ import annotations

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from zeelink.api.v1.dependencies import AdminUserDep, CurrentUserDep, EzClientDep
from zeelink.api.v1.responses import success_response
from zeelink.schemas.site import BannerCreate, QuicklinkCreate, SiteCreate, SiteSwitchRequest
from zeelink.services import sites as site_service

router = APIRouter(prefix="/sites", tags=["sites"])
current_site_router = APIRouter(prefix="/site", tags=["sites"])


@router.get("")
async def list_sites(client: EzClientDep) -> JSONResponse:
    return success_response(site_service.get_site_list(client), "获取成功")


@router.get("/{site_id}")
async def get_site(site_id: int, client: EzClientDep) -> JSONResponse:
    """Site with banners and quicklinks ordered by `sort`."""
    return success_response(site_service.get_site_by_id(client, site_id), "获取成功")


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_site(body: SiteCreate, client: EzClientDep, _admin: AdminUserDep) -> JSONResponse:
    site = site_service.create_site(client, body.name, body.icon_url)
    return success_response(site, "站点创建成功", status.HTTP_201_CREATED)


@router.post("/{site_id}/banners", status_code=status.HTTP_201_CREATED)
async def add_banner(
    site_id: int,
    body: BannerCreate,
    client: EzClientDep,
    _admin: AdminUserDep,
) -> JSONResponse:
    banner = site_service.add_site_banner(client, site_id, body.model_dump())
    return success_response(banner, "添加成功", status.HTTP_201_CREATED)


@router.post("/{site_id}/quicklinks", status_code=status.HTTP_201_CREATED)
async def add_quicklink(
    site_id: int,
    body: QuicklinkCreate,
    client: EzClientDep,
    _admin: AdminUserDep,
) -> JSONResponse:
    quicklink = site_service.add_site_quicklink(client, site_id, body.model_dump())
    return success_response(quicklink, "添加成功", status.HTTP_201_CREATED)


@current_site_router.get("")
async def list_sites_for_user(client: EzClientDep, _user: CurrentUserDep) -> JSONResponse:
    return success_response(site_service.get_site_list(client), "获取成功")


@current_site_router.get("/current")
async def get_current_site(client: EzClientDep, user: CurrentUserDep) -> JSONResponse:
    current = site_service.get_user_current_site(client, user.id)
    return success_response({"current_site": current}, "获取成功")


@current_site_router.post("/switch")
async def switch_site(
    body: SiteSwitchRequest,
    client: EzClientDep,
    user: CurrentUserDep,
) -> JSONResponse:
    site = site_service.update_user_current_site(client, user.id, body.site_id)
    return success_response({"current_site": site}, "切换站点成功")
