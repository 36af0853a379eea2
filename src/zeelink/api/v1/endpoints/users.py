"""User profile endpoints and administrative user management."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Query, status
from fastapi.responses import JSONResponse

from zeelink.api.v1.dependencies import AdminUserDep, CurrentUserDep, EzClientDep, OptionalUserDep
from zeelink.api.v1.responses import success_response
from zeelink.core.errors import ValidationError
from zeelink.schemas.user import ProfileUpdateRequest, UserCreateRequest, UserUpdateRequest
from zeelink.services import auth as auth_service
from zeelink.services import users as user_service
from zeelink.services.pagination import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me")
async def get_my_profile(client: EzClientDep, user: CurrentUserDep) -> JSONResponse:
    return success_response(auth_service.get_current_user(client, user.id), "获取成功")


@router.put("/me")
async def update_my_profile(
    body: ProfileUpdateRequest,
    client: EzClientDep,
    user: CurrentUserDep,
) -> JSONResponse:
    """Update nickname, avatar or bio of the caller."""
    profile = auth_service.update_profile(
        client,
        user.id,
        nickname=body.nickname,
        avatar_url=body.avatar_url,
        bio=body.bio,
    )
    return success_response(profile, "资料更新成功")


@router.get("")
async def list_users(
    client: EzClientDep,
    _admin: AdminUserDep,
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: Annotated[int, Query(alias="pageSize", ge=1, le=MAX_PAGE_SIZE)] = DEFAULT_PAGE_SIZE,
    sort_by: Annotated[str | None, Query(alias="sortBy")] = None,
    sort_order: Annotated[str | None, Query(alias="sortOrder")] = None,
    keyword: str | None = None,
) -> JSONResponse:
    data = user_service.get_user_list(client, page, page_size, sort_by, sort_order, keyword)
    return success_response(data, "获取成功")


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_user(
    body: UserCreateRequest,
    client: EzClientDep,
    _admin: AdminUserDep,
) -> JSONResponse:
    user = user_service.create_user(client, body.model_dump())
    return success_response(user, "用户创建成功", status.HTTP_201_CREATED)


@router.get("/{user_id}")
async def get_user(user_id: int, client: EzClientDep, viewer: OptionalUserDep) -> JSONResponse:
    """Public profile; the mobile number is shown only to administrators."""
    include_private = False
    if viewer is not None:
        include_private = viewer.id == user_id or user_service.is_admin(client, viewer.id)
    return success_response(user_service.get_user(client, user_id, include_private), "获取成功")


@router.put("/{user_id}")
async def update_user(
    user_id: int,
    body: UserUpdateRequest,
    client: EzClientDep,
    _admin: AdminUserDep,
) -> JSONResponse:
    user = user_service.update_user(client, user_id, body.model_dump(exclude_unset=True))
    return success_response(user, "用户更新成功")


@router.delete("/{user_id}")
async def delete_user(user_id: int, client: EzClientDep, admin: AdminUserDep) -> JSONResponse:
    if user_id == admin.id:
        raise ValidationError("不能删除当前登录的管理员账号")
    return success_response(user_service.delete_user(client, user_id), "用户删除成功")
