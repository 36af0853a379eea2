"""Topic browsing and administration endpoints."""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Query, status
from fastapi.responses import JSONResponse

from zeelink.api.v1.dependencies import AdminUserDep, EzClientDep
from zeelink.api.v1.responses import success_response
from zeelink.schemas.topic import TopicCreate, TopicUpdate
from zeelink.services import topics as topic_service
from zeelink.services.pagination import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE

router = APIRouter(prefix="/topics", tags=["topics"])

PageSizeDep = Annotated[int, Query(alias="pageSize", ge=1, le=MAX_PAGE_SIZE)]


@router.get("")
async def list_topics(
    client: EzClientDep,
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: PageSizeDep = DEFAULT_PAGE_SIZE,
    keyword: str | None = None,
) -> JSONResponse:
    return success_response(topic_service.get_topic_list(client, page, page_size, keyword), "获取成功")


@router.get("/{topic_id}")
async def get_topic(topic_id: int, client: EzClientDep) -> JSONResponse:
    return success_response(topic_service.get_topic_by_id(client, topic_id), "获取成功")


@router.get("/{topic_id}/posts")
async def list_topic_posts(
    topic_id: int,
    client: EzClientDep,
    page: Annotated[int, Query(ge=1)] = 1,
    page_size: PageSizeDep = DEFAULT_PAGE_SIZE,
) -> JSONResponse:
    """Posts tagged with the topic, newest first."""
    data = topic_service.get_topic_posts(client, topic_id, page, page_size)
    return success_response(data, "获取成功")


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_topic(body: TopicCreate, client: EzClientDep, _admin: AdminUserDep) -> JSONResponse:
    topic = topic_service.create_topic(client, body.name)
    return success_response(topic, "话题创建成功", status.HTTP_201_CREATED)


@router.put("/{topic_id}")
async def update_topic(
    topic_id: int,
    body: TopicUpdate,
    client: EzClientDep,
    _admin: AdminUserDep,
) -> JSONResponse:
    return success_response(topic_service.update_topic(client, topic_id, body.name), "话题更新成功")


@router.delete("/{topic_id}")
async def delete_topic(topic_id: int, client: EzClientDep, _admin: AdminUserDep) -> JSONResponse:
    return success_response(topic_service.delete_topic(client, topic_id), "话题删除成功")
