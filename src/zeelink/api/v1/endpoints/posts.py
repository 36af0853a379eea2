# src/zeelink/api/v1/endpoints/posts.py
"""Post-related API endpoints."""

from __future__ import annotations

import re
from typing import Annotated

from fastapi import APIRouter, File, Form, Query, UploadFile, status
from fastapi.responses import JSONResponse

from zeelink.api.v1.dependencies import CurrentUserDep, EzClientDep, StorageDep
from zeelink.api.v1.responses import success_response
from zeelink.schemas.post import CommentCreateRequest, PostUpdateRequest
from zeelink.services import comments as comment_service
from zeelink.services import posts as post_service
from zeelink.services import topics as topic_service
from zeelink.services.pagination import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, order_by

from .upload import read_uploads

router = APIRouter(prefix="/posts", tags=["posts"])

PageDep = Annotated[int, Query(ge=1)]
PageSizeDep = Annotated[int, Query(alias="pageSize", ge=1, le=MAX_PAGE_SIZE)]

_TOPIC_SEPARATORS = re.compile(r"[,，]")


def _split_topics(values: list[str] | None) -> list[str]:
    """Accept repeated form fields as well as comma separated names."""
    names: list[str] = []
    for value in values or ():
        names.extend(part.strip() for part in _TOPIC_SEPARATORS.split(value) if part.strip())
    return names


@router.get("")
async def list_posts(
    client: EzClientDep,
    page: PageDep = 1,
    page_size: PageSizeDep = DEFAULT_PAGE_SIZE,
    sort_by: Annotated[str | None, Query(alias="sortBy")] = None,
    sort_order: Annotated[str | None, Query(alias="sortOrder")] = None,
    keyword: str | None = None,
    author_id: Annotated[int | None, Query(alias="authorId")] = None,
    site_id: Annotated[int | None, Query(alias="siteId")] = None,
    topic_id: Annotated[int | None, Query(alias="topicId")] = None,
) -> JSONResponse:
    data = post_service.get_post_list(
        client,
        page=page,
        page_size=page_size,
        sort_by=sort_by,
        sort_order=sort_order,
        keyword=keyword,
        author_id=author_id,
        site_id=site_id,
        topic_id=topic_id,
    )
    return success_response(data, "获取成功")


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_post(
    client: EzClientDep,
    storage: StorageDep,
    user: CurrentUserDep,
    content: Annotated[str | None, Form()] = None,
    site_id: Annotated[int | None, Form()] = None,
    topics: Annotated[list[str] | None, Form()] = None,
    images: Annotated[list[UploadFile] | None, File()] = None,
) -> JSONResponse:
    """Create a post from multipart form data."""
    post = await post_service.create_post(
        client,
        storage,
        user,
        content,
        site_id=site_id,
        topic_names=_split_topics(topics),
        images=await read_uploads(images),
    )
    return success_response(post, "帖子创建成功", status.HTTP_201_CREATED)


@router.get("/topics")
async def search_topics(
    client: EzClientDep,
    page_number: Annotated[int, Query(alias="pageNumber", ge=1)] = 1,
    page_size: PageSizeDep = DEFAULT_PAGE_SIZE,
    keyword: str | None = None,
    order_column: Annotated[str | None, Query(alias="orderBy")] = None,
    order_sort: Annotated[str | None, Query(alias="orderSort")] = None,
) -> JSONResponse:
    """Topic picker used while composing a post."""
    result = topic_service.search_topics(
        client,
        page_number=page_number,
        page_size=page_size,
        keyword=keyword,
        order=order_by(order_column, order_sort, topic_service.TOPIC_SORT_FIELDS),
    )
    return success_response({"datas": result.datas, "aggregate": result.aggregate}, "获取成功")


@router.get("/{post_id}")
async def get_post(post_id: int, client: EzClientDep) -> JSONResponse:
    return success_response(post_service.get_post_by_id(client, post_id), "获取成功")


@router.put("/{post_id}")
async def update_post(
    post_id: int,
    body: PostUpdateRequest,
    client: EzClientDep,
    user: CurrentUserDep,
) -> JSONResponse:
    post = post_service.update_post(
        client,
        user,
        post_id,
        body.model_dump(exclude={"topics"}, exclude_unset=True),
        topic_names=body.topics,
    )
    return success_response(post, "帖子更新成功")


@router.delete("/{post_id}")
async def delete_post(post_id: int, client: EzClientDep, user: CurrentUserDep) -> JSONResponse:
    return success_response(post_service.delete_post(client, user, post_id), "帖子删除成功")


@router.get("/{post_id}/comments")
async def list_comments(
    post_id: int,
    client: EzClientDep,
    page: PageDep = 1,
    page_size: PageSizeDep = DEFAULT_PAGE_SIZE,
) -> JSONResponse:
    data = comment_service.get_post_comments(client, post_id, page, page_size)
    return success_response(data, "获取成功")


@router.post("/{post_id}/comments", status_code=status.HTTP_201_CREATED)
async def create_comment(
    post_id: int,
    body: CommentCreateRequest,
    client: EzClientDep,
    user: CurrentUserDep,
) -> JSONResponse:
    comment = comment_service.create_comment(
        client,
        user,
        post_id,
        body.content,
        parent_comment_id=body.parent_comment_id,
        media_data=body.media_data,
    )
    return success_response(comment, "评论成功", status.HTTP_201_CREATED)
