"""Shared Pydantic schemas for common API elements."""
from __future__ import annotations

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Uniform envelope wrapped around every API payload."""

    success: bool = Field(..., description="True when the request succeeded")
    code: int = Field(..., description="0 on success, otherwise an ErrorCode value")
    message: str = Field(..., description="Human readable message")
    data: T | None = Field(None, description="Payload, omitted on most errors")
    timestamp: int = Field(..., description="Server time in epoch milliseconds")


class PageData(BaseModel):
    """One page of a paginated listing."""

    items: list[Any]
    total: int
    page: int
    page_size: int = Field(..., alias="pageSize")
    total_pages: int = Field(..., alias="totalPages")

    model_config = ConfigDict(populate_by_name=True)
