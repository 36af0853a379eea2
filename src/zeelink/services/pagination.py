"""Pagination helpers shared by list endpoints."""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from typing import Any

from zeelink.core.errors import ValidationError
from zeelink.db.ezclient import OrderBy

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


def page_data(items: Sequence[Any], total: int, page: int, page_size: int) -> dict[str, Any]:
    """Wrap one page of results as ``{items, total, page, pageSize, totalPages}``."""
    return {
        "items": list(items),
        "total": total,
        "page": page,
        "pageSize": page_size,
        "totalPages": math.ceil(total / page_size) if page_size > 0 else 0,
    }


def order_by(
    sort_by: str | None,
    sort_order: str | None,
    allowed: Iterable[str],
    default: str = "created_at",
) -> list[OrderBy]:
    """Translate list query parameters into an ordering, rejecting unknown columns."""
    column = sort_by or default
    if column not in set(allowed):
        raise ValidationError(f"不支持的排序字段: {column}")
    direction = (sort_order or "desc").lower()
    if direction not in ("asc", "desc"):
        raise ValidationError("排序方向必须是 asc 或 desc")
    return [OrderBy(column, direction)]  # type: ignore[arg-type]
