"""Page/limit arithmetic and the metadata returned alongside a page of results."""

import math
from typing import Generic, List, TypeVar

from pydantic import BaseModel

from catchup_feed.config import DEFAULT_PAGE_LIMIT

T = TypeVar("T")


def normalize(page: int, limit: int, default_limit: int = DEFAULT_PAGE_LIMIT) -> tuple[int, int]:
    """Clamp page to at least 1 and replace a non-positive limit with the default."""
    if page <= 0:
        page = 1
    if limit <= 0:
        limit = default_limit
    return page, limit


def to_offset(page: int, limit: int) -> int:
    return (page - 1) * limit


def total_pages(total: int, limit: int) -> int:
    """Number of pages needed for ``total`` rows.

    An empty result is still one page ("page 1 of 1").
    """
    if total <= 0:
        return 1
    return math.ceil(total / limit)


class PaginationMetadata(BaseModel):
    total: int
    page: int
    limit: int
    total_pages: int

    @classmethod
    def build(cls, total: int, page: int, limit: int) -> "PaginationMetadata":
        return cls(total=total, page=page, limit=limit, total_pages=total_pages(total, limit))


class PaginatedResult(BaseModel, Generic[T]):
    data: List[T]
    pagination: PaginationMetadata
