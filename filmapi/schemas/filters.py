from __future__ import annotations

"""
Request-scoped list parameters and response pagination metadata.

`Filters` range-checks `page` / `page_size` at construction; sort tokens are
checked against `sort_safelist` later, by the query builder, so that an
unknown token surfaces as a typed `InvalidSortError`.
"""

from typing import List

from pydantic import BaseModel, Field

MAX_PAGE = 10_000_000
MAX_PAGE_SIZE = 100


class Filters(BaseModel):
    page: int = Field(1, ge=1, le=MAX_PAGE, description="1-based page number")
    page_size: int = Field(20, ge=1, le=MAX_PAGE_SIZE)
    sort: List[str] = Field(default_factory=list, description="Ordered sort tokens, `-` prefix for DESC")
    sort_safelist: List[str] = Field(default_factory=list)


class Metadata(BaseModel):
    """Pagination summary; every field is zero when nothing matched."""

    current_page: int = 0
    page_size: int = 0
    first_page: int = 0
    last_page: int = 0
    total_records: int = 0


__all__ = ["Filters", "Metadata", "MAX_PAGE", "MAX_PAGE_SIZE"]
