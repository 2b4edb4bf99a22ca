"""Paging — offset pagination request/response values and sort-token resolution.

Invariants:
    - page is 1-based; offset = (page - 1) * page_size
    - total_count is counted before LIMIT/OFFSET is applied
    - Unknown sort tokens fall back to the default column (never raise)
"""

from dataclasses import dataclass, field
from typing import Generic, Mapping, TypeVar

T = TypeVar("T")
C = TypeVar("C")


@dataclass(frozen=True)
class PageRequest:
    page: int = 1
    page_size: int = 20

    def __post_init__(self):
        if self.page < 1:
            raise ValueError("page must be >= 1")
        if self.page_size < 1:
            raise ValueError("page_size must be >= 1")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    def clamp(self, max_page_size: int) -> "PageRequest":
        return PageRequest(self.page, min(self.page_size, max_page_size))


@dataclass
class Page(Generic[T]):
    items: list[T] = field(default_factory=list)
    total_count: int = 0
    page: int = 1
    page_size: int = 20

    @property
    def total_pages(self) -> int:
        if self.total_count == 0:
            return 0
        return (self.total_count + self.page_size - 1) // self.page_size

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.page > 1


def resolve_sort(sort_by: str | None, allowed: Mapping[str, C], default: str) -> C:
    """Map a caller sort token (case/underscore-insensitive) to a column."""
    if sort_by:
        token = sort_by.replace("_", "").lower()
        for key, column in allowed.items():
            if key.replace("_", "").lower() == token:
                return column
    return allowed[default]
