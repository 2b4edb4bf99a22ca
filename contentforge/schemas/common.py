"""Shared schema pieces — UTC timestamps and the paged response envelope."""

from datetime import datetime
from typing import Annotated, Generic, TypeVar

from pydantic import AfterValidator, BaseModel, Field

from contentforge.core.paging import Page
from contentforge.db.base import as_utc

T = TypeVar("T")

# SQLite hands back naive datetimes; every stored timestamp is UTC.
UtcDatetime = Annotated[datetime, AfterValidator(as_utc)]


class PageParams(BaseModel):
    page: int = Field(1, ge=1)
    page_size: int = Field(20, ge=1, le=100)


class PageResponse(BaseModel, Generic[T]):
    items: list[T]
    total_count: int
    page: int
    page_size: int
    total_pages: int
    has_next: bool
    has_previous: bool

    @classmethod
    def from_page(cls, page: Page, convert) -> "PageResponse[T]":
        return cls(
            items=[convert(item) for item in page.items],
            total_count=page.total_count,
            page=page.page,
            page_size=page.page_size,
            total_pages=page.total_pages,
            has_next=page.has_next,
            has_previous=page.has_previous,
        )
