import math
from dataclasses import dataclass, field
from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


@dataclass
class Page(Generic[T]):
    """One page of query results plus the total match count."""

    items: list[T] = field(default_factory=list)
    total_count: int = 0
    page: int = 1
    limit: int = 20

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_count / self.limit) if self.limit else 0

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev(self) -> bool:
        return self.page > 1

    def meta(self) -> "PaginationMeta":
        return PaginationMeta(
            page=self.page,
            limit=self.limit,
            total_count=self.total_count,
            total_pages=self.total_pages,
            has_next=self.has_next,
            has_prev=self.has_prev,
        )


class PaginationMeta(BaseModel):
    """Pagination block returned alongside list results."""

    page: int
    limit: int
    total_count: int
    total_pages: int
    has_next: bool
    has_prev: bool
