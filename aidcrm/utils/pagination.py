"""Pagination utilities for list operations."""

from dataclasses import dataclass
from typing import Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from aidcrm.core.config import settings

T = TypeVar("T")

DEFAULT_PAGE = 1


@dataclass(frozen=True)
class PaginationParams:
    """Pagination parameters for a list operation (page is 1-indexed)."""
    page: int = DEFAULT_PAGE
    limit: int = settings.DEFAULT_PAGE_LIMIT

    def __post_init__(self) -> None:
        if self.page < 1:
            raise ValueError("page must be >= 1")
        if not 1 <= self.limit <= settings.MAX_PAGE_LIMIT:
            raise ValueError(f"limit must be between 1 and {settings.MAX_PAGE_LIMIT}")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class PaginationMeta(BaseModel):
    """Pagination block returned with every list."""

    model_config = ConfigDict(populate_by_name=True)

    page: int
    limit: int
    total: int
    total_pages: int = Field(serialization_alias="totalPages")


class Page(BaseModel, Generic[T]):
    """Standard paginated response structure."""

    items: list[T]
    pagination: PaginationMeta

    @classmethod
    def create(cls, items: list[T], total: int, params: PaginationParams) -> "Page[T]":
        total_pages = (total + params.limit - 1) // params.limit if params.limit > 0 else 0
        return cls(
            items=items,
            pagination=PaginationMeta(
                page=params.page,
                limit=params.limit,
                total=total,
                total_pages=total_pages,
            ),
        )
