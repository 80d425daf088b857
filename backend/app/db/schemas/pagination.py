"""
Page-number pagination shared by the product and audit log listings
"""
from pydantic import BaseModel, Field
from typing import Generic, TypeVar, List
from math import ceil

T = TypeVar("T")


class PaginationParams(BaseModel):
    page: int = Field(1, ge=1, description="Page number (1-indexed)")
    page_size: int = Field(20, ge=1, description="Items per page")


class PaginationMeta(BaseModel):
    current: int
    page_size: int
    pages: int
    total: int = Field(..., description="Number of matching items across all pages")
    has_next: bool
    has_prev: bool

    @classmethod
    def build(cls, total: int, page: int, page_size: int) -> "PaginationMeta":
        pages = ceil(total / page_size) if page_size > 0 else 0
        return cls(
            current=page,
            page_size=page_size,
            pages=pages,
            total=total,
            has_next=page < pages,
            has_prev=page > 1
        )


class PaginatedResponse(BaseModel, Generic[T]):
    """
    One page of results plus its position in the full result set
    """
    items: List[T]
    pagination: PaginationMeta

    @classmethod
    def create(
        cls,
        items: List[T],
        total: int,
        page: int,
        page_size: int
    ) -> "PaginatedResponse[T]":
        return cls(items=items, pagination=PaginationMeta.build(total, page, page_size))
