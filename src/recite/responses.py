"""Standard response envelope: ``{success, message, data}``."""

from __future__ import annotations

from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Envelope wrapping every successful response body."""

    success: bool = True
    message: str = ""
    data: T | None = None


class Pagination(BaseModel):
    """Page metadata returned alongside paginated lists."""

    current_page: int
    total_pages: int
    total_items: int
    has_next: bool
    has_prev: bool

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> Pagination:
        total_pages = (total + limit - 1) // limit if limit > 0 else 0
        return cls(
            current_page=page,
            total_pages=total_pages,
            total_items=total,
            has_next=page < total_pages,
            has_prev=page > 1,
        )


def ok(data: T | None = None, message: str = "") -> ApiResponse[T]:
    """Wrap ``data`` in a success envelope."""
    return ApiResponse(success=True, message=message, data=data)


class Page(BaseModel, Generic[T]):
    """A page of items with its pagination metadata."""

    items: list[T]
    pagination: Pagination
