"""
Response envelope and pagination shared by every endpoint.
"""
import math
from typing import Generic, Optional, TypeVar

from fastapi import Query
from pydantic import BaseModel, Field

T = TypeVar("T")

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


class Pagination(BaseModel):
    """Pagination block of a list response (camelCase on the wire)."""

    current_page: int = Field(..., alias="currentPage")
    total_pages: int = Field(..., alias="totalPages")
    total_items: int = Field(..., alias="totalItems")
    items_per_page: int = Field(..., alias="itemsPerPage")

    class Config:
        populate_by_name = True

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "Pagination":
        return cls(
            current_page=page,
            total_pages=math.ceil(total / limit) if total else 0,
            total_items=total,
            items_per_page=limit,
        )


class ApiResponse(BaseModel, Generic[T]):
    """
    Envelope for every JSON response.

    Errors use the same shape with ``success=False`` (see core.exceptions).
    """

    success: bool = True
    message: Optional[str] = None
    data: Optional[T] = None
    pagination: Optional[Pagination] = None


class PageParams:
    """
    Query dependency for ``page`` and ``limit``.

    Usage:
        async def list_things(paging: PageParams = Depends()):
            items, total = repo.list(offset=paging.offset, limit=paging.limit)
    """

    def __init__(
        self,
        page: int = Query(1, ge=1, description="Page number (1-based)"),
        limit: int = Query(
            DEFAULT_PAGE_SIZE,
            ge=1,
            le=MAX_PAGE_SIZE,
            description=f"Items per page (1-{MAX_PAGE_SIZE})",
        ),
    ):
        self.page = page
        self.limit = limit

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def pagination(self, total: int) -> Pagination:
        return Pagination.build(self.page, self.limit, total)
