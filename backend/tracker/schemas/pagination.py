# backend/tracker/schemas/pagination.py
"""
Pagination metadata for list endpoints.

Usage:
    @router.get("/items")
    def list_items(skip: int = Query(0, ge=0), limit: int = Query(100, ge=1, le=MAX_LIST_LIMIT)):
        ...
        return {"items": items, "pagination": PaginationMeta.create(total, skip, limit)}
"""

from pydantic import BaseModel, Field, computed_field


class PaginationMeta(BaseModel):
    """
    Offset pagination metadata.

    page/pages/has_next/has_previous are derived from total, skip and limit.
    """

    total: int = Field(..., ge=0, description="Total number of items matching query")
    skip: int = Field(..., ge=0, description="Number of items skipped (offset)")
    limit: int = Field(..., ge=1, description="Maximum items per page")

    @computed_field
    @property
    def page(self) -> int:
        """Current page number (1-indexed)."""
        return (self.skip // self.limit) + 1

    @computed_field
    @property
    def pages(self) -> int:
        if self.total <= 0:
            return 1
        return -(-self.total // self.limit)

    @computed_field
    @property
    def has_next(self) -> bool:
        return self.skip + self.limit < self.total

    @computed_field
    @property
    def has_previous(self) -> bool:
        return self.skip > 0

    @classmethod
    def create(cls, total: int, skip: int, limit: int) -> "PaginationMeta":
        return cls(total=total, skip=skip, limit=limit)
