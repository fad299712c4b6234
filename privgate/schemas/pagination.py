"""Pagination schemas shared by list endpoints."""

import math

from pydantic import BaseModel, Field


class PaginationMeta(BaseModel):
    """Paging metadata returned alongside list results."""

    total_records: int = Field(..., ge=0, description="Total number of matching records")
    current_page: int = Field(..., ge=1, description="1-based page number")
    page_size: int = Field(..., ge=1, description="Records per page")
    total_pages: int = Field(..., ge=0, description="Number of pages at this page size")

    @classmethod
    def build(cls, total_records: int, page: int, page_size: int) -> "PaginationMeta":
        """Compute the page count for a result set."""
        return cls(
            total_records=total_records,
            current_page=page,
            page_size=page_size,
            total_pages=math.ceil(total_records / page_size) if total_records else 0,
        )
