"""
Page-based pagination parameters shared by list endpoints.
"""

from dataclasses import dataclass
from math import ceil

from fastapi import Query


@dataclass(frozen=True)
class Page:
    page: int
    per_page: int

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.per_page

    def total_pages(self, total: int) -> int:
        """Number of pages needed for `total` items (0 when empty)."""
        return ceil(total / self.per_page) if total else 0


def get_page_params(
    page: int = Query(1, ge=1, description="Page number (1-based)"),
    per_page: int = Query(50, ge=1, le=100, description="Items per page"),
) -> Page:
    """
    Standard page parameters for feedback lists.

    Args:
        page: Page number, starting at 1 (default 1)
        per_page: Items per page (default 50, max 100)

    Returns:
        Page
    """
    return Page(page=page, per_page=per_page)


def get_portal_page_params(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
) -> Page:
    """Page parameters for community portal lists (default 20 per page)."""
    return Page(page=page, per_page=per_page)
