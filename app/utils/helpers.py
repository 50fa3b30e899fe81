"""
Helper utility functions.
"""
import math
from typing import Any, Dict

from app.config import settings


def normalize_page_params(page: int = 1, limit: int | None = None) -> tuple[int, int]:
    """
    Clamp page/limit into their valid ranges.

    Args:
        page: 1-based page number
        limit: Requested page size (defaults to settings.default_page_size)

    Returns:
        Tuple of (page, limit)
    """
    if limit is None:
        limit = settings.default_page_size
    page = max(1, int(page))
    limit = max(1, min(int(limit), settings.max_page_size))
    return page, limit


def page_offset(page: int, limit: int) -> int:
    """Number of rows to skip for a 1-based page."""
    return (page - 1) * limit


def get_pagination_meta(page: int, limit: int, total: int) -> Dict[str, Any]:
    """
    Build page-number pagination metadata.

    Args:
        page: Current 1-based page
        limit: Page size
        total: Total number of matching rows

    Returns:
        Pagination dict

    Example:
        >>> get_pagination_meta(1, 2, 3)["has_next_page"]
        True
    """
    total_pages = math.ceil(total / limit) if limit else 0
    has_next_page = page < total_pages
    has_prev_page = page > 1

    return {
        "current_page": page,
        "total_pages": total_pages,
        "total_results": total,
        "has_next_page": has_next_page,
        "has_prev_page": has_prev_page,
        "next_page": page + 1 if has_next_page else None,
        "prev_page": page - 1 if has_prev_page else None,
    }
