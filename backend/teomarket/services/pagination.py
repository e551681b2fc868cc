# Overview: Offset pagination with the "all" page-size sentinel used by history pages.

from __future__ import annotations

from typing import Any

# Legacy page-size value that the storefront sends for "show everything"
ALL_SENTINEL = 999999


def parse_per_page(value: Any, default: int) -> int | None:
    """
    Normalize a page-size request parameter.

    Returns None for "all" (pagination disabled). Non-numeric and
    non-positive values fall back to default.
    """
    if value is None or value == "":
        return default
    if isinstance(value, str) and value.strip().lower() == "all":
        return None
    try:
        per_page = int(value)
    except (TypeError, ValueError):
        return default
    if per_page <= 0:
        return default
    if per_page == ALL_SENTINEL:
        return None
    return per_page


def parse_page(value: Any) -> int:
    try:
        page = int(value)
    except (TypeError, ValueError):
        return 1
    return page if page > 0 else 1


def paginate(query, page: int, per_page: int | None) -> tuple[list, dict]:
    """Run query for one page. per_page=None returns every row as a single page."""
    if per_page is None:
        items = query.all()
        return items, {
            "current_page": 1,
            "last_page": 1,
            "per_page": len(items),
            "total": len(items),
        }

    total = query.order_by(None).count()
    last_page = max(1, (total + per_page - 1) // per_page)
    items = query.offset((page - 1) * per_page).limit(per_page).all()
    return items, {
        "current_page": page,
        "last_page": last_page,
        "per_page": per_page,
        "total": total,
    }


def echo_per_page(per_page: int | None):
    return "all" if per_page is None else per_page
