from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    """
    Parse a YYYY-MM-DD string (or the date part of an ISO datetime).

    - None / "" -> None
    - raises ValueError on malformed input
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None
    return date.fromisoformat(s[:10])


def subtract_months(dt: datetime, months: int) -> datetime:
    """Calendar month arithmetic; clamps the day to the target month's length."""
    month_index = dt.month - 1 - months
    year = dt.year + month_index // 12
    month = month_index % 12 + 1
    # Last day of target month
    if month == 12:
        next_month_start = datetime(year + 1, 1, 1)
    else:
        next_month_start = datetime(year, month + 1, 1)
    last_day = (next_month_start - datetime(year, month, 1)).days
    return dt.replace(year=year, month=month, day=min(dt.day, last_day))


def year_bounds(year: int) -> tuple[datetime, datetime]:
    """[start, end) of a calendar year."""
    return datetime(year, 1, 1), datetime(year + 1, 1, 1)


def format_datetime(dt: Optional[datetime]) -> Optional[str]:
    """Machine representation: 'YYYY-MM-DD HH:MM:SS'."""
    if dt is None:
        return None
    return dt.strftime("%Y-%m-%d %H:%M:%S")


def format_datetime_local(dt: Optional[datetime]) -> Optional[str]:
    """Display representation used by the Romanian storefront: 'DD.MM.YYYY HH:MM'."""
    if dt is None:
        return None
    return dt.strftime("%d.%m.%Y %H:%M")


def format_date(d: Optional[date]) -> Optional[str]:
    if d is None:
        return None
    return d.strftime("%Y-%m-%d")


def format_date_local(d: Optional[date]) -> Optional[str]:
    if d is None:
        return None
    return d.strftime("%d.%m.%Y")
