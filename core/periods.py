"""Date helpers shared by reporting code (sqlite hands dates back as text)."""

from __future__ import annotations

import calendar
from datetime import date, datetime, timezone


def as_date(value) -> date | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text_value = str(value).strip()
    if not text_value:
        return None
    return date.fromisoformat(text_value[:10])


def as_datetime(value) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    return datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))


def iso(value) -> str | None:
    """ISO string for a date/datetime or a value already stored as text."""

    if value is None:
        return None
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return str(value)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def month_bounds(year: int, month: int) -> tuple[date, date]:
    if not 1 <= month <= 12:
        raise ValueError("Month must be between 1 and 12")
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def period_label(period_start) -> str:
    """``November 2025`` style label."""

    start = as_date(period_start)
    return f"{calendar.month_name[start.month]} {start.year}"


__all__ = ["as_date", "as_datetime", "iso", "month_bounds", "period_label", "utcnow"]
