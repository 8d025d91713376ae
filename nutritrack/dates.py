# -*- coding: utf-8 -*-
"""Date helpers shared by the storage modules.

Timestamps are stored as UTC ISO-8601 strings so range filters can compare
them as text on every backend.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Optional, Tuple


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_iso(value: str) -> Optional[datetime]:
    if not value:
        return None
    try:
        dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def to_utc_iso(value: str | datetime) -> str:
    """Normalize a timestamp to ``YYYY-MM-DDTHH:MM:SS[.ffffff]+00:00``."""
    dt = value if isinstance(value, datetime) else parse_iso(value)
    if dt is None:
        raise ValueError(f"Invalid ISO-8601 timestamp: {value!r}")
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat()


def parse_day(value: str) -> date:
    """Calendar date from ``YYYY-MM-DD`` or a full timestamp (its UTC date)."""
    value = (value or "").strip()
    if len(value) == 10:
        return date.fromisoformat(value)
    dt = parse_iso(value)
    if dt is None:
        raise ValueError(f"Invalid date: {value!r}")
    return dt.astimezone(timezone.utc).date()


def day_bounds(day: date) -> Tuple[str, str]:
    """Half-open UTC range ``[day 00:00, next day 00:00)``."""
    start = datetime(day.year, day.month, day.day, tzinfo=timezone.utc)
    return start.isoformat(), (start + timedelta(days=1)).isoformat()


def days_ago_iso(days: int) -> str:
    return (utc_now() - timedelta(days=days)).isoformat()


def yesterday(now: Optional[datetime] = None) -> date:
    return ((now or utc_now()) - timedelta(days=1)).date()
