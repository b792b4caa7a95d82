from __future__ import annotations

from datetime import datetime, timedelta, timezone

DAY = timedelta(days=1)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(dt: datetime | None) -> datetime | None:
    """SQLite hands back naive datetimes; everything in this package is UTC."""
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def whole_days_between(earlier: datetime, later: datetime) -> int:
    """Floor of the elapsed time in days (negative when `later` precedes `earlier`)."""
    return int((as_utc(later) - as_utc(earlier)) // DAY)


def week_start(dt: datetime) -> datetime:
    """Midnight UTC of the Monday starting the week that contains `dt`."""
    d = as_utc(dt)
    monday = d - timedelta(days=d.weekday())
    return monday.replace(hour=0, minute=0, second=0, microsecond=0)
