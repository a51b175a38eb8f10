"""UTC day and ISO week helpers shared by decay, challenges and rollovers."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone

SECONDS_PER_DAY = 86400


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(dt: datetime) -> datetime:
    """Treat naive datetimes as UTC (some drivers drop tzinfo on read)."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def utc_day(dt: datetime) -> date:
    return as_utc(dt).date()


def elapsed_full_days(since: datetime | None, now: datetime) -> int:
    """Whole days between ``since`` and ``now``; 0 when ``since`` is unknown."""
    if since is None:
        return 0
    seconds = (as_utc(now) - as_utc(since)).total_seconds()
    if seconds <= 0:
        return 0
    return int(seconds // SECONDS_PER_DAY)


def get_week_iso(dt: datetime) -> str:
    """ISO week string e.g. '2026-W09' (ISO year + ISO week)."""
    return as_utc(dt).strftime("%G-W%V")


def get_monday(dt: datetime | date) -> date:
    d = utc_day(dt) if isinstance(dt, datetime) else dt
    return d - timedelta(days=d.weekday())


def week_start(dt: datetime) -> datetime:
    """Monday 00:00 UTC of the ISO week containing ``dt``."""
    return datetime.combine(get_monday(dt), time.min, tzinfo=timezone.utc)
