"""Datetime utilities for timezone-aware UTC timestamps.

Usage:
    from libs.common.datetime_utils import utc_now

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
"""

from datetime import datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo


def utc_now() -> datetime:
    """Return timezone-aware UTC datetime.

    Always use this for timestamps in the database.
    """
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes (e.g. read back from SQLite) as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def local_day_bounds(tz_name: str, now: datetime | None = None) -> tuple[datetime, datetime]:
    """Return [start, end] of the current calendar day in ``tz_name``, as UTC."""
    tz = ZoneInfo(tz_name)
    local_now = (now or utc_now()).astimezone(tz)
    start = datetime.combine(local_now.date(), time.min, tzinfo=tz)
    end = start + timedelta(days=1) - timedelta(microseconds=1)
    return start.astimezone(timezone.utc), end.astimezone(timezone.utc)
