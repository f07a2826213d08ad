from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Optional


def local_today() -> date:
    """Return today's date in the host's local time zone."""
    return datetime.now().astimezone().date()


def week_id(day: date) -> str:
    """Format the ISO week-based year and week of `day` as e.g. '2024-W07'.

    Dates in the same ISO week always map to the same string; dates in
    different ISO weeks never do.
    """
    iso_year, iso_week, _ = day.isocalendar()
    return "%d-W%02d" % (iso_year, iso_week)


def current_week_id(today: Optional[date] = None) -> str:
    return week_id(today if today is not None else local_today())


def previous_week_id(today: Optional[date] = None) -> str:
    """Week identifier of the date one week before `today` (default: local today)."""
    day = today if today is not None else local_today()
    return week_id(day - timedelta(days=7))


def isoformat_utc(dt: Optional[datetime]) -> Optional[str]:
    """Serialize a datetime to an ISO8601 string with 'Z' suffix for UTC.

    Naive datetimes are interpreted as local time. Returns None if dt is None.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.astimezone()
    s = dt.astimezone(timezone.utc).isoformat()
    if s.endswith("+00:00"):
        s = s[:-6] + "Z"
    return s


__all__ = [
    "local_today",
    "week_id",
    "current_week_id",
    "previous_week_id",
    "isoformat_utc",
]
