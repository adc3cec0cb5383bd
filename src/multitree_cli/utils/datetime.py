"""Datetime utilities for multitree.

Task timestamps are naive local wall-clock datetimes: "tomorrow 4 pm" means
4 pm on the user's calendar, so every helper here works in local time.
"""

from datetime import datetime
from typing import Optional


def now_local() -> datetime:
    """Return the current local datetime, truncated to whole minutes.

    Returns:
        Naive datetime in local time with seconds and microseconds zeroed
    """
    return datetime.now().replace(second=0, microsecond=0)


def to_iso_string(dt: Optional[datetime]) -> Optional[str]:
    """Convert datetime to ISO string.

    Args:
        dt: Datetime to convert, or None

    Returns:
        ISO format string, or None if input was None
    """
    if dt is None:
        return None
    return dt.isoformat()


def from_iso_string(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO string written by ``to_iso_string``.

    Raises:
        ValueError: If the string is not ISO formatted
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        # YAML loaders may already have produced a datetime
        return value
    return datetime.fromisoformat(value)


def format_clock(dt: datetime) -> str:
    """Format the time of day as a 12-hour clock, e.g. ``4:05 PM``."""
    hour = dt.hour % 12 or 12
    return f"{hour}:{dt.minute:02d} {'AM' if dt.hour < 12 else 'PM'}"


def humanize(dt: Optional[datetime], now: Optional[datetime] = None) -> str:
    """Render a timestamp as compactly as the current date allows.

    Same day shows only the clock, same ISO week adds the weekday, same year
    adds day and month, anything else spells out the year.
    """
    if dt is None:
        return ""
    now = now or now_local()
    clock = format_clock(dt)

    if dt.year != now.year:
        return f"{dt.day} {dt:%b %Y} {clock}"
    if dt.isocalendar()[:2] != now.isocalendar()[:2]:
        return f"{dt.day} {dt:%b} {clock}"
    if dt.date() != now.date():
        return f"{dt:%A} {clock}"
    return clock


def humanize_span(start: datetime, end: datetime, now: Optional[datetime] = None) -> str:
    """Render a session span as ``<start> to <end>``."""
    return f"{humanize(start, now)} to {humanize(end, now)}"
