"""Natural language due-date and session parser.

Grammar (case-insensitive)::

    date    := today | tomorrow | tmrw | yesterday | <weekday> | dd/mm/yyyy
    time    := h[:mm] (am|pm)
    due     := <date> | <time> | <date> <time>
    session := <due> to <due>

Anything outside the grammar raises ``MalformedTemporal``; nothing is
silently defaulted.
"""

import logging
import re
from datetime import date, datetime, time, timedelta
from typing import Callable, Optional, Tuple

from .errors import MalformedTemporal
from .utils.datetime import now_local

logger = logging.getLogger(__name__)

WEEKDAYS = {
    "monday": 0, "mon": 0,
    "tuesday": 1, "tue": 1,
    "wednesday": 2, "wed": 2,
    "thursday": 3, "thu": 3,
    "friday": 4, "fri": 4,
    "saturday": 5, "sat": 5,
    "sunday": 6, "sun": 6,
}

RELATIVE_DAYS = {
    "today": 0,
    "tomorrow": 1,
    "tmrw": 1,
    "yesterday": -1,
}

EXAMPLES = ["tomorrow 4pm", "fri 9:30 am", "25/12/2026", "today 9am to 11am"]

_DATE_ALT = "|".join(
    sorted(list(WEEKDAYS) + list(RELATIVE_DAYS), key=len, reverse=True)
    + [r"\d{1,2}/\d{1,2}/\d{4}"]
)
_TIME_RE = re.compile(r"(?P<hour>\d{1,2})(?::(?P<minute>\d{2}))?\s*(?P<meridiem>am|pm)")
_DATED_RE = re.compile(rf"(?P<date>{_DATE_ALT})(?:\s+(?P<time>.+))?")
_DMY_RE = re.compile(r"(\d{1,2})/(\d{1,2})/(\d{4})")
_SESSION_SEP_RE = re.compile(r"\s+to\s+")

Side = Tuple[Optional[str], Optional[time]]


class TemporalParser:
    """Parses due dates and session spans relative to a clock.

    The clock is injectable so callers (and tests) can pin "now".
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        self.clock = clock or now_local

    def parse_due(self, text: str) -> datetime:
        """Parse ``<date>``, ``<time>`` or ``<date> <time>``."""
        now = self.clock()
        date_token, clock_time = self._split(text)
        if date_token is None:
            return self._nearest(clock_time, now)
        day = self._resolve_date(date_token, clock_time, now, text)
        return datetime.combine(day, clock_time or time())

    def parse_session(self, text: str) -> Tuple[datetime, datetime]:
        """Parse ``<start> to <end>``, inferring an omitted date from the other side."""
        now = self.clock()
        parts = _SESSION_SEP_RE.split(_normalize(text))
        if len(parts) != 2:
            raise MalformedTemporal(text, EXAMPLES)

        (start_token, start_time), (end_token, end_time) = (self._split(p) for p in parts)

        if start_token is not None:
            start_day = self._resolve_date(start_token, start_time, now, text)
        if end_token is not None:
            end_day = self._resolve_date(end_token, end_time, now, text)

        if start_token is None and end_token is None:
            start_day = self._nearest(start_time, now).date()
            end_day = start_day
        elif start_token is None:
            start_day = end_day
        elif end_token is None:
            end_day = start_day

        start = datetime.combine(start_day, start_time or time())
        end = datetime.combine(end_day, end_time or time())
        logger.debug("Parsed session %r as %s - %s", text, start, end)
        return start, end

    def _split(self, text: str) -> Side:
        """Split one side into its date token and time of day."""
        normalized = _normalize(text)
        match = _TIME_RE.fullmatch(normalized)
        if match:
            return None, _to_time(match, text)

        match = _DATED_RE.fullmatch(normalized)
        if not match:
            raise MalformedTemporal(text, EXAMPLES)

        clock_time = None
        if match.group("time"):
            time_match = _TIME_RE.fullmatch(match.group("time"))
            if not time_match:
                raise MalformedTemporal(text, EXAMPLES)
            clock_time = _to_time(time_match, text)
        return match.group("date"), clock_time

    def _resolve_date(self, token: str, clock_time: Optional[time],
                      now: datetime, text: str) -> date:
        today = now.date()

        if token in RELATIVE_DAYS:
            return today + timedelta(days=RELATIVE_DAYS[token])

        if token in WEEKDAYS:
            delta = (WEEKDAYS[token] - today.weekday()) % 7
            day = today + timedelta(days=delta)
            # Today's weekday only counts while its time is still ahead
            if delta == 0 and datetime.combine(day, clock_time or time()) < now:
                day += timedelta(weeks=1)
            return day

        day_str, month_str, year_str = _DMY_RE.fullmatch(token).groups()
        try:
            return date(int(year_str), int(month_str), int(day_str))
        except ValueError:
            raise MalformedTemporal(text, EXAMPLES) from None

    @staticmethod
    def _nearest(clock_time: time, now: datetime) -> datetime:
        """Today at ``clock_time`` if still ahead, otherwise tomorrow."""
        candidate = datetime.combine(now.date(), clock_time)
        if candidate < now:
            candidate += timedelta(days=1)
        return candidate


def _normalize(text: str) -> str:
    return " ".join((text or "").lower().split())


def _to_time(match: "re.Match[str]", text: str) -> time:
    hour = int(match.group("hour"))
    minute = int(match.group("minute") or 0)
    if not 1 <= hour <= 12 or minute > 59:
        raise MalformedTemporal(text, EXAMPLES)
    hour %= 12
    if match.group("meridiem") == "pm":
        hour += 12
    return time(hour, minute)


def parse_due(text: str, now: Optional[datetime] = None) -> datetime:
    """Parse a due-date expression relative to ``now`` (default: the local clock)."""
    clock = (lambda: now) if now is not None else None
    return TemporalParser(clock).parse_due(text)


def parse_session(text: str, now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    """Parse a session expression relative to ``now`` (default: the local clock)."""
    clock = (lambda: now) if now is not None else None
    return TemporalParser(clock).parse_session(text)
