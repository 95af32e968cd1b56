from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

_DATE_ONLY = re.compile(r"^\d{4}-\d{2}-\d{2}$")

_DATE_FORMATS = (
    "%b %d %Y",
    "%B %d %Y",
    "%a, %b %d %Y",
    "%a, %B %d %Y",
    "%d %b %Y",
    "%b %d, %Y",
    "%B %d, %Y",
    "%a, %b %d, %Y",
    "%Y-%m-%d",
)
# listing dates this far before the reference belong to the next year
STALE_LISTING = timedelta(days=90)

_TIME_FORMATS = ("%H:%M", "%H:%M:%S", "%I %p", "%I:%M %p", "%I%p", "%I:%M%p")


def format_iso(value: datetime) -> str:
    """Zero-padded UTC ISO-8601 with milliseconds, safe for lexical ordering."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def parse_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO date or datetime. Date-only values become midnight UTC."""
    if not value or not isinstance(value, str):
        return None
    value = value.strip()
    if _DATE_ONLY.match(value):
        try:
            return datetime.combine(date.fromisoformat(value), time.min, tzinfo=timezone.utc)
        except ValueError:
            return None
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def to_iso(value: Optional[str]) -> Optional[str]:
    parsed = parse_datetime(value)
    return format_iso(parsed) if parsed else None


def combine_date_time(
    date_text: Optional[str],
    time_text: Optional[str] = None,
    *,
    reference: Optional[datetime] = None,
) -> Optional[str]:
    """Build ``startsAt`` from loose date and time fragments.

    Handles ISO dates as well as listing-style dates such as ``"Jul 15"`` or
    ``"Sat, Jul 15"``. A missing year is taken from ``reference``, or the
    following year when that would put the date well in the past. A missing
    or unparseable time means midnight. Values without an offset are UTC.
    """
    if not date_text:
        return None
    day = _parse_day(date_text.strip(), (reference or datetime.now(timezone.utc)).date())
    if day is None:
        return None
    clock = _parse_clock(time_text.strip()) if time_text else None
    return format_iso(datetime.combine(day, clock or time.min, tzinfo=timezone.utc))


def _parse_day(text: str, reference: date) -> Optional[date]:
    parsed = parse_datetime(text)
    if parsed is not None:
        return parsed.date()
    explicit = _strptime_day(text)
    if explicit is not None:
        return explicit
    this_year = _strptime_day(f"{text} {reference.year}")
    if this_year is not None and this_year >= reference - STALE_LISTING:
        return this_year
    return _strptime_day(f"{text} {reference.year + 1}") or this_year


def _strptime_day(text: str) -> Optional[date]:
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def _parse_clock(text: str) -> Optional[time]:
    normalized = text.upper().replace(".", "")
    for fmt in _TIME_FORMATS:
        try:
            return datetime.strptime(normalized, fmt).time()
        except ValueError:
            continue
    return None
