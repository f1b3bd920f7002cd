"""
Calendar date parsing shared by the validator, the import sanitizer and the
operation engines.  ZERO I/O.

Accepted shapes, tried in order:
    2024-01-15, 2024-01-15T10:30:00Z, 2024-01-15 10:30:00  (ISO 8601)
    2024/01/15                                              (year first)
    January 15, 2024 / Jan 15 2024 3:45 PM                  (month name)
    01/15/2024, 15/01/2024                                  (US, then day-first
                                                             when the first
                                                             number exceeds 12)

The non-ISO shapes take an optional ``H:MM[:SS] [AM|PM]`` tail.  The whole
string must match; trailing text or an out-of-range time rejects the value.

Values without an offset are taken as UTC.  Normalized output is an ISO 8601
instant with millisecond precision and a ``Z`` suffix.
"""

import re
from datetime import date, datetime, time, timezone
from typing import Any

_TIME_TAIL = r"(?:\s+(\d{1,2}):(\d{2})(?::(\d{2}))?(?:\s*(AM|PM))?)?"

_ISO_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_ISO_DATETIME = re.compile(
    r"^\d{4}-\d{2}-\d{2}[T ]\d{2}:\d{2}(?::\d{2}(?:\.\d{1,6})?)?"
    r"(?:Z|[+-]\d{2}:?\d{2})?$",
    re.IGNORECASE,
)
_YEAR_FIRST_SLASH = re.compile(r"^(\d{4})/(\d{1,2})/(\d{1,2})" + _TIME_TAIL + "$", re.IGNORECASE)
_MONTH_NAME = re.compile(r"^([A-Za-z]+)\s+(\d{1,2}),?\s+(\d{4})" + _TIME_TAIL + "$", re.IGNORECASE)
_SLASH_DATE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})" + _TIME_TAIL + "$", re.IGNORECASE)

_MONTHS = {
    "january": 1, "jan": 1,
    "february": 2, "feb": 2,
    "march": 3, "mar": 3,
    "april": 4, "apr": 4,
    "may": 5,
    "june": 6, "jun": 6,
    "july": 7, "jul": 7,
    "august": 8, "aug": 8,
    "september": 9, "sep": 9, "sept": 9,
    "october": 10, "oct": 10,
    "november": 11, "nov": 11,
    "december": 12, "dec": 12,
}


def _build(year: int, month: int, day: int, clock: tuple[int, int, int] | None = (0, 0, 0)) -> datetime | None:
    if clock is None:
        return None
    # datetime() rejects Feb 30, Feb 29 outside leap years, month 13, hour 25 ...
    try:
        return datetime(year, month, day, *clock, tzinfo=timezone.utc)
    except ValueError:
        return None


def _clock(hour: str | None, minute: str | None, second: str | None,
           meridiem: str | None) -> tuple[int, int, int] | None:
    """Hour, minute, second from a matched time tail; None for 13 PM and the like."""
    if hour is None:
        return (0, 0, 0)
    h, m, s = int(hour), int(minute), int(second or 0)
    if meridiem:
        if not 1 <= h <= 12:
            return None
        h = h % 12 + (12 if meridiem.upper() == "PM" else 0)
    return (h, m, s)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_calendar_date(value: Any) -> datetime | None:
    """
    Parse ``value`` to a timezone-aware UTC datetime.

    Returns None for anything that is not a valid calendar date, including
    blank strings, strings with trailing text, impossible times and
    non-string, non-date values.
    """
    if isinstance(value, datetime):
        return _as_utc(value)
    if isinstance(value, date):
        return datetime.combine(value, time(), tzinfo=timezone.utc)
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None

    match = _ISO_DATE.match(text)
    if match:
        return _build(*(int(g) for g in match.groups()))

    if _ISO_DATETIME.match(text):
        try:
            return _as_utc(datetime.fromisoformat(text.upper()))
        except ValueError:
            return None

    match = _YEAR_FIRST_SLASH.match(text)
    if match:
        year, month, day = (int(g) for g in match.groups()[:3])
        return _build(year, month, day, _clock(*match.groups()[3:]))

    match = _MONTH_NAME.match(text)
    if match:
        month = _MONTHS.get(match.group(1).lower())
        if month is None:
            return None
        return _build(int(match.group(3)), month, int(match.group(2)), _clock(*match.groups()[3:]))

    match = _SLASH_DATE.match(text)
    if match:
        first, second, year = (int(g) for g in match.groups()[:3])
        clock = _clock(*match.groups()[3:])
        if first > 12:
            return _build(year, second, first, clock)
        return _build(year, first, second, clock)

    return None


def format_instant(value: datetime) -> str:
    """Render as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""
    return _as_utc(value).isoformat(timespec="milliseconds").replace("+00:00", "Z")
