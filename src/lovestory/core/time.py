"""
Time parsing and calendar-day boundaries.

All timestamps handled by LoveStory are timezone-aware. Calendar days ("YYYY-MM-DD")
and months ("YYYY-MM") are interpreted in the service's reference timezone, which is
passed in explicitly so write and read paths always agree on where a day starts.
"""

from __future__ import annotations

import re
from datetime import date, datetime, time, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from lovestory.core.errors import InvalidInput

_DAY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_MONTH_RE = re.compile(r"^(\d{4})-(\d{2})$")


def get_zone(timezone: str) -> ZoneInfo:
    try:
        return ZoneInfo(timezone)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise InvalidInput(f"Unknown timezone: {timezone!r}") from e


def ensure_tz(dt: datetime, timezone: str) -> datetime:
    """Ensure `dt` has tzinfo; attach `timezone` if naive."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=get_zone(timezone))
    return dt


def now_in(timezone: str) -> datetime:
    return datetime.now(get_zone(timezone))


def parse_datetime(value: str, timezone: str) -> datetime:
    """Parse ISO-8601 datetime string and ensure tzinfo is present.

    Notes:
    - Accepts a trailing `Z` (UTC) and converts it to `+00:00` for `fromisoformat`.
    - If the parsed value is naive, the provided `timezone` is attached.
    """
    value = value.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    try:
        dt = datetime.fromisoformat(value)
    except ValueError as e:
        raise InvalidInput(f"Invalid datetime: {value!r}") from e
    return ensure_tz(dt, timezone)


def parse_day(value: str) -> date:
    """Parse a strict `YYYY-MM-DD` calendar day."""
    value = (value or "").strip()
    if not _DAY_RE.match(value):
        raise InvalidInput(f"Invalid date {value!r}; expected YYYY-MM-DD")
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise InvalidInput(f"Invalid date {value!r}; expected YYYY-MM-DD") from e


def parse_year_month(value: str) -> tuple[int, int]:
    """Parse a strict `YYYY-MM` month into (year, month)."""
    m = _MONTH_RE.match((value or "").strip())
    if not m:
        raise InvalidInput(f"Invalid yearMonth {value!r}; expected YYYY-MM")
    year, month = int(m.group(1)), int(m.group(2))
    if not 1 <= month <= 12 or year < 1:
        raise InvalidInput(f"Invalid yearMonth {value!r}; expected YYYY-MM")
    return year, month


def day_bounds(day: date, timezone: str) -> tuple[datetime, datetime]:
    """Return `[start, end)` of `day` in `timezone` (end is the next local midnight)."""
    tz = get_zone(timezone)
    try:
        start = datetime.combine(day, time.min, tzinfo=tz)
        end = datetime.combine(day + timedelta(days=1), time.min, tzinfo=tz)
    except (ValueError, OverflowError) as e:
        raise InvalidInput(f"Date {day.isoformat()} is out of the supported range") from e
    return start, end


def month_bounds(year: int, month: int, timezone: str) -> tuple[datetime, datetime]:
    """Return `[start, end)` covering the whole month in `timezone`."""
    tz = get_zone(timezone)
    try:
        start = datetime(year, month, 1, tzinfo=tz)
        if month == 12:
            end = datetime(year + 1, 1, 1, tzinfo=tz)
        else:
            end = datetime(year, month + 1, 1, tzinfo=tz)
    except (ValueError, OverflowError) as e:
        raise InvalidInput(f"Month {year:04d}-{month:02d} is out of the supported range") from e
    return start, end


def local_day(dt: datetime, timezone: str) -> date:
    """Calendar day of an aware timestamp as seen in `timezone`."""
    return dt.astimezone(get_zone(timezone)).date()
