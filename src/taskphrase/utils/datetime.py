"""Datetime utilities with consistent timezone handling.

This module centralizes the wall-clock arithmetic the parser relies on so that
every datetime leaving the package is timezone-aware and every calendar step
is safe around short months.
"""

from calendar import monthrange
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Optional, Tuple, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


TimezoneLike = Union[str, tzinfo, None]

# Inclusive end-of-day boundary (23:59:59.999)
END_OF_DAY = time(23, 59, 59, 999000)


def now_utc() -> datetime:
    """Return current datetime in UTC timezone.
    
    Returns:
        Current datetime with timezone=UTC
    """
    return datetime.now(timezone.utc)


def local_timezone() -> tzinfo:
    """Return the timezone of the machine running the parser."""
    return datetime.now().astimezone().tzinfo


def resolve_timezone(tz: TimezoneLike) -> tzinfo:
    """Turn an IANA name, a tzinfo or None into a tzinfo.
    
    Args:
        tz: Timezone name (e.g. "Europe/Berlin"), tzinfo instance, or None
            for the local machine timezone
        
    Returns:
        A tzinfo instance
        
    Raises:
        ValueError: If the name is not a known IANA timezone
    """
    if tz is None:
        return local_timezone()
    if isinstance(tz, tzinfo):
        return tz
    name = str(tz).strip()
    if name.upper() in ("UTC", "Z"):
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown timezone: {tz!r}") from e


def ensure_aware(dt: Optional[datetime], tz: Optional[tzinfo] = None) -> Optional[datetime]:
    """Ensure datetime is timezone-aware.
    
    Naive values are read as wall-clock time in ``tz`` (UTC if omitted).
    Aware values are converted into ``tz`` when one is given.
    
    Args:
        dt: Datetime to check/convert, or None
        tz: Target timezone
        
    Returns:
        Timezone-aware datetime, or None if input was None
    """
    if dt is None:
        return None
    
    if dt.tzinfo is None:
        return dt.replace(tzinfo=tz or timezone.utc)
    
    if tz is not None:
        return dt.astimezone(tz)
    return dt


def at_time(day: date, tz: tzinfo, hour: int = 0, minute: int = 0,
            second: int = 0, microsecond: int = 0) -> datetime:
    """Build an aware datetime for a calendar day at a wall-clock time."""
    return datetime(day.year, day.month, day.day, hour, minute, second,
                    microsecond, tzinfo=tz)


def end_of_day(day: date, tz: tzinfo) -> datetime:
    """Return the last instant of ``day`` in ``tz``."""
    return datetime.combine(day, END_OF_DAY, tzinfo=tz)


def days_in_month(year: int, month: int) -> int:
    return monthrange(year, month)[1]


def add_months(year: int, month: int, months: int) -> Tuple[int, int]:
    """Shift a (year, month) pair by a number of months."""
    index = year * 12 + (month - 1) + months
    return index // 12, index % 12 + 1


def first_valid_day(year: int, month: int, day: int, step: int = 1) -> date:
    """Return ``day`` in the first month, starting at (year, month), that has it.
    
    Months too short to contain ``day`` are skipped in increments of ``step``
    months; the day is never clamped to the end of a shorter month.
    
    Raises:
        ValueError: If day is outside 1..31 or step is not positive
    """
    if not 1 <= day <= 31:
        raise ValueError(f"Day of month out of range: {day}")
    if step < 1:
        raise ValueError(f"Month step must be positive: {step}")
    
    # Any day up to 31 appears within 12 consecutive step-months
    for _ in range(48):
        if day <= days_in_month(year, month):
            return date(year, month, day)
        year, month = add_months(year, month, step)
    raise ValueError(f"No month contains day {day}")


def last_day_of_month(year: int, month: int) -> date:
    return date(year, month, days_in_month(year, month))


def start_of_day(dt: datetime) -> datetime:
    return dt.replace(hour=0, minute=0, second=0, microsecond=0)


def tomorrow_at(now: datetime, hour: int, minute: int = 0) -> datetime:
    """Return the day after ``now`` at a wall-clock time in ``now``'s timezone."""
    return at_time(now.date() + timedelta(days=1), now.tzinfo, hour, minute)


def to_iso_string(dt: Optional[datetime]) -> Optional[str]:
    """Convert datetime to ISO string with timezone info.
    
    Args:
        dt: Datetime to convert, or None
        
    Returns:
        ISO format string with timezone, or None if input was None
    """
    if dt is None:
        return None
    
    aware_dt = ensure_aware(dt)
    return aware_dt.isoformat(timespec="milliseconds")


def parse_iso_datetime(value: str, tz: Optional[tzinfo] = None) -> datetime:
    """Parse an ISO 8601 string into an aware datetime.
    
    Naive strings are read as wall-clock time in ``tz``.
    
    Raises:
        ValueError: If the string is not valid ISO 8601
    """
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    return ensure_aware(parsed, tz)
