"""Due date/time extraction from task titles."""

import logging
import re
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import List, Optional, Tuple

from .models import RecurrenceKind, TextSpan
from .recognizer import DateTimeRecognizer
from .recurring import WEEKDAY_ALTERNATION, WEEKDAY_NAMES
from .utils.datetime import add_months, at_time, first_valid_day, tomorrow_at

logger = logging.getLogger(__name__)


CLOCK_PATTERN = re.compile(r'\b(?:at|by)\s*(\d{1,2})(?::(\d{2}))?(?!\d)\s*(am|pm)?\b', re.IGNORECASE)
WEEKDAY_PATTERN = re.compile(rf'\b(on|every)\s+({WEEKDAY_ALTERNATION})s?\b', re.IGNORECASE)
DAY_OF_MONTH_PATTERN = re.compile(r'\b(?:on\s+the|on|the)\s+(\d{1,2})(?:st|nd|rd|th)\b', re.IGNORECASE)


@dataclass(frozen=True)
class ClockTime:
    """An explicit time of day such as "at 6pm"."""
    hour: int
    minute: int
    span: TextSpan


@dataclass(frozen=True)
class TemporalResolution:
    """The due date chosen by the extractor and the phrases it consumed."""
    due: datetime
    strategy: str
    spans: Tuple[TextSpan, ...] = field(default_factory=tuple)


def _clock_value(match: re.Match) -> Optional[Tuple[int, int]]:
    hour = int(match.group(1))
    minute = int(match.group(2)) if match.group(2) else 0
    meridian = (match.group(3) or '').lower()
    if meridian == 'pm' and hour < 12:
        hour += 12
    elif meridian == 'am' and hour == 12:
        hour = 0

    if hour > 23 or minute > 59:
        return None
    return hour, minute


def extract_clock_time(text: str) -> Optional[ClockTime]:
    """Find the first "at/by H[:MM] [am|pm]" phrase.

    A 12-hour value is converted with the usual rules (12am is 0, 12pm is
    12, other pm hours add 12). Without a meridian the hour is taken as
    written. Out-of-range values are ignored.
    """
    match = CLOCK_PATTERN.search(text)
    if not match:
        return None

    value = _clock_value(match)
    if value is None:
        logger.debug(f"Ignoring out-of-range clock time {match.group(0)!r}")
        return None
    return ClockTime(value[0], value[1], TextSpan(match.start(), match.end(), "clock"))


def rejected_clock_spans(text: str) -> List[TextSpan]:
    """Spans of "at/by" clock phrases whose hour or minute is out of range."""
    return [TextSpan(m.start(), m.end(), "clock")
            for m in CLOCK_PATTERN.finditer(text) if _clock_value(m) is None]


def find_weekday(text: str) -> Optional[Tuple[int, TextSpan]]:
    """Return (weekday index, span) for "on Mondays"/"every Tuesday" (0=Monday)."""
    match = WEEKDAY_PATTERN.search(text)
    if not match:
        return None
    return WEEKDAY_NAMES.index(match.group(2).lower()), TextSpan(match.start(), match.end(), "weekday")


def find_day_of_month(text: str) -> Optional[Tuple[int, TextSpan]]:
    """Return (day, span) for ordinal day phrases like "on the 5th"."""
    for match in DAY_OF_MONTH_PATTERN.finditer(text):
        day = int(match.group(1))
        if 1 <= day <= 31:
            return day, TextSpan(match.start(), match.end(), "day_of_month")
    return None


def next_weekday(today: date, weekday: int) -> date:
    """Next occurrence of ``weekday`` strictly after ``today`` (0=Monday)."""
    days_ahead = weekday - today.weekday()
    if days_ahead <= 0:  # Target day already happened this week
        days_ahead += 7
    return today + timedelta(days=days_ahead)


def next_day_of_month(today: date, day: int) -> date:
    """Next date strictly after ``today`` falling on ``day`` of its month.

    Months without that day are skipped rather than clamped.
    """
    year, month = today.year, today.month
    if today.day >= day:
        year, month = add_months(year, month, 1)
    return first_valid_day(year, month, day)


def _without(text: str, span: Optional[TextSpan]) -> str:
    """Blank out ``span`` while keeping offsets stable."""
    if span is None:
        return text
    return text[:span.start] + ' ' * len(span) + text[span.end:]


class TemporalExtractor:
    """Chooses a due date from a title using shortcut strategies first."""

    def __init__(self, recognizer: DateTimeRecognizer, daily_hour: int = 9,
                 weekday_hour: int = 0, fallback_hour: int = 9, fallback_minute: int = 0):
        self.recognizer = recognizer
        self.daily_hour = daily_hour
        self.weekday_hour = weekday_hour
        self.fallback_hour = fallback_hour
        self.fallback_minute = fallback_minute

    def resolve(self, text: str, kind: RecurrenceKind, now: datetime,
                clock: Optional[ClockTime] = None,
                until_span: Optional[TextSpan] = None) -> TemporalResolution:
        """Resolve the due date for ``text`` relative to the aware instant ``now``.

        Strategies, first applicable wins: recurring-daily, weekday,
        day-of-month (monthly only), the generic recognizer, and finally
        tomorrow at the fallback time. An explicit clock time overrides the
        hour and minute of every strategy except the two that already use it.
        """
        tz = now.tzinfo
        today = now.date()

        if kind is RecurrenceKind.DAILY:
            if clock:
                due = tomorrow_at(now, clock.hour, clock.minute)
            else:
                due = tomorrow_at(now, self.daily_hour)
            return TemporalResolution(due, "daily")

        searchable = _without(text, until_span)

        if kind in (RecurrenceKind.NONE, RecurrenceKind.WEEKLY):
            weekday = find_weekday(searchable)
            if weekday:
                index, span = weekday
                due = at_time(next_weekday(today, index), tz, self.weekday_hour)
                return TemporalResolution(self._with_clock(due, clock), "weekday", (span,))

        if kind is RecurrenceKind.MONTHLY:
            day_of_month = find_day_of_month(searchable)
            if day_of_month:
                day, span = day_of_month
                hour, minute = (clock.hour, clock.minute) if clock else (0, 0)
                due = at_time(next_day_of_month(today, day), tz, hour, minute)
                return TemporalResolution(due, "day_of_month", (span,))

        # A recognizer hit inside an invalid clock phrase ("at 25pm") is not a date
        rejected = rejected_clock_spans(searchable)
        found = next((s for s in self.recognizer.iter_spans(searchable, now)
                      if not any(s.start < r.end and r.start < s.end for r in rejected)), None)
        if found:
            due = found.value.replace(tzinfo=tz)
            return TemporalResolution(self._with_clock(due, clock), "recognizer")

        due = tomorrow_at(now, self.fallback_hour, self.fallback_minute)
        return TemporalResolution(self._with_clock(due, clock), "fallback")

    @staticmethod
    def _with_clock(due: datetime, clock: Optional[ClockTime]) -> datetime:
        if clock is None:
            return due
        return due.replace(hour=clock.hour, minute=clock.minute, second=0, microsecond=0)
