"""
Recurrence detection and scheduling for Task Phrase

This module holds the ordered recurrence rule table used to classify a task
title, plus the calendar math consumers use to turn a parsed recurrence into
concrete future due dates.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Iterator, List, Optional, Pattern, Sequence, Tuple

from .models import RecurrenceKind, TextSpan
from .utils.datetime import add_months, days_in_month, start_of_day

logger = logging.getLogger(__name__)


MONTH_NAMES = (
    'january', 'february', 'march', 'april', 'may', 'june',
    'july', 'august', 'september', 'october', 'november', 'december',
)
MONTH_NAMES_SHORT = tuple(name[:3] for name in MONTH_NAMES)
MONTH_ALTERNATION = '|'.join(MONTH_NAMES_SHORT + MONTH_NAMES)

WEEKDAY_NAMES = ('monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday', 'sunday')
WEEKDAY_ALTERNATION = '|'.join(WEEKDAY_NAMES)


@dataclass(frozen=True)
class RecurrenceRule:
    """One row of the recurrence table: a pattern, its kind and its interval.

    Either ``interval`` is a fixed value, or ``extract_interval`` is set and
    the interval is read from the first positive integer in the matches.
    """
    name: str
    pattern: Pattern
    kind: RecurrenceKind
    interval: int = 1
    extract_interval: bool = False

    def find(self, text: str) -> List["re.Match"]:
        return list(self.pattern.finditer(text))


def _rule(name: str, regex: str, kind: RecurrenceKind, interval: int = 1,
          extract_interval: bool = False) -> RecurrenceRule:
    return RecurrenceRule(name, re.compile(regex, re.IGNORECASE), kind, interval, extract_interval)


# Order is significant: the first rule with a match wins, so specific phrases
# ("bi-weekly", "every 3 days") must precede the general ones they contain.
RECURRENCE_RULES: Tuple[RecurrenceRule, ...] = (
    _rule('biweekly', r'\bbi[-\s]?weekly\b', RecurrenceKind.WEEKLY, interval=2),
    _rule('every_n_days', r'\bevery\s+(\d+)\s+days?\b', RecurrenceKind.DAILY, extract_interval=True),
    _rule('every_n_weeks', r'\bevery\s+(\d+)\s+weeks?\b', RecurrenceKind.WEEKLY, extract_interval=True),
    _rule('every_n_months', r'\bevery\s+(\d+)\s+months?\b', RecurrenceKind.MONTHLY, extract_interval=True),
    _rule('every_n_years', r'\bevery\s+(\d+)\s+years?\b', RecurrenceKind.YEARLY, extract_interval=True),
    _rule('nth_weekday',
          rf'\bevery\s+(first|second|third|fourth|last)\s+({WEEKDAY_ALTERNATION})s?\b',
          RecurrenceKind.CUSTOM),
    _rule('every_weekday', r'\bevery\s+weekdays?\b', RecurrenceKind.WEEKLY),
    _rule('weekdays', r'\bweekdays?\b', RecurrenceKind.WEEKLY),
    _rule('named_weekday', rf'\b(every|on)\s+({WEEKDAY_ALTERNATION})s?\b', RecurrenceKind.WEEKLY),
    _rule('daily', r'\b(daily|every\s+day)\b', RecurrenceKind.DAILY),
    _rule('weekly', r'\bweekly\b', RecurrenceKind.WEEKLY),
    _rule('monthly', r'\bmonthly\b', RecurrenceKind.MONTHLY),
    _rule('yearly', r'\b(yearly|annually|every\s+year)\b', RecurrenceKind.YEARLY),
    _rule('every_month_name', rf'\bevery\s+({MONTH_ALTERNATION})s?\b', RecurrenceKind.CUSTOM),
    _rule('in_month_name', rf'\b(monthly)?\s*(in)?\s+({MONTH_ALTERNATION})\b', RecurrenceKind.CUSTOM),
    _rule('month_name', rf'\b({MONTH_ALTERNATION})\b', RecurrenceKind.CUSTOM),
)

_INTEGER = re.compile(r'(\d+)')


@dataclass(frozen=True)
class RecurrenceMatch:
    """Outcome of recurrence detection."""
    kind: RecurrenceKind = RecurrenceKind.NONE
    interval: int = 1
    rule: Optional[RecurrenceRule] = None
    spans: Tuple[TextSpan, ...] = field(default_factory=tuple)
    rejected_interval: Optional[int] = None  # e.g. 0 from "every 0 days"


class RecurrenceDetector:
    """Classifies a title against an ordered recurrence rule table."""

    def __init__(self, rules: Sequence[RecurrenceRule] = RECURRENCE_RULES):
        self.rules = tuple(rules)

    def detect(self, text: str) -> RecurrenceMatch:
        """Return the first rule that matches anywhere in ``text``."""
        for rule in self.rules:
            matches = rule.find(text)
            if not matches:
                continue

            spans = tuple(TextSpan(m.start(), m.end(), f"recurrence:{rule.name}") for m in matches)
            rejected = None
            if rule.extract_interval:
                interval, rejected = self._extract_interval(matches)
            else:
                interval = rule.interval or 1

            logger.debug(f"Recurrence rule {rule.name!r} matched: {rule.kind.value} x{interval}")
            return RecurrenceMatch(rule.kind, interval, rule, spans, rejected)

        return RecurrenceMatch()

    @staticmethod
    def _extract_interval(matches: Sequence["re.Match"]) -> Tuple[int, Optional[int]]:
        """Read the first positive integer from the matched phrases."""
        rejected = None
        for match in matches:
            number = _INTEGER.search(match.group(0))
            if not number:
                continue
            value = int(number.group(1))
            if value > 0:
                return value, None
            if rejected is None:
                rejected = value
        return 1, rejected


def describe_recurrence(kind: RecurrenceKind, interval: int = 1) -> str:
    """Convert a recurrence back to a human-readable string"""
    units = {
        RecurrenceKind.DAILY: ("daily", "days"),
        RecurrenceKind.WEEKLY: ("weekly", "weeks"),
        RecurrenceKind.MONTHLY: ("monthly", "months"),
        RecurrenceKind.YEARLY: ("yearly", "years"),
    }
    if kind is RecurrenceKind.NONE:
        return "none"
    if kind is RecurrenceKind.CUSTOM:
        return "custom"
    single, plural = units[kind]
    if interval == 1:
        return single
    if kind is RecurrenceKind.WEEKLY and interval == 2:
        return "bi-weekly"
    return f"every {interval} {plural}"


def _month_step(kind: RecurrenceKind, interval: int) -> int:
    return interval * (12 if kind is RecurrenceKind.YEARLY else 1)


def _shift_months(anchor: datetime, months: int) -> Optional[datetime]:
    """Move ``anchor`` by whole months, keeping its day-of-month.

    Returns None when the target month has no such day.
    """
    year, month = add_months(anchor.year, anchor.month, months)
    if anchor.day > days_in_month(year, month):
        return None
    return anchor.replace(year=year, month=month)


def next_due_date(current: datetime, kind: RecurrenceKind, interval: int = 1) -> Optional[datetime]:
    """Calculate the next occurrence after ``current``.

    Monthly and yearly steps keep the day-of-month and skip months that do
    not contain it. None and custom recurrences have no next occurrence.
    """
    interval = max(1, interval)
    if kind is RecurrenceKind.DAILY:
        return current + timedelta(days=interval)
    if kind is RecurrenceKind.WEEKLY:
        return current + timedelta(weeks=interval)
    if kind in (RecurrenceKind.MONTHLY, RecurrenceKind.YEARLY):
        step = _month_step(kind, interval)
        # Feb 29 needs at most 8 yearly steps to recur
        for n in range(1, 97):
            candidate = _shift_months(current, step * n)
            if candidate is not None:
                return candidate
    return None


def advance_after_completion(due: datetime, kind: RecurrenceKind, interval: int = 1,
                             ends_at: Optional[datetime] = None,
                             today: Optional[datetime] = None) -> Optional[datetime]:
    """Due date of the instance to create once the current one is completed.

    Skips occurrences that already lie before the start of ``today`` and
    returns None once the recurrence has passed ``ends_at`` (inclusive).
    """
    if today is None:
        today = datetime.now(due.tzinfo)
    floor = start_of_day(today)

    next_due = next_due_date(due, kind, interval)
    while next_due is not None and next_due < floor and (ends_at is None or next_due <= ends_at):
        next_due = next_due_date(next_due, kind, interval)

    if next_due is None or (ends_at is not None and next_due > ends_at):
        return None
    return next_due


def _nth_occurrence(anchor: datetime, kind: RecurrenceKind, interval: int, n: int) -> Tuple[Optional[datetime], datetime]:
    """Return the n-th occurrence (or None if skipped) and a lower bound for it."""
    if kind is RecurrenceKind.DAILY:
        value = anchor + timedelta(days=interval * n)
        return value, value
    if kind is RecurrenceKind.WEEKLY:
        value = anchor + timedelta(weeks=interval * n)
        return value, value
    year, month = add_months(anchor.year, anchor.month, _month_step(kind, interval) * n)
    floor = anchor.replace(year=year, month=month, day=1)
    return _shift_months(anchor, _month_step(kind, interval) * n), floor


def expand_occurrences(due: datetime, kind: RecurrenceKind, interval: int = 1,
                       ends_at: Optional[datetime] = None,
                       range_start: Optional[datetime] = None,
                       range_end: Optional[datetime] = None) -> Iterator[datetime]:
    """Generate the occurrences of a task inside an inclusive window.

    Occurrences are computed from the original due date rather than chained,
    so a monthly task on the 31st stays on the 31st and simply has no
    occurrence in shorter months.
    """
    if range_start is None:
        range_start = due
    if range_end is None:
        range_end = range_start + timedelta(days=30)

    if kind in (RecurrenceKind.NONE, RecurrenceKind.CUSTOM):
        if range_start <= due <= range_end:
            yield due
        return

    interval = max(1, interval)
    n = 0
    while True:
        occurrence, floor = _nth_occurrence(due, kind, interval, n)
        if floor > range_end or (ends_at is not None and floor > ends_at):
            return
        if occurrence is not None:
            if occurrence > range_end or (ends_at is not None and occurrence > ends_at):
                return
            if occurrence >= range_start:
                yield occurrence
        n += 1
