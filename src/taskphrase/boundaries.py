"""Recurrence start ("starting ...") and end ("until ...") boundary resolution."""

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from .models import TextSpan
from .recognizer import DateTimeRecognizer
from .recurring import MONTH_ALTERNATION, MONTH_NAMES_SHORT
from .utils.datetime import add_months, at_time, end_of_day, first_valid_day, last_day_of_month

logger = logging.getLogger(__name__)


UNTIL_KEYWORDS = r'until|untill|till|til|untl'
UNTIL_PATTERN = re.compile(rf'\b({UNTIL_KEYWORDS})\s+(.+)', re.IGNORECASE | re.DOTALL)
UNTIL_CUT = re.compile(rf'\b(?:{UNTIL_KEYWORDS})\b', re.IGNORECASE)
START_PATTERN = re.compile(r'\b(starting|beginning|from)\s+([^,;.!?]*)', re.IGNORECASE)
LEADING_FILLER = re.compile(r'^(?:(?:on|the)\s+)*', re.IGNORECASE)

_MONTH = rf'(?P<month>{MONTH_ALTERNATION}|sept)\.?'
_RELATIVE = r'(?P<relative>next|this|current|coming)\s+month'

# Calendar phrases resolved without the generic recognizer, tried in order
# against the start of the boundary phrase.
DAY_OF_MONTH_REF = re.compile(
    rf'(?:the\s+)?(?P<day>\d{{1,2}})(?:st|nd|rd|th)?\s+of\s+(?:the\s+)?(?:{_RELATIVE}|{_MONTH})\b',
    re.IGNORECASE)
PART_OF_MONTH_REF = re.compile(
    rf'(?:the\s+)?(?P<part>end|beginning|start|mid|middle)\s+(?:of\s+)?(?:the\s+)?(?:{_RELATIVE}|{_MONTH})\b',
    re.IGNORECASE)
MONTH_DAY_REF = re.compile(
    rf'{_MONTH}\s+(?:the\s+)?(?P<day>\d{{1,2}})(?:st|nd|rd|th)?(?:,?\s+(?P<year>\d{{4}}))?\b',
    re.IGNORECASE)
ORDINAL_DAY_REF = re.compile(r'(?:the\s+)?(?P<day>\d{1,2})(?:st|nd|rd|th)\b', re.IGNORECASE)
BARE_MONTH_REF = re.compile(rf'{_MONTH}(?=\s|$)', re.IGNORECASE)


@dataclass(frozen=True)
class BoundaryMatch:
    """A resolved recurrence boundary and the phrase it came from."""
    value: datetime
    span: TextSpan
    phrase: str
    source: str  # "calendar" or "recognizer"


def month_number(token: str) -> int:
    """Return 1-12 for a full or abbreviated month name."""
    return MONTH_NAMES_SHORT.index(token.lower().rstrip('.')[:3]) + 1


def _relative_month(today: date, relative: str):
    offset = 1 if relative.lower() in ('next', 'coming') else 0
    return add_months(today.year, today.month, offset)


def _upcoming_month(today: date, month: int):
    """Nearest (year, month) for a month name, this year unless already past."""
    year = today.year if month >= today.month else today.year + 1
    return year, month


def _upcoming_day_in_month(today: date, month: int, day: int) -> date:
    """Nearest future occurrence of a month/day pair."""
    candidate = first_valid_day(today.year, month, day)
    if candidate < today:
        candidate = first_valid_day(today.year + 1, month, day)
    return candidate


def resolve_month_phrase(phrase: str, today: date) -> Optional[date]:
    """Resolve ordinal-in-month phrases such as "the 20th of next month".

    Handles "N of next/this month", "N of <month>", "<month> N[, YYYY]",
    "end/mid/beginning of <next/this month|month>", "the Nth" and a bare
    month name. Returns None when the phrase is none of these.
    """
    text = phrase.strip()

    match = DAY_OF_MONTH_REF.match(text)
    if match:
        day = int(match.group('day'))
        if not 1 <= day <= 31:
            return None
        if match.group('relative'):
            year, month = _relative_month(today, match.group('relative'))
            return first_valid_day(year, month, day)
        return _upcoming_day_in_month(today, month_number(match.group('month')), day)

    match = PART_OF_MONTH_REF.match(text)
    if match:
        if match.group('relative'):
            year, month = _relative_month(today, match.group('relative'))
        else:
            year, month = _upcoming_month(today, month_number(match.group('month')))
        part = match.group('part').lower()
        if part == 'end':
            return last_day_of_month(year, month)
        if part in ('mid', 'middle'):
            return date(year, month, 15)
        return date(year, month, 1)

    match = MONTH_DAY_REF.match(text)
    if match:
        day = int(match.group('day'))
        if not 1 <= day <= 31:
            return None
        month = month_number(match.group('month'))
        if match.group('year'):
            return first_valid_day(int(match.group('year')), month, day)
        return _upcoming_day_in_month(today, month, day)

    match = ORDINAL_DAY_REF.match(text)
    if match:
        day = int(match.group('day'))
        if not 1 <= day <= 31:
            return None
        year, month = today.year, today.month
        if day < today.day:
            year, month = add_months(year, month, 1)
        return first_valid_day(year, month, day)

    match = BARE_MONTH_REF.match(text)
    if match:
        year, month = _upcoming_month(today, month_number(match.group('month')))
        return date(year, month, 1)

    return None


class RecurrenceBoundaryResolver:
    """Resolves "until ..." and "starting ..." phrases to concrete instants."""

    def __init__(self, recognizer: DateTimeRecognizer):
        self.recognizer = recognizer

    @staticmethod
    def find_end_phrase(text: str) -> Optional[TextSpan]:
        """Span of the first "until ..." phrase, resolved or not."""
        match = UNTIL_PATTERN.search(text)
        if not match:
            return None
        return TextSpan(match.start(), match.end(), "until")

    def resolve_end(self, text: str, now: datetime) -> Optional[BoundaryMatch]:
        """Resolve the recurrence end to the last instant of the named day."""
        match = UNTIL_PATTERN.search(text)
        if not match:
            return None

        phrase = match.group(2).strip()
        day = resolve_month_phrase(phrase, now.date())
        source = "calendar"
        if day is None:
            found = self.recognizer.first(phrase, now)
            if found is None:
                logger.debug(f"Unresolved end boundary {phrase!r}")
                return None
            day = found.value.date()
            source = "recognizer"

        logger.debug(f"End boundary {phrase!r} -> {day} ({source})")
        return BoundaryMatch(
            value=end_of_day(day, now.tzinfo),
            span=TextSpan(match.start(), match.end(), "until"),
            phrase=phrase,
            source=source,
        )

    def resolve_start(self, text: str, now: datetime) -> Optional[BoundaryMatch]:
        """Resolve the first "starting/beginning/from ..." phrase.

        The date must follow the keyword directly: "from boss at 5pm" is not
        a start boundary even though "5pm" is a time.
        """
        match = START_PATTERN.search(text)
        if not match:
            return None

        keyword, remainder = match.group(1), match.group(2)
        cut = UNTIL_CUT.search(remainder)
        if cut:
            remainder = remainder[:cut.start()]
        phrase = remainder.strip()
        if not phrase:
            return None

        span = TextSpan(match.start(), match.start(2) + len(remainder.rstrip()), "start")
        tz = now.tzinfo

        day = (resolve_month_phrase(phrase, now.date())
               or resolve_month_phrase(f"{keyword} {phrase}", now.date()))
        if day is not None:
            return BoundaryMatch(at_time(day, tz), span, phrase, "calendar")

        rest = phrase[LEADING_FILLER.match(phrase).end():]
        found = self.recognizer.first(rest, now)
        if found is None or found.start != 0:
            logger.debug(f"Unresolved start boundary {phrase!r}")
            return None
        return BoundaryMatch(found.value.replace(tzinfo=tz), span, phrase, "recognizer")
