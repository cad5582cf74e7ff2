"""Generic date/time phrase recognition backed by parsedatetime."""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterator, Optional

import parsedatetime

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DateSpan:
    """A date/time phrase found in free text.

    ``value`` is naive wall-clock time relative to the reference instant
    the recognizer was given.
    """
    start: int
    end: int
    text: str
    value: datetime
    has_date: bool = True
    has_time: bool = False


class DateTimeRecognizer:
    """Finds date/time phrases in free text.

    A fresh ``parsedatetime.Calendar`` is built for every call because the
    calendar keeps a parse-context stack between calls; the locale constants
    are shared and read-only.
    """

    def __init__(self, constants: Optional[parsedatetime.Constants] = None,
                 calendar_factory: Optional[Callable[[], parsedatetime.Calendar]] = None):
        self.constants = constants or parsedatetime.Constants()
        self._calendar_factory = calendar_factory or self._default_calendar

    def _default_calendar(self) -> parsedatetime.Calendar:
        return parsedatetime.Calendar(self.constants)

    def iter_spans(self, text: str, now: datetime) -> Iterator[DateSpan]:
        """Yield recognized spans in order of occurrence.

        Args:
            text: Free text to scan
            now: Reference instant; only its wall-clock fields are used

        Yields:
            DateSpan for each recognized phrase. Recognizer failures end the
            sequence instead of raising.
        """
        if not text or not text.strip():
            return

        source_time = now.replace(tzinfo=None).timetuple()
        try:
            matches = self._calendar_factory().nlp(text, sourceTime=source_time)
        except Exception as e:
            logger.debug(f"Date recognizer failed on {text!r}: {e}")
            return

        if not matches:
            return

        lowered = text.lower()
        cursor = 0
        for value, flags, _start, _end, matched in matches:
            phrase = (matched or "").strip()
            if not phrase:
                continue
            # nlp offsets refer to a normalized copy of the input; relocate
            # the phrase in the caller's text
            position = lowered.find(phrase.lower(), cursor)
            if position < 0:
                position = lowered.find(phrase.lower())
            if position < 0:
                logger.debug(f"Could not locate recognized phrase {phrase!r}")
                continue
            end = position + len(phrase)
            cursor = end
            yield DateSpan(
                start=position,
                end=end,
                text=text[position:end],
                value=value,
                has_date=bool(flags & 1),
                has_time=bool(flags & 2),
            )

    def first(self, text: str, now: datetime) -> Optional[DateSpan]:
        """Return the first recognized span, or None."""
        return next(self.iter_spans(text, now), None)
