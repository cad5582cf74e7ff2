"""Natural language task title parser."""

import logging
import re
from datetime import datetime, tzinfo
from typing import List, Optional

from fuzzywuzzy import fuzz, process

from .boundaries import RecurrenceBoundaryResolver
from .config import ParserConfig, get_config
from .models import ParseResult, ParseWarning
from .recognizer import DateTimeRecognizer
from .recurring import MONTH_NAMES, WEEKDAY_NAMES, RecurrenceDetector
from .sanitizer import STOPWORDS, TitleSanitizer, detect_priority
from .temporal import TemporalExtractor, extract_clock_time
from .utils.datetime import TimezoneLike, ensure_aware, local_timezone, now_utc, resolve_timezone, tomorrow_at

logger = logging.getLogger(__name__)


# Words a misspelling is compared against when suggesting corrections
SUGGESTION_KEYWORDS = (
    ('every', 'daily', 'weekly', 'monthly', 'yearly', 'annually', 'biweekly', 'weekday',
     'weekdays', 'until', 'starting', 'beginning', 'priority', 'tomorrow')
    + WEEKDAY_NAMES + MONTH_NAMES
)
# Accepted spellings that should never be "corrected"
_ACCEPTED_WORDS = frozenset(
    SUGGESTION_KEYWORDS
    + ('untill', 'till', 'til', 'untl', 'from', 'week', 'month', 'year', 'day', 'days',
       'weeks', 'months', 'years', 'mondays', 'tuesdays', 'wednesdays', 'thursdays',
       'fridays', 'saturdays', 'sundays')
    + tuple(w for w in STOPWORDS if w.isalpha())
)
_WORD = re.compile(r"[A-Za-z][A-Za-z-]*")


class TaskPhraseParser:
    """Extracts recurrence, due date, priority and a clean title from free text.

    The parser keeps no state between calls; one instance can serve any
    number of concurrent callers.
    """

    def __init__(self, config: Optional[ParserConfig] = None,
                 recognizer: Optional[DateTimeRecognizer] = None):
        self.config = config or get_config()
        self.recognizer = recognizer or DateTimeRecognizer()
        self.detector = RecurrenceDetector()
        self.temporal = TemporalExtractor(
            self.recognizer,
            daily_hour=self.config.daily_due_hour,
            weekday_hour=self.config.weekday_due_hour,
            fallback_hour=self.config.default_due_hour,
            fallback_minute=self.config.default_due_minute,
        )
        self.boundaries = RecurrenceBoundaryResolver(self.recognizer)
        self.sanitizer = TitleSanitizer(self.recognizer)

    def _timezone(self, tz: TimezoneLike) -> tzinfo:
        for candidate in (tz, self.config.timezone):
            if candidate is None:
                continue
            try:
                return resolve_timezone(candidate)
            except ValueError as e:
                logger.warning(f"{e}; falling back to the next configured timezone")
        return local_timezone()

    def parse(self, text: Optional[str], now: Optional[datetime] = None,
              tz: TimezoneLike = None) -> ParseResult:
        """Parse a task title.

        Args:
            text: Free-text task title
            now: Reference instant; naive values are wall-clock time in ``tz``
            tz: IANA timezone name or tzinfo; defaults to config, then local

        Returns:
            A fully populated ParseResult. Never raises for any input.
        """
        title = "" if text is None else str(text)
        zone = self._timezone(tz)
        reference = ensure_aware(now, zone) if now is not None else now_utc().astimezone(zone)

        try:
            return self._parse(title, reference)
        except Exception as e:
            # Return defaults instead of crashing
            logger.exception(f"Parsing failed for {title!r}")
            return ParseResult(
                original_title=title,
                cleaned_title=title,
                due_date=tomorrow_at(reference, self.config.default_due_hour, self.config.default_due_minute),
                warnings=(ParseWarning(f"Parsing failed: {e}", severity="warning"),),
            )

    def _parse(self, title: str, now: datetime) -> ParseResult:
        recurrence = self.detector.detect(title)
        clock = extract_clock_time(title)
        until_span = self.boundaries.find_end_phrase(title)
        end = self.boundaries.resolve_end(title, now)
        start = self.boundaries.resolve_start(title, now)
        temporal = self.temporal.resolve(title, recurrence.kind, now, clock, until_span)

        # An explicit recurrence start overrides the inferred due date
        due = start.value if start else temporal.due
        logger.debug(f"Due date from {'start boundary' if start else temporal.strategy}: {due.isoformat()}")

        spans = list(recurrence.spans)
        for boundary in (end, start):
            if boundary is not None:
                spans.append(boundary.span)
        spans.extend(temporal.spans)
        if clock is not None:
            spans.append(clock.span)
        cleaned = self.sanitizer.clean(title, spans, recurrence.kind, now)

        warnings: List[ParseWarning] = []
        if recurrence.rejected_interval is not None:
            warnings.append(ParseWarning(
                f"Ignored invalid interval {recurrence.rejected_interval}; using 1",
                field="recurrence_interval", severity="info"))
        if start and end and start.value > end.value:
            warnings.append(ParseWarning(
                f"Recurrence starts ({start.phrase!r}) after it ends ({end.phrase!r})",
                field="recurrence_ends_at"))
        elif end and due > end.value:
            warnings.append(ParseWarning(
                "Due date falls after the recurrence end", field="due_date"))

        return ParseResult(
            original_title=title,
            cleaned_title=cleaned,
            due_date=due,
            priority=detect_priority(title),
            recurrence_pattern=recurrence.kind,
            recurrence_interval=recurrence.interval,
            recurrence_ends_at=end.value if end else None,
            recurrence_starts_at=start.value if start else None,
            warnings=tuple(warnings),
        )

    def suggest_corrections(self, text: str) -> List[str]:
        """Suggest fixes for misspelled scheduling keywords (e.g. "evry")."""
        suggestions = []
        seen = set()
        for word in _WORD.findall(text or ""):
            lowered = word.lower()
            if len(lowered) < 4 or lowered in _ACCEPTED_WORDS or lowered in seen:
                continue
            seen.add(lowered)
            close_matches = process.extractBests(lowered, SUGGESTION_KEYWORDS, scorer=fuzz.ratio,
                                                 score_cutoff=self.config.suggestion_cutoff, limit=1)
            if close_matches:
                suggestions.append(f"Did you mean '{close_matches[0][0]}' instead of '{word}'?")
        return suggestions


_default_parser: Optional[TaskPhraseParser] = None


def get_parser() -> TaskPhraseParser:
    """Shared parser built from the current configuration."""
    global _default_parser
    if _default_parser is None:
        _default_parser = TaskPhraseParser()
    return _default_parser


def parse_task_details(text: Optional[str], now: Optional[datetime] = None,
                       tz: TimezoneLike = None) -> ParseResult:
    """Parse a task title with the shared parser."""
    return get_parser().parse(text, now, tz)


def suggest_corrections(text: str) -> List[str]:
    """Spelling suggestions from the shared parser."""
    return get_parser().suggest_corrections(text)
