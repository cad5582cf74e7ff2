"""Title cleanup and priority detection.

Every pass of the parser reports the character spans it consumed from the
original title. The sanitizer adds the spans of filler phrases, clock times,
date phrases, month names and connector words, then rebuilds the title from
whatever no span covers. Working from spans over the untouched original keeps
the passes from interfering with one another.
"""

import re
from datetime import datetime
from typing import Iterable, List, Optional, Sequence, Tuple

from .models import Priority, RecurrenceKind, TextSpan
from .recognizer import DateTimeRecognizer
from .recurring import MONTH_NAMES


FILLER_PATTERNS: Tuple[re.Pattern, ...] = tuple(re.compile(p, re.IGNORECASE) for p in (
    r'\brepeat\s*this\s*task\b',
    r'\bremind\s*me\b',
    r'\b(?:till|til|until|untill|untl)\b',
    r'\b(?:starting|beginning)\b',
    r'\bfor\s+next\s+\d+\s+(?:day|week|month|year)s?\b',
    r'\bbi[-\s]?weekly\b',
    r'\b(?:high|medium|low)\s*priority\b',
    r'\b(?:with|on)\s+(?:high|medium|low)\b',
))

CLOCK_PHRASE_PATTERN = re.compile(r'\b(?:(?:at|by|on)\s*)?\d{1,2}(?::\d{2})?\s*(?:am|pm)\b', re.IGNORECASE)
MONTH_WORDS_PATTERN = re.compile(rf'\b(?:{"|".join(MONTH_NAMES)})\b', re.IGNORECASE)

STOPWORDS = (
    'at', 'by', 'on', 'with', 'every', 'next', 'the', 'this', 'till', 'til', 'untill', 'until',
    'for', 'beginning', 'start', 'mid', 'middle', 'end', 'close', 'daily', 'weekly', 'monthly',
    'yearly', r'bi[-\s]?weekly', 'of', 'month', 'week', 'priority',
)
STOPWORD_PATTERN = re.compile(rf'\b(?:{"|".join(STOPWORDS)})\b', re.IGNORECASE)

# Checked in order; the first level with a hit wins
PRIORITY_PATTERNS: Tuple[Tuple[Priority, re.Pattern], ...] = (
    (Priority.HIGH, re.compile(r'\b(?:high\s*priority|urgent|with\s+high|on\s+high)\b', re.IGNORECASE)),
    (Priority.MEDIUM, re.compile(r'\b(?:medium\s*priority|normal\s*priority|with\s+medium|on\s+medium)\b', re.IGNORECASE)),
    (Priority.LOW, re.compile(r'\b(?:low\s*priority|with\s+low|on\s+low)\b', re.IGNORECASE)),
)

_EDGE_PUNCTUATION = ' \t\r\n,;:-'


def detect_priority(text: str) -> Optional[Priority]:
    """Detect a priority qualifier anywhere in ``text``."""
    for priority, pattern in PRIORITY_PATTERNS:
        if pattern.search(text):
            return priority
    return None


def _spans_for(pattern: re.Pattern, text: str, label: str) -> List[TextSpan]:
    return [TextSpan(m.start(), m.end(), label) for m in pattern.finditer(text) if m.end() > m.start()]


def rebuild_without(text: str, spans: Iterable[TextSpan]) -> str:
    """Drop every character covered by a span and normalize whitespace."""
    covered = [False] * len(text)
    for span in spans:
        for i in range(max(span.start, 0), min(span.end, len(text))):
            covered[i] = True

    pieces = []
    for i, char in enumerate(text):
        # Removed regions become a separator so neighbouring words never fuse
        pieces.append(' ' if covered[i] else char)
    return ' '.join(''.join(pieces).split())


class TitleSanitizer:
    """Removes recognized scheduling phrases from a task title."""

    def __init__(self, recognizer: Optional[DateTimeRecognizer] = None):
        self.recognizer = recognizer

    def consumed_spans(self, text: str, spans: Sequence[TextSpan] = (),
                       kind: RecurrenceKind = RecurrenceKind.NONE,
                       now: Optional[datetime] = None) -> List[TextSpan]:
        """All spans to remove from ``text``, in removal order.

        Order: spans reported by the detection passes, generic date/time
        phrases, clock times, filler phrases, month names (kept for custom
        recurrences, where the month is the schedule) and connector words.
        """
        marked = list(spans)
        if self.recognizer is not None and now is not None:
            marked.extend(TextSpan(s.start, s.end, "datetime") for s in self.recognizer.iter_spans(text, now))
        marked.extend(_spans_for(CLOCK_PHRASE_PATTERN, text, "clock"))
        for pattern in FILLER_PATTERNS:
            marked.extend(_spans_for(pattern, text, "filler"))
        if kind is not RecurrenceKind.CUSTOM:
            marked.extend(_spans_for(MONTH_WORDS_PATTERN, text, "month"))
        marked.extend(_spans_for(STOPWORD_PATTERN, text, "stopword"))
        return marked

    def clean(self, text: str, spans: Sequence[TextSpan] = (),
              kind: RecurrenceKind = RecurrenceKind.NONE,
              now: Optional[datetime] = None) -> str:
        """Return the cleaned title, or the original when nothing would remain."""
        cleaned = rebuild_without(text, self.consumed_spans(text, spans, kind, now))
        cleaned = cleaned.strip(_EDGE_PUNCTUATION)
        return cleaned or text
