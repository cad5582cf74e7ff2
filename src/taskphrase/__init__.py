"""Task Phrase - natural language parsing of task titles into schedules."""

__version__ = "0.1.0"
__author__ = "Task Phrase Team"

from .models import ParseResult, ParseWarning, Priority, RecurrenceKind
from .parser import TaskPhraseParser, parse_task_details, suggest_corrections

__all__ = [
    "ParseResult",
    "ParseWarning",
    "Priority",
    "RecurrenceKind",
    "TaskPhraseParser",
    "parse_task_details",
    "suggest_corrections",
    "__version__",
]
