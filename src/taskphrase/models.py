"""Result data model for the Task Phrase parser."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from .utils.datetime import to_iso_string


class Priority(Enum):
    """Task priority levels."""
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class RecurrenceKind(Enum):
    """How a task repeats."""
    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    CUSTOM = "custom"  # Recognized as recurring, but not auto-scheduled


@dataclass(frozen=True)
class TextSpan:
    """A half-open character range of the original title claimed by a pass."""
    start: int
    end: int
    label: str = ""

    def __post_init__(self):
        if self.start < 0 or self.end < self.start:
            raise ValueError(f"Invalid span: {self.start}..{self.end}")

    def __len__(self) -> int:
        return self.end - self.start


@dataclass(frozen=True)
class ParseWarning:
    """A non-fatal observation about a parse, e.g. conflicting boundaries."""
    message: str
    field: Optional[str] = None
    severity: str = "warning"  # warning, info


@dataclass(frozen=True)
class ParseResult:
    """Structured outcome of parsing a free-text task title."""

    original_title: str
    cleaned_title: str
    due_date: datetime
    priority: Optional[Priority] = None
    recurrence_pattern: RecurrenceKind = RecurrenceKind.NONE
    recurrence_interval: int = 1
    recurrence_ends_at: Optional[datetime] = None
    recurrence_starts_at: Optional[datetime] = None
    warnings: Tuple[ParseWarning, ...] = field(default_factory=tuple)

    def __post_init__(self):
        """Validate the result shape."""
        if self.recurrence_interval < 1:
            raise ValueError(f"recurrence_interval must be >= 1, got {self.recurrence_interval}")
        if self.due_date.tzinfo is None:
            raise ValueError("due_date must be timezone-aware")

    @property
    def is_recurring(self) -> bool:
        return self.recurrence_pattern is not RecurrenceKind.NONE

    def to_dict(self) -> Dict[str, Any]:
        """Convert the result to a dictionary with timezone-aware ISO strings."""
        return {
            "original_title": self.original_title,
            "cleaned_title": self.cleaned_title,
            "due_date": to_iso_string(self.due_date),
            "priority": self.priority.value if self.priority else None,
            "recurrence_pattern": self.recurrence_pattern.value,
            "recurrence_interval": self.recurrence_interval,
            "recurrence_ends_at": to_iso_string(self.recurrence_ends_at),
            "recurrence_starts_at": to_iso_string(self.recurrence_starts_at),
            "warnings": [
                {"message": w.message, "field": w.field, "severity": w.severity}
                for w in self.warnings
            ],
        }
