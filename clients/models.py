"""
Data models for Notion tasks and Calendar entities.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, tzinfo
from enum import Enum
from typing import Dict, List, Optional, Union

DEFAULT_TITLE = "Untitled Task"
DEFAULT_TYPE = "N/A"
DEFAULT_CLASS = "None"
DEFAULT_RESOURCES = ""


def parse_due(value: Optional[str]) -> Optional[Union[date, datetime]]:
    """Parse a Notion ``date.start`` value (ISO date or date-time)."""
    if not value:
        return None
    try:
        if 'T' in value:
            return datetime.fromisoformat(value.replace('Z', '+00:00'))
        return date.fromisoformat(value)
    except ValueError:
        return None


@dataclass
class TaskRecord:
    id: str
    title: str = DEFAULT_TITLE
    due: Optional[str] = None
    done: bool = False
    synced: bool = False
    task_type: str = DEFAULT_TYPE
    class_id: str = DEFAULT_CLASS
    resource_url: str = DEFAULT_RESOURCES
    url: str = ''

    def due_date(self, tz: Optional[tzinfo] = None) -> Optional[date]:
        """Calendar date of the due value in ``tz``, time of day dropped.

        ``tz=None`` uses the local zone rules in effect at the due instant.
        Date-only values are taken as-is. Naive date-times are treated as
        already being in local time.
        """
        parsed = parse_due(self.due)
        if parsed is None:
            return None
        if isinstance(parsed, datetime):
            if parsed.tzinfo is not None:
                parsed = parsed.astimezone(tz)
            return parsed.date()
        return parsed

    def description(self) -> str:
        return "\n".join([
            f"Type: {self.task_type}",
            f"Class: {self.class_id}",
            f"Resources: {self.resource_url}",
        ])


@dataclass
class CalendarEvent:
    id: str
    summary: str
    description: str
    start: Union[date, datetime, None]
    end: Union[date, datetime, None]
    all_day: bool
    calendar_id: str
    private: Dict[str, str] = field(default_factory=dict)


class Urgency(Enum):
    OVERDUE = "overdue"
    TODAY = "today"
    TOMORROW = "tomorrow"
    UPCOMING = "upcoming"


@dataclass
class ReviewGroup:
    urgency: Urgency
    heading: str
    emoji: str
    lines: List[str] = field(default_factory=list)


@dataclass
class SyncResult:
    scanned: int = 0
    created: int = 0
    skipped: int = 0
    failed: int = 0
    patch_failed: int = 0
    event_ids: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            'scanned': self.scanned,
            'created': self.created,
            'skipped': self.skipped,
            'failed': self.failed,
            'patch_failed': self.patch_failed,
            'event_ids': list(self.event_ids),
        }


@dataclass
class ReviewResult:
    summary: str
    event_id: str
    created: bool
    task_count: int

    def to_dict(self) -> Dict:
        return {
            'summary': self.summary,
            'event_id': self.event_id,
            'created': self.created,
            'task_count': self.task_count,
        }
