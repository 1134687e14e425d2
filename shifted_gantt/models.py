"""Project and task records shared across the Gantt application."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import ClassVar, Optional


class InvalidDateError(ValueError):
    """Raised when a date string cannot be parsed."""


class TaskStatus(str, Enum):
    TODO = "To Do"
    IN_PROGRESS = "In Progress"
    IN_REVIEW = "In Review"
    BLOCKED = "Blocked"
    DONE = "Done"
    PUBLISHED = "Published"


class ProjectStatus(str, Enum):
    PLANNING = "Planning"
    ACTIVE = "Active"
    COMPLETED = "Completed"
    ON_HOLD = "On Hold"
    CANCELLED = "Cancelled"


class TaskPriority(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    URGENT = "Urgent"


@dataclass
class Project:
    """A project whose own dates frame the timeline."""

    id: str
    name: str
    status: ProjectStatus = ProjectStatus.PLANNING
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    description: str = ""
    # Projects are always bounded by dates, never by a duration.
    duration_days: ClassVar[Optional[int]] = None

    def has_schedule(self) -> bool:
        """Return True when both start and end dates are defined."""
        return self.start_date is not None and self.end_date is not None


@dataclass
class Task:
    """A single task placed on a project's timeline.

    ``end_date`` is the task deadline. ``duration_days`` takes precedence
    over it when both are present.
    """

    id: str
    title: str
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    duration_days: Optional[int] = None
    assignee: Optional[str] = None
    project_id: Optional[str] = None

    def has_schedule(self) -> bool:
        """Return True when the task carries enough data to draw a real bar."""
        if self.start_date is None:
            return False
        return self.end_date is not None or bool(self.duration_days and self.duration_days > 0)

    def is_empty(self) -> bool:
        """Return True when the task carries no semantic data."""
        return (
            not self.title
            and self.start_date is None
            and self.end_date is None
            and self.duration_days is None
        )


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    """Parse an ISO-8601 date or date-time string.

    Blank input means "no date". Date-time strings keep only their calendar
    date. Anything else raises :class:`InvalidDateError`.
    """
    text = value.strip() if value is not None else ""
    if not text:
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError as exc:
        raise InvalidDateError(f"Invalid date: {text!r}") from exc


def format_iso_date(value: Optional[date]) -> str:
    return "" if value is None else value.isoformat()
