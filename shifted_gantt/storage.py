"""CSV persistence helpers."""
from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import Iterable, List, Optional, Tuple, Type, TypeVar

from .models import (
    InvalidDateError,
    Project,
    ProjectStatus,
    Task,
    TaskPriority,
    TaskStatus,
    format_iso_date,
    parse_iso_date,
)

logger = logging.getLogger(__name__)

_PROJECT_PREFIX = "#project"
_TASK_HEADER = ["id", "title", "status", "priority", "start_date", "end_date", "duration_days", "assignee"]

_E = TypeVar("_E", TaskStatus, ProjectStatus, TaskPriority)


def save_project(path: Path | str, project: Project, tasks: Iterable[Task]) -> None:
    """Persist a project and its tasks to CSV."""
    csv_path = Path(path)
    csv_path.parent.mkdir(parents=True, exist_ok=True)

    count = 0
    with csv_path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.writer(handle)
        writer.writerow([
            _PROJECT_PREFIX,
            project.id,
            project.name,
            project.status.value,
            format_iso_date(project.start_date),
            format_iso_date(project.end_date),
        ])
        writer.writerow(_TASK_HEADER)
        for task in tasks:
            writer.writerow([
                task.id,
                task.title,
                task.status.value,
                task.priority.value,
                format_iso_date(task.start_date),
                format_iso_date(task.end_date),
                _serialize_optional_int(task.duration_days),
                task.assignee or "",
            ])
            count += 1
    logger.info("Saved project %s with %d task(s) to %s", project.id, count, csv_path)


def load_project(path: Path | str) -> Tuple[Project, List[Task]]:
    """Load a project and its tasks from CSV."""
    csv_path = Path(path)
    with csv_path.open("r", newline="", encoding="utf-8") as handle:
        reader = csv.reader(handle)
        project_line = next(reader, None)
        if not project_line or project_line[0] != _PROJECT_PREFIX or len(project_line) < 6:
            raise ValueError("Invalid gantt CSV: missing project line")
        _, project_id, name, status_raw, start_raw, end_raw = project_line[:6]
        project = Project(
            id=project_id,
            name=name,
            status=_parse_enum(ProjectStatus, status_raw, ProjectStatus.PLANNING),
            start_date=_parse_date(start_raw, reader.line_num),
            end_date=_parse_date(end_raw, reader.line_num),
        )

        header = next(reader, None)
        if header != _TASK_HEADER:
            raise ValueError("Invalid gantt CSV: missing task header")

        tasks: List[Task] = []
        for row in reader:
            if len(row) < len(_TASK_HEADER):
                if any(cell.strip() for cell in row):
                    logger.warning("Skipping short row on line %d of %s", reader.line_num, csv_path)
                continue
            task_id, title, status_raw, priority_raw, start_raw, end_raw, duration_raw, assignee = row[:8]
            task = Task(
                id=task_id,
                title=title,
                status=_parse_enum(TaskStatus, status_raw, TaskStatus.TODO),
                priority=_parse_enum(TaskPriority, priority_raw, TaskPriority.MEDIUM),
                start_date=_parse_date(start_raw, reader.line_num),
                end_date=_parse_date(end_raw, reader.line_num),
                duration_days=_parse_duration(duration_raw),
                assignee=assignee or None,
                project_id=project.id,
            )
            if task.is_empty():
                continue
            tasks.append(task)

    logger.info("Loaded project %s with %d task(s) from %s", project.id, len(tasks), csv_path)
    return project, tasks


def _serialize_optional_int(value: Optional[int]) -> str:
    return "" if value is None else str(value)


def _parse_duration(value: str) -> Optional[int]:
    text = value.strip() if value is not None else ""
    if not text:
        return None
    try:
        duration = int(text)
    except ValueError:
        return None
    return duration if duration > 0 else None


def _parse_date(value: str, line: int):
    try:
        return parse_iso_date(value)
    except InvalidDateError as exc:
        raise InvalidDateError(f"Invalid gantt CSV line {line}: {exc}") from exc


def _parse_enum(enum_cls: Type[_E], value: str, default: _E) -> _E:
    text = value.strip()
    if not text:
        return default
    try:
        return enum_cls(text)
    except ValueError as exc:
        raise ValueError(f"Invalid gantt CSV: unknown {enum_cls.__name__} {text!r}") from exc
