"""Timeline layout for the project Gantt view.

Everything here is a pure function of a project, its tasks and a
:class:`TimelineConfig`. Positions are expressed in whole days; callers
multiply by a pixels-per-day factor to draw.
"""
from __future__ import annotations

import calendar
import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Iterable, List, Optional, Protocol, Sequence, Tuple

from .models import Project, Task

logger = logging.getLogger(__name__)


class TimelineItem(Protocol):
    start_date: Optional[date]
    end_date: Optional[date]
    duration_days: Optional[int]


@dataclass(frozen=True)
class TimelineConfig:
    """Tunable constants for range resolution and bar widths."""

    padding_days: int = 3
    fallback_window_days: int = 30
    default_width_days: int = 2

    def __post_init__(self) -> None:
        if self.padding_days < 0:
            raise ValueError(f"padding_days must be >= 0, got {self.padding_days}")
        if self.fallback_window_days < 0:
            raise ValueError(f"fallback_window_days must be >= 0, got {self.fallback_window_days}")
        if self.default_width_days < 1:
            raise ValueError(f"default_width_days must be >= 1, got {self.default_width_days}")


DEFAULT_CONFIG = TimelineConfig()


@dataclass(frozen=True)
class TimelineRange:
    start: date
    end: date


@dataclass(frozen=True)
class MonthMarker:
    label: str
    offset_days: int
    span_days: int


@dataclass(frozen=True)
class DayMarker:
    day: date
    offset_days: int
    label: str
    is_weekend: bool


@dataclass(frozen=True)
class BarGeometry:
    offset_days: int
    width_days: int

    @property
    def end_offset_days(self) -> int:
        """Offset of the last column covered by the bar."""
        return self.offset_days + self.width_days - 1


@dataclass(frozen=True)
class TimelineLayout:
    """Everything a presenter needs to draw one project's Gantt chart."""

    project: Project
    range: TimelineRange
    total_days: int
    months: Tuple[MonthMarker, ...]
    days: Tuple[DayMarker, ...]
    weeks: Tuple[int, ...]
    project_bar: BarGeometry
    task_bars: Tuple[Tuple[Task, BarGeometry], ...]


def resolve_range(
    project: TimelineItem,
    tasks: Iterable[TimelineItem],
    config: TimelineConfig = DEFAULT_CONFIG,
    today: Optional[date] = None,
) -> TimelineRange:
    """Compute the padded date window covering the project and its tasks."""
    today = today or date.today()
    min_date = project.start_date or today
    max_date = project.end_date or min_date + timedelta(days=config.fallback_window_days)

    for task in tasks:
        if task.start_date is not None:
            min_date = min(min_date, task.start_date)
            max_date = max(max_date, task.start_date)
        if task.end_date is not None:
            max_date = max(max_date, task.end_date)
        elif task.start_date is not None and task.duration_days:
            max_date = max(max_date, task.start_date + timedelta(days=task.duration_days))

    # A project ending before it starts must still produce a valid range.
    max_date = max(max_date, min_date)
    padding = timedelta(days=config.padding_days)
    return TimelineRange(start=min_date - padding, end=max_date + padding)


def total_days(timeline: TimelineRange) -> int:
    return max(1, (timeline.end - timeline.start).days)


def day_offset(timeline: TimelineRange, day: date) -> int:
    """Whole days from the range start to ``day``; earlier dates clamp to 0."""
    return max(0, (day - timeline.start).days)


def month_markers(timeline: TimelineRange) -> List[MonthMarker]:
    """One marker per calendar month visible in the range, in order."""
    columns = total_days(timeline)
    markers: List[MonthMarker] = []
    current = timeline.start
    while current <= timeline.end:
        if current.day == 1 or current == timeline.start:
            offset = day_offset(timeline, current)
            days_in_month = calendar.monthrange(current.year, current.month)[1]
            span = min(days_in_month - current.day + 1, columns - offset)
            if span > 0:
                markers.append(MonthMarker(current.strftime("%b %Y"), offset, span))
        current += timedelta(days=1)
    return markers


def day_markers(timeline: TimelineRange) -> List[DayMarker]:
    markers = []
    for offset in range(total_days(timeline)):
        day = timeline.start + timedelta(days=offset)
        markers.append(DayMarker(day, offset, str(day.day), day.weekday() >= 5))
    return markers


def week_markers(timeline: TimelineRange) -> List[int]:
    """Column offsets where a new week starts (Mondays, plus the first column)."""
    offsets = []
    for marker in day_markers(timeline):
        if marker.day.weekday() == 0 or not offsets:
            offsets.append(marker.offset_days)
    return offsets


def bar_geometry(
    item: TimelineItem,
    timeline: TimelineRange,
    anchor: Optional[date] = None,
    config: TimelineConfig = DEFAULT_CONFIG,
) -> BarGeometry:
    """Place a single bar.

    Width resolution order: a positive duration, then the inclusive
    start..end span, then the configured default width.
    """
    start = item.start_date or anchor or timeline.start
    offset = day_offset(timeline, start)

    if item.duration_days is not None and item.duration_days > 0:
        width = item.duration_days
    elif item.start_date is not None and item.end_date is not None:
        width = max(1, (item.end_date - item.start_date).days + 1)
    else:
        width = config.default_width_days
    return BarGeometry(offset_days=offset, width_days=max(1, width))


def build_layout(
    project: Project,
    tasks: Sequence[Task],
    config: TimelineConfig = DEFAULT_CONFIG,
    today: Optional[date] = None,
) -> TimelineLayout:
    """Resolve the range, axis markers and every bar for one project."""
    timeline = resolve_range(project, tasks, config, today)
    project_bar = bar_geometry(project, timeline, config=config)
    anchor = project.start_date or timeline.start
    task_bars = tuple((task, bar_geometry(task, timeline, anchor, config)) for task in tasks)
    logger.debug(
        "Laid out project %s: %s..%s with %d task(s)",
        project.id,
        timeline.start,
        timeline.end,
        len(task_bars),
    )
    return TimelineLayout(
        project=project,
        range=timeline,
        total_days=total_days(timeline),
        months=tuple(month_markers(timeline)),
        days=tuple(day_markers(timeline)),
        weeks=tuple(week_markers(timeline)),
        project_bar=project_bar,
        task_bars=task_bars,
    )
