"""Export helpers for CSV and PDF."""
from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import List, Optional, Tuple

from PyQt6.QtCore import Qt, QRectF
from PyQt6.QtGui import QColor, QFont, QPageLayout, QPageSize, QPainter, QPen, QPdfWriter

from .models import format_iso_date
from .settings import Settings
from .timeline import BarGeometry, TimelineLayout

logger = logging.getLogger(__name__)

CSV_HEADERS = ["Item", "Start", "End", "Days"]
CSV_PROJECT_MARKER = "P"
CSV_TASK_MARKER = "X"

PDF_TASK_MIN_WIDTH = 160
PDF_TASK_MAX_WIDTH_RATIO = 0.35  # fraction of available width
PDF_TASK_PADDING = 48
PDF_START_END_WIDTH = 100
PDF_TIMELINE_MIN_COL_WIDTH = 12
PDF_PAGE_MARGIN_RATIO = 0.04
PDF_HEADER_HEIGHT = 40
PDF_ROW_HEIGHT_MIN = 24
PDF_ROW_HEIGHT_MAX = 48
PDF_FONT_SIZE = 10
PDF_ROW_TEXT_BOTTOM_PADDING = 4
PDF_BAR_INSET = 4


# (label, start, end, bar, colour) for every drawn row
_Row = Tuple[str, str, str, BarGeometry, str]


def export_as_csv(path: Path | str, layout: TimelineLayout) -> None:
    """Export the timeline as a grid with one column per day."""
    csv_path = Path(path)
    csv_path.parent.mkdir(parents=True, exist_ok=True)

    header = CSV_HEADERS + [marker.day.isoformat() for marker in layout.days]
    project = layout.project
    with csv_path.open("w", newline="", encoding="utf-8") as handle:
        writer = csv.writer(handle)
        writer.writerow(header)
        writer.writerow(
            [project.name, format_iso_date(project.start_date), format_iso_date(project.end_date), layout.project_bar.width_days]
            + _markers(layout.project_bar, layout.total_days, CSV_PROJECT_MARKER)
        )
        for task, bar in layout.task_bars:
            writer.writerow(
                [task.title, format_iso_date(task.start_date), format_iso_date(task.end_date), bar.width_days]
                + _markers(bar, layout.total_days, CSV_TASK_MARKER)
            )
    logger.info("Exported CSV timeline for %s to %s", project.id, csv_path)


def _markers(bar: BarGeometry, columns: int, marker: str) -> List[str]:
    return [marker if bar.offset_days <= column <= bar.end_offset_days else "" for column in range(columns)]


def export_as_pdf(
    path: Path | str,
    layout: TimelineLayout,
    settings: Optional[Settings] = None,
    *,
    include_dates: bool = True,
) -> None:
    """Render the Gantt chart to a landscape A4 PDF."""
    pdf_path = Path(path)
    pdf_path.parent.mkdir(parents=True, exist_ok=True)
    settings = settings or Settings()

    writer = QPdfWriter(str(pdf_path))
    writer.setPageSize(QPageSize(QPageSize.PageSizeId.A4))
    writer.setPageOrientation(QPageLayout.Orientation.Landscape)
    writer.setResolution(300)

    painter = QPainter(writer)
    _draw_pdf_chart(painter, writer, layout, settings, include_dates)
    painter.end()
    logger.info("Exported PDF timeline for %s to %s", layout.project.id, pdf_path)


def _rows(layout: TimelineLayout, settings: Settings) -> List[_Row]:
    project = layout.project
    rows: List[_Row] = [(
        f"{project.name} (Project)",
        format_iso_date(project.start_date),
        format_iso_date(project.end_date),
        layout.project_bar,
        settings.theme.project_color(project.status),
    )]
    for task, bar in layout.task_bars:
        rows.append((
            task.title,
            format_iso_date(task.start_date),
            format_iso_date(task.end_date),
            bar,
            settings.theme.task_color(task.status),
        ))
    return rows


def _compute_text_columns(font_metrics, content_rect, rows: List[_Row], include_dates: bool) -> List[tuple[str, int]]:
    """Figure out how wide the Item/Start/End columns should be for PDF."""
    longest_name = max((font_metrics.horizontalAdvance(row[0]) for row in rows), default=0)
    proportional_cap = int(content_rect.width() * PDF_TASK_MAX_WIDTH_RATIO)
    desired_width = longest_name + PDF_TASK_PADDING
    name_width = max(PDF_TASK_MIN_WIDTH, min(desired_width, proportional_cap))
    columns = [("Item", name_width)]
    if include_dates:
        columns.extend([("Start", PDF_START_END_WIDTH), ("End", PDF_START_END_WIDTH)])
    return columns


def _compute_timeline_layout(content_rect, text_columns, total_days: int):
    """Decide where the day columns begin and how wide each day is."""
    text_total_width = sum(width for _, width in text_columns)
    remaining = max(1, content_rect.width() - text_total_width)
    total_days = max(1, total_days)
    col_width = max(PDF_TIMELINE_MIN_COL_WIDTH, remaining / total_days)
    return col_width, content_rect.left() + text_total_width


def _compute_row_height(content_rect, rows: List[_Row]) -> int:
    """Compute a bounded row height so all rows fit under the two header bands."""
    rows_count = max(1, len(rows))
    available_height = max(PDF_ROW_HEIGHT_MIN, content_rect.height() - 2 * PDF_HEADER_HEIGHT)
    return max(PDF_ROW_HEIGHT_MIN, min(PDF_ROW_HEIGHT_MAX, int(available_height / rows_count)))


def _draw_pdf_chart(
    painter: QPainter,
    writer: QPdfWriter,
    layout: TimelineLayout,
    settings: Settings,
    include_dates: bool,
) -> None:
    page_rect = writer.pageLayout().paintRectPixels(writer.resolution())
    margin = int(page_rect.width() * PDF_PAGE_MARGIN_RATIO)
    content_rect = page_rect.adjusted(margin, margin, -margin, -margin)
    theme = settings.theme

    painter.setRenderHint(QPainter.RenderHint.Antialiasing, True)
    font = QFont(painter.font())
    font.setPointSize(PDF_FONT_SIZE)
    painter.setFont(font)
    pen = QPen(QColor(theme.text_primary))
    pen.setWidth(1)
    painter.setPen(pen)
    font_metrics = painter.fontMetrics()

    rows = _rows(layout, settings)
    text_columns = _compute_text_columns(font_metrics, content_rect, rows, include_dates)
    col_width, timeline_start_x = _compute_timeline_layout(content_rect, text_columns, layout.total_days)
    row_height = _compute_row_height(content_rect, rows)
    header_height = PDF_HEADER_HEIGHT

    month_y = content_rect.top()
    day_y = month_y + header_height
    column_positions: List[float] = []
    cursor_x = content_rect.left()
    for _, width in text_columns:
        column_positions.append(cursor_x)
        cursor_x += width

    # Text column headers span both header bands
    for (title, width), x in zip(text_columns, column_positions):
        rect = QRectF(x, month_y, width, 2 * header_height)
        painter.fillRect(rect, QColor(theme.main_background))
        painter.drawRect(rect)
        painter.drawText(rect, Qt.AlignmentFlag.AlignCenter, title)

    for month in layout.months:
        rect = QRectF(timeline_start_x + month.offset_days * col_width, month_y, month.span_days * col_width, header_height)
        painter.fillRect(rect, QColor(theme.main_background))
        painter.drawRect(rect)
        painter.drawText(rect, Qt.AlignmentFlag.AlignCenter, month.label)

    for day in layout.days:
        rect = QRectF(timeline_start_x + day.offset_days * col_width, day_y, col_width, header_height)
        if day.is_weekend:
            painter.fillRect(rect, QColor(theme.weekend))
        painter.drawRect(rect)
        painter.drawText(rect, Qt.AlignmentFlag.AlignCenter, day.label)

    current_y = day_y + header_height
    for label, start, end, bar, color in rows:
        values = [label]
        if include_dates:
            values.extend([start, end])
        for (_title, width), x, value in zip(text_columns, column_positions, values):
            rect = QRectF(x, current_y, width, row_height)
            painter.drawRect(rect)
            alignment = Qt.AlignmentFlag.AlignVCenter | (
                Qt.AlignmentFlag.AlignLeft if x == column_positions[0] else Qt.AlignmentFlag.AlignCenter
            )
            padding = 6 if x == column_positions[0] else 0
            text_rect = rect.adjusted(padding, 0, -padding, -PDF_ROW_TEXT_BOTTOM_PADDING)
            painter.drawText(text_rect, alignment, value)

        for day in layout.days:
            rect = QRectF(timeline_start_x + day.offset_days * col_width, current_y, col_width, row_height)
            if day.is_weekend:
                painter.fillRect(rect, QColor(theme.weekend))
            painter.drawRect(rect)

        visible_width = min(bar.width_days, layout.total_days - bar.offset_days)
        if visible_width > 0:
            bar_rect = QRectF(
                timeline_start_x + bar.offset_days * col_width,
                current_y + PDF_BAR_INSET,
                visible_width * col_width,
                row_height - 2 * PDF_BAR_INSET,
            )
            painter.fillRect(bar_rect, QColor(color))
        current_y += row_height

    if not layout.task_bars:
        rect = QRectF(content_rect.left(), current_y, content_rect.width(), row_height)
        painter.drawRect(rect)
        painter.drawText(rect, Qt.AlignmentFlag.AlignCenter, "No tasks in this project to display on Gantt chart.")
