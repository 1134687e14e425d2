"""Main PyQt application entry point."""
from __future__ import annotations

import argparse
import getpass
import logging
import sys
import uuid
from dataclasses import replace
from datetime import date
from pathlib import Path
from typing import List, Optional, Sequence

from PyQt6.QtCore import Qt, QPoint, pyqtSignal
from PyQt6.QtGui import QAction, QBrush, QColor, QCloseEvent, QKeySequence
from PyQt6.QtWidgets import (
    QAbstractItemView,
    QApplication,
    QFileDialog,
    QHeaderView,
    QMainWindow,
    QMenu,
    QMessageBox,
    QTableWidget,
    QTableWidgetItem,
    QVBoxLayout,
    QWidget,
)

from .exporters import export_as_csv, export_as_pdf
from .models import Project, Task, TaskStatus, format_iso_date, parse_iso_date
from .permissions import Action, User, UserRole, allowed_statuses, authorize
from .settings import Settings, load_settings, save_settings
from .storage import load_project, save_project
from .timeline import BarGeometry, TimelineLayout, build_layout

logger = logging.getLogger(__name__)

ITEM_HEADERS = ["Item", "Start", "End", "Days"]
PROJECT_ROW = 0
_NAME_COL, _START_COL, _END_COL, _DAYS_COL = range(len(ITEM_HEADERS))
_UNDO_STACK_LIMIT = 20


def _untitled_project() -> Project:
    return Project(id=f"PRJ-{uuid.uuid4().hex[:8]}", name="Untitled project")


class MonthHeaderWidget(QTableWidget):
    """Single row of month labels spanning their day columns."""

    def __init__(self, parent: Optional[QWidget] = None) -> None:
        super().__init__(1, len(ITEM_HEADERS), parent)
        self.timeline_start_col = len(ITEM_HEADERS)
        self.setEditTriggers(QAbstractItemView.EditTrigger.NoEditTriggers)
        self.setFocusPolicy(Qt.FocusPolicy.NoFocus)
        self.verticalHeader().setVisible(False)
        self.horizontalHeader().setVisible(False)
        self.setMaximumHeight(32)

    def set_layout(self, layout: TimelineLayout) -> None:
        self.clearSpans()
        self.setColumnCount(self.timeline_start_col + layout.total_days)
        for col in range(self.columnCount()):
            self.setItem(0, col, QTableWidgetItem(""))
        for marker in layout.months:
            col = self.timeline_start_col + marker.offset_days
            item = self.item(0, col)
            item.setText(marker.label)
            item.setTextAlignment(Qt.AlignmentFlag.AlignCenter)
            if marker.span_days > 1:
                self.setSpan(0, col, 1, marker.span_days)

    def labels(self) -> List[str]:
        """Month labels in column order."""
        return [
            self.item(0, col).text()
            for col in range(self.timeline_start_col, self.columnCount())
            if self.item(0, col) is not None and self.item(0, col).text()
        ]


class TimelineTableWidget(QTableWidget):
    """Project and task rows drawn against a day-per-column timeline.

    Row 0 is the project bar; every following row is a task. Edits to the
    text columns update the underlying records and re-run the layout.
    """

    layout_changed = pyqtSignal(object)
    undo_available = pyqtSignal(bool)
    edit_rejected = pyqtSignal(str)
    column_widths_updated = pyqtSignal()

    def __init__(
        self,
        settings: Optional[Settings] = None,
        user: Optional[User] = None,
        today: Optional[date] = None,
        parent: Optional[QWidget] = None,
    ) -> None:
        super().__init__(0, len(ITEM_HEADERS), parent)
        self.settings = settings or Settings()
        self.user = user
        self.today = today
        self.timeline_start_col = len(ITEM_HEADERS)
        self.project = _untitled_project()
        self._tasks: List[Task] = []
        self._layout: TimelineLayout
        self._block_cell = False
        self._undo_stack: List[List[Task]] = []
        self._setup_table()
        self._rebuild()
        self._emit_undo_available()

    def _setup_table(self) -> None:
        self.setSelectionBehavior(QAbstractItemView.SelectionBehavior.SelectRows)
        self.setSelectionMode(QAbstractItemView.SelectionMode.SingleSelection)
        self.setEditTriggers(
            QAbstractItemView.EditTrigger.DoubleClicked
            | QAbstractItemView.EditTrigger.EditKeyPressed
            | QAbstractItemView.EditTrigger.AnyKeyPressed
        )
        self.setContextMenuPolicy(Qt.ContextMenuPolicy.CustomContextMenu)
        self.customContextMenuRequested.connect(self._show_context_menu)
        self.cellChanged.connect(self._handle_cell_changed)
        self.verticalHeader().setVisible(False)

    # --- Model access ----------------------------------------------------------

    @property
    def timeline_layout(self) -> TimelineLayout:
        return self._layout

    def get_tasks(self) -> List[Task]:
        return list(self._tasks)

    def set_project(self, project: Project, tasks: Sequence[Task]) -> None:
        self.project = project
        self._tasks = list(tasks)
        self._rebuild()

    def set_user(self, user: Optional[User]) -> None:
        self.user = user
        self._rebuild()

    def add_task(self, title: str = "New task") -> Optional[Task]:
        if not authorize(self.user, Action.CREATE_TASK):
            self._reject("Your role cannot add tasks")
            return None
        task = Task(
            id=f"TSK-{uuid.uuid4().hex[:8]}",
            title=title,
            start_date=self.project.start_date or self.today or date.today(),
            project_id=self.project.id,
        )
        self._tasks.append(task)
        self._rebuild()
        self.selectRow(self.rowCount() - 1)
        return task

    def delete_task(self, row: int) -> bool:
        index = row - 1
        if index < 0 or index >= len(self._tasks):
            return False
        if not authorize(self.user, Action.DELETE_TASK, self._tasks[index]):
            self._reject("Your role cannot delete tasks")
            return False
        self._push_undo_state()
        removed = self._tasks.pop(index)
        logger.debug("Deleted task %s", removed.id)
        self._rebuild()
        return True

    def status_choices(self, row: int) -> List[TaskStatus]:
        """Statuses the current user may move the task in ``row`` to."""
        index = row - 1
        if index < 0 or index >= len(self._tasks):
            return []
        return allowed_statuses(self.user, self._tasks[index])

    def set_task_status(self, row: int, status: TaskStatus) -> bool:
        index = row - 1
        if index < 0 or index >= len(self._tasks):
            return False
        task = self._tasks[index]
        if task.status == status:
            return False
        if status not in self.status_choices(row):
            self._reject(f"Your role cannot set status {status.value}")
            return False
        self._tasks[index] = replace(task, status=status)
        logger.debug("Task %s moved to %s", task.id, status.value)
        self._rebuild()
        return True

    # --- Layout rendering -------------------------------------------------------

    def _rebuild(self) -> None:
        """Recompute the layout and repaint every row."""
        self._layout = build_layout(self.project, self._tasks, self.settings.timeline, self.today)
        layout = self._layout
        self._block_cell = True
        self.setColumnCount(self.timeline_start_col + layout.total_days)
        self.setHorizontalHeaderLabels(ITEM_HEADERS + [marker.label for marker in layout.days])
        self.setRowCount(1 + len(self._tasks))

        project = self.project
        self._fill_text_row(
            PROJECT_ROW,
            [project.name, format_iso_date(project.start_date), format_iso_date(project.end_date), str(layout.project_bar.width_days)],
            editable=authorize(self.user, Action.EDIT_PROJECT),
            editable_cols=(_NAME_COL, _START_COL, _END_COL),
        )
        self.item(PROJECT_ROW, _NAME_COL).setToolTip(
            f"{project.name}\nStatus: {project.status.value}\n"
            f"Start: {format_iso_date(project.start_date) or 'N/A'}\nEnd: {format_iso_date(project.end_date) or 'N/A'}"
            + ("" if project.has_schedule() else "\nUnscheduled")
        )
        self._paint_bar(PROJECT_ROW, layout.project_bar, self.settings.theme.project_color(project.status))

        for index, (task, bar) in enumerate(layout.task_bars):
            row = index + 1
            self._fill_text_row(
                row,
                [
                    task.title,
                    format_iso_date(task.start_date),
                    format_iso_date(task.end_date),
                    "" if task.duration_days is None else str(task.duration_days),
                ],
                editable=authorize(self.user, Action.EDIT_TASK, task),
                editable_cols=(_NAME_COL, _START_COL, _END_COL, _DAYS_COL),
            )
            self.item(row, _NAME_COL).setToolTip(
                f"Task: {task.title}\nStatus: {task.status.value}\nAssignee: {task.assignee or 'Unassigned'}\n"
                f"Start: {format_iso_date(task.start_date) or 'N/A'}\nEnd: {format_iso_date(task.end_date) or 'N/A'}\n"
                f"Duration: {bar.width_days}d"
                + ("" if task.has_schedule() else "\nUnscheduled")
            )
            self._paint_bar(row, bar, self.settings.theme.task_color(task.status))

        self._block_cell = False
        self._configure_column_widths()
        self.layout_changed.emit(layout)

    def _fill_text_row(self, row: int, values: List[str], *, editable: bool, editable_cols) -> None:
        for col, value in enumerate(values):
            item = self._ensure_item(row, col)
            flags = Qt.ItemFlag.ItemIsSelectable | Qt.ItemFlag.ItemIsEnabled
            if editable and col in editable_cols:
                flags |= Qt.ItemFlag.ItemIsEditable
            item.setFlags(flags)
            item.setText(value)

    def _paint_bar(self, row: int, bar: BarGeometry, color: str) -> None:
        """Colour the day cells covered by ``bar``; shade weekends elsewhere."""
        theme = self.settings.theme
        for marker in self.timeline_layout.days:
            item = self._ensure_item(row, self.timeline_start_col + marker.offset_days)
            item.setFlags(Qt.ItemFlag.ItemIsEnabled)
            if bar.offset_days <= marker.offset_days <= bar.end_offset_days:
                item.setBackground(QColor(color))
            elif marker.is_weekend:
                item.setBackground(QColor(theme.weekend))
            else:
                item.setBackground(QBrush())

    def _ensure_item(self, row: int, col: int) -> QTableWidgetItem:
        item = self.item(row, col)
        if item is None:
            item = QTableWidgetItem("")
            self.setItem(row, col, item)
        return item

    def bar_columns(self, row: int) -> List[int]:
        """Day offsets painted for ``row``; mirrors the layout's bar geometry."""
        if row == PROJECT_ROW:
            bar = self.timeline_layout.project_bar
        else:
            bar = self.timeline_layout.task_bars[row - 1][1]
        return [
            marker.offset_days
            for marker in self.timeline_layout.days
            if bar.offset_days <= marker.offset_days <= bar.end_offset_days
        ]

    def _configure_column_widths(self) -> None:
        header = self.horizontalHeader()
        fm = self.fontMetrics()
        name_width = max(fm.horizontalAdvance("M" * 24), 200)
        date_width = max(fm.horizontalAdvance("0000-00-00") + 16, 90)
        days_width = max(fm.horizontalAdvance("000") + 12, 40)
        target_widths = {_NAME_COL: name_width, _START_COL: date_width, _END_COL: date_width, _DAYS_COL: days_width}

        for col in range(self.columnCount()):
            header.setSectionResizeMode(col, QHeaderView.ResizeMode.Fixed)
            self.setColumnWidth(col, target_widths.get(col, self.settings.pixels_per_day))
        self.column_widths_updated.emit()

    # --- Editing ------------------------------------------------------------------

    def _handle_cell_changed(self, row: int, column: int) -> None:
        if self._block_cell or column >= self.timeline_start_col:
            return
        text = self.item(row, column).text().strip()
        try:
            if row == PROJECT_ROW:
                self._edit_project(column, text)
            else:
                self._edit_task(row - 1, column, text)
        except ValueError as exc:
            self._reject(str(exc))
        # Always repaint: either the edit applied or the cell reverts.
        self._rebuild()

    def _edit_project(self, column: int, text: str) -> None:
        if not authorize(self.user, Action.EDIT_PROJECT):
            raise ValueError("Your role cannot edit this project")
        if column == _NAME_COL:
            if not text:
                raise ValueError("Project name is required")
            self.project = replace(self.project, name=text)
        elif column == _START_COL:
            self.project = replace(self.project, start_date=parse_iso_date(text))
        elif column == _END_COL:
            self.project = replace(self.project, end_date=parse_iso_date(text))

    def _edit_task(self, index: int, column: int, text: str) -> None:
        task = self._tasks[index]
        if not authorize(self.user, Action.EDIT_TASK, task):
            raise ValueError("Your role cannot edit this task")
        if column == _NAME_COL:
            if not text:
                raise ValueError("Task title is required")
            task = replace(task, title=text)
        elif column == _START_COL:
            task = replace(task, start_date=parse_iso_date(text))
        elif column == _END_COL:
            task = replace(task, end_date=parse_iso_date(text))
        elif column == _DAYS_COL:
            task = replace(task, duration_days=self._parse_days(text))
        self._tasks[index] = task

    @staticmethod
    def _parse_days(text: str) -> Optional[int]:
        if not text:
            return None
        try:
            days = int(text)
        except ValueError as exc:
            raise ValueError(f"Invalid duration: {text!r}") from exc
        return days if days > 0 else None

    def _reject(self, message: str) -> None:
        logger.warning("Edit rejected: %s", message)
        self.edit_rejected.emit(message)

    def _show_context_menu(self, position: QPoint) -> None:
        """Provide quick row actions (status/delete/undo)."""
        index = self.indexAt(position)
        if not index.isValid() or index.row() == PROJECT_ROW:
            return
        row = index.row()
        menu = QMenu(self)
        status_menu = menu.addMenu("Set status")
        current = self._tasks[row - 1].status
        status_actions = {}
        for status in self.status_choices(row):
            status_action = status_menu.addAction(status.value)
            status_action.setCheckable(True)
            status_action.setChecked(status == current)
            status_actions[status_action] = status
        status_menu.setEnabled(len(status_actions) > 1)
        delete_action = menu.addAction("Delete task")
        delete_action.setEnabled(authorize(self.user, Action.DELETE_TASK, self._tasks[row - 1]))
        menu.addSeparator()
        undo_action = menu.addAction("Undo delete")
        undo_action.setEnabled(bool(self._undo_stack))
        action = menu.exec(self.viewport().mapToGlobal(position))
        if action in status_actions:
            self.set_task_status(row, status_actions[action])
        elif action == delete_action:
            self.delete_task(row)
        elif action == undo_action:
            self.undo_last_change()

    # --- Undo ----------------------------------------------------------------------

    def reset_undo_stack(self) -> None:
        """Drop all undo history (used after opening a new project)."""
        self._undo_stack.clear()
        self._emit_undo_available()

    def undo_last_change(self) -> bool:
        if not self._undo_stack:
            return False
        self._tasks = self._undo_stack.pop()
        self._rebuild()
        self._emit_undo_available()
        return True

    def _push_undo_state(self) -> None:
        """Persist the latest snapshot and trim the fixed-size undo buffer."""
        self._undo_stack.append(list(self._tasks))
        if len(self._undo_stack) > _UNDO_STACK_LIMIT:
            self._undo_stack.pop(0)
        self._emit_undo_available()

    def _emit_undo_available(self) -> None:
        self.undo_available.emit(bool(self._undo_stack))


class MainWindow(QMainWindow):
    """Primary window with menus and central widgets."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        user: Optional[User] = None,
        settings_path: Path | str | None = None,
    ) -> None:
        super().__init__()
        self.setWindowTitle("ShiftedOS Gantt")
        self.settings = settings or Settings()
        self.settings_path = settings_path
        self.user = user
        self.current_path: Optional[Path] = None
        self.months = MonthHeaderWidget()
        self.table = TimelineTableWidget(self.settings, user)
        self.undo_action: QAction | None = None
        self.table.layout_changed.connect(self._update_months)
        self.table.undo_available.connect(self._handle_undo_available)
        self.table.edit_rejected.connect(self._show_rejection)
        self.table.column_widths_updated.connect(self._mirror_all_column_widths)
        self._update_months(self.table.timeline_layout)
        self._build_layout()
        self._build_menu()
        self.resize(1200, 600)

    def _build_layout(self) -> None:
        container = QWidget()
        layout = QVBoxLayout(container)
        layout.addWidget(self.months)
        layout.addWidget(self.table)
        self.setCentralWidget(container)
        self.table.horizontalScrollBar().valueChanged.connect(self.months.horizontalScrollBar().setValue)

    def _build_menu(self) -> None:
        """Create File/Edit menus along with shortcuts."""
        menu = self.menuBar()
        file_menu = menu.addMenu("File")

        open_action = QAction("Open", self)
        open_action.setShortcut(QKeySequence.StandardKey.Open)
        open_action.triggered.connect(self.action_open)
        file_menu.addAction(open_action)

        save_action = QAction("Save", self)
        save_action.setShortcut(QKeySequence.StandardKey.Save)
        save_action.triggered.connect(self.action_save)
        file_menu.addAction(save_action)

        export_action = QAction("Export", self)
        export_action.setEnabled(authorize(self.user, Action.EXPORT))
        export_action.triggered.connect(self.action_export)
        file_menu.addAction(export_action)

        save_settings_action = QAction("Save Settings", self)
        save_settings_action.triggered.connect(self.action_save_settings)
        file_menu.addAction(save_settings_action)

        file_menu.addSeparator()
        quit_action = QAction("Quit", self)
        quit_action.setShortcut(QKeySequence.StandardKey.Quit)
        quit_action.triggered.connect(self.close)
        file_menu.addAction(quit_action)

        edit_menu = menu.addMenu("Edit")
        new_task_action = QAction("New Task", self)
        new_task_action.setEnabled(authorize(self.user, Action.CREATE_TASK))
        new_task_action.triggered.connect(lambda: self.table.add_task())
        edit_menu.addAction(new_task_action)

        undo_action = QAction("Undo delete", self)
        undo_action.setShortcut("Ctrl+Z")
        undo_action.setEnabled(False)
        undo_action.triggered.connect(self._handle_undo_request)
        edit_menu.addAction(undo_action)
        self.undo_action = undo_action

    def _update_months(self, layout: TimelineLayout) -> None:
        self.months.set_layout(layout)
        self._mirror_all_column_widths()

    # Menu actions ------------------------------------------------------
    def open_path(self, path: Path | str) -> None:
        project, tasks = load_project(path)
        self.table.set_project(project, tasks)
        self.table.reset_undo_stack()
        self.current_path = Path(path)
        self.setWindowTitle(f"ShiftedOS Gantt - {project.name}")
        self.statusBar().showMessage(f"Loaded project from {path}", 3000)

    def action_open(self) -> None:
        """Load a saved CSV project file into the table."""
        path, _ = QFileDialog.getOpenFileName(self, "Open project", filter="CSV Files (*.csv)")
        if not path:
            return
        try:
            self.open_path(path)
        except (OSError, ValueError) as exc:  # pragma: no cover - interactive guard
            logger.error("Failed to open %s: %s", path, exc)
            QMessageBox.critical(self, "Open failed", str(exc))

    def action_save(self) -> None:
        if not self.current_path:
            path, _ = QFileDialog.getSaveFileName(
                self,
                "Save project",
                filter="CSV Files (*.csv)",
                initialFilter="CSV Files (*.csv)",
            )
            if not path:
                return
            self.current_path = Path(path)
        try:
            save_project(self.current_path, self.table.project, self.table.get_tasks())
        except OSError as exc:  # pragma: no cover - interactive guard
            QMessageBox.critical(self, "Save failed", str(exc))
            return
        self.statusBar().showMessage(f"Saved to {self.current_path}", 3000)

    def action_save_settings(self) -> None:
        """Write the current theme and timeline settings back to disk."""
        try:
            save_settings(self.settings, self.settings_path)
        except OSError as exc:  # pragma: no cover - interactive guard
            logger.error("Failed to save settings: %s", exc)
            QMessageBox.critical(self, "Save settings failed", str(exc))
            return
        self.statusBar().showMessage("Settings saved", 3000)

    def action_export(self) -> None:
        """Export the timeline grid as CSV or the chart as PDF."""
        if not authorize(self.user, Action.EXPORT):
            self._show_rejection("Your role cannot export")
            return
        path, selected_filter = QFileDialog.getSaveFileName(
            self,
            "Export timeline",
            filter="CSV Files (*.csv);;PDF Files (*.pdf)",
        )
        if not path:
            return
        layout = self.table.timeline_layout
        if path.lower().endswith(".pdf") or "PDF" in selected_filter:
            include_dates = (
                QMessageBox.question(
                    self,
                    "PDF Columns",
                    "Include Start/End columns in the PDF export?",
                    QMessageBox.StandardButton.Yes | QMessageBox.StandardButton.No,
                    QMessageBox.StandardButton.Yes,
                )
                == QMessageBox.StandardButton.Yes
            )
            export_as_pdf(path, layout, self.settings, include_dates=include_dates)
            self.statusBar().showMessage(f"Exported PDF to {path}", 3000)
        else:
            export_as_csv(path, layout)
            self.statusBar().showMessage(f"Exported CSV to {path}", 3000)

    def _show_rejection(self, message: str) -> None:
        self.statusBar().showMessage(message, 5000)

    def _handle_undo_available(self, available: bool) -> None:
        if self.undo_action is not None:
            self.undo_action.setEnabled(available)

    def _handle_undo_request(self) -> None:
        if self.table.undo_last_change():
            self.statusBar().showMessage("Restored last deleted task", 3000)

    def _mirror_all_column_widths(self) -> None:
        """Keep the month row aligned with the day columns below it."""
        columns = min(self.months.columnCount(), self.table.columnCount())
        for col in range(columns):
            self.months.setColumnWidth(col, self.table.columnWidth(col))

    def closeEvent(self, event: QCloseEvent) -> None:  # pragma: no cover - requires UI
        if QMessageBox.question(self, "Quit", "Close ShiftedOS Gantt?") == QMessageBox.StandardButton.Yes:
            event.accept()
        else:
            event.ignore()


def _parse_args(argv: Optional[Sequence[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="shifted-gantt", description="Project Gantt timeline viewer")
    parser.add_argument("path", nargs="?", help="project CSV to open")
    parser.add_argument(
        "--role",
        choices=[role.value for role in UserRole],
        default=UserRole.ADMIN.value,
        help="role of the local user (default: %(default)s)",
    )
    parser.add_argument("--settings", help="settings YAML (default: user config dir)")
    parser.add_argument("-v", "--verbose", action="store_true", help="enable debug logging")
    return parser.parse_args(argv)


def run(argv: Optional[Sequence[str]] = None) -> None:
    """Entry point used by the `shifted-gantt` console script."""
    args = _parse_args(sys.argv[1:] if argv is None else argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    settings = load_settings(args.settings)
    username = getpass.getuser()
    user = User(id=username, name=username, role=UserRole(args.role))

    app = QApplication(sys.argv[:1])
    window = MainWindow(settings, user, args.settings)
    if args.path:
        try:
            window.open_path(args.path)
        except (OSError, ValueError) as exc:
            logger.error("Failed to open %s: %s", args.path, exc)
            QMessageBox.critical(window, "Open failed", str(exc))
    window.show()
    app.exec()


if __name__ == "__main__":
    run()
