from datetime import date
from types import SimpleNamespace

from PyQt6.QtCore import Qt
from PyQt6.QtWidgets import QApplication

from shifted_gantt import app as app_module
from shifted_gantt.app import MainWindow, MonthHeaderWidget, PROJECT_ROW, TimelineTableWidget
from shifted_gantt.models import Project, Task, TaskStatus
from shifted_gantt.permissions import User, UserRole
from shifted_gantt.settings import Settings, load_settings
from shifted_gantt.timeline import TimelineConfig, build_layout

TODAY = date(2024, 7, 1)


def _project() -> Project:
    return Project(id="PRJ-1", name="Relaunch", start_date=date(2024, 7, 1), end_date=date(2024, 7, 31))


def _tasks():
    return [
        Task(id="T1", title="Draft", start_date=date(2024, 7, 5), end_date=date(2024, 7, 15)),
        Task(id="T2", title="Shoot", start_date=date(2024, 7, 16), duration_days=3, assignee="Bob"),
    ]


def _table(role: UserRole = UserRole.ADMIN, name: str = "Jane Doe") -> TimelineTableWidget:
    table = TimelineTableWidget(user=User(id="U1", name=name, role=role), today=TODAY)
    table.set_project(_project(), _tasks())
    return table


def test_rows_and_columns_follow_layout(qapp: QApplication) -> None:
    table = _table()
    layout = table.timeline_layout

    assert layout == build_layout(_project(), _tasks(), today=TODAY)
    assert table.rowCount() == 3
    assert table.columnCount() == table.timeline_start_col + layout.total_days
    assert table.item(PROJECT_ROW, 0).text() == "Relaunch"
    assert table.item(1, 3).text() == ""
    assert table.item(2, 3).text() == "3"
    assert table.bar_columns(1) == list(range(7, 18))
    assert table.bar_columns(2) == [18, 19, 20]


def test_editing_a_date_relayouts(qapp: QApplication) -> None:
    table = _table()

    table.item(1, 2).setText("2024-08-20")

    assert table.get_tasks()[0].end_date == date(2024, 8, 20)
    assert table.timeline_layout.range.end == date(2024, 8, 23)
    assert len(table.bar_columns(1)) == 47


def test_invalid_date_is_rejected_and_reverted(qapp: QApplication) -> None:
    table = _table()
    messages = []
    table.edit_rejected.connect(messages.append)

    table.item(1, 1).setText("soon")

    assert messages and "Invalid date" in messages[0]
    assert table.get_tasks()[0].start_date == date(2024, 7, 5)
    assert table.item(1, 1).text() == "2024-07-05"


def test_editing_days_sets_duration(qapp: QApplication) -> None:
    table = _table()

    table.item(1, 3).setText("4")

    assert table.get_tasks()[0].duration_days == 4
    assert table.bar_columns(1) == [7, 8, 9, 10]


def test_viewer_cells_are_read_only(qapp: QApplication) -> None:
    table = _table(UserRole.VIEWER)
    messages = []
    table.edit_rejected.connect(messages.append)

    assert not table.item(1, 1).flags() & Qt.ItemFlag.ItemIsEditable
    table.item(1, 1).setText("2024-07-09")

    assert messages
    assert table.get_tasks()[0].start_date == date(2024, 7, 5)


def test_finance_can_edit_only_assigned_task(qapp: QApplication) -> None:
    table = _table(UserRole.FINANCE, name="Bob")

    assert not table.item(1, 1).flags() & Qt.ItemFlag.ItemIsEditable
    assert table.item(2, 1).flags() & Qt.ItemFlag.ItemIsEditable


def test_delete_and_undo(qapp: QApplication) -> None:
    table = _table()
    availability = []
    table.undo_available.connect(availability.append)

    assert table.delete_task(1)
    assert [task.id for task in table.get_tasks()] == ["T2"]
    assert table.rowCount() == 2

    assert table.undo_last_change()
    assert [task.id for task in table.get_tasks()] == ["T1", "T2"]
    assert availability == [True, False]


def test_script_writer_cannot_delete(qapp: QApplication) -> None:
    table = _table(UserRole.SCRIPT_WRITER)

    assert not table.delete_task(1)
    assert len(table.get_tasks()) == 2


def test_add_task_starts_at_project_start(qapp: QApplication) -> None:
    table = _table(UserRole.PROJECT_MANAGER)

    task = table.add_task("Publish")

    assert task is not None
    assert task.start_date == date(2024, 7, 1)
    assert task.project_id == "PRJ-1"
    assert table.rowCount() == 4


def test_month_header_mirrors_layout(qapp: QApplication) -> None:
    header = MonthHeaderWidget()
    layout = build_layout(_project(), _tasks(), today=TODAY)

    header.set_layout(layout)

    assert header.columnCount() == header.timeline_start_col + layout.total_days
    assert header.labels() == ["Jun 2024", "Jul 2024", "Aug 2024"]


def test_main_window_opens_saved_project(qapp: QApplication, tmp_path) -> None:
    from shifted_gantt.storage import save_project

    path = tmp_path / "relaunch.csv"
    save_project(path, _project(), _tasks())
    window = MainWindow(user=User(id="U1", name="Jane Doe", role=UserRole.ADMIN))

    window.open_path(path)

    assert window.table.project == _project()
    assert window.months.columnCount() == window.table.columnCount()
    assert window.months.columnWidth(window.months.timeline_start_col) == window.settings.pixels_per_day


def test_script_writer_status_choices(qapp: QApplication) -> None:
    table = _table(UserRole.SCRIPT_WRITER)

    assert table.status_choices(1) == [
        TaskStatus.TODO,
        TaskStatus.IN_PROGRESS,
        TaskStatus.IN_REVIEW,
        TaskStatus.BLOCKED,
    ]
    assert table.set_task_status(1, TaskStatus.IN_REVIEW) is True
    assert table.get_tasks()[0].status == TaskStatus.IN_REVIEW
    assert "Status: In Review" in table.item(1, 0).toolTip()


def test_script_writer_cannot_reopen_done_task(qapp: QApplication) -> None:
    table = _table(UserRole.SCRIPT_WRITER)
    tasks = _tasks()
    tasks[0].status = TaskStatus.DONE
    table.set_project(_project(), tasks)
    messages = []
    table.edit_rejected.connect(messages.append)

    assert table.status_choices(1) == [TaskStatus.DONE]
    assert table.set_task_status(1, TaskStatus.TODO) is False
    assert table.get_tasks()[0].status == TaskStatus.DONE
    assert messages


def test_viewer_cannot_change_status(qapp: QApplication) -> None:
    table = _table(UserRole.VIEWER)

    assert table.status_choices(1) == [TaskStatus.TODO]
    assert table.set_task_status(1, TaskStatus.DONE) is False
    assert table.status_choices(PROJECT_ROW) == []


def test_unscheduled_rows_are_marked_in_tooltip(qapp: QApplication) -> None:
    table = TimelineTableWidget(user=User(id="U1", name="Jane Doe", role=UserRole.ADMIN), today=TODAY)
    project = Project(id="PRJ-2", name="Backlog", start_date=date(2024, 7, 1))
    tasks = [Task(id="T1", title="Idea", start_date=date(2024, 7, 3))] + _tasks()

    table.set_project(project, tasks)

    assert table.item(PROJECT_ROW, 0).toolTip().endswith("Unscheduled")
    assert table.item(1, 0).toolTip().endswith("Unscheduled")
    assert "Unscheduled" not in table.item(2, 0).toolTip()
    assert "Unscheduled" not in table.item(3, 0).toolTip()


def test_main_window_saves_settings(qapp: QApplication, tmp_path) -> None:
    path = tmp_path / "config" / "settings.yaml"
    settings = Settings(timeline=TimelineConfig(padding_days=5), pixels_per_day=24)
    window = MainWindow(settings, User(id="U1", name="Jane Doe", role=UserRole.ADMIN), path)

    window.action_save_settings()

    assert load_settings(path) == settings


def test_run_reports_unreadable_project(qapp: QApplication, tmp_path, monkeypatch) -> None:
    errors = []
    monkeypatch.setattr(app_module, "QApplication", lambda argv: SimpleNamespace(exec=lambda: 0))
    monkeypatch.setattr(MainWindow, "show", lambda self: None)
    monkeypatch.setattr(app_module.QMessageBox, "critical", lambda parent, title, text: errors.append(title))

    app_module.run([str(tmp_path / "missing.csv"), "--settings", str(tmp_path / "settings.yaml")])

    assert errors == ["Open failed"]
