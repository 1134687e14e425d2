from datetime import date
from pathlib import Path

import pytest

from shifted_gantt.models import InvalidDateError, Project, ProjectStatus, Task, TaskPriority, TaskStatus
from shifted_gantt.storage import load_project, save_project


def _project() -> Project:
    return Project(
        id="PRJ-1",
        name="Website relaunch",
        status=ProjectStatus.ACTIVE,
        start_date=date(2024, 7, 1),
        end_date=date(2024, 9, 30),
    )


def test_save_and_load_roundtrip(tmp_path: Path) -> None:
    path = tmp_path / "sample.csv"
    tasks = [
        Task(
            id="T1",
            title="Draft copy",
            status=TaskStatus.IN_PROGRESS,
            priority=TaskPriority.HIGH,
            start_date=date(2024, 7, 5),
            end_date=date(2024, 7, 15),
            assignee="Jane Doe",
            project_id="PRJ-1",
        ),
        Task(id="T2", title="Shoot", start_date=date(2024, 7, 16), duration_days=15, project_id="PRJ-1"),
    ]

    save_project(path, _project(), tasks)
    project, loaded = load_project(path)

    assert project == _project()
    assert loaded == tasks


def test_save_project_writes_blank_cells_for_missing_values(tmp_path: Path) -> None:
    path = tmp_path / "draft.csv"
    project = Project(id="PRJ-2", name="Ideas")

    save_project(path, project, [Task(id="T1", title="Notes")])

    text = path.read_text().splitlines()
    assert text[0] == "#project,PRJ-2,Ideas,Planning,,"
    assert text[1] == "id,title,status,priority,start_date,end_date,duration_days,assignee"
    assert text[2] == "T1,Notes,To Do,Medium,,,,"


def test_load_skips_blank_and_short_rows(tmp_path: Path) -> None:
    path = tmp_path / "rows.csv"
    path.write_text(
        "#project,PRJ-1,Relaunch,Active,2024-07-01,\n"
        "id,title,status,priority,start_date,end_date,duration_days,assignee\n"
        "T1,Draft,,,2024-07-05,,0,\n"
        ",,,,,,,\n"
        "T2,Short\n"
        "T3,Edit,Done,Low,,,abc,Bob\n",
        encoding="utf-8",
    )

    project, tasks = load_project(path)

    assert project.end_date is None
    assert [task.id for task in tasks] == ["T1", "T3"]
    assert tasks[0].status is TaskStatus.TODO
    assert tasks[0].duration_days is None
    assert tasks[1].duration_days is None
    assert tasks[1].assignee == "Bob"
    assert all(task.project_id == "PRJ-1" for task in tasks)


def test_load_rejects_missing_project_line(tmp_path: Path) -> None:
    path = tmp_path / "bad.csv"
    path.write_text("id,title\n", encoding="utf-8")

    with pytest.raises(ValueError, match="missing project line"):
        load_project(path)


def test_load_rejects_wrong_header(tmp_path: Path) -> None:
    path = tmp_path / "bad.csv"
    path.write_text("#project,PRJ-1,Relaunch,Active,,\nname,start,end\n", encoding="utf-8")

    with pytest.raises(ValueError, match="missing task header"):
        load_project(path)


def test_load_reports_invalid_dates_with_line(tmp_path: Path) -> None:
    path = tmp_path / "bad.csv"
    path.write_text(
        "#project,PRJ-1,Relaunch,Active,2024-07-01,\n"
        "id,title,status,priority,start_date,end_date,duration_days,assignee\n"
        "T1,Draft,,,soon,,,\n",
        encoding="utf-8",
    )

    with pytest.raises(InvalidDateError, match="line 3"):
        load_project(path)


def test_load_rejects_unknown_status(tmp_path: Path) -> None:
    path = tmp_path / "bad.csv"
    path.write_text("#project,PRJ-1,Relaunch,Dormant,,\n", encoding="utf-8")

    with pytest.raises(ValueError, match="ProjectStatus"):
        load_project(path)
