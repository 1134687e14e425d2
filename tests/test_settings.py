from pathlib import Path

import pytest

from shifted_gantt.models import ProjectStatus, TaskStatus
from shifted_gantt.settings import Settings, ThemeColors, load_settings, save_settings
from shifted_gantt.timeline import TimelineConfig


def test_missing_file_gives_defaults(tmp_path: Path) -> None:
    settings = load_settings(tmp_path / "absent.yaml")

    assert settings == Settings()
    assert settings.timeline == TimelineConfig(padding_days=3, fallback_window_days=30, default_width_days=2)
    assert settings.pixels_per_day == 30


def test_save_and_load_roundtrip(tmp_path: Path) -> None:
    path = tmp_path / "nested" / "settings.yaml"
    settings = Settings(
        theme=ThemeColors(main_accent="#000000"),
        timeline=TimelineConfig(padding_days=7),
        pixels_per_day=24,
    )

    save_settings(settings, path)

    assert load_settings(path) == settings


def test_partial_file_keeps_remaining_defaults(tmp_path: Path) -> None:
    path = tmp_path / "settings.yaml"
    path.write_text(
        "theme:\n"
        "  highlight: '#ff0000'\n"
        "  task_colors:\n"
        "    Done: '#00ff00'\n"
        "timeline:\n"
        "  default_width_days: 1\n"
        "  bogus: 4\n",
        encoding="utf-8",
    )

    settings = load_settings(path)

    assert settings.theme.highlight == "#ff0000"
    assert settings.theme.main_accent == ThemeColors().main_accent
    assert settings.theme.task_color(TaskStatus.DONE) == "#00ff00"
    assert settings.theme.task_color(TaskStatus.TODO) == ThemeColors().task_color(TaskStatus.TODO)
    assert settings.theme.project_color(ProjectStatus.ACTIVE) == ThemeColors().project_color(ProjectStatus.ACTIVE)
    assert settings.timeline == TimelineConfig(default_width_days=1)


def test_empty_file_gives_defaults(tmp_path: Path) -> None:
    path = tmp_path / "settings.yaml"
    path.write_text("", encoding="utf-8")

    assert load_settings(path) == Settings()


@pytest.mark.parametrize(
    "content",
    [
        "- just\n- a list\n",
        "theme: [1, 2]\n",
        "theme: {unclosed\n",
        "timeline: {padding_days: -5}\n",
        "timeline: {fallback_window_days: -1}\n",
        "timeline: {default_width_days: 0}\n",
        "timeline: {padding_days: [1]}\n",
        "timeline: {padding_days: soon}\n",
        "pixels_per_day: [1]\n",
        "pixels_per_day: null\n",
        "pixels_per_day: 0\n",
        "pixels_per_day: yes\n",
    ],
)
def test_malformed_settings_raise(tmp_path: Path, content: str) -> None:
    path = tmp_path / "settings.yaml"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(ValueError):
        load_settings(path)
