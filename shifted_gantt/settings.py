"""User settings: theme colours and timeline tuning, persisted as YAML."""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict

import platformdirs
import yaml

from .models import ProjectStatus, TaskStatus
from .timeline import TimelineConfig

logger = logging.getLogger(__name__)

APP_NAME = "shifted-gantt"
SETTINGS_PATH = platformdirs.user_config_path(APP_NAME) / "settings.yaml"


def _default_task_colors() -> Dict[str, str]:
    return {
        TaskStatus.TODO.value: "#9ca3af",
        TaskStatus.IN_PROGRESS.value: "#3b82f6",
        TaskStatus.IN_REVIEW.value: "#facc15",
        TaskStatus.BLOCKED.value: "#ef4444",
        TaskStatus.DONE.value: "#22c55e",
        TaskStatus.PUBLISHED.value: "#9333ea",
    }


def _default_project_colors() -> Dict[str, str]:
    return {
        ProjectStatus.PLANNING.value: "#2563eb",
        ProjectStatus.ACTIVE.value: "#16a34a",
        ProjectStatus.COMPLETED.value: "#7e22ce",
        ProjectStatus.ON_HOLD.value: "#eab308",
        ProjectStatus.CANCELLED.value: "#dc2626",
    }


@dataclass
class ThemeColors:
    main_background: str = "#F5ECE0"
    main_accent: str = "#336D82"
    secondary_accent: str = "#5F99AE"
    highlight: str = "#693382"
    text_primary: str = "#1F2937"
    text_secondary: str = "#6B7280"
    weekend: str = "#ebe3d8"
    task_colors: Dict[str, str] = field(default_factory=_default_task_colors)
    project_colors: Dict[str, str] = field(default_factory=_default_project_colors)

    def task_color(self, status: TaskStatus) -> str:
        return self.task_colors.get(status.value, self.secondary_accent)

    def project_color(self, status: ProjectStatus) -> str:
        return self.project_colors.get(status.value, self.main_accent)


@dataclass
class Settings:
    """Process-wide preferences, passed explicitly to whoever needs them."""

    theme: ThemeColors = field(default_factory=ThemeColors)
    timeline: TimelineConfig = field(default_factory=TimelineConfig)
    pixels_per_day: int = 30


def load_settings(path: Path | str | None = None) -> Settings:
    """Load settings, falling back to defaults for anything not on disk."""
    settings_path = Path(path) if path is not None else SETTINGS_PATH
    if not settings_path.exists():
        logger.debug("No settings at %s, using defaults", settings_path)
        return Settings()

    try:
        raw = yaml.safe_load(settings_path.read_text(encoding="utf-8"))
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid settings file {settings_path}: {exc}") from exc
    if raw is None:
        return Settings()
    if not isinstance(raw, dict):
        raise ValueError(f"Invalid settings file {settings_path}: expected a mapping")

    theme_raw = _section(raw, "theme")
    theme_values = _known_fields(ThemeColors, theme_raw)
    # Colour maps are merged so a partial map keeps the remaining defaults.
    for key, defaults in (("task_colors", _default_task_colors()), ("project_colors", _default_project_colors())):
        if key in theme_values:
            defaults.update({str(k): str(v) for k, v in _section(theme_raw, key).items()})
            theme_values[key] = defaults

    try:
        settings = Settings(
            theme=ThemeColors(**theme_values),
            timeline=TimelineConfig(**_known_fields(TimelineConfig, _section(raw, "timeline"), cast=_as_int)),
            pixels_per_day=_as_int(raw.get("pixels_per_day", Settings.pixels_per_day)),
        )
    except ValueError as exc:
        raise ValueError(f"Invalid settings file {settings_path}: {exc}") from exc
    if settings.pixels_per_day < 1:
        raise ValueError(f"Invalid settings file {settings_path}: pixels_per_day must be >= 1")
    logger.info("Loaded settings from %s", settings_path)
    return settings


def save_settings(settings: Settings, path: Path | str | None = None) -> None:
    """Persist settings as YAML, creating the parent directory if needed."""
    settings_path = Path(path) if path is not None else SETTINGS_PATH
    settings_path.parent.mkdir(parents=True, exist_ok=True)
    settings_path.write_text(yaml.safe_dump(asdict(settings), sort_keys=False), encoding="utf-8")
    logger.info("Saved settings to %s", settings_path)


def _section(raw: Dict[str, Any], key: str) -> Dict[str, Any]:
    value = raw.get(key) or {}
    if not isinstance(value, dict):
        raise ValueError(f"Invalid settings: '{key}' must be a mapping")
    return value


def _known_fields(cls, raw: Dict[str, Any], cast=None) -> Dict[str, Any]:
    names = {f.name for f in fields(cls)}
    values = {}
    for key, value in raw.items():
        if key not in names:
            logger.warning("Ignoring unknown setting %r", key)
            continue
        values[key] = cast(value) if cast else value
    return values


def _as_int(value: Any) -> int:
    # YAML reads "yes" as a bool, which int() would accept.
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise ValueError(f"expected an integer, got {value!r}")
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"expected an integer, got {value!r}") from exc
