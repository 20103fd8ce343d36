from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .classifier import (
    DEFAULT_EXTENSIONS,
    DEFAULT_IGNORE_PATTERN,
    DEFAULT_SEASON_PATTERN,
    DEFAULT_YEAR_PATTERN,
    ClassifierPatterns,
)
from .utils import load_yaml_file

DEFAULT_CONFIG_PATH = Path("vidcurator.yaml")


@dataclass
class ClassifierSettings:
    extensions: list[str] = field(default_factory=lambda: list(DEFAULT_EXTENSIONS))
    ignore_pattern: str = DEFAULT_IGNORE_PATTERN
    season_pattern: str = DEFAULT_SEASON_PATTERN
    year_pattern: str = DEFAULT_YEAR_PATTERN

    def compile(self) -> ClassifierPatterns:
        return ClassifierPatterns.compile(
            season=self.season_pattern,
            year=self.year_pattern,
            ignore=self.ignore_pattern,
            extensions=self.extensions,
        )


@dataclass
class OrganizerSettings:
    anchor_threshold: float = 0.90
    extras_threshold: float = 0.70
    extras_dir: str = "extras"


@dataclass
class WatcherSettings:
    debounce_seconds: float = 2.0
    poll_interval: float = 1.0
    include: list[str] = field(default_factory=list)
    ignore: list[str] = field(default_factory=list)


@dataclass
class Settings:
    base_dir: Path
    source_dir: Path = Path("completed")
    movie_dir: Path = Path("sorted_movies")
    tv_dir: Path = Path("sorted_tv")
    database_path: Path = Path("vid_paths.db")
    dry_run: bool = False
    classifier: ClassifierSettings = field(default_factory=ClassifierSettings)
    organizer: OrganizerSettings = field(default_factory=OrganizerSettings)
    file_watcher: WatcherSettings = field(default_factory=WatcherSettings)

    @property
    def watched_root(self) -> Path:
        """Absolute-or-cwd-relative directory scanned for downloads."""
        return self.base_dir / self.source_dir


@dataclass
class AppConfig:
    settings: Settings
    patterns: ClassifierPatterns


def _ensure_string_list(value: Any, *, field_name: str) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        raise ValueError(f"'{field_name}' must be provided as a list of strings")
    result: list[str] = []
    for index, entry in enumerate(value):
        if not isinstance(entry, str):
            raise ValueError(f"'{field_name}[{index}]' must be a string")
        cleaned = entry.strip()
        if cleaned:
            result.append(cleaned)
    return result


def _ensure_mapping(value: Any, *, field_name: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError(f"'{field_name}' must be provided as a mapping when specified")
    return value


def _ensure_float(data: dict[str, Any], key: str, default: float, *, field_name: str) -> float:
    try:
        return float(data.get(key, default))
    except (TypeError, ValueError) as exc:  # noqa: PERF203
        raise ValueError(f"'{field_name}' must be a number") from exc


def _relative_dir(value: Any, default: str, *, field_name: str) -> Path:
    path = Path(str(value if value is not None else default))
    if path.is_absolute():
        raise ValueError(f"'{field_name}' must be relative to 'settings.base_dir'")
    if ".." in path.parts:
        raise ValueError(f"'{field_name}' must not leave 'settings.base_dir'")
    return path


def _ensure_regex(value: Any, default: str, *, field_name: str) -> str:
    pattern = default if value is None else value
    if not isinstance(pattern, str) or not pattern:
        raise ValueError(f"'{field_name}' must be a non-empty regular expression")
    try:
        re.compile(pattern)
    except re.error as exc:
        raise ValueError(f"'{field_name}' is not a valid regular expression: {exc}") from exc
    return pattern


def _build_classifier_settings(data: dict[str, Any]) -> ClassifierSettings:
    data = _ensure_mapping(data, field_name="settings.classifier")
    extensions = _ensure_string_list(data.get("extensions"), field_name="settings.classifier.extensions")
    season = _ensure_regex(
        data.get("season_pattern"), DEFAULT_SEASON_PATTERN, field_name="settings.classifier.season_pattern"
    )
    if re.compile(season).groups < 2:
        raise ValueError("'settings.classifier.season_pattern' must capture season and episode groups")
    return ClassifierSettings(
        extensions=extensions or list(DEFAULT_EXTENSIONS),
        ignore_pattern=_ensure_regex(
            data.get("ignore_pattern"), DEFAULT_IGNORE_PATTERN, field_name="settings.classifier.ignore_pattern"
        ),
        season_pattern=season,
        year_pattern=_ensure_regex(
            data.get("year_pattern"), DEFAULT_YEAR_PATTERN, field_name="settings.classifier.year_pattern"
        ),
    )


def _build_organizer_settings(data: dict[str, Any]) -> OrganizerSettings:
    data = _ensure_mapping(data, field_name="settings.organizer")
    anchor = _ensure_float(data, "anchor_threshold", 0.90, field_name="settings.organizer.anchor_threshold")
    extras = _ensure_float(data, "extras_threshold", 0.70, field_name="settings.organizer.extras_threshold")
    if extras < 0:
        raise ValueError("'settings.organizer.extras_threshold' must be greater than or equal to 0")
    if extras > anchor:
        raise ValueError("'settings.organizer.extras_threshold' must not exceed 'anchor_threshold'")

    extras_dir = str(data.get("extras_dir", "extras")).strip()
    if not extras_dir or "/" in extras_dir or extras_dir in {".", ".."}:
        raise ValueError("'settings.organizer.extras_dir' must be a single directory name")
    return OrganizerSettings(anchor_threshold=anchor, extras_threshold=extras, extras_dir=extras_dir)


def _build_watcher_settings(data: dict[str, Any]) -> WatcherSettings:
    data = _ensure_mapping(data, field_name="settings.file_watcher")
    debounce = _ensure_float(data, "debounce_seconds", 2.0, field_name="settings.file_watcher.debounce_seconds")
    if debounce < 0:
        raise ValueError("'settings.file_watcher.debounce_seconds' must be greater than or equal to 0")
    poll = _ensure_float(data, "poll_interval", 1.0, field_name="settings.file_watcher.poll_interval")
    if poll <= 0:
        raise ValueError("'settings.file_watcher.poll_interval' must be greater than 0")

    return WatcherSettings(
        debounce_seconds=debounce,
        poll_interval=poll,
        include=_ensure_string_list(data.get("include"), field_name="settings.file_watcher.include"),
        ignore=_ensure_string_list(data.get("ignore"), field_name="settings.file_watcher.ignore"),
    )


def _build_settings(data: dict[str, Any]) -> Settings:
    data = _ensure_mapping(data, field_name="settings")
    base_dir_raw = data.get("base_dir")
    if not base_dir_raw:
        raise ValueError("'settings.base_dir' is required")

    return Settings(
        base_dir=Path(str(base_dir_raw)).expanduser(),
        source_dir=_relative_dir(data.get("source_dir"), "completed", field_name="settings.source_dir"),
        movie_dir=_relative_dir(data.get("movie_dir"), "sorted_movies", field_name="settings.movie_dir"),
        tv_dir=_relative_dir(data.get("tv_dir"), "sorted_tv", field_name="settings.tv_dir"),
        database_path=Path(str(data.get("database_path", "vid_paths.db"))).expanduser(),
        dry_run=bool(data.get("dry_run", False)),
        classifier=_build_classifier_settings(data.get("classifier")),
        organizer=_build_organizer_settings(data.get("organizer")),
        file_watcher=_build_watcher_settings(data.get("file_watcher")),
    )


def build_config(data: dict[str, Any]) -> AppConfig:
    settings = _build_settings(data.get("settings"))
    return AppConfig(settings=settings, patterns=settings.classifier.compile())


def load_config(path: Path) -> AppConfig:
    return build_config(load_yaml_file(path))
