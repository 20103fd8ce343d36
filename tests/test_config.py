from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from vidcurator.classifier import DEFAULT_IGNORE_PATTERN
from vidcurator.config import build_config, load_config


def write_yaml(path: Path, content: str) -> Path:
    path.write_text(textwrap.dedent(content), encoding="utf-8")
    return path


class TestLoadConfig:
    def test_minimal_config_uses_defaults(self, tmp_path: Path) -> None:
        config_path = write_yaml(
            tmp_path / "vidcurator.yaml",
            f"""
            settings:
              base_dir: "{tmp_path / 'archive'}"
            """,
        )

        config = load_config(config_path)

        settings = config.settings
        assert settings.base_dir == tmp_path / "archive"
        assert settings.source_dir == Path("completed")
        assert settings.movie_dir == Path("sorted_movies")
        assert settings.tv_dir == Path("sorted_tv")
        assert settings.database_path == Path("vid_paths.db")
        assert settings.watched_root == tmp_path / "archive" / "completed"
        assert settings.dry_run is False
        assert settings.organizer.anchor_threshold == pytest.approx(0.9)
        assert settings.organizer.extras_threshold == pytest.approx(0.7)
        assert settings.organizer.extras_dir == "extras"
        assert settings.file_watcher.debounce_seconds == pytest.approx(2.0)
        assert settings.file_watcher.poll_interval == pytest.approx(1.0)
        assert settings.classifier.ignore_pattern == DEFAULT_IGNORE_PATTERN
        assert config.patterns.extensions == frozenset({"mkv", "mp4"})

    def test_full_config(self, tmp_path: Path) -> None:
        config_path = write_yaml(
            tmp_path / "vidcurator.yaml",
            f"""
            settings:
              base_dir: "{tmp_path}"
              source_dir: downloads/done
              movie_dir: library/movies
              tv_dir: library/tv
              database_path: "{tmp_path / 'state' / 'catalog.db'}"
              dry_run: true
              classifier:
                extensions: [mkv, mp4, avi]
                year_pattern: "((?:19|20)\\\\d{{2}})"
              organizer:
                anchor_threshold: 0.8
                extras_threshold: 0.5
                extras_dir: featurettes
              file_watcher:
                debounce_seconds: 10
                poll_interval: 0.5
                ignore:
                  - "*.part"
            """,
        )

        config = load_config(config_path)

        settings = config.settings
        assert settings.watched_root == tmp_path / "downloads" / "done"
        assert settings.movie_dir == Path("library/movies")
        assert settings.database_path == tmp_path / "state" / "catalog.db"
        assert settings.dry_run is True
        assert settings.organizer.extras_dir == "featurettes"
        assert settings.file_watcher.debounce_seconds == pytest.approx(10.0)
        assert settings.file_watcher.ignore == ["*.part"]
        assert config.patterns.extensions == frozenset({"mkv", "mp4", "avi"})
        assert config.patterns.year.pattern == r"((?:19|20)\d{2})"

    def test_environment_variables_are_expanded(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("ARCHIVE_ROOT", str(tmp_path / "mnt"))
        config_path = write_yaml(
            tmp_path / "vidcurator.yaml",
            """
            settings:
              base_dir: "${ARCHIVE_ROOT}/transmission_data"
            """,
        )

        config = load_config(config_path)

        assert config.settings.base_dir == tmp_path / "mnt" / "transmission_data"

    def test_top_level_must_be_mapping(self, tmp_path: Path) -> None:
        config_path = write_yaml(tmp_path / "vidcurator.yaml", "- one\n- two\n")

        with pytest.raises(ValueError, match="mapping"):
            load_config(config_path)

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "missing.yaml")


class TestValidation:
    @pytest.mark.parametrize(
        ("settings", "message"),
        [
            ({}, "settings.base_dir"),
            ({"base_dir": "/a", "source_dir": "/abs"}, "settings.source_dir"),
            ({"base_dir": "/a", "movie_dir": "../outside"}, "settings.movie_dir"),
            ({"base_dir": "/a", "classifier": {"year_pattern": "(unclosed"}}, "year_pattern"),
            ({"base_dir": "/a", "classifier": {"season_pattern": r"S(\d{2})"}}, "season_pattern"),
            ({"base_dir": "/a", "classifier": {"extensions": [1]}}, "extensions"),
            ({"base_dir": "/a", "organizer": {"extras_threshold": 0.95}}, "extras_threshold"),
            ({"base_dir": "/a", "organizer": {"extras_threshold": -1}}, "extras_threshold"),
            ({"base_dir": "/a", "organizer": {"anchor_threshold": "high"}}, "anchor_threshold"),
            ({"base_dir": "/a", "organizer": {"extras_dir": "a/b"}}, "extras_dir"),
            ({"base_dir": "/a", "file_watcher": {"debounce_seconds": -1}}, "debounce_seconds"),
            ({"base_dir": "/a", "file_watcher": {"poll_interval": 0}}, "poll_interval"),
            ({"base_dir": "/a", "file_watcher": []}, "settings.file_watcher"),
        ],
    )
    def test_invalid_settings(self, settings: dict, message: str) -> None:
        with pytest.raises(ValueError, match=message):
            build_config({"settings": settings})

    def test_single_extension_string_is_accepted(self) -> None:
        config = build_config({"settings": {"base_dir": "/a", "classifier": {"extensions": "mkv"}}})

        assert config.patterns.extensions == frozenset({"mkv"})

    def test_missing_settings_section(self) -> None:
        with pytest.raises(ValueError, match="settings.base_dir"):
            build_config({})

    def test_zero_debounce_is_allowed(self) -> None:
        config = build_config({"settings": {"base_dir": "/a", "file_watcher": {"debounce_seconds": 0}}})

        assert config.settings.file_watcher.debounce_seconds == 0
