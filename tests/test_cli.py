from __future__ import annotations

import argparse
import textwrap
from io import StringIO
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from rich.console import Console

from conftest import write_sized_file
from vidcurator import cli
from vidcurator.persistence import CatalogStore


def _write_minimal_config(path: Path, base_dir: Path, db_path: Path, extra: str = "") -> Path:
    path.write_text(
        textwrap.dedent(
            f"""
            settings:
              base_dir: "{base_dir}"
              database_path: "{db_path}"
            """
        )
        + textwrap.dedent(extra),
        encoding="utf-8",
    )
    return path


@pytest.fixture
def console_output(monkeypatch) -> StringIO:
    output = StringIO()
    monkeypatch.setattr("vidcurator.cli.configure_logging", lambda *args, **kwargs: None)
    monkeypatch.setattr("vidcurator.cli.CONSOLE", Console(file=output, width=120))
    return output


@pytest.fixture
def archive(tmp_path: Path) -> Path:
    base = tmp_path / "archive"
    write_sized_file(base / "completed" / "Movie.Name.2020" / "Movie.Name.2020.mkv", 20)
    write_sized_file(base / "completed" / "ShowFolder" / "Show.S01E01.mkv", 2)
    return base


@pytest.fixture
def config_path(tmp_path: Path, archive: Path) -> Path:
    return _write_minimal_config(tmp_path / "vidcurator.yaml", archive, tmp_path / "catalog.db")


def _catalog_stats(db_path: Path) -> dict:
    store = CatalogStore(db_path)
    try:
        return store.get_stats()
    finally:
        store.close()


def test_scan_catalogs_files(tmp_path, config_path, console_output) -> None:
    assert cli.main(["--config", str(config_path), "scan"]) == 0

    stats = _catalog_stats(tmp_path / "catalog.db")
    assert stats["total"] == 2
    assert stats["pending"] == 2


def test_organize_links_pending_rows(tmp_path, archive, config_path, console_output) -> None:
    cli.main(["--config", str(config_path), "scan"])

    assert cli.main(["--config", str(config_path), "organize"]) == 0

    assert (archive / "sorted_movies" / "movie name" / "movie name - Movie.Name.2020.mkv").is_symlink()
    assert (archive / "sorted_tv" / "show" / "season 1" / "Show.S01E01.mkv").is_symlink()
    assert _catalog_stats(tmp_path / "catalog.db")["linked"] == 2


def test_organize_dry_run_flag(tmp_path, archive, config_path, console_output) -> None:
    cli.main(["--config", str(config_path), "scan"])

    assert cli.main(["--config", str(config_path), "organize", "--dry-run"]) == 0

    assert not (archive / "sorted_movies").exists()
    assert _catalog_stats(tmp_path / "catalog.db")["pending"] == 2


def test_status_prints_counts(config_path, console_output) -> None:
    cli.main(["--config", str(config_path), "scan"])

    assert cli.main(["--config", str(config_path), "status"]) == 0

    text = console_output.getvalue()
    assert "Total" in text
    assert "Pending" in text
    assert "Naming: clean" in text


def test_config_from_environment(tmp_path, config_path, console_output, monkeypatch) -> None:
    monkeypatch.setenv(cli.CONFIG_ENV_VAR, str(config_path))

    assert cli.main(["scan"]) == 0
    assert _catalog_stats(tmp_path / "catalog.db")["total"] == 2


def test_missing_config_fails(tmp_path, console_output) -> None:
    assert cli.main(["--config", str(tmp_path / "missing.yaml"), "scan"]) == 1


def test_invalid_config_fails(tmp_path, console_output) -> None:
    config_path = tmp_path / "vidcurator.yaml"
    config_path.write_text("settings:\n  dry_run: true\n", encoding="utf-8")

    assert cli.main(["--config", str(config_path), "status"]) == 1


def test_malformed_yaml_fails(tmp_path, console_output) -> None:
    config_path = tmp_path / "vidcurator.yaml"
    config_path.write_text("settings: [unclosed\n", encoding="utf-8")

    assert cli.main(["--config", str(config_path), "scan"]) == 1


def test_run_requires_watched_root(tmp_path, console_output) -> None:
    config_path = _write_minimal_config(tmp_path / "vidcurator.yaml", tmp_path / "absent", tmp_path / "catalog.db")

    assert cli.main(["--config", str(config_path), "run"]) == 1


def test_run_scans_watches_and_stops_on_interrupt(tmp_path, config_path, console_output, monkeypatch) -> None:
    watch_loop = MagicMock()
    monkeypatch.setattr("vidcurator.cli.WatchLoop", lambda *args, **kwargs: watch_loop)
    monkeypatch.setattr("vidcurator.cli.DebounceScheduler.run_forever", MagicMock(side_effect=KeyboardInterrupt))

    args = argparse.Namespace(
        config=config_path,
        verbose=False,
        log_level=None,
        log_file=None,
        command="run",
    )

    assert cli.run_watch(args) == 0

    watch_loop.start.assert_called_once_with()
    watch_loop.stop.assert_called_once_with()
    assert _catalog_stats(tmp_path / "catalog.db")["total"] == 2
    assert "VIDCURATOR" in console_output.getvalue()


def test_run_fails_when_watch_cannot_start(tmp_path, config_path, console_output, monkeypatch) -> None:
    watch_loop = MagicMock()
    watch_loop.start.side_effect = OSError("inotify watch limit reached")
    monkeypatch.setattr("vidcurator.cli.WatchLoop", lambda *args, **kwargs: watch_loop)

    assert cli.main(["--config", str(config_path), "run"]) == 1


def test_default_command_is_run(monkeypatch) -> None:
    calls = []
    monkeypatch.setitem(cli.COMMANDS, "run", lambda args: calls.append(args.command) or 0)

    assert cli.main([]) == 0
    assert calls == [None]


def test_parser_log_options() -> None:
    args = cli.build_parser().parse_args(["-v", "--log-file", "out.log", "organize", "--dry-run"])

    assert args.verbose is True
    assert args.log_file == Path("out.log")
    assert args.command == "organize"
    assert args.dry_run is True
