from __future__ import annotations

import argparse
import logging
import os
import sqlite3
import sys
from collections.abc import Sequence
from pathlib import Path

import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .banner import build_banner_info, print_startup_banner
from .config import DEFAULT_CONFIG_PATH, AppConfig, load_config
from .logging_utils import render_fields_block
from .organizer import Organizer
from .persistence import CatalogStore
from .scanner import Scanner
from .version import __version__
from .watcher import ChangeClock, DebounceScheduler, WatchLoop

LOGGER = logging.getLogger(__name__)
CONSOLE = Console()

CONFIG_ENV_VAR = "VIDCURATOR_CONFIG"
LOG_FILE_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def configure_logging(level_name: str, log_file: Path | None = None) -> None:
    level = getattr(logging, level_name.upper(), logging.INFO)
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.setLevel(level)

    console_handler = RichHandler(console=Console(stderr=True), show_path=False, markup=False)
    console_handler.setLevel(level)
    root.addHandler(console_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(logging.Formatter(LOG_FILE_FORMAT))
        file_handler.setLevel(level)
        root.addHandler(file_handler)


def _resolve_config_path(args: argparse.Namespace) -> Path:
    if args.config is not None:
        return Path(args.config)
    env_value = os.getenv(CONFIG_ENV_VAR)
    if env_value:
        return Path(env_value)
    return DEFAULT_CONFIG_PATH


def _prepare(args: argparse.Namespace) -> AppConfig | None:
    level = "DEBUG" if args.verbose else (args.log_level or "INFO")
    configure_logging(level, args.log_file)

    config_path = _resolve_config_path(args)
    try:
        config = load_config(config_path)
    except FileNotFoundError:
        LOGGER.error(render_fields_block("Configuration Missing", {"Path": config_path}))
        return None
    except (ValueError, yaml.YAMLError) as exc:
        LOGGER.error(render_fields_block("Invalid Configuration", {"Path": config_path, "Error": exc}))
        return None

    if getattr(args, "dry_run", False):
        config.settings.dry_run = True
    return config


def _open_catalog(config: AppConfig) -> CatalogStore | None:
    db_path = config.settings.database_path
    try:
        return CatalogStore(db_path)
    except (sqlite3.Error, OSError) as exc:
        LOGGER.error(render_fields_block("Catalog Initialization Failed", {"Database": db_path, "Error": exc}))
        return None


def run_watch(args: argparse.Namespace) -> int:
    config = _prepare(args)
    if config is None:
        return 1
    settings = config.settings
    print_startup_banner(build_banner_info(config, watch_mode=True, verbose=args.verbose), CONSOLE)

    catalog = _open_catalog(config)
    if catalog is None:
        return 1

    watched_root = settings.watched_root
    if not watched_root.is_dir():
        LOGGER.error(render_fields_block("Watched Root Missing", {"Path": watched_root}))
        catalog.close()
        return 1

    scanner = Scanner(catalog, config.patterns, watched_root)
    scanner.scan_tree(show_progress=True)

    organizer = Organizer(catalog, settings)
    clock = ChangeClock()
    watch_loop = WatchLoop(scanner, clock, settings.file_watcher)
    try:
        watch_loop.start()
    except OSError as exc:
        LOGGER.error(render_fields_block("Watch Subscription Failed", {"Path": watched_root, "Error": exc}))
        catalog.close()
        return 1

    scheduler = DebounceScheduler(
        clock,
        organizer.organize,
        debounce_seconds=settings.file_watcher.debounce_seconds,
        poll_interval=settings.file_watcher.poll_interval,
    )
    try:
        scheduler.run_forever()
    except KeyboardInterrupt:
        LOGGER.info("Interrupted; stopping filesystem watcher")
    finally:
        watch_loop.stop()
        catalog.close()
    return 0


def run_scan(args: argparse.Namespace) -> int:
    config = _prepare(args)
    if config is None:
        return 1
    catalog = _open_catalog(config)
    if catalog is None:
        return 1
    try:
        Scanner(catalog, config.patterns, config.settings.watched_root).scan_tree(show_progress=True)
    finally:
        catalog.close()
    return 0


def run_organize(args: argparse.Namespace) -> int:
    config = _prepare(args)
    if config is None:
        return 1
    catalog = _open_catalog(config)
    if catalog is None:
        return 1
    try:
        stats = Organizer(catalog, config.settings).organize()
    finally:
        catalog.close()
    return 0 if not stats.write_errors else 1


def run_status(args: argparse.Namespace) -> int:
    config = _prepare(args)
    if config is None:
        return 1
    catalog = _open_catalog(config)
    if catalog is None:
        return 1
    try:
        stats = catalog.get_stats()
    finally:
        catalog.close()

    table = Table(title=f"Catalog: {config.settings.database_path}")
    table.add_column("Metric", style="cyan")
    table.add_column("Count", justify="right")
    for key in ("total", "pending", "linked", "failed", "movies", "episodes"):
        table.add_row(key.capitalize(), str(stats[key]))
    by_naming = stats["by_naming_result"]
    for name, count in sorted(by_naming.items()):
        table.add_row(f"Naming: {name.replace('_', ' ')}", str(count))
    CONSOLE.print(table)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="vidcurator",
        description="Catalog downloaded videos and link them into a movie/TV library.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help=f"Path to the YAML configuration (default: ${CONFIG_ENV_VAR} or {DEFAULT_CONFIG_PATH})",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: INFO)",
    )
    parser.add_argument("--log-file", type=Path, default=None, help="Also write logs to this file")

    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("run", help="Scan, then watch for changes and organize continuously")
    subparsers.add_parser("scan", help="Scan the watched root once and exit")
    organize_parser = subparsers.add_parser("organize", help="Organize pending catalog rows once and exit")
    organize_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Plan destinations without creating links or updating the catalog",
    )
    subparsers.add_parser("status", help="Show catalog statistics")
    return parser


COMMANDS = {
    "run": run_watch,
    "scan": run_scan,
    "organize": run_organize,
    "status": run_status,
}


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    command = args.command or "run"
    return COMMANDS[command](args)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
