from __future__ import annotations

from dataclasses import dataclass

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .config import AppConfig
from .version import __version__


@dataclass
class BannerInfo:
    version: str
    dry_run: bool
    watch_mode: bool
    verbose: bool
    watched_root: str
    movie_dir: str
    tv_dir: str
    database_path: str
    extensions: list[str]
    debounce_seconds: float


def build_banner_info(config: AppConfig, *, watch_mode: bool, verbose: bool = False) -> BannerInfo:
    """Build a BannerInfo instance from AppConfig and runtime flags."""
    settings = config.settings
    return BannerInfo(
        version=__version__,
        dry_run=settings.dry_run,
        watch_mode=watch_mode,
        verbose=verbose,
        watched_root=str(settings.watched_root),
        movie_dir=str(settings.base_dir / settings.movie_dir),
        tv_dir=str(settings.base_dir / settings.tv_dir),
        database_path=str(settings.database_path),
        extensions=sorted(config.patterns.extensions),
        debounce_seconds=settings.file_watcher.debounce_seconds,
    )


def print_startup_banner(info: BannerInfo, console: Console) -> None:
    """Print a styled startup banner showing version and configuration."""
    table = Table(show_header=False, box=None, padding=(0, 1))
    table.add_column("Key", style="cyan bold", no_wrap=True)
    table.add_column("Value", style="white")

    table.add_row("Version", f"[bold]{info.version}[/bold]")

    mode_parts = []
    if info.dry_run:
        mode_parts.append("[yellow]DRY-RUN[/yellow]")
    if info.watch_mode:
        mode_parts.append("[cyan]WATCH[/cyan]")
    if info.verbose:
        mode_parts.append("[cyan]VERBOSE[/cyan]")
    if mode_parts:
        table.add_row("Mode", " ".join(mode_parts))

    table.add_row("Watching", info.watched_root)
    table.add_row("Movies", info.movie_dir)
    table.add_row("TV", info.tv_dir)
    table.add_row("Catalog", info.database_path)
    table.add_row("Extensions", ", ".join(info.extensions))
    if info.watch_mode:
        table.add_row("Debounce", f"{info.debounce_seconds:g}s")

    panel = Panel(
        table,
        title="[bold white]VIDCURATOR[/bold white]",
        border_style="blue",
        padding=(1, 2),
    )

    console.print()
    console.print(panel)
    console.print()
