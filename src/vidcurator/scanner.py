from __future__ import annotations

import logging
import sqlite3
import stat
from pathlib import Path, PurePath

from rich.progress import Progress

from .classifier import ClassifierPatterns, NamingResult, classify
from .file_discovery import iter_tree, skip_reason_for_source_file
from .logging_utils import render_fields_block
from .models import ScanStats
from .persistence import CatalogStore, TitleRecord
from .utils import size_in_mb

LOGGER = logging.getLogger(__name__)


def relative_parts(path: Path, root: Path) -> PurePath | None:
    """Return ``path`` relative to ``root``, or None when it lies outside of it."""
    try:
        relative = path.absolute().relative_to(root.absolute())
    except ValueError:
        return None
    if not relative.parts:
        return None
    return relative


class Scanner:
    """Feeds video files found under the watched root into the catalog."""

    def __init__(self, catalog: CatalogStore, patterns: ClassifierPatterns, watched_root: Path) -> None:
        self._catalog = catalog
        self._patterns = patterns
        self._root = watched_root

    @property
    def watched_root(self) -> Path:
        return self._root

    def scan_path(self, path: Path, stats: ScanStats | None = None) -> bool:
        """Catalog a single file if it is a video candidate.

        Files that vanished or whose metadata cannot be read are skipped
        quietly; they are expected while a download client is still moving
        things around.

        Returns:
            True if the file is a cataloged candidate (new or already known)
        """
        skip_reason = skip_reason_for_source_file(path, self._patterns)
        if skip_reason:
            LOGGER.debug(render_fields_block("Skipping Source File", {"Source": path, "Reason": skip_reason}))
            if stats is not None:
                stats.register_skipped(f"{path}: {skip_reason}")
            return False

        try:
            file_stat = path.lstat()
        except OSError as exc:
            LOGGER.debug(render_fields_block("Source File Unavailable", {"Source": path, "Reason": exc}))
            if stats is not None:
                stats.register_skipped(f"{path}: unavailable")
            return False
        if not stat.S_ISREG(file_stat.st_mode):
            if stats is not None:
                stats.register_skipped(f"{path}: not a regular file")
            return False

        relative = relative_parts(path, self._root)
        if relative is None:
            LOGGER.debug(render_fields_block("Skipping Source File", {"Source": path, "Reason": "outside watched root"}))
            return False

        result = classify(path.name, self._patterns)
        if result.naming_result is not NamingResult.CLEAN:
            LOGGER.debug(
                render_fields_block(
                    "Title Fallback",
                    {"File": path.name, "Result": result.naming_result.name.lower(), "Title": result.title},
                )
            )

        record = TitleRecord(
            path=relative.as_posix(),
            file_name=path.name,
            title=result.title,
            file_size_mb=size_in_mb(file_stat.st_size),
            group_key=relative.parts[0],
            is_movie=result.is_movie,
            season_number=result.season,
            episode_number=result.episode,
            naming_result=result.naming_result,
        )
        inserted = self._catalog.insert_if_absent(record)
        if inserted:
            LOGGER.info(
                render_fields_block(
                    "Discovered Title",
                    {
                        "Title": record.title,
                        "Path": record.path,
                        "Movie": record.is_movie,
                        "Season": record.season_number,
                        "Episode": record.episode_number,
                        "Size (MB)": record.file_size_mb,
                    },
                )
            )
        if stats is not None:
            stats.register_discovered(inserted=inserted)
        return True

    def scan_tree(self, root: Path | None = None, *, show_progress: bool = False) -> ScanStats:
        """Walk ``root`` (the watched root by default) and catalog every candidate."""
        root = root or self._root
        stats = ScanStats()
        files = list(iter_tree(root))

        with Progress(disable=not (show_progress and LOGGER.isEnabledFor(logging.INFO))) as progress:
            task_id = progress.add_task("Scanning", total=len(files))
            for path in files:
                try:
                    self.scan_path(path, stats)
                except sqlite3.Error as exc:
                    LOGGER.error(render_fields_block("Catalog Insert Failed", {"Source": path, "Error": exc}))
                    stats.register_skipped(f"{path}: {exc}")
                progress.advance(task_id)

        LOGGER.info(
            render_fields_block(
                "Scan Complete",
                {
                    "Root": root,
                    "Seen": stats.seen,
                    "New": stats.discovered,
                    "Known": stats.already_known,
                    "Skipped": stats.skipped,
                },
            )
        )
        return stats
