"""Filesystem watching and debounced reorganization.

Two threads cooperate through a single :class:`ChangeClock`:

- the watchdog observer thread rescans whatever changed and bumps the
  clock whenever a video candidate was seen;
- the main thread runs :class:`DebounceScheduler`, which waits for the
  clock to stay still for the debounce window and then runs one
  organize pass.

Nothing else is shared between the two. Each thread talks to the catalog
through its own connection.
"""

from __future__ import annotations

import fnmatch
import logging
import sqlite3
import threading
import time
from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Optional

from watchdog.events import FileSystemEventHandler
from watchdog.observers import Observer

from .config import WatcherSettings
from .file_discovery import iter_tree
from .logging_utils import render_fields_block
from .scanner import Scanner
from .utils import now_millis

LOGGER = logging.getLogger(__name__)


class ChangeClock:
    """Timestamp (ms since epoch) of the most recent discovery."""

    def __init__(self, initial: Optional[int] = None, *, time_source: Callable[[], int] = now_millis) -> None:
        self._time_source = time_source
        self._lock = threading.Lock()
        self._value = time_source() if initial is None else initial

    @property
    def value(self) -> int:
        with self._lock:
            return self._value

    def bump(self, at: Optional[int] = None) -> int:
        stamp = self._time_source() if at is None else at
        with self._lock:
            self._value = stamp
        return stamp


class _ChangeHandler(FileSystemEventHandler):
    def __init__(
        self,
        scanner: Scanner,
        clock: ChangeClock,
        include: Sequence[str] = (),
        ignore: Sequence[str] = (),
    ) -> None:
        self._scanner = scanner
        self._clock = clock
        self._include = list(include)
        self._ignore = list(ignore)

    def on_created(self, event) -> None:  # type: ignore[override]
        self._handle(Path(event.src_path), bool(getattr(event, "is_directory", False)))

    def on_modified(self, event) -> None:  # type: ignore[override]
        self._handle(Path(event.src_path), bool(getattr(event, "is_directory", False)))

    def on_moved(self, event) -> None:  # type: ignore[override]
        self._handle(Path(event.dest_path), bool(getattr(event, "is_directory", False)))

    def _handle(self, path: Path, is_directory: bool) -> None:
        if is_directory or path.is_dir():
            # Every file event already carries the parent directory; a full
            # rescan of the root on each of those is never needed.
            if path.absolute() == self._scanner.watched_root.absolute():
                return
            discovered = self._scan_directory(path)
        elif self._matches(path):
            discovered = self._scan(path)
        else:
            return

        if discovered:
            stamp = self._clock.bump()
            LOGGER.debug(render_fields_block("Change Recorded", {"Path": path, "Timestamp": stamp}))

    def _scan_directory(self, directory: Path) -> bool:
        LOGGER.debug(render_fields_block("Rescanning Directory", {"Path": directory}))
        discovered = False
        for entry in iter_tree(directory):
            if not self._matches(entry):
                continue
            if self._scan(entry):
                discovered = True
        return discovered

    def _scan(self, path: Path) -> bool:
        try:
            return self._scanner.scan_path(path)
        except (OSError, sqlite3.Error) as exc:
            LOGGER.error(render_fields_block("Failed To Process Discovered File", {"Path": path, "Error": exc}))
            return False

    def _matches(self, path: Path) -> bool:
        target = str(path)
        filename = path.name
        if self._include:
            if not any(
                fnmatch.fnmatch(filename, pattern) or fnmatch.fnmatch(target, pattern) for pattern in self._include
            ):
                return False
        if self._ignore:
            if any(fnmatch.fnmatch(filename, pattern) or fnmatch.fnmatch(target, pattern) for pattern in self._ignore):
                return False
        return True


class WatchLoop:
    """Subscribes to recursive change notifications on the watched root."""

    def __init__(
        self,
        scanner: Scanner,
        clock: ChangeClock,
        settings: WatcherSettings,
        *,
        observer_factory: Callable[[], Observer] = Observer,
    ) -> None:
        self._scanner = scanner
        self._handler = _ChangeHandler(scanner, clock, settings.include, settings.ignore)
        self._observer = observer_factory()

    def start(self) -> None:
        """Start watching. Raises OSError when the root cannot be watched."""
        root = self._scanner.watched_root
        self._observer.schedule(self._handler, str(root), recursive=True)
        self._observer.start()
        LOGGER.info(render_fields_block("Filesystem Watcher Started", {"Root": root}))

    def stop(self) -> None:
        self._observer.stop()
        self._observer.join(timeout=5)


class DebounceScheduler:
    """Runs ``action`` once the change clock has been quiet long enough."""

    def __init__(
        self,
        clock: ChangeClock,
        action: Callable[[], object],
        *,
        debounce_seconds: float,
        poll_interval: float = 1.0,
        time_source: Callable[[], int] = now_millis,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._clock = clock
        self._action = action
        self._debounce_ms = int(debounce_seconds * 1000)
        self._poll_interval = poll_interval
        self._time_source = time_source
        self._sleep = sleep
        self._last_handled = 0

    @property
    def last_handled(self) -> int:
        return self._last_handled

    def poll_once(self, now: Optional[int] = None) -> bool:
        """Check the clock once; return True if the action ran."""
        requested = self._clock.value
        if requested == self._last_handled:
            return False

        now = self._time_source() if now is None else now
        elapsed = now - requested
        if elapsed <= self._debounce_ms:
            LOGGER.debug("Reorganize requested; waiting for changes to settle (%d ms elapsed)", elapsed)
            return False

        try:
            self._action()
        except Exception:  # noqa: BLE001
            LOGGER.exception("Organize pass failed; waiting for the next change")
        self._last_handled = requested
        return True

    def run_forever(self) -> None:
        while True:
            self.poll_once()
            self._sleep(self._poll_interval)


__all__ = ["ChangeClock", "DebounceScheduler", "WatchLoop"]
