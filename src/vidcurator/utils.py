from __future__ import annotations

import os
import time
from dataclasses import dataclass
from pathlib import Path, PurePath
from typing import Any, Dict, Optional

import yaml


BYTES_PER_MB = 1024 * 1024


def ensure_directory(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def now_millis() -> int:
    """Return the current wall-clock time in milliseconds since the epoch."""
    return time.time_ns() // 1_000_000


def size_in_mb(size_bytes: int) -> int:
    return size_bytes // BYTES_PER_MB


def expand_env(value: Any) -> Any:
    if isinstance(value, str):
        return os.path.expandvars(value)
    if isinstance(value, list):
        return [expand_env(item) for item in value]
    if isinstance(value, dict):
        return {key: expand_env(val) for key, val in value.items()}
    return value


def load_yaml_file(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file {path} must contain a mapping at the top level")
    return expand_env(data)


@dataclass
class LinkResult:
    created: bool
    reason: Optional[str] = None

    @property
    def code(self) -> int:
        """Numeric outcome stored in the catalog: 0 on success, 1 on failure."""
        return 0 if self.created else 1


def create_symlink(target: PurePath, link_path: Path) -> LinkResult:
    """Create ``link_path`` pointing at ``target``, creating parent directories.

    ``target`` is written verbatim into the link, so a relative target is
    resolved against the link's own directory. Existing entries are never
    replaced; a symlink that already points at ``target`` counts as created.
    """
    try:
        ensure_directory(link_path.parent)
        if link_path.is_symlink() and os.readlink(link_path) == str(target):
            return LinkResult(created=True, reason="already-linked")
        if link_path.is_symlink() or link_path.exists():
            return LinkResult(created=False, reason="destination-exists")
        link_path.symlink_to(target)
    except OSError as exc:
        return LinkResult(created=False, reason=str(exc))
    return LinkResult(created=True)
