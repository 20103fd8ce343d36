"""Source file discovery and filtering.

Decides which files under the watched root are video candidates: the
extension must be on the allow-list, and names matching the ignore
pattern (sample clips) or macOS resource forks are dropped before they
ever reach the classifier.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from .classifier import ClassifierPatterns
from .logging_utils import render_fields_block

LOGGER = logging.getLogger(__name__)


def has_video_extension(path: Path, patterns: ClassifierPatterns) -> bool:
    suffix = path.suffix.lstrip(".").lower()
    return bool(suffix) and suffix in patterns.extensions


def is_ignored_name(file_name: str, patterns: ClassifierPatterns) -> bool:
    """Check if a file name matches the ignore pattern (sample files by default)."""
    return patterns.ignore.search(file_name) is not None


def skip_reason_for_source_file(path: Path, patterns: ClassifierPatterns) -> str | None:
    """Check if a source file should be skipped.

    Args:
        path: Path to the source file
        patterns: Extension allow-list and ignore pattern

    Returns:
        A string describing why the file should be skipped, or None if it is a candidate
    """
    name = path.name
    if name.startswith("._") and len(name) > 2:
        return "macOS resource fork (._ prefix)"
    if not has_video_extension(path, patterns):
        return "extension not allowed"
    if is_ignored_name(name, patterns):
        return "matches ignore pattern"
    return None


def iter_tree(root: Path) -> Iterable[Path]:
    """Yield ``root`` and every regular file below it, skipping symlinks.

    Returns an empty list when ``root`` does not exist.
    """
    if not root.exists():
        LOGGER.warning(render_fields_block("Scan Root Missing", {"Path": root}))
        return []
    if root.is_file():
        return [root]
    return _walk(root)


def _walk(root: Path) -> Iterable[Path]:
    for path in root.rglob("*"):
        if path.is_symlink():
            LOGGER.debug(render_fields_block("Skipping Source File", {"Source": path, "Reason": "symlink"}))
            continue
        if not path.is_file():
            continue
        yield path
