"""Installed package version lookup."""

from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

_FALLBACK_VERSION = "unknown"


def get_version() -> str:
    try:
        return version("vidcurator")
    except PackageNotFoundError:
        return _FALLBACK_VERSION


__version__ = get_version()
