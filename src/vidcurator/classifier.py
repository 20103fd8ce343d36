"""Filename classification.

Derives a display title and a movie/episode classification from a bare
file name. Classification is pure: it never touches the filesystem and
all of its patterns are supplied by the caller through
:class:`ClassifierPatterns`.

The title is the text in front of the earliest "anchor" in the name,
where an anchor is either an episode marker (``S01E02``) or a four digit
year. Everything from the anchor onwards (year, quality tags, release
group, extension) is discarded.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Iterable, Optional

DEFAULT_EXTENSIONS = ("mkv", "mp4")
DEFAULT_SEASON_PATTERN = r"S(\d{2})[EX](\d{2})"
DEFAULT_YEAR_PATTERN = r"(\d{4})"
DEFAULT_IGNORE_PATTERN = r"(?<![a-z])sample(?![a-z])"


class NamingResult(IntEnum):
    """How confident the title derivation was."""

    CLEAN = 0
    UNSAFE_SLICE_FALLBACK = 1
    NO_ANCHOR_FOUND = 2


@dataclass(frozen=True)
class ClassifierPatterns:
    """Compiled matchers shared by discovery and classification.

    Built once from configuration at startup and never mutated.
    """

    season: re.Pattern[str]
    year: re.Pattern[str]
    ignore: re.Pattern[str]
    extensions: frozenset[str] = field(default_factory=lambda: frozenset(DEFAULT_EXTENSIONS))

    @classmethod
    def compile(
        cls,
        *,
        season: str = DEFAULT_SEASON_PATTERN,
        year: str = DEFAULT_YEAR_PATTERN,
        ignore: str = DEFAULT_IGNORE_PATTERN,
        extensions: Iterable[str] = DEFAULT_EXTENSIONS,
    ) -> ClassifierPatterns:
        normalized = frozenset(ext.strip().lstrip(".").lower() for ext in extensions if ext.strip())
        return cls(
            season=re.compile(season, re.IGNORECASE),
            year=re.compile(year, re.IGNORECASE),
            ignore=re.compile(ignore, re.IGNORECASE),
            extensions=normalized,
        )


@dataclass(frozen=True)
class Classification:
    title: str
    is_movie: bool
    season: Optional[int] = None
    episode: Optional[int] = None
    naming_result: NamingResult = NamingResult.CLEAN


def _anchor_offset(match: re.Match[str]) -> int:
    # Anchor on the first capture group when the pattern has one.
    return match.start(1) if match.re.groups else match.start()


def _normalize_title(raw: str) -> str:
    return raw.replace(".", " ").strip().lower()


def classify(file_name: str, patterns: ClassifierPatterns) -> Classification:
    """Classify ``file_name`` as a movie or an episode and derive its title.

    The cut point is the earlier of the episode marker and the year. The
    character directly in front of the cut is dropped (it is normally the
    separator) and any trailing dots are stripped. When no anchor exists,
    or the cut leaves nothing usable, the raw file name is used and the
    fallback is reported through ``naming_result``.
    """
    is_movie = True
    season: Optional[int] = None
    episode: Optional[int] = None
    cut: Optional[int] = None

    episode_match = patterns.season.search(file_name)
    if episode_match is not None:
        is_movie = False
        season = int(episode_match.group(1))
        episode = int(episode_match.group(2))
        cut = _anchor_offset(episode_match)

    year_match = patterns.year.search(file_name)
    if year_match is not None:
        year_cut = _anchor_offset(year_match)
        if cut is None or year_cut < cut:
            cut = year_cut

    if cut is None:
        naming_result = NamingResult.NO_ANCHOR_FOUND
        raw_title = file_name
    else:
        end = cut - 1
        sliced = file_name[:end].rstrip(".") if end >= 0 else ""
        if sliced.strip(" ._-"):
            naming_result = NamingResult.CLEAN
            raw_title = sliced
        else:
            naming_result = NamingResult.UNSAFE_SLICE_FALLBACK
            raw_title = file_name

    return Classification(
        title=_normalize_title(raw_title),
        is_movie=is_movie,
        season=season,
        episode=episode,
        naming_result=naming_result,
    )


__all__ = [
    "Classification",
    "ClassifierPatterns",
    "NamingResult",
    "classify",
]
