"""Destination layout planning.

Turns the ordered stream of pending catalog rows into library paths:

- movies:   ``{movie_dir}/{title}[/extras]/{title} - {file_name}``
- episodes: ``{tv_dir}/{title}[/season {n}]/{file_name}``

Rows arrive grouped by ``group_key`` with the largest file of each group
first. Movie rows share one canonical title per group, tracked by the
:class:`TitleAnchor` fold: the first movie row of a group seeds the title
and any later row that dominates the group's size re-anchors it.

All destination paths are relative to the base directory, and link
targets are relative to the link's own directory, so the whole tree stays
valid when the base directory is moved or mounted elsewhere.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import PurePath
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .config import OrganizerSettings, Settings
    from .persistence import PendingTitle


@dataclass(frozen=True)
class TitleAnchor:
    """Running canonical title for the group currently being organized."""

    group_key: Optional[str] = None
    title: Optional[str] = None

    def advance(self, row: PendingTitle, anchor_threshold: float) -> TitleAnchor:
        title = self.title
        if title is None or row.group_key != self.group_key:
            title = row.title
        if row.size_deviation is not None and row.size_deviation > anchor_threshold:
            title = row.title
        return TitleAnchor(group_key=row.group_key, title=title)


@dataclass(frozen=True)
class Placement:
    row: PendingTitle
    title: str
    dest_path: PurePath
    link_target: PurePath
    is_extra: bool = False


def is_extra(size_deviation: Optional[float], extras_threshold: float) -> bool:
    return size_deviation is not None and size_deviation < extras_threshold


def build_movie_destination(
    movie_dir: PurePath,
    title: str,
    file_name: str,
    size_deviation: Optional[float],
    settings: OrganizerSettings,
) -> PurePath:
    destination = movie_dir / title
    if is_extra(size_deviation, settings.extras_threshold):
        destination = destination / settings.extras_dir
    return destination / f"{title} - {file_name}"


def build_episode_destination(
    tv_dir: PurePath,
    title: str,
    season_number: Optional[int],
    file_name: str,
) -> PurePath:
    destination = tv_dir / title
    if season_number is not None:
        destination = destination / f"season {season_number}"
    return destination / file_name


def relative_link_target(dest_path: PurePath, source_dir: PurePath, relative_path: str) -> PurePath:
    """Build the link target for a link created at ``base_dir / dest_path``.

    The link's directory sits ``len(dest_path.parts) - 1`` levels below the
    base directory, so that many ``..`` segments lead back to it before
    descending into the source tree.
    """
    depth = len(dest_path.parts) - 1
    return PurePath(*([".."] * depth)) / source_dir / relative_path


def plan_destinations(rows: Iterable[PendingTitle], settings: Settings) -> Iterator[Placement]:
    """Yield a placement for every row, in input order."""
    organizer = settings.organizer
    anchor = TitleAnchor()
    for row in rows:
        if row.is_movie:
            anchor = anchor.advance(row, organizer.anchor_threshold)
            title = anchor.title or row.title
            dest_path = build_movie_destination(
                settings.movie_dir, title, row.file_name, row.size_deviation, organizer
            )
            extra = is_extra(row.size_deviation, organizer.extras_threshold)
        else:
            title = row.title
            dest_path = build_episode_destination(settings.tv_dir, title, row.season_number, row.file_name)
            extra = False

        yield Placement(
            row=row,
            title=title,
            dest_path=dest_path,
            link_target=relative_link_target(dest_path, settings.source_dir, row.path),
            is_extra=extra,
        )
