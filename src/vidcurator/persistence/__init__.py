"""Persistence layer for the title catalog.

Public API:
- TitleRecord: One cataloged video file
- PendingTitle: A pending row annotated with its group's size statistics
- CatalogStore: SQLite-backed store of discovered titles

Example:
    from vidcurator.persistence import CatalogStore, TitleRecord

    store = CatalogStore(Path("vid_paths.db"))
    store.insert_if_absent(TitleRecord(
        path="Movie.Name.2020/Movie.Name.2020.mkv",
        file_name="Movie.Name.2020.mkv",
        title="movie name",
        file_size_mb=2000,
        group_key="Movie.Name.2020",
        is_movie=True,
    ))
"""

from .catalog import CatalogStore, PendingTitle, TitleRecord

__all__ = [
    "CatalogStore",
    "PendingTitle",
    "TitleRecord",
]
