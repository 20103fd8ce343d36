"""SQLite-backed catalog of discovered titles.

Every video file found under the watched root gets exactly one row,
keyed by its path relative to that root. Rows are written twice at
most: once when the scanner first sees the file, and once when the
organizer records where the file was linked. A row whose ``dest_path``
is NULL is still pending.
"""

from __future__ import annotations

import sqlite3
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

from ..classifier import NamingResult

if TYPE_CHECKING:
    from collections.abc import Iterator


@dataclass
class TitleRecord:
    """One cataloged video file.

    Attributes:
        path: Path relative to the watched root (unique key)
        file_name: Base file name
        title: Cleaned display title
        file_size_mb: File size in whole megabytes
        group_key: First path component under the watched root
        is_movie: Whether the file was classified as a movie
        season_number: Parsed season (episodes only)
        episode_number: Parsed episode (episodes only)
        naming_result: How the title was derived
        dest_path: Link location relative to the base directory, once organized
        symlink_path: Relative target written into the link, once organized
        link_result: 0 when the link was created, 1 when it failed
        id: Row id assigned by the database
    """

    path: str
    file_name: str
    title: str
    file_size_mb: int
    group_key: str
    is_movie: bool
    season_number: Optional[int] = None
    episode_number: Optional[int] = None
    naming_result: NamingResult = NamingResult.CLEAN
    dest_path: Optional[str] = None
    symlink_path: Optional[str] = None
    link_result: Optional[int] = None
    id: Optional[int] = None

    @property
    def is_pending(self) -> bool:
        return self.dest_path is None


@dataclass(frozen=True)
class PendingTitle:
    """A pending catalog row together with its group statistics."""

    id: int
    path: str
    file_name: str
    title: str
    file_size_mb: int
    group_key: str
    is_movie: bool
    season_number: Optional[int]
    episode_number: Optional[int]
    naming_result: NamingResult
    files_in_group: int
    size_deviation: Optional[float]


# size_deviation is NULL when the group's mean size is zero.
_PENDING_QUERY = """
    SELECT
        id, path, file_name, title, file_size, group_key, is_movie,
        season_number, episode_number, naming_result,
        files_in_group,
        CASE WHEN group_total = 0 THEN NULL
             ELSE 1.0 * file_size / (1.0 * group_total / files_in_group)
        END AS size_deviation
    FROM (
        SELECT
            *,
            count(*) OVER (PARTITION BY group_key) AS files_in_group,
            sum(file_size) OVER (PARTITION BY group_key) AS group_total
        FROM titles
        WHERE dest_path IS NULL
    )
    ORDER BY group_key ASC, size_deviation DESC, id ASC
"""


class CatalogStore:
    """SQLite-backed store for discovered titles.

    Each thread that touches the store gets its own connection, so the
    watcher thread and the main thread never share a handle. Write
    serialization between them is left to SQLite (WAL mode).
    """

    SCHEMA_VERSION = 1

    def __init__(self, db_path: Path, *, timeout: float = 5.0) -> None:
        self._db_path = db_path
        self._timeout = timeout
        self._local = threading.local()
        self._init_db()

    @property
    def db_path(self) -> Path:
        return self._db_path

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create the database connection owned by the current thread."""
        connection = getattr(self._local, "connection", None)
        if connection is None:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
            connection = sqlite3.connect(self._db_path, timeout=self._timeout)
            connection.execute("PRAGMA journal_mode=WAL")
            connection.row_factory = sqlite3.Row
            self._local.connection = connection
        return connection

    def _init_db(self) -> None:
        conn = self._get_connection()
        conn.execute("""
            CREATE TABLE IF NOT EXISTS schema_version (
                version INTEGER PRIMARY KEY
            )
        """)
        row = conn.execute("SELECT version FROM schema_version LIMIT 1").fetchone()
        current_version = row["version"] if row else 0
        if current_version < self.SCHEMA_VERSION:
            self._migrate_schema(current_version)

    def _migrate_schema(self, from_version: int) -> None:
        conn = self._get_connection()

        if from_version < 1:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS titles (
                    id              INTEGER PRIMARY KEY AUTOINCREMENT,
                    path            TEXT NOT NULL,
                    title           TEXT NOT NULL,
                    file_name       TEXT NOT NULL,
                    file_size       INTEGER NOT NULL,
                    group_key       TEXT NOT NULL,
                    is_movie        BOOL NOT NULL,
                    season_number   INTEGER,
                    episode_number  INTEGER,
                    naming_result   INTEGER,
                    symlink_path    TEXT,
                    dest_path       TEXT,
                    link_result     INTEGER
                )
            """)
            conn.execute("CREATE UNIQUE INDEX IF NOT EXISTS idx_titles_path ON titles(path)")
            conn.execute("CREATE INDEX IF NOT EXISTS idx_titles_pending ON titles(group_key) WHERE dest_path IS NULL")

        conn.execute("DELETE FROM schema_version")
        conn.execute("INSERT INTO schema_version (version) VALUES (?)", (self.SCHEMA_VERSION,))
        conn.commit()

    def close(self) -> None:
        """Close the database connection for the current thread."""
        connection = getattr(self._local, "connection", None)
        if connection is not None:
            connection.close()
            self._local.connection = None

    def insert_if_absent(self, record: TitleRecord) -> bool:
        """Insert ``record`` unless its path is already cataloged.

        Existing rows are never updated.

        Returns:
            True if a new row was inserted, False if the path was already known
        """
        conn = self._get_connection()
        cursor = conn.execute(
            """
            INSERT INTO titles (
                path, file_name, title, file_size, group_key, is_movie,
                season_number, episode_number, naming_result
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(path) DO NOTHING
            """,
            (
                record.path,
                record.file_name,
                record.title,
                record.file_size_mb,
                record.group_key,
                record.is_movie,
                record.season_number,
                record.episode_number,
                int(record.naming_result),
            ),
        )
        conn.commit()
        return cursor.rowcount > 0

    def pending_rows_ordered(self) -> list[PendingTitle]:
        """Return every row without a destination, largest file of each group first.

        Rows are ordered by ``group_key`` ascending and then by
        ``size_deviation`` descending, where the deviation is the row's size
        divided by the mean size of the pending rows sharing its group key.
        """
        conn = self._get_connection()
        return [
            PendingTitle(
                id=row["id"],
                path=row["path"],
                file_name=row["file_name"],
                title=row["title"],
                file_size_mb=row["file_size"],
                group_key=row["group_key"],
                is_movie=bool(row["is_movie"]),
                season_number=row["season_number"],
                episode_number=row["episode_number"],
                naming_result=NamingResult(row["naming_result"] or 0),
                files_in_group=row["files_in_group"],
                size_deviation=row["size_deviation"],
            )
            for row in conn.execute(_PENDING_QUERY)
        ]

    def assign_destination(self, row_id: int, dest_path: str, symlink_path: str, link_result: int) -> bool:
        """Record where a pending row was linked.

        Only pending rows are updated, so calling this twice for the same row
        leaves the first outcome in place.

        Returns:
            True if the row was updated
        """
        conn = self._get_connection()
        cursor = conn.execute(
            """
            UPDATE titles
            SET dest_path = ?, symlink_path = ?, link_result = ?
            WHERE id = ? AND dest_path IS NULL
            """,
            (dest_path, symlink_path, link_result, row_id),
        )
        conn.commit()
        return cursor.rowcount > 0

    def _row_to_record(self, row: sqlite3.Row) -> TitleRecord:
        return TitleRecord(
            id=row["id"],
            path=row["path"],
            file_name=row["file_name"],
            title=row["title"],
            file_size_mb=row["file_size"],
            group_key=row["group_key"],
            is_movie=bool(row["is_movie"]),
            season_number=row["season_number"],
            episode_number=row["episode_number"],
            naming_result=NamingResult(row["naming_result"] or 0),
            dest_path=row["dest_path"],
            symlink_path=row["symlink_path"],
            link_result=row["link_result"],
        )

    def get_by_path(self, path: str) -> TitleRecord | None:
        conn = self._get_connection()
        row = conn.execute("SELECT * FROM titles WHERE path = ?", (path,)).fetchone()
        return self._row_to_record(row) if row else None

    def iter_all(self) -> Iterator[TitleRecord]:
        conn = self._get_connection()
        for row in conn.execute("SELECT * FROM titles ORDER BY group_key, path"):
            yield self._row_to_record(row)

    def get_stats(self) -> dict[str, Any]:
        """Summarize the catalog.

        Returns:
            Dictionary with ``total``, ``pending``, ``linked``, ``failed``,
            ``movies``, ``episodes`` and ``by_naming_result`` (name -> count)
        """
        conn = self._get_connection()
        row = conn.execute("""
            SELECT
                count(*) AS total,
                coalesce(sum(dest_path IS NULL), 0) AS pending,
                coalesce(sum(link_result = 0), 0) AS linked,
                coalesce(sum(link_result = 1), 0) AS failed,
                coalesce(sum(is_movie), 0) AS movies
            FROM titles
        """).fetchone()
        by_naming = {
            NamingResult(naming_row["naming_result"] or 0).name.lower(): naming_row["count"]
            for naming_row in conn.execute(
                "SELECT naming_result, count(*) AS count FROM titles GROUP BY naming_result"
            )
        }
        return {
            "total": row["total"],
            "pending": row["pending"],
            "linked": row["linked"],
            "failed": row["failed"],
            "movies": row["movies"],
            "episodes": row["total"] - row["movies"],
            "by_naming_result": by_naming,
        }
