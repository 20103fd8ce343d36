from __future__ import annotations

import logging
import sqlite3
import time

from .config import Settings
from .destination_builder import Placement, plan_destinations
from .logging_utils import render_fields_block
from .models import OrganizeStats
from .persistence import CatalogStore
from .utils import create_symlink

LOGGER = logging.getLogger(__name__)


class Organizer:
    """Links every pending catalog row into the movie or TV library."""

    def __init__(self, catalog: CatalogStore, settings: Settings) -> None:
        self._catalog = catalog
        self._settings = settings

    def organize(self) -> OrganizeStats:
        """Run one organize pass over the pending rows.

        Link failures are terminal for a row: the destination is still
        recorded with ``link_result = 1`` and the row is not retried. Rows
        whose write-back fails stay pending for the next pass.
        """
        stats = OrganizeStats()
        started = time.perf_counter()
        rows = self._catalog.pending_rows_ordered()
        LOGGER.debug(render_fields_block("Organize Pass Started", {"Pending": len(rows)}))

        for placement in plan_destinations(rows, self._settings):
            if self._settings.dry_run:
                stats.planned += 1
                LOGGER.info(self._describe("Dry-Run: Would Link", placement))
                continue
            self._apply(placement, stats)

        if stats.has_activity:
            LOGGER.info(
                render_fields_block(
                    "Organize Pass Complete",
                    {
                        "Planned": stats.planned,
                        "Linked": stats.linked,
                        "Failed": stats.failed,
                        "Write Errors": stats.write_errors,
                        "Duration": f"{time.perf_counter() - started:.2f}s",
                    },
                )
            )
        else:
            LOGGER.debug("Organize pass found nothing pending")
        return stats

    def _apply(self, placement: Placement, stats: OrganizeStats) -> None:
        row = placement.row
        link_path = self._settings.base_dir / placement.dest_path
        result = create_symlink(placement.link_target, link_path)

        if result.created:
            LOGGER.info(self._describe("Linked", placement))
        else:
            LOGGER.error(
                render_fields_block(
                    "Symlink Failed",
                    {
                        "Row": row.id,
                        "Link": link_path,
                        "Target": placement.link_target,
                        "Reason": result.reason,
                    },
                )
            )
        stats.register_link(created=result.created, detail=f"#{row.id} {link_path}: {result.reason}")

        try:
            self._catalog.assign_destination(
                row.id,
                placement.dest_path.as_posix(),
                placement.link_target.as_posix(),
                result.code,
            )
        except sqlite3.Error as exc:
            LOGGER.error(render_fields_block("Catalog Update Failed", {"Row": row.id, "Path": row.path, "Error": exc}))
            stats.register_write_error(f"#{row.id} {row.path}: {exc}")

    @staticmethod
    def _describe(event: str, placement: Placement) -> str:
        return render_fields_block(
            event,
            {
                "Source": placement.row.path,
                "Destination": placement.dest_path,
                "Target": placement.link_target,
                "Title": placement.title,
                "Deviation": placement.row.size_deviation,
                "Extra": placement.is_extra,
            },
        )
