from __future__ import annotations

from dataclasses import dataclass, field
from typing import List


@dataclass(slots=True)
class ScanStats:
    seen: int = 0
    discovered: int = 0
    already_known: int = 0
    skipped: int = 0
    skipped_details: List[str] = field(default_factory=list)

    def register_discovered(self, *, inserted: bool) -> None:
        self.seen += 1
        if inserted:
            self.discovered += 1
        else:
            self.already_known += 1

    def register_skipped(self, reason: str) -> None:
        self.seen += 1
        self.skipped += 1
        self.skipped_details.append(reason)


@dataclass(slots=True)
class OrganizeStats:
    planned: int = 0
    linked: int = 0
    failed: int = 0
    write_errors: int = 0
    errors: List[str] = field(default_factory=list)

    def register_link(self, *, created: bool, detail: str | None = None) -> None:
        self.planned += 1
        if created:
            self.linked += 1
        else:
            self.failed += 1
            if detail:
                self.errors.append(detail)

    def register_write_error(self, message: str) -> None:
        self.write_errors += 1
        self.errors.append(message)

    @property
    def has_activity(self) -> bool:
        return bool(self.planned or self.write_errors)
