from __future__ import annotations

from pathlib import Path

import pytest

from vidcurator.classifier import ClassifierPatterns
from vidcurator.config import Settings
from vidcurator.persistence import CatalogStore


def write_sized_file(path: Path, size_mb: int = 0) -> Path:
    """Create ``path`` as a sparse file of ``size_mb`` megabytes."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("wb") as handle:
        handle.truncate(size_mb * 1024 * 1024)
    return path


@pytest.fixture
def patterns() -> ClassifierPatterns:
    return ClassifierPatterns.compile()


@pytest.fixture
def base_dir(tmp_path: Path) -> Path:
    base = tmp_path / "archive"
    (base / "completed").mkdir(parents=True)
    return base


@pytest.fixture
def settings(base_dir: Path, tmp_path: Path) -> Settings:
    return Settings(base_dir=base_dir, database_path=tmp_path / "catalog.db")


@pytest.fixture
def catalog(settings: Settings):
    store = CatalogStore(settings.database_path)
    yield store
    store.close()
