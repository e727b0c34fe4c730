"""Shared fixtures for bucketsync tests."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from datetime import UTC, datetime
from pathlib import Path

import pytest

from bucketsync.catalog import CatalogStore
from bucketsync.core.types import ObjectInfo

PROJECT = "test-project"


@pytest.fixture
def project() -> str:
    """Project name used to scope catalog queries."""
    return PROJECT


@pytest.fixture
def store(tmp_path: Path) -> Iterator[CatalogStore]:
    """Create a catalog store in a temporary directory."""
    s = CatalogStore(tmp_path / "catalog.db")
    yield s
    s.close()


@pytest.fixture
def make_info() -> Callable[..., ObjectInfo]:
    """Factory for ObjectInfo records."""

    def factory(path: str, size: int = 10, fingerprint: str = "etag-1") -> ObjectInfo:
        return ObjectInfo(
            path=path,
            size=size,
            fingerprint=fingerprint,
            last_modified=datetime(2024, 1, 15, 10, 30, tzinfo=UTC),
        )

    return factory
