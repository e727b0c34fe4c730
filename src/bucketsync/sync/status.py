"""Read-only status reporting over the catalog."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from bucketsync.catalog.store import CatalogEntry, CatalogStore, StatusCount

# Number of recent errors shown by default
DEFAULT_ERROR_LIMIT = 10


@dataclass
class SyncStatus:
    """Snapshot of a project's sync progress."""

    counts: list[StatusCount] = field(default_factory=list)
    recent_errors: list[CatalogEntry] = field(default_factory=list)

    @property
    def total_files(self) -> int:
        return sum(c.count for c in self.counts)

    @property
    def total_size(self) -> int:
        return sum(c.total_size for c in self.counts)


class StatusReporter:
    """Aggregates catalog counts and failures. Never writes."""

    def __init__(self, store: CatalogStore) -> None:
        self._store = store

    def status_counts(self, project: str) -> list[StatusCount]:
        """Entries and bytes per status, ordered by status name."""
        return self._store.status_counts(project)

    def recent_errors(self, project: str, limit: int = DEFAULT_ERROR_LIMIT) -> list[CatalogEntry]:
        """Entries currently in ERROR status, most recent first."""
        return self._store.recent_errors(project, limit)

    def snapshot(self, project: str, error_limit: int = DEFAULT_ERROR_LIMIT) -> SyncStatus:
        return SyncStatus(
            counts=self.status_counts(project),
            recent_errors=self.recent_errors(project, error_limit),
        )
