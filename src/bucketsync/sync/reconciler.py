"""Reconciliation of observed object listings into the catalog.

This module provides:
- ReconcileResult: Counts of one reconciliation or import pass
- Reconciler: Merges a listing into the catalog

Live reconciliation inserts unknown paths and re-queues paths whose
fingerprint changed. Import is additive only: paths already in the catalog
are never edited, whatever the imported record says. Neither pass looks
at entries missing from the listing; deletions are not propagated.

Every per-object insert or update commits on its own, so an aborted pass
keeps the changes made before the failure.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from typing import TYPE_CHECKING

from bucketsync.core.errors import CancelledException, ReconcileError, TransportError

if TYPE_CHECKING:
    from bucketsync.catalog.store import CatalogStore
    from bucketsync.core.types import ObjectInfo
    from bucketsync.transport.base import Transport

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    """Outcome of a reconciliation pass.

    Attributes:
        added: New entries inserted.
        updated: Entries re-queued because their fingerprint changed.
        unchanged: Entries already known and left untouched.
    """

    added: int = 0
    updated: int = 0
    unchanged: int = 0

    @property
    def total(self) -> int:
        """Number of objects observed."""
        return self.added + self.updated + self.unchanged

    @property
    def mutations(self) -> int:
        """Number of catalog rows written."""
        return self.added + self.updated


class Reconciler:
    """Merges object listings into the catalog of a project."""

    def __init__(
        self,
        store: CatalogStore,
        source: Transport | None = None,
        prefix: str = "",
    ) -> None:
        """Initialize the reconciler.

        Args:
            store: Catalog store.
            source: Source adapter used for live enumeration.
            prefix: Listing prefix of the source folder.
        """
        self._store = store
        self._source = source
        self._prefix = prefix

    def reconcile(
        self,
        project: str,
        listing: Iterable[ObjectInfo] | None = None,
        cancel_check: Callable[[], bool] | None = None,
    ) -> ReconcileResult:
        """Merge a listing into the catalog.

        Args:
            project: Project name.
            listing: Pre-captured listing; enumerates the source when None.
            cancel_check: Optional function returning True when cancelled.

        Returns:
            ReconcileResult with pass counts.

        Raises:
            ReconcileError: If the source listing fails.
            CatalogError: If the catalog cannot be read or written.
            CancelledException: If cancellation was requested.
        """
        if listing is None:
            if self._source is None:
                raise ReconcileError("No source adapter configured for live reconciliation")
            logger.info(f"Listing {self._source.location} (prefix '{self._prefix}')...")
            listing = self._source.list(self._prefix, cancel_check=cancel_check)

        result = ReconcileResult()
        for info in self._iterate(listing, cancel_check):
            existing = self._store.get_entry(project, info.path)

            if existing is None:
                if self._store.insert_entry(project, info) is None:
                    result.unchanged += 1
                    continue
                logger.debug(
                    f"Added {info.path} (size: {info.size}, fingerprint: {info.fingerprint})"
                )
                result.added += 1
            elif existing.fingerprint != info.fingerprint:
                self._store.refresh_entry(existing.id, info)
                logger.debug(
                    f"Updated {info.path} (fingerprint changed: "
                    f"{existing.fingerprint} -> {info.fingerprint})"
                )
                result.updated += 1
            else:
                result.unchanged += 1

        logger.info(
            f"Reconciled {result.total} objects: {result.added} added, "
            f"{result.updated} updated, {result.unchanged} unchanged"
        )
        return result

    def import_listing(
        self,
        project: str,
        records: Iterable[ObjectInfo],
        cancel_check: Callable[[], bool] | None = None,
    ) -> ReconcileResult:
        """Insert records for paths the catalog does not know yet.

        Known paths are left untouched even if the record differs.

        Returns:
            ReconcileResult (updated is always 0).
        """
        result = ReconcileResult()
        for info in self._iterate(records, cancel_check):
            if self._store.get_entry(project, info.path) is not None:
                logger.debug(f"Skipping {info.path} (already in catalog)")
                result.unchanged += 1
                continue

            if self._store.insert_entry(project, info) is None:
                result.unchanged += 1
            else:
                result.added += 1

        logger.info(
            f"Imported {result.total} records: {result.added} added, "
            f"{result.unchanged} already known"
        )
        return result

    @staticmethod
    def _iterate(
        listing: Iterable[ObjectInfo],
        cancel_check: Callable[[], bool] | None,
    ) -> Iterator[ObjectInfo]:
        """Iterate a listing, converting enumeration failures into ReconcileError."""
        iterator = iter(listing)
        while True:
            if cancel_check and cancel_check():
                raise CancelledException("Reconciliation cancelled")
            try:
                info = next(iterator)
            except StopIteration:
                return
            except TransportError as e:
                raise ReconcileError(f"Source listing failed: {e}") from e
            yield info
