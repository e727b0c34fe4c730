"""Sync service: the engine's entry points for one project.

This module wires a ProjectConfig to its catalog store and transport
adapters and exposes the operations used by the CLI:

- reconcile: Merge the live source listing into the catalog
- import_listing / import_file: Additive import of a captured listing
- run: Copy every pending entry
- status / status_counts / recent_errors: Read-only reporting

All operations accept one threading.Event as a cooperative cancellation
signal shared by listing, reconciliation and copying.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING, Any

from bucketsync.catalog.store import CatalogStore
from bucketsync.core.config import DestinationType
from bucketsync.sync.feed import read_listing_file
from bucketsync.sync.reconciler import Reconciler
from bucketsync.sync.scheduler import CopyScheduler
from bucketsync.sync.status import DEFAULT_ERROR_LIMIT, StatusReporter
from bucketsync.sync.worker import SERVER_COPY_THRESHOLD
from bucketsync.transport import create_destination, create_source

if TYPE_CHECKING:
    import threading
    from collections.abc import Callable

    from bucketsync.catalog.store import CatalogEntry, StatusCount
    from bucketsync.core.config import ProjectConfig
    from bucketsync.core.types import ObjectInfo
    from bucketsync.sync.reconciler import ReconcileResult
    from bucketsync.sync.scheduler import RunResult
    from bucketsync.sync.status import SyncStatus
    from bucketsync.sync.worker import CopyResult
    from bucketsync.transport.base import Transport

logger = logging.getLogger(__name__)


def _cancel_check(cancel_event: threading.Event | None) -> Callable[[], bool] | None:
    return cancel_event.is_set if cancel_event is not None else None


class SyncService:
    """Synchronization engine bound to one project.

    Usage:
        with SyncService(config) as service:
            service.reconcile()
            result = service.run(workers=8)
    """

    def __init__(
        self,
        config: ProjectConfig,
        store: CatalogStore | None = None,
        source: Transport | None = None,
        destination: Transport | None = None,
        transport_options: dict[str, Any] | None = None,
        server_copy_threshold: int = SERVER_COPY_THRESHOLD,
    ) -> None:
        """Initialize the service.

        Args:
            config: Project configuration.
            store: Catalog store (opened from config.database_path if None).
            source: Source adapter (built from config if None).
            destination: Destination adapter (built from config if None).
            transport_options: Extra S3Transport options (retry delay, ...).
            server_copy_threshold: Size at which server-side copy is used.

        Raises:
            ConfigError: If the destination configuration is incomplete.
            CatalogError: If the catalog cannot be opened.
        """
        options = transport_options or {}
        self._config = config
        self._project = config.name
        self._source = source or create_source(config, **options)
        self._destination = destination or create_destination(config, **options)
        self._store = store or CatalogStore(config.database_path)

        dest_prefix = ""
        if config.dest_type == DestinationType.S3 and config.dest_s3 is not None:
            dest_prefix = config.dest_s3.folder

        self._reconciler = Reconciler(self._store, self._source, prefix=config.source.prefix)
        self._scheduler = CopyScheduler(
            self._store,
            self._source,
            self._destination,
            source_prefix=config.source.folder,
            dest_prefix=dest_prefix,
            server_copy_threshold=server_copy_threshold,
        )
        self._reporter = StatusReporter(self._store)

    @property
    def project(self) -> str:
        return self._project

    @property
    def store(self) -> CatalogStore:
        return self._store

    def close(self) -> None:
        """Close the catalog store."""
        self._store.close()

    def __enter__(self) -> SyncService:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # === Catalog updates ===

    def reconcile(
        self,
        listing: Iterable[ObjectInfo] | None = None,
        cancel_event: threading.Event | None = None,
    ) -> ReconcileResult:
        """Merge the source listing (or a supplied one) into the catalog."""
        result = self._reconciler.reconcile(
            self._project, listing, cancel_check=_cancel_check(cancel_event)
        )
        self._log_distribution()
        return result

    def import_listing(
        self,
        records: Iterable[ObjectInfo],
        cancel_event: threading.Event | None = None,
    ) -> ReconcileResult:
        """Add records for paths the catalog does not know yet."""
        result = self._reconciler.import_listing(
            self._project, records, cancel_check=_cancel_check(cancel_event)
        )
        self._log_distribution()
        return result

    def import_file(
        self,
        path: Path | str,
        cancel_event: threading.Event | None = None,
    ) -> ReconcileResult:
        """Import an ``mc ls --json`` listing file.

        Keys in the file are relative to the source folder.

        Raises:
            OSError: If the file cannot be read.
        """
        logger.info(f"Importing listing from {path}")
        records = read_listing_file(path, prefix=self._config.source.folder)
        return self.import_listing(records, cancel_event=cancel_event)

    # === Copying ===

    def run(
        self,
        workers: int | None = None,
        cancel_event: threading.Event | None = None,
        on_result: Callable[[CopyResult], None] | None = None,
    ) -> RunResult:
        """Copy all pending entries.

        Args:
            workers: Worker count (defaults to the project's setting).
            cancel_event: Optional cancellation signal.
            on_result: Optional callback per finished entry.
        """
        return self._scheduler.run(
            self._project,
            workers or self._config.workers,
            cancel_check=_cancel_check(cancel_event),
            on_result=on_result,
        )

    # === Reporting ===

    def status_counts(self) -> list[StatusCount]:
        return self._reporter.status_counts(self._project)

    def recent_errors(self, limit: int = DEFAULT_ERROR_LIMIT) -> list[CatalogEntry]:
        return self._reporter.recent_errors(self._project, limit)

    def status(self, error_limit: int = DEFAULT_ERROR_LIMIT) -> SyncStatus:
        return self._reporter.snapshot(self._project, error_limit)

    def _log_distribution(self) -> None:
        logger.debug("Status distribution:")
        for count in self.status_counts():
            logger.debug(f"  - {count.status.value}: {count.count} files ({count.total_size} bytes)")
