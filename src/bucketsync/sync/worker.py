"""Copy worker: drives one catalog entry through the copy state machine.

This module provides:
- CopyOutcome: How processing of one entry ended
- CopyResult: Result of processing one entry
- CopyWorker: Copies entries from source to destination

State machine of an entry (driven only from here):

    pending/error -> copying -> exists     (destination already has it and the
                                           source has not changed since)
                             -> completed  (copy succeeded)
                             -> error      (copy failed, message stored)

A cancelled copy is rolled back from copying to pending; it is never
marked completed.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum, auto
from typing import TYPE_CHECKING

from bucketsync.core.errors import CancelledException, CatalogError
from bucketsync.core.types import COPYABLE_STATUSES, FileStatus
from bucketsync.transport.paths import map_destination_path
from bucketsync.transport.streams import CountingReader

if TYPE_CHECKING:
    from bucketsync.catalog.store import CatalogEntry, CatalogStore
    from bucketsync.transport.base import Transport

logger = logging.getLogger(__name__)

# Objects at or above this size are copied server-side when both ends are
# on the same object store
SERVER_COPY_THRESHOLD = 64 * 1024 * 1024


class CopyOutcome(Enum):
    """How processing of one entry ended."""

    COMPLETED = auto()
    EXISTS = auto()
    FAILED = auto()
    CANCELLED = auto()
    SKIPPED = auto()  # Status changed under us, not claimed


@dataclass
class CopyResult:
    """Result of processing one catalog entry.

    Attributes:
        entry_id: Catalog entry id.
        path: Source object path.
        outcome: How processing ended.
        bytes_read: Bytes read from the source through the client.
        error: Error message if failed.
        elapsed_time: Time taken in seconds.
    """

    entry_id: int
    path: str
    outcome: CopyOutcome
    bytes_read: int = 0
    error: str | None = None
    elapsed_time: float = 0.0


class CopyWorker:
    """Copies catalog entries from source to destination.

    Workers hold no state between entries; all coordination goes through
    the catalog's per-row updates.
    """

    def __init__(
        self,
        store: CatalogStore,
        source: Transport,
        destination: Transport,
        source_prefix: str = "",
        dest_prefix: str = "",
        server_copy_threshold: int = SERVER_COPY_THRESHOLD,
        worker_id: int = 0,
    ) -> None:
        """Initialize the worker.

        Args:
            store: Catalog store.
            source: Source adapter.
            destination: Destination adapter.
            source_prefix: Source folder stripped from destination paths.
            dest_prefix: Destination folder prepended to destination paths.
            server_copy_threshold: Size at which server-side copy is used.
            worker_id: Identifier used in log messages.
        """
        self._store = store
        self._source = source
        self._destination = destination
        self._source_prefix = source_prefix
        self._dest_prefix = dest_prefix
        self._server_copy_threshold = server_copy_threshold
        self._worker_id = worker_id

    def destination_path(self, entry: CatalogEntry) -> str:
        """Map an entry's source path to its destination path."""
        return map_destination_path(self._source_prefix, self._dest_prefix, entry.path)

    def copy_entry(
        self,
        entry: CatalogEntry,
        cancel_check: Callable[[], bool] | None = None,
    ) -> CopyResult:
        """Process one entry.

        Per-object failures are recorded on the entry and returned as a
        FAILED result; they never raise.

        Args:
            entry: Entry to copy (PENDING or ERROR).
            cancel_check: Optional function returning True when cancelled.

        Returns:
            CopyResult describing the outcome.

        Raises:
            CatalogError: If the catalog cannot be updated.
        """
        start_time = time.time()
        tag = f"Worker {self._worker_id}"

        def result(outcome: CopyOutcome, bytes_read: int = 0, error: str | None = None) -> CopyResult:
            return CopyResult(
                entry_id=entry.id,
                path=entry.path,
                outcome=outcome,
                bytes_read=bytes_read,
                error=error,
                elapsed_time=time.time() - start_time,
            )

        if cancel_check and cancel_check():
            return result(CopyOutcome.CANCELLED)

        if not self._store.update_status(entry.id, FileStatus.COPYING, expected=COPYABLE_STATUSES):
            logger.info(f"{tag}: {entry.path} is no longer pending, skipping")
            return result(CopyOutcome.SKIPPED)

        dest_path = self.destination_path(entry)
        logger.debug(f"{tag}: processing {entry.path} -> {dest_path}")

        try:
            if not entry.changed and self._destination.exists(dest_path):
                self._store.update_status(entry.id, FileStatus.EXISTS)
                logger.debug(f"{tag}: {dest_path} already exists at destination")
                return result(CopyOutcome.EXISTS)

            if entry.changed:
                logger.debug(f"{tag}: {entry.path} changed at source, overwriting {dest_path}")
            bytes_read = self._transfer(entry, dest_path, cancel_check)

        except CancelledException:
            self._store.update_status(entry.id, FileStatus.PENDING, expected=(FileStatus.COPYING,))
            logger.info(f"{tag}: copy of {entry.path} cancelled")
            return result(CopyOutcome.CANCELLED)

        except CatalogError:
            raise

        except Exception as e:
            message = str(e) or type(e).__name__
            logger.error(f"{tag}: failed to copy {entry.path}: {message}")
            self._store.update_status(entry.id, FileStatus.ERROR, error_message=message)
            return result(CopyOutcome.FAILED, error=message)

        self._store.update_status(entry.id, FileStatus.COMPLETED)
        logger.debug(f"{tag}: copied {entry.path} ({entry.size} bytes)")
        return result(CopyOutcome.COMPLETED, bytes_read=bytes_read)

    def _transfer(
        self,
        entry: CatalogEntry,
        dest_path: str,
        cancel_check: Callable[[], bool] | None,
    ) -> int:
        """Copy the bytes of one object.

        Returns:
            Bytes read from the source through this client (0 for
            server-side copies).
        """
        if entry.size >= self._server_copy_threshold and self._destination.can_copy_from(
            self._source
        ):
            self._destination.copy_from(self._source, entry.path, dest_path, entry.size)
            return 0

        with self._source.fetch(entry.path) as fetched:
            reader = CountingReader(fetched.stream, cancel_check)
            self._destination.put(dest_path, reader, entry.size, cancel_check=cancel_check)
            return reader.bytes_read
