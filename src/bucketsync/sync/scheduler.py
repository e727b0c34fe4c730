"""Copy scheduler: drains pending catalog entries through a worker pool.

This module provides:
- partition: Split entries across workers without overlap
- RunResult: Aggregate outcome of one run
- CopyScheduler: Bounded-concurrency copy engine

Entries are partitioned across workers before dispatch rather than pulled
from a shared queue, so no entry is ever handled by two workers in one
run. Workers share the two adapters and the catalog store, nothing else.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, TypeVar

from bucketsync.core.types import FileStatus
from bucketsync.sync.worker import SERVER_COPY_THRESHOLD, CopyOutcome, CopyResult, CopyWorker

if TYPE_CHECKING:
    from bucketsync.catalog.store import CatalogEntry, CatalogStore
    from bucketsync.transport.base import Transport

logger = logging.getLogger(__name__)

T = TypeVar("T")


def partition(items: Sequence[T], worker_count: int) -> list[list[T]]:
    """Assign every item to exactly one worker, round-robin.

    Args:
        items: Items in dispatch order.
        worker_count: Number of workers (>= 1).

    Returns:
        One list per worker that has work (at most worker_count lists).

    Raises:
        ValueError: If worker_count is less than 1.
    """
    if worker_count < 1:
        raise ValueError(f"worker_count must be at least 1, got {worker_count}")
    count = min(worker_count, len(items))
    return [list(items[i::count]) for i in range(count)]


@dataclass
class RunResult:
    """Outcome of one scheduler run.

    Attributes:
        total: Entries picked up by the run.
        completed: Entries copied.
        exists: Entries skipped because the destination had them.
        failed: Entries that ended in ERROR.
        cancelled: Entries not finished because of cancellation.
        skipped: Entries whose status changed before they were claimed.
        recovered: Entries reset from a previously interrupted run.
        bytes_read: Bytes streamed from the source.
        elapsed_time: Run duration in seconds.
        failures: Results of failed entries.
    """

    total: int = 0
    completed: int = 0
    exists: int = 0
    failed: int = 0
    cancelled: int = 0
    skipped: int = 0
    recovered: int = 0
    bytes_read: int = 0
    elapsed_time: float = 0.0
    failures: list[CopyResult] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """True when no entry failed and the run was not interrupted."""
        return self.failed == 0 and self.cancelled == 0

    def add(self, result: CopyResult) -> None:
        """Account for one entry result."""
        self.bytes_read += result.bytes_read
        if result.outcome == CopyOutcome.COMPLETED:
            self.completed += 1
        elif result.outcome == CopyOutcome.EXISTS:
            self.exists += 1
        elif result.outcome == CopyOutcome.FAILED:
            self.failed += 1
            self.failures.append(result)
        elif result.outcome == CopyOutcome.CANCELLED:
            self.cancelled += 1
        else:
            self.skipped += 1


class CopyScheduler:
    """Copies every pending entry of a project with a fixed-size worker pool.

    Usage:
        scheduler = CopyScheduler(store, source, destination)
        result = scheduler.run("backup", worker_count=8)
        if not result.success:
            ...
    """

    def __init__(
        self,
        store: CatalogStore,
        source: Transport,
        destination: Transport,
        source_prefix: str = "",
        dest_prefix: str = "",
        server_copy_threshold: int = SERVER_COPY_THRESHOLD,
    ) -> None:
        """Initialize the scheduler.

        Args:
            store: Catalog store shared by all workers.
            source: Source adapter shared by all workers.
            destination: Destination adapter shared by all workers.
            source_prefix: Source folder stripped from destination paths.
            dest_prefix: Destination folder prepended to destination paths.
            server_copy_threshold: Size at which server-side copy is used.
        """
        self._store = store
        self._source = source
        self._destination = destination
        self._source_prefix = source_prefix
        self._dest_prefix = dest_prefix
        self._server_copy_threshold = server_copy_threshold

    def run(
        self,
        project: str,
        worker_count: int,
        cancel_check: Callable[[], bool] | None = None,
        on_result: Callable[[CopyResult], None] | None = None,
        limit: int = 0,
    ) -> RunResult:
        """Copy all PENDING and ERROR entries of a project.

        Entries left in COPYING by an interrupted earlier run are first
        returned to PENDING so a re-run converges.

        Args:
            project: Project name.
            worker_count: Number of concurrent workers (>= 1).
            cancel_check: Optional function returning True when cancelled.
            on_result: Optional callback per finished entry (serialized).
            limit: Maximum number of entries to process (0 means all).

        Returns:
            RunResult; check .success for the aggregate outcome.

        Raises:
            ValueError: If worker_count is less than 1.
            CatalogError: If the catalog fails; the run is stopped.
        """
        if worker_count < 1:
            raise ValueError(f"worker_count must be at least 1, got {worker_count}")

        start_time = time.time()
        run_result = RunResult()

        run_result.recovered = self._store.reset_status(
            project, FileStatus.COPYING, FileStatus.PENDING
        )
        if run_result.recovered:
            logger.info(f"Recovered {run_result.recovered} entries from an interrupted run")

        entries = self._store.pending_entries(project, limit)
        run_result.total = len(entries)
        logger.info(f"Found {len(entries)} pending files to sync")
        if not entries:
            return run_result

        partitions = partition(entries, worker_count)
        logger.info(f"Starting sync with {len(partitions)} workers...")

        lock = threading.Lock()
        stop = threading.Event()
        fatal: list[BaseException] = []

        def should_stop() -> bool:
            return stop.is_set() or bool(cancel_check and cancel_check())

        def record(result: CopyResult) -> None:
            with lock:
                run_result.add(result)
                if on_result:
                    on_result(result)

        def worker_loop(worker_id: int, assigned: list[CatalogEntry]) -> None:
            worker = CopyWorker(
                self._store,
                self._source,
                self._destination,
                source_prefix=self._source_prefix,
                dest_prefix=self._dest_prefix,
                server_copy_threshold=self._server_copy_threshold,
                worker_id=worker_id,
            )
            for entry in assigned:
                try:
                    record(worker.copy_entry(entry, should_stop))
                except Exception as e:
                    logger.exception(f"Worker {worker_id}: fatal error on {entry.path}")
                    with lock:
                        fatal.append(e)
                    stop.set()
                    return

        threads = [
            threading.Thread(
                target=worker_loop,
                args=(i, assigned),
                name=f"CopyWorker-{i}",
                daemon=True,
            )
            for i, assigned in enumerate(partitions)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        run_result.elapsed_time = time.time() - start_time

        if fatal:
            raise fatal[0]

        logger.info(
            f"Sync finished in {run_result.elapsed_time:.1f}s: "
            f"{run_result.completed} completed, {run_result.exists} already present, "
            f"{run_result.failed} failed, {run_result.cancelled} cancelled"
        )
        return run_result
