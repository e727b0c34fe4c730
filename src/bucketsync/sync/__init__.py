"""Synchronization engine.

Architecture:
    Reconciler (source listing -> catalog)
    CopyScheduler (catalog -> workers -> transports -> catalog)
    StatusReporter (catalog -> counts, errors)

Components:
- **Reconciler**: Merges live or imported listings into the catalog
- **CopyScheduler**: Partitions pending entries across a fixed worker pool
- **CopyWorker**: Drives one entry through copying -> exists/completed/error
- **StatusReporter**: Read-only aggregates for observability
- **SyncService**: Wires the components to one ProjectConfig
"""

from bucketsync.sync.feed import parse_listing_feed, parse_record, read_listing_file
from bucketsync.sync.reconciler import ReconcileResult, Reconciler
from bucketsync.sync.scheduler import CopyScheduler, RunResult, partition
from bucketsync.sync.service import SyncService
from bucketsync.sync.status import StatusReporter, SyncStatus
from bucketsync.sync.worker import (
    SERVER_COPY_THRESHOLD,
    CopyOutcome,
    CopyResult,
    CopyWorker,
)

__all__ = [
    "SERVER_COPY_THRESHOLD",
    "CopyOutcome",
    "CopyResult",
    "CopyScheduler",
    "CopyWorker",
    "ReconcileResult",
    "Reconciler",
    "RunResult",
    "StatusReporter",
    "SyncService",
    "SyncStatus",
    "parse_listing_feed",
    "parse_record",
    "partition",
    "read_listing_file",
]
