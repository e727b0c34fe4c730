"""Shared types for bucketsync.

This module defines types and enums used by the catalog, the reconciler
and the copy scheduler.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class FileStatus(str, Enum):
    """Sync status of a catalog entry.

    NOT_FOUND is reserved for objects that vanish at the source between
    listing and copy; the scheduler does not currently produce it.
    """

    PENDING = "pending"
    COPYING = "copying"
    COMPLETED = "completed"
    EXISTS = "exists"
    NOT_FOUND = "not_found"
    ERROR = "error"


# Statuses the copy scheduler picks up on every run
COPYABLE_STATUSES: tuple[FileStatus, ...] = (FileStatus.PENDING, FileStatus.ERROR)


@dataclass(frozen=True)
class ObjectInfo:
    """One object as observed in a source listing.

    Attributes:
        path: Full slash-separated key, including any folder prefix.
        size: Byte length.
        fingerprint: Opaque change marker (e.g. an ETag), compared for equality only.
        last_modified: Source-reported modification time.
    """

    path: str
    size: int
    fingerprint: str
    last_modified: datetime
