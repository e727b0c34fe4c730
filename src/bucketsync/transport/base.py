"""Transport adapter abstraction.

This module provides the capability surface the sync engine requires from
a storage backend: list, fetch, put and exists. Implementations:
- S3Transport: S3-compatible object stores (AWS, MinIO, OVH, ...)
- LocalTransport: Local directory tree
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from bucketsync.core.types import ObjectInfo
    from bucketsync.transport.streams import FetchedObject, Readable


class Transport(ABC):
    """Abstract interface over one storage backend.

    Implementations must be safe for concurrent use by several threads.
    """

    @property
    @abstractmethod
    def location(self) -> str:
        """Return a human-readable description of the backend."""

    @abstractmethod
    def list(
        self,
        prefix: str = "",
        cancel_check: Callable[[], bool] | None = None,
    ) -> Iterator[ObjectInfo]:
        """Enumerate all objects under prefix, recursively.

        Directory marker entries are never yielded. The enumeration is
        lazy and cannot be resumed; restart it to recover from a failure.

        Args:
            prefix: Key prefix ("" for everything).
            cancel_check: Optional function returning True when cancelled.

        Raises:
            PermanentError: If listing fails after retries.
            CancelledException: If cancellation was requested.
        """

    @abstractmethod
    def fetch(self, path: str) -> FetchedObject:
        """Open a readable stream for one object.

        Raises:
            NotFoundError: If the object does not exist.
            PermanentError: On any other failure (after retries).
        """

    @abstractmethod
    def put(
        self,
        path: str,
        stream: Readable,
        size: int,
        cancel_check: Callable[[], bool] | None = None,
    ) -> int:
        """Write an object, replacing any existing one.

        Args:
            path: Destination path.
            stream: Readable byte stream.
            size: Expected byte count.
            cancel_check: Optional function returning True when cancelled.

        Returns:
            Number of bytes written (always equal to size).

        Raises:
            PermanentError: On failure or if the byte count differs from size.
            CancelledException: If cancellation was requested.
        """

    @abstractmethod
    def exists(self, path: str) -> bool:
        """Check if an object exists.

        Absence is a normal False result, not an error.

        Raises:
            PermanentError: If the probe itself fails.
        """

    def can_copy_from(self, source: Transport) -> bool:
        """Check if objects can be copied server-side from source."""
        return False

    def copy_from(self, source: Transport, source_path: str, path: str, size: int) -> None:
        """Copy an object server-side from source without a client round trip.

        Raises:
            NotImplementedError: If the backend pair does not support it.
        """
        raise NotImplementedError(f"{self.location} cannot copy from {source.location}")
