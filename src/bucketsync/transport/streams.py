"""Byte stream helpers shared by adapters and the copy scheduler."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import BinaryIO, Protocol

from bucketsync.core.errors import CancelledException

# Read size used when streaming between adapters
COPY_BUFFER_SIZE = 1024 * 1024


class Readable(Protocol):
    """Anything with a read(size) method returning bytes."""

    def read(self, size: int = -1, /) -> bytes: ...


class CountingReader:
    """Wrap a readable stream, count bytes and observe cancellation.

    The cancel check runs before every read, so a cancelled copy unwinds at
    the next I/O boundary with CancelledException. Reports itself as not
    seekable so uploaders never try to rewind a consumed network stream.
    """

    def __init__(
        self,
        stream: Readable,
        cancel_check: Callable[[], bool] | None = None,
    ) -> None:
        self._stream = stream
        self._cancel_check = cancel_check
        self.bytes_read = 0

    def read(self, size: int = -1) -> bytes:
        if self._cancel_check and self._cancel_check():
            raise CancelledException("Transfer cancelled")
        data = self._stream.read(size)
        self.bytes_read += len(data)
        return data

    def readable(self) -> bool:
        return True

    def seekable(self) -> bool:
        return False


@dataclass
class FetchedObject:
    """Readable stream of one source object.

    Attributes:
        path: Object path.
        stream: Open byte stream.
        size: Byte length reported by the source.
    """

    path: str
    stream: BinaryIO | Readable
    size: int

    def close(self) -> None:
        close = getattr(self.stream, "close", None)
        if close is not None:
            close()

    def __enter__(self) -> FetchedObject:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
