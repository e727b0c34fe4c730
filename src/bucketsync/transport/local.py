"""Local filesystem transport adapter.

Objects map to files under a root directory; object paths are always
slash-separated and relative to the root. Writes are atomic: data goes to
a hidden sibling temporary file which is fsynced and renamed into place,
so an interrupted write never leaves a truncated file at the final path.
"""

from __future__ import annotations

import contextlib
import logging
import os
import secrets
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING

from bucketsync.core.errors import CancelledException, NotFoundError, PermanentError
from bucketsync.core.types import ObjectInfo
from bucketsync.transport.base import Transport
from bucketsync.transport.streams import COPY_BUFFER_SIZE, FetchedObject

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from bucketsync.transport.streams import Readable

logger = logging.getLogger(__name__)

TEMP_SUFFIX = ".bsync-tmp"


def is_temp_file(name: str) -> bool:
    """Check if a file name is an in-progress write."""
    return name.startswith(".") and name.endswith(TEMP_SUFFIX)


def local_fingerprint(stat: os.stat_result) -> str:
    """Cheap change marker for a local file (size and mtime)."""
    return f"{stat.st_size:x}-{stat.st_mtime_ns:x}"


class LocalTransport(Transport):
    """Transport over a local directory tree."""

    def __init__(self, base_path: Path | str) -> None:
        """Initialize local transport.

        Args:
            base_path: Root directory; created if missing.
        """
        self._base_path = Path(base_path).expanduser().resolve()
        self._base_path.mkdir(parents=True, exist_ok=True)

    @property
    def base_path(self) -> Path:
        return self._base_path

    @property
    def location(self) -> str:
        """Return the local root path."""
        return f"Local filesystem: {self._base_path}"

    def _full_path(self, path: str) -> Path:
        """Resolve an object path under the root.

        Raises:
            PermanentError: If the path is empty or escapes the root.
        """
        parts = [p for p in path.split("/") if p not in ("", ".")]
        if not parts or ".." in parts:
            raise PermanentError(f"Invalid object path: {path!r}", path)
        return self._base_path.joinpath(*parts)

    def list(
        self,
        prefix: str = "",
        cancel_check: Callable[[], bool] | None = None,
    ) -> Iterator[ObjectInfo]:
        """Walk the tree and yield every regular file under prefix."""
        for dirpath, dirnames, filenames in os.walk(self._base_path):
            if cancel_check and cancel_check():
                raise CancelledException("Listing cancelled")
            dirnames.sort()

            for name in sorted(filenames):
                if is_temp_file(name):
                    continue
                full = Path(dirpath) / name
                key = full.relative_to(self._base_path).as_posix()
                if not key.startswith(prefix):
                    continue
                try:
                    stat = full.stat()
                except FileNotFoundError:
                    continue  # Removed while walking
                except OSError as e:
                    raise PermanentError(f"Cannot stat {key}: {e}", key) from e
                yield ObjectInfo(
                    path=key,
                    size=stat.st_size,
                    fingerprint=local_fingerprint(stat),
                    last_modified=datetime.fromtimestamp(stat.st_mtime, UTC),
                )

    def fetch(self, path: str) -> FetchedObject:
        """Open a file for reading."""
        full = self._full_path(path)
        try:
            stream = open(full, "rb")  # noqa: SIM115
        except FileNotFoundError as e:
            raise NotFoundError(f"File not found: {path}", path) from e
        except OSError as e:
            raise PermanentError(f"Cannot open {path}: {e}", path) from e

        try:
            size = os.fstat(stream.fileno()).st_size
        except OSError as e:
            stream.close()
            raise PermanentError(f"Cannot stat {path}: {e}", path) from e
        return FetchedObject(path=path, stream=stream, size=size)

    def put(
        self,
        path: str,
        stream: Readable,
        size: int,
        cancel_check: Callable[[], bool] | None = None,
    ) -> int:
        """Write a stream to path atomically.

        Creates parent directories, writes to a temporary sibling, fsyncs
        and renames into place. The temporary file is removed on any failure.
        """
        full = self._full_path(path)
        tmp_path = full.with_name(f".{full.name}.{secrets.token_hex(4)}{TEMP_SUFFIX}")
        written = 0
        committed = False

        logger.debug(f"Saving file to: {full}")
        try:
            full.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "wb") as f:
                while True:
                    if cancel_check and cancel_check():
                        raise CancelledException(f"Write of {path} cancelled")
                    data = stream.read(COPY_BUFFER_SIZE)
                    if not data:
                        break
                    f.write(data)
                    written += len(data)
                f.flush()
                os.fsync(f.fileno())

            if written != size:
                raise PermanentError(
                    f"Short write for {path}: wrote {written} bytes, expected {size}", path
                )

            os.replace(tmp_path, full)
            committed = True
        except OSError as e:
            raise PermanentError(f"Cannot write {path}: {e}", path) from e
        finally:
            if not committed:
                with contextlib.suppress(OSError):
                    tmp_path.unlink(missing_ok=True)

        logger.debug(f"Wrote {written} bytes to {full}")
        return written

    def exists(self, path: str) -> bool:
        """Stat the file; absence is False."""
        full = self._full_path(path)
        try:
            full.stat()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise PermanentError(f"Cannot stat {path}: {e}", path) from e
        return True
