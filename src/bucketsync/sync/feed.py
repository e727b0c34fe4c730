"""Parser for externally captured object listings.

The feed format is the JSON-lines output of ``mc ls --recursive --json``:
one object per line with ``status``, ``type``, ``lastModified``, ``size``,
``key`` and ``etag``. Keys are relative to the listed folder.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Iterator
from datetime import UTC, datetime
from pathlib import Path

from bucketsync.core.types import ObjectInfo
from bucketsync.transport.paths import join_prefix

logger = logging.getLogger(__name__)


class FeedRecordError(ValueError):
    """A single feed line could not be turned into an ObjectInfo."""


def _parse_timestamp(value: str) -> datetime:
    timestamp = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if timestamp.tzinfo is None:
        timestamp = timestamp.replace(tzinfo=UTC)
    return timestamp


def _decode(raw: str | bytes) -> str:
    if isinstance(raw, str):
        return raw
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise FeedRecordError(f"invalid UTF-8: {e}") from e


def parse_record(line: str, prefix: str = "") -> ObjectInfo | None:
    """Parse one feed line.

    Args:
        line: JSON text of one record.
        prefix: Folder prefix joined in front of the record key.

    Returns:
        ObjectInfo, or None for records that are not files.

    Raises:
        FeedRecordError: If the line is malformed.
    """
    try:
        data = json.loads(line)
    except json.JSONDecodeError as e:
        raise FeedRecordError(f"invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise FeedRecordError("record is not a JSON object")

    if data.get("status") == "error":
        raise FeedRecordError(f"listing error record: {data.get('error', data)}")
    if data.get("type", "file") != "file":
        return None

    try:
        key = str(data["key"])
        size = int(data["size"])
        etag = str(data["etag"])
        last_modified = _parse_timestamp(str(data["lastModified"]))
    except KeyError as e:
        raise FeedRecordError(f"missing field {e}") from e
    except (TypeError, ValueError) as e:
        raise FeedRecordError(f"invalid field value: {e}") from e

    if not key or key.endswith("/"):
        return None
    if size < 0:
        raise FeedRecordError(f"negative size {size}")

    return ObjectInfo(
        path=join_prefix(prefix, key),
        size=size,
        fingerprint=etag.strip('"'),
        last_modified=last_modified,
    )


def parse_listing_feed(lines: Iterable[str | bytes], prefix: str = "") -> Iterator[ObjectInfo]:
    """Parse feed lines, skipping malformed records with a warning.

    Args:
        lines: Feed lines as text or UTF-8 bytes (newlines are stripped).
        prefix: Folder prefix joined in front of every key.

    Yields:
        One ObjectInfo per file record.
    """
    for line_no, raw in enumerate(lines, start=1):
        try:
            line = _decode(raw).strip()
            if not line:
                continue
            info = parse_record(line, prefix)
        except FeedRecordError as e:
            logger.warning(f"Skipping listing record on line {line_no}: {e}")
            continue
        if info is not None:
            yield info


def read_listing_file(path: Path | str, prefix: str = "") -> Iterator[ObjectInfo]:
    """Parse a feed file lazily.

    Raises:
        OSError: If the file cannot be opened or read.
    """
    with open(path, "rb") as f:
        yield from parse_listing_feed(f, prefix)
