"""Path mapping between source keys and destination paths."""

from __future__ import annotations

from bucketsync.core.config import normalize_folder


def join_prefix(prefix: str, key: str) -> str:
    """Join a folder prefix and a relative key with a single slash."""
    folder = normalize_folder(prefix)
    key = key.lstrip("/")
    return f"{folder}/{key}" if folder else key


def map_destination_path(source_prefix: str, dest_prefix: str, object_path: str) -> str:
    """Map a full source key to its destination path.

    The source folder prefix is stripped so the destination root matches
    the scoped folder, then the destination prefix (if any) is prepended.

    Examples:
        >>> map_destination_path("docs/2024", "", "docs/2024/a/b.txt")
        'a/b.txt'
        >>> map_destination_path("docs", "backup", "docs/x.pdf")
        'backup/x.pdf'
        >>> map_destination_path("", "", "x.pdf")
        'x.pdf'
    """
    folder = normalize_folder(source_prefix)
    relative = object_path
    if folder and object_path.startswith(folder + "/"):
        relative = object_path[len(folder) + 1:]
    return join_prefix(dest_prefix, relative)
