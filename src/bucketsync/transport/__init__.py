"""Transport adapters over object stores and local directories.

This module provides:
- Transport: Abstract list/fetch/put/exists interface
- S3Transport: S3-compatible object stores
- LocalTransport: Local directory trees
- create_source / create_destination: Build adapters from a ProjectConfig
"""

from __future__ import annotations

from typing import Any

from bucketsync.core.config import DestinationType, ProjectConfig
from bucketsync.core.errors import ConfigError
from bucketsync.transport.base import Transport
from bucketsync.transport.local import LocalTransport
from bucketsync.transport.paths import join_prefix, map_destination_path
from bucketsync.transport.retry import ErrorKind, classify_error, with_retry
from bucketsync.transport.s3 import S3Transport
from bucketsync.transport.streams import CountingReader, FetchedObject


def create_source(config: ProjectConfig, **kwargs: Any) -> Transport:
    """Create the source adapter of a project."""
    return S3Transport.from_config(config.source, **kwargs)


def create_destination(config: ProjectConfig, **kwargs: Any) -> Transport:
    """Create the destination adapter of a project.

    Args:
        config: Project configuration.
        **kwargs: Extra S3Transport options (ignored for local destinations).

    Raises:
        ConfigError: If the destination details are missing.
    """
    if config.dest_type == DestinationType.LOCAL:
        if config.dest_local is None or not config.dest_local.path:
            raise ConfigError("Local destination requires a path")
        return LocalTransport(config.dest_local.path)

    if config.dest_s3 is None or not config.dest_s3.bucket:
        raise ConfigError("S3 destination requires a bucket")
    return S3Transport.from_config(config.dest_s3, **kwargs)


__all__ = [
    "CountingReader",
    "ErrorKind",
    "FetchedObject",
    "LocalTransport",
    "S3Transport",
    "Transport",
    "classify_error",
    "create_destination",
    "create_source",
    "join_prefix",
    "map_destination_path",
    "with_retry",
]
