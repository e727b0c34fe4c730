"""Project configuration classes for bucketsync.

This module defines the value objects the sync engine is built from. The
engine treats them as already validated; the CLI layer is responsible for
loading, overriding and persisting them.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from bucketsync.core.errors import ConfigError


def normalize_folder(folder: str | None) -> str:
    """Strip leading and trailing slashes from a folder prefix."""
    return (folder or "").strip().strip("/")


class DestinationType(str, Enum):
    """Kind of destination a project copies into."""

    S3 = "s3"
    LOCAL = "local"


@dataclass
class S3Config:
    """Configuration for an S3-compatible bucket (AWS, MinIO, OVH, ...).

    Attributes:
        endpoint: Host[:port] or full URL of the service. Empty for AWS.
        access_key: Access key ID.
        secret_key: Secret access key.
        bucket: Bucket name.
        folder: Optional folder prefix scoping the bucket.
        use_ssl: Whether to use HTTPS when the endpoint has no scheme.
        region: Region name passed to the client.
    """

    endpoint: str = ""
    access_key: str = ""
    secret_key: str = ""
    bucket: str = ""
    folder: str = ""
    use_ssl: bool = True
    region: str = "us-east-1"

    def __post_init__(self) -> None:
        """Normalize endpoint and folder."""
        self.endpoint = self.endpoint.strip().rstrip("/")
        self.folder = normalize_folder(self.folder)

    @property
    def endpoint_url(self) -> str | None:
        """Get the endpoint URL for boto3.

        Returns:
            Endpoint URL with scheme, or None to use the AWS default.
        """
        if not self.endpoint:
            return None
        if self.endpoint.startswith(("http://", "https://")):
            return self.endpoint
        scheme = "https" if self.use_ssl else "http"
        return f"{scheme}://{self.endpoint}"

    @property
    def prefix(self) -> str:
        """Listing prefix for the folder ("" for the whole bucket)."""
        return f"{self.folder}/" if self.folder else ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "endpoint": self.endpoint,
            "access_key": self.access_key,
            "secret_key": self.secret_key,
            "bucket": self.bucket,
            "folder": self.folder,
            "use_ssl": self.use_ssl,
            "region": self.region,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> S3Config:
        return cls(
            endpoint=data.get("endpoint", ""),
            access_key=data.get("access_key", ""),
            secret_key=data.get("secret_key", ""),
            bucket=data.get("bucket", ""),
            folder=data.get("folder", ""),
            use_ssl=bool(data.get("use_ssl", True)),
            region=data.get("region") or "us-east-1",
        )


@dataclass
class LocalConfig:
    """Configuration for a local filesystem destination."""

    path: str

    def to_dict(self) -> dict[str, Any]:
        return {"path": self.path}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> LocalConfig:
        return cls(path=data.get("path", ""))


@dataclass
class ProjectConfig:
    """Configuration of one sync project.

    Attributes:
        name: Project name, used to scope every catalog query.
        source: Source bucket configuration.
        dest_type: Kind of destination.
        database_path: Path to the project's catalog database.
        dest_s3: Destination bucket (when dest_type is S3).
        dest_local: Destination directory (when dest_type is LOCAL).
        workers: Default number of concurrent copy workers.
    """

    name: str
    source: S3Config
    dest_type: DestinationType
    database_path: Path
    dest_s3: S3Config | None = None
    dest_local: LocalConfig | None = None
    workers: int = 5

    def __post_init__(self) -> None:
        self.dest_type = DestinationType(self.dest_type)
        self.database_path = Path(self.database_path)

    def validate(self) -> None:
        """Check that the configuration is complete.

        Raises:
            ConfigError: If a required value is missing.
        """
        if not self.name:
            raise ConfigError("Project name is required")
        if not self.source.bucket:
            raise ConfigError("Source bucket is required")
        if self.dest_type == DestinationType.S3:
            if self.dest_s3 is None or not self.dest_s3.bucket:
                raise ConfigError("Destination bucket is required when destination type is s3")
        elif self.dest_local is None or not self.dest_local.path:
            raise ConfigError("Local path is required when destination type is local")
        if self.workers < 1:
            raise ConfigError(f"Worker count must be at least 1, got {self.workers}")

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "source": self.source.to_dict(),
            "dest_type": self.dest_type.value,
            "database_path": str(self.database_path),
            "workers": self.workers,
        }
        if self.dest_s3 is not None:
            data["dest"] = self.dest_s3.to_dict()
        if self.dest_local is not None:
            data["local"] = self.dest_local.to_dict()
        return data

    @classmethod
    def from_dict(cls, name: str, data: dict[str, Any]) -> ProjectConfig:
        """Create from a persisted dictionary.

        Raises:
            ConfigError: If the destination type is unknown.
        """
        try:
            dest_type = DestinationType(data.get("dest_type", DestinationType.S3.value))
        except ValueError as e:
            raise ConfigError(f"Unknown destination type: {data.get('dest_type')}") from e

        return cls(
            name=name,
            source=S3Config.from_dict(data.get("source", {})),
            dest_type=dest_type,
            database_path=Path(data.get("database_path", "")),
            dest_s3=S3Config.from_dict(data["dest"]) if data.get("dest") else None,
            dest_local=LocalConfig.from_dict(data["local"]) if data.get("local") else None,
            workers=int(data.get("workers", 5)),
        )
