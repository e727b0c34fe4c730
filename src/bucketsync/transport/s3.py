"""S3-compatible transport adapter (AWS, MinIO, OVH, ...)."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import boto3
from boto3.s3.transfer import TransferConfig
from botocore.config import Config
from botocore.exceptions import ClientError

from bucketsync.core.errors import PermanentError
from bucketsync.core.types import ObjectInfo
from bucketsync.transport.base import Transport
from bucketsync.transport.retry import (
    DEFAULT_MAX_ATTEMPTS,
    DEFAULT_RETRY_DELAY,
    is_not_found,
    with_retry,
)
from bucketsync.transport.streams import CountingReader, FetchedObject

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from bucketsync.core.config import S3Config
    from bucketsync.transport.streams import Readable

logger = logging.getLogger(__name__)

# Objects at or above this size use multipart transfers
MULTIPART_THRESHOLD = 64 * 1024 * 1024
MULTIPART_CHUNKSIZE = 64 * 1024 * 1024

DEFAULT_POOL_CONNECTIONS = 50


def normalize_etag(etag: str) -> str:
    """Strip the quotes S3 puts around ETags."""
    return etag.strip('"')


class S3Transport(Transport):
    """Transport over one S3 bucket.

    Every request goes through with_retry; botocore's own retries are
    disabled so the retry budget stays fixed and per call.
    """

    def __init__(
        self,
        bucket: str,
        endpoint_url: str | None = None,
        access_key: str | None = None,
        secret_key: str | None = None,
        region: str = "us-east-1",
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        multipart_threshold: int = MULTIPART_THRESHOLD,
        pool_connections: int = DEFAULT_POOL_CONNECTIONS,
    ) -> None:
        """Initialize the S3 transport.

        Args:
            bucket: Bucket name.
            endpoint_url: Custom endpoint URL (for MinIO, OVH, etc.).
            access_key: Access key ID.
            secret_key: Secret access key.
            region: Region name (default: us-east-1).
            max_attempts: Attempts per request for transient failures.
            retry_delay: Seconds between attempts.
            multipart_threshold: Size at which uploads and copies go multipart.
            pool_connections: Size of the HTTP connection pool.
        """
        self._bucket = bucket
        self._endpoint_url = endpoint_url
        self._max_attempts = max_attempts
        self._retry_delay = retry_delay
        self._transfer_config = TransferConfig(
            multipart_threshold=multipart_threshold,
            multipart_chunksize=MULTIPART_CHUNKSIZE,
        )
        self._client: Any = boto3.client(
            "s3",
            endpoint_url=endpoint_url,
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            region_name=region,
            config=Config(
                signature_version="s3v4",
                s3={"addressing_style": "path"},
                max_pool_connections=pool_connections,
                retries={"total_max_attempts": 1, "mode": "standard"},
            ),
        )

    @classmethod
    def from_config(cls, config: S3Config, **kwargs: Any) -> S3Transport:
        """Create a transport from a project's bucket configuration."""
        return cls(
            bucket=config.bucket,
            endpoint_url=config.endpoint_url,
            access_key=config.access_key or None,
            secret_key=config.secret_key or None,
            region=config.region,
            **kwargs,
        )

    @property
    def bucket(self) -> str:
        return self._bucket

    @property
    def location(self) -> str:
        """Return the S3 bucket location."""
        if self._endpoint_url:
            return f"S3: {self._endpoint_url}/{self._bucket}"
        return f"S3: s3://{self._bucket}"

    def _call(
        self,
        operation: str,
        func: Callable[[], Any],
        path: str | None = None,
        cancel_check: Callable[[], bool] | None = None,
        max_attempts: int | None = None,
    ) -> Any:
        return with_retry(
            func,
            operation,
            path=path,
            max_attempts=max_attempts or self._max_attempts,
            delay=self._retry_delay,
            cancel_check=cancel_check,
        )

    def list(
        self,
        prefix: str = "",
        cancel_check: Callable[[], bool] | None = None,
    ) -> Iterator[ObjectInfo]:
        """Enumerate objects page by page, one retried request per page."""
        logger.debug(f"Listing objects in {self.location} with prefix '{prefix}'")
        token: str | None = None

        while True:
            kwargs: dict[str, Any] = {"Bucket": self._bucket, "Prefix": prefix}
            if token:
                kwargs["ContinuationToken"] = token

            page = self._call(
                "ListObjectsV2",
                lambda: self._client.list_objects_v2(**kwargs),
                path=prefix or None,
                cancel_check=cancel_check,
            )

            for obj in page.get("Contents", []):
                key = obj["Key"]
                if key.endswith("/"):
                    continue
                yield ObjectInfo(
                    path=key,
                    size=int(obj["Size"]),
                    fingerprint=normalize_etag(obj.get("ETag", "")),
                    last_modified=obj["LastModified"],
                )

            if not page.get("IsTruncated"):
                return
            token = page.get("NextContinuationToken")

    def fetch(self, path: str) -> FetchedObject:
        """Open a streaming GET for one object."""
        logger.debug(f"Getting object: {path}")
        response = self._call(
            "GetObject",
            lambda: self._client.get_object(Bucket=self._bucket, Key=path),
            path=path,
        )
        return FetchedObject(path=path, stream=response["Body"], size=int(response["ContentLength"]))

    def put(
        self,
        path: str,
        stream: Readable,
        size: int,
        cancel_check: Callable[[], bool] | None = None,
    ) -> int:
        """Upload a stream, multipart above the threshold.

        A consumed stream cannot be replayed, so the upload is only retried
        when the stream is seekable.
        """
        logger.debug(f"Putting object: {path} (size: {size})")
        seekable = bool(getattr(stream, "seekable", lambda: False)())
        start = stream.tell() if seekable else 0  # type: ignore[attr-defined]
        reader = CountingReader(stream, cancel_check)

        def upload() -> int:
            if seekable:
                stream.seek(start)  # type: ignore[attr-defined]
                reader.bytes_read = 0
            self._client.upload_fileobj(
                reader,
                self._bucket,
                path,
                Config=self._transfer_config,
            )
            return reader.bytes_read

        written: int = self._call(
            "PutObject",
            upload,
            path=path,
            cancel_check=cancel_check,
            max_attempts=None if seekable else 1,
        )
        if written != size:
            raise PermanentError(
                f"PutObject {path}: wrote {written} bytes, expected {size}", path
            )
        return written

    def exists(self, path: str) -> bool:
        """Probe an object with HEAD."""

        def head() -> bool:
            try:
                self._client.head_object(Bucket=self._bucket, Key=path)
            except ClientError as e:
                if is_not_found(e):
                    return False
                raise
            return True

        result: bool = self._call("HeadObject", head, path=path)
        return result

    def can_copy_from(self, source: Transport) -> bool:
        """Server-side copies need both buckets on the same service."""
        return isinstance(source, S3Transport) and source._endpoint_url == self._endpoint_url

    def copy_from(self, source: Transport, source_path: str, path: str, size: int) -> None:
        """Copy server-side with a managed (multipart above threshold) copy."""
        if not isinstance(source, S3Transport) or not self.can_copy_from(source):
            super().copy_from(source, source_path, path, size)
            return

        logger.debug(
            f"Server-side copy: {source.bucket}/{source_path} -> {self._bucket}/{path} "
            f"(size: {size})"
        )
        self._call(
            "CopyObject",
            lambda: self._client.copy(
                CopySource={"Bucket": source.bucket, "Key": source_path},
                Bucket=self._bucket,
                Key=path,
                SourceClient=source._client,
                Config=self._transfer_config,
            ),
            path=path,
        )
