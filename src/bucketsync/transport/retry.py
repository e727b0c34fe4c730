"""Retry logic and error classification for transport adapters.

This module provides:
- ErrorKind / classify_error: Decide once whether a raw failure is transient
- is_not_found: Detect "object does not exist" responses
- with_retry: Fixed-budget, fixed-delay retry that converts raw failures
  into the TransportError hierarchy

Adapters wrap every remote call in with_retry, so callers only ever see
NotFoundError, PermanentError or CancelledException.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from enum import Enum, auto
from typing import TypeVar

from botocore.exceptions import ClientError, HTTPClientError
from botocore.exceptions import ConnectionError as BotoConnectionError

from bucketsync.core.errors import (
    CancelledException,
    NotFoundError,
    PermanentError,
    TransportError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Default retry configuration
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_RETRY_DELAY = 5.0  # seconds

# Interval at which a retry delay checks for cancellation
CANCEL_POLL_INTERVAL = 0.1

# Raw exceptions that indicate connectivity or timeout issues
NETWORK_EXCEPTIONS: tuple[type[Exception], ...] = (
    ConnectionError,
    TimeoutError,
    HTTPClientError,
    BotoConnectionError,
)

TRANSIENT_ERROR_CODES = frozenset({
    "RequestTimeout",
    "RequestTimeoutException",
    "SlowDown",
    "Throttling",
    "ThrottlingException",
    "ServiceUnavailable",
    "InternalError",
    "XMinioServerNotInitialized",
})

NOT_FOUND_ERROR_CODES = frozenset({"404", "NoSuchKey", "NotFound"})


class ErrorKind(Enum):
    """Retry classification of a raw failure."""

    TRANSIENT = auto()
    PERMANENT = auto()


def _client_error_code(error: ClientError) -> tuple[str, int]:
    """Extract (error code, HTTP status) from a botocore ClientError."""
    code = str(error.response.get("Error", {}).get("Code", ""))
    status = int(error.response.get("ResponseMetadata", {}).get("HTTPStatusCode", 0) or 0)
    return code, status


def is_not_found(error: BaseException) -> bool:
    """Check if a raw failure means the object does not exist."""
    if isinstance(error, FileNotFoundError):
        return True
    if isinstance(error, ClientError):
        code, status = _client_error_code(error)
        # A missing bucket is a configuration problem, not a missing object
        if code == "NoSuchBucket":
            return False
        return code in NOT_FOUND_ERROR_CODES or status == 404
    return False


def classify_error(error: BaseException) -> ErrorKind:
    """Classify a raw failure as transient or permanent.

    Args:
        error: Exception raised by the underlying client or filesystem.

    Returns:
        ErrorKind.TRANSIENT for network, timeout, throttling and 5xx
        failures; ErrorKind.PERMANENT for everything else.
    """
    if isinstance(error, NETWORK_EXCEPTIONS):
        return ErrorKind.TRANSIENT
    if isinstance(error, ClientError):
        code, status = _client_error_code(error)
        if code in TRANSIENT_ERROR_CODES or status >= 500:
            return ErrorKind.TRANSIENT
    return ErrorKind.PERMANENT


def _wait(delay: float, cancel_check: Callable[[], bool] | None) -> None:
    """Sleep for delay seconds, waking up early on cancellation."""
    if cancel_check is None:
        time.sleep(delay)
        return
    deadline = time.monotonic() + delay
    while (remaining := deadline - time.monotonic()) > 0:
        if cancel_check():
            raise CancelledException("Cancelled while waiting to retry")
        time.sleep(min(remaining, CANCEL_POLL_INTERVAL))


def with_retry(
    func: Callable[[], T],
    operation: str,
    path: str | None = None,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    delay: float = DEFAULT_RETRY_DELAY,
    cancel_check: Callable[[], bool] | None = None,
) -> T:
    """Execute a transport call with a fixed retry budget.

    Transient failures are retried up to max_attempts times with a fixed
    delay between attempts. Exhausting the budget, or any permanent
    failure, raises PermanentError; missing objects raise NotFoundError.

    Args:
        func: Function performing one attempt.
        operation: Operation name for messages (e.g. "GetObject").
        path: Object path the call relates to.
        max_attempts: Total number of attempts.
        delay: Seconds to wait between attempts.
        cancel_check: Optional function returning True when cancelled.

    Returns:
        Result of the function.

    Raises:
        NotFoundError: If the object does not exist.
        PermanentError: On a permanent failure or when retries are exhausted.
        CancelledException: If cancellation was requested.
    """
    target = f" {path}" if path else ""

    for attempt in range(1, max_attempts + 1):
        if cancel_check and cancel_check():
            raise CancelledException(f"{operation}{target} cancelled")

        try:
            return func()
        except (TransportError, CancelledException):
            raise
        except Exception as e:
            if is_not_found(e):
                raise NotFoundError(f"{operation}{target}: object not found", path) from e

            if classify_error(e) == ErrorKind.PERMANENT:
                raise PermanentError(f"{operation}{target} failed: {e}", path) from e

            if attempt == max_attempts:
                logger.error(f"{operation}{target}: all {max_attempts} attempts failed: {e}")
                raise PermanentError(
                    f"{operation}{target} failed after {max_attempts} attempts: {e}", path
                ) from e

            logger.warning(
                f"{operation}{target}: attempt {attempt}/{max_attempts} failed: {e}. "
                f"Retrying in {delay:.1f}s..."
            )
            _wait(delay, cancel_check)

    # max_attempts < 1
    raise PermanentError(f"{operation}{target}: no attempts allowed", path)
