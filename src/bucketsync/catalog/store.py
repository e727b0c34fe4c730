"""Catalog store using SQLAlchemy with SQLite.

This module provides:
- CatalogEntry: Detached snapshot of one catalog row
- StatusCount: Aggregate row of the status report
- CatalogStore: Durable per-project table of sync records

Every operation runs in its own short session and commits on its own. The
store holds no in-memory state shared between callers, so it can be used
by all copy workers at once; SQLite serializes the writes.
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any, TypeVar

from sqlalchemy import create_engine, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from bucketsync.catalog.models import Base, FileEntryRow
from bucketsync.core.errors import CatalogError
from bucketsync.core.types import COPYABLE_STATUSES, FileStatus, ObjectInfo

if TYPE_CHECKING:
    from sqlalchemy import Engine

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

# Seconds SQLite waits on a locked database before failing a statement
BUSY_TIMEOUT = 30.0


def _as_utc(value: datetime) -> datetime:
    """SQLite drops tzinfo; stored values are always UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def _wrap_errors(method: F) -> F:
    """Convert SQLAlchemy failures into CatalogError."""

    @functools.wraps(method)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return method(*args, **kwargs)
        except SQLAlchemyError as e:
            raise CatalogError(f"Catalog {method.__name__} failed: {e}") from e

    return wrapper  # type: ignore[return-value]


@dataclass(frozen=True)
class CatalogEntry:
    """Snapshot of one catalog row.

    Attributes:
        id: Surrogate identity assigned on insert.
        project: Project the entry belongs to.
        path: Full object key, including any folder prefix.
        size: Byte length as last observed at the source.
        fingerprint: Opaque change marker from the source listing.
        source_modified: Source-reported modification time.
        status: Current sync status.
        error_message: Last failure detail (only set in ERROR status).
        changed: Source changed since the last copy; the next copy overwrites.
        created_at: Insert time.
        updated_at: Time of the last mutation.
    """

    id: int
    project: str
    path: str
    size: int
    fingerprint: str
    source_modified: datetime
    status: FileStatus
    error_message: str | None
    changed: bool
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_row(cls, row: FileEntryRow) -> CatalogEntry:
        """Create CatalogEntry from an ORM row."""
        return cls(
            id=row.id,
            project=row.project,
            path=row.path,
            size=row.size,
            fingerprint=row.fingerprint,
            source_modified=_as_utc(row.source_modified),
            status=FileStatus(row.status),
            error_message=row.error_message,
            changed=bool(row.changed),
            created_at=_as_utc(row.created_at),
            updated_at=_as_utc(row.updated_at),
        )


@dataclass(frozen=True)
class StatusCount:
    """Number of entries and total bytes in one status."""

    status: FileStatus
    count: int
    total_size: int


class CatalogStore:
    """SQLAlchemy catalog of per-object sync records.

    Uses SQLite with WAL mode so status reads do not block copy workers.
    """

    def __init__(self, db_path: Path | str) -> None:
        """Open (and create if needed) the catalog database.

        Args:
            db_path: Path to the SQLite database file.

        Raises:
            CatalogError: If the database cannot be opened or initialized.
        """
        self._db_path = Path(db_path)
        try:
            self._db_path.parent.mkdir(parents=True, exist_ok=True)

            # check_same_thread=False: the store is shared by worker threads
            self._engine: Engine = create_engine(
                f"sqlite:///{self._db_path}",
                connect_args={"check_same_thread": False, "timeout": BUSY_TIMEOUT},
                echo=False,
            )

            with self._engine.connect() as conn:
                conn.exec_driver_sql("PRAGMA journal_mode=WAL")

            Base.metadata.create_all(self._engine)
        except (OSError, SQLAlchemyError) as e:
            raise CatalogError(f"Cannot open catalog {self._db_path}: {e}") from e

    @property
    def path(self) -> Path:
        return self._db_path

    def close(self) -> None:
        """Close all pooled connections."""
        self._engine.dispose()

    def _session(self) -> Session:
        """Create a new database session."""
        return Session(self._engine)

    # === Lookups ===

    @_wrap_errors
    def get_entry(self, project: str, path: str) -> CatalogEntry | None:
        """Get an entry by its (project, path) key.

        Returns:
            CatalogEntry if found, None otherwise.
        """
        with self._session() as session:
            row = session.scalars(
                select(FileEntryRow).where(
                    FileEntryRow.project == project,
                    FileEntryRow.path == path,
                )
            ).first()
            return CatalogEntry.from_row(row) if row else None

    @_wrap_errors
    def get_entry_by_id(self, entry_id: int) -> CatalogEntry | None:
        """Get an entry by its surrogate id."""
        with self._session() as session:
            row = session.get(FileEntryRow, entry_id)
            return CatalogEntry.from_row(row) if row else None

    @_wrap_errors
    def pending_entries(self, project: str, limit: int = 0) -> list[CatalogEntry]:
        """List entries the copy scheduler should process.

        Args:
            project: Project name.
            limit: Maximum number of entries (0 means all).

        Returns:
            Entries in PENDING or ERROR status, oldest first.
        """
        stmt = (
            select(FileEntryRow)
            .where(
                FileEntryRow.project == project,
                FileEntryRow.status.in_([s.value for s in COPYABLE_STATUSES]),
            )
            .order_by(FileEntryRow.created_at, FileEntryRow.id)
        )
        if limit > 0:
            stmt = stmt.limit(limit)

        with self._session() as session:
            return [CatalogEntry.from_row(row) for row in session.scalars(stmt)]

    @_wrap_errors
    def count_entries(self, project: str) -> int:
        """Count all entries of a project."""
        with self._session() as session:
            count = session.scalar(
                select(func.count(FileEntryRow.id)).where(FileEntryRow.project == project)
            )
            return int(count or 0)

    # === Mutations ===

    @_wrap_errors
    def insert_entry(
        self,
        project: str,
        info: ObjectInfo,
        status: FileStatus = FileStatus.PENDING,
    ) -> CatalogEntry | None:
        """Insert a new entry.

        Args:
            project: Project name.
            info: Observed object.
            status: Initial status.

        Returns:
            The created entry, or None if (project, path) is already tracked.
        """
        now = datetime.now(UTC)
        row = FileEntryRow(
            project=project,
            path=info.path,
            size=info.size,
            fingerprint=info.fingerprint,
            source_modified=info.last_modified,
            status=status.value,
            error_message=None,
            changed=False,
            created_at=now,
            updated_at=now,
        )
        with self._session() as session:
            session.add(row)
            try:
                session.commit()
            except IntegrityError:
                session.rollback()
                logger.debug(f"Entry already tracked: {project}:{info.path}")
                return None
            session.refresh(row)
            return CatalogEntry.from_row(row)

    @_wrap_errors
    def refresh_entry(self, entry_id: int, info: ObjectInfo) -> bool:
        """Store new source metadata and queue the entry for copy again.

        Resets the status to PENDING, clears the error message and marks the
        entry changed so the next copy overwrites the destination.

        Returns:
            True if the entry exists and was updated.
        """
        stmt = (
            update(FileEntryRow)
            .where(FileEntryRow.id == entry_id)
            .values(
                size=info.size,
                fingerprint=info.fingerprint,
                source_modified=info.last_modified,
                status=FileStatus.PENDING.value,
                error_message=None,
                changed=True,
                updated_at=datetime.now(UTC),
            )
        )
        with self._session() as session:
            result = session.execute(stmt)
            session.commit()
            return bool(result.rowcount)

    @_wrap_errors
    def update_status(
        self,
        entry_id: int,
        status: FileStatus,
        error_message: str | None = None,
        expected: Iterable[FileStatus] | None = None,
    ) -> bool:
        """Set the status of one entry.

        The error message is only kept for ERROR; any other status clears it.
        COMPLETED also clears the changed marker.
        When ``expected`` is given the update is a compare-and-set and only
        applies if the current status is one of them.

        Args:
            entry_id: Entry to update.
            status: New status.
            error_message: Failure detail (ERROR only).
            expected: Statuses the entry must currently be in.

        Returns:
            True if a row was updated.
        """
        values: dict[str, Any] = {
            "status": status.value,
            "error_message": error_message if status == FileStatus.ERROR else None,
            "updated_at": datetime.now(UTC),
        }
        if status == FileStatus.COMPLETED:
            values["changed"] = False

        stmt = update(FileEntryRow).where(FileEntryRow.id == entry_id).values(**values)
        if expected is not None:
            stmt = stmt.where(FileEntryRow.status.in_([s.value for s in expected]))

        with self._session() as session:
            result = session.execute(stmt)
            session.commit()
            return bool(result.rowcount)

    @_wrap_errors
    def reset_status(self, project: str, from_status: FileStatus, to_status: FileStatus) -> int:
        """Move every entry of a project from one status to another.

        Returns:
            Number of entries moved.
        """
        stmt = (
            update(FileEntryRow)
            .where(
                FileEntryRow.project == project,
                FileEntryRow.status == from_status.value,
            )
            .values(
                status=to_status.value,
                error_message=None,
                updated_at=datetime.now(UTC),
            )
        )
        with self._session() as session:
            result = session.execute(stmt)
            session.commit()
            return int(result.rowcount or 0)

    # === Aggregates ===

    @_wrap_errors
    def status_counts(self, project: str) -> list[StatusCount]:
        """Count entries and bytes per status, ordered by status name."""
        stmt = (
            select(
                FileEntryRow.status,
                func.count(FileEntryRow.id),
                func.coalesce(func.sum(FileEntryRow.size), 0),
            )
            .where(FileEntryRow.project == project)
            .group_by(FileEntryRow.status)
            .order_by(FileEntryRow.status)
        )
        with self._session() as session:
            return [
                StatusCount(status=FileStatus(status), count=int(count), total_size=int(size))
                for status, count, size in session.execute(stmt)
            ]

    @_wrap_errors
    def recent_errors(self, project: str, limit: int = 10) -> list[CatalogEntry]:
        """List entries currently in ERROR status, most recent first."""
        stmt = (
            select(FileEntryRow)
            .where(
                FileEntryRow.project == project,
                FileEntryRow.status == FileStatus.ERROR.value,
            )
            .order_by(FileEntryRow.updated_at.desc(), FileEntryRow.id.desc())
            .limit(limit)
        )
        with self._session() as session:
            return [CatalogEntry.from_row(row) for row in session.scalars(stmt)]
