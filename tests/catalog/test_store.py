"""Tests for the catalog store."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from bucketsync.catalog import CatalogStore
from bucketsync.core.errors import CatalogError
from bucketsync.core.types import FileStatus, ObjectInfo

InfoFactory = Callable[..., ObjectInfo]


class TestCatalogStoreCreation:
    """Tests for CatalogStore initialization."""

    def test_creates_database(self, tmp_path: Path) -> None:
        """Should create the database file and parent directories."""
        db_path = tmp_path / "nested" / "dir" / "catalog.db"
        store = CatalogStore(db_path)

        assert db_path.exists()
        assert store.path == db_path
        store.close()

    def test_reopens_existing_db(self, tmp_path: Path, make_info: InfoFactory) -> None:
        """Entries should survive closing and reopening the store."""
        db_path = tmp_path / "catalog.db"
        store1 = CatalogStore(db_path)
        store1.insert_entry("p", make_info("a.txt"))
        store1.close()

        store2 = CatalogStore(db_path)
        entry = store2.get_entry("p", "a.txt")
        assert entry is not None
        assert entry.status == FileStatus.PENDING
        store2.close()

    def test_unopenable_path_raises(self, tmp_path: Path) -> None:
        """Should raise CatalogError when the database cannot be created."""
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")

        with pytest.raises(CatalogError):
            CatalogStore(blocker / "catalog.db")


class TestEntryLifecycle:
    """Tests for inserting and updating entries."""

    def test_insert_and_get(self, store: CatalogStore, project: str, make_info: InfoFactory) -> None:
        """insert_entry() should create a PENDING entry."""
        created = store.insert_entry(project, make_info("docs/a.txt", size=42, fingerprint="e1"))

        assert created is not None
        entry = store.get_entry(project, "docs/a.txt")
        assert entry == created
        assert entry.size == 42
        assert entry.fingerprint == "e1"
        assert entry.status == FileStatus.PENDING
        assert entry.error_message is None
        assert entry.source_modified.tzinfo is not None

    def test_insert_duplicate_returns_none(
        self, store: CatalogStore, project: str, make_info: InfoFactory
    ) -> None:
        """(project, path) is unique; a second insert is rejected."""
        store.insert_entry(project, make_info("a.txt"))

        assert store.insert_entry(project, make_info("a.txt", fingerprint="other")) is None
        assert store.count_entries(project) == 1

    def test_same_path_in_two_projects(self, store: CatalogStore, make_info: InfoFactory) -> None:
        """Projects are independent scopes."""
        assert store.insert_entry("one", make_info("a.txt")) is not None
        assert store.insert_entry("two", make_info("a.txt")) is not None

        assert store.count_entries("one") == 1
        assert store.count_entries("two") == 1

    def test_get_missing_returns_none(self, store: CatalogStore, project: str) -> None:
        """get_entry() should return None for unknown paths."""
        assert store.get_entry(project, "missing.txt") is None
        assert store.get_entry_by_id(999) is None

    def test_refresh_entry_requeues(
        self, store: CatalogStore, project: str, make_info: InfoFactory
    ) -> None:
        """refresh_entry() should store new metadata and reset to PENDING."""
        entry = store.insert_entry(project, make_info("a.txt", size=1, fingerprint="old"))
        assert entry is not None
        store.update_status(entry.id, FileStatus.ERROR, error_message="boom")

        assert store.refresh_entry(entry.id, make_info("a.txt", size=2, fingerprint="new"))

        refreshed = store.get_entry_by_id(entry.id)
        assert refreshed is not None
        assert refreshed.size == 2
        assert refreshed.fingerprint == "new"
        assert refreshed.status == FileStatus.PENDING
        assert refreshed.error_message is None
        assert refreshed.changed is True
        assert refreshed.updated_at >= entry.updated_at

    def test_update_status_keeps_message_only_for_error(
        self, store: CatalogStore, project: str, make_info: InfoFactory
    ) -> None:
        """The error message is cleared by any non-ERROR status."""
        entry = store.insert_entry(project, make_info("a.txt"))
        assert entry is not None

        store.update_status(entry.id, FileStatus.ERROR, error_message="timeout")
        failed = store.get_entry_by_id(entry.id)
        assert failed is not None
        assert failed.error_message == "timeout"

        store.update_status(entry.id, FileStatus.COMPLETED, error_message="ignored")
        done = store.get_entry_by_id(entry.id)
        assert done is not None
        assert done.status == FileStatus.COMPLETED
        assert done.error_message is None

    def test_completed_clears_changed_marker(
        self, store: CatalogStore, project: str, make_info: InfoFactory
    ) -> None:
        """New entries are unmarked; COMPLETED clears the marker set by a refresh."""
        entry = store.insert_entry(project, make_info("a.txt", fingerprint="old"))
        assert entry is not None
        assert entry.changed is False
        store.refresh_entry(entry.id, make_info("a.txt", fingerprint="new"))

        store.update_status(entry.id, FileStatus.COPYING)
        copying = store.get_entry_by_id(entry.id)
        assert copying is not None
        assert copying.changed is True

        store.update_status(entry.id, FileStatus.COMPLETED)
        done = store.get_entry_by_id(entry.id)
        assert done is not None
        assert done.changed is False

    def test_update_status_compare_and_set(
        self, store: CatalogStore, project: str, make_info: InfoFactory
    ) -> None:
        """With expected statuses, the update only applies on a match."""
        entry = store.insert_entry(project, make_info("a.txt"))
        assert entry is not None

        assert store.update_status(
            entry.id, FileStatus.COPYING, expected=[FileStatus.PENDING]
        ) is True
        assert store.update_status(
            entry.id, FileStatus.COPYING, expected=[FileStatus.PENDING]
        ) is False

    def test_reset_status(self, store: CatalogStore, project: str, make_info: InfoFactory) -> None:
        """reset_status() should move every matching entry."""
        for name in ("a", "b", "c"):
            entry = store.insert_entry(project, make_info(name))
            assert entry is not None
            if name != "c":
                store.update_status(entry.id, FileStatus.COPYING)

        moved = store.reset_status(project, FileStatus.COPYING, FileStatus.PENDING)

        assert moved == 2
        assert len(store.pending_entries(project)) == 3


class TestQueries:
    """Tests for pending_entries, status_counts and recent_errors."""

    def test_pending_entries_includes_errors(
        self, store: CatalogStore, project: str, make_info: InfoFactory
    ) -> None:
        """PENDING and ERROR entries are returned in insertion order."""
        ids = []
        for name in ("first", "second", "third", "fourth"):
            entry = store.insert_entry(project, make_info(name))
            assert entry is not None
            ids.append(entry.id)
        store.update_status(ids[1], FileStatus.ERROR, error_message="x")
        store.update_status(ids[2], FileStatus.COMPLETED)

        pending = store.pending_entries(project)

        assert [e.path for e in pending] == ["first", "second", "fourth"]

    def test_pending_entries_limit(
        self, store: CatalogStore, project: str, make_info: InfoFactory
    ) -> None:
        """limit should cap the number of entries returned."""
        for i in range(5):
            store.insert_entry(project, make_info(f"f{i}"))

        assert len(store.pending_entries(project, limit=2)) == 2

    def test_status_counts(self, store: CatalogStore, project: str, make_info: InfoFactory) -> None:
        """Counts and sizes are grouped per status, ordered by status name."""
        a = store.insert_entry(project, make_info("a", size=100))
        store.insert_entry(project, make_info("b", size=20))
        store.insert_entry(project, make_info("c", size=3))
        assert a is not None
        store.update_status(a.id, FileStatus.COMPLETED)

        counts = store.status_counts(project)

        assert [(c.status, c.count, c.total_size) for c in counts] == [
            (FileStatus.COMPLETED, 1, 100),
            (FileStatus.PENDING, 2, 23),
        ]

    def test_status_counts_empty(self, store: CatalogStore, project: str) -> None:
        """An empty project has no status rows."""
        assert store.status_counts(project) == []

    def test_recent_errors(self, store: CatalogStore, project: str, make_info: InfoFactory) -> None:
        """Only ERROR entries are returned, most recent first, up to limit."""
        ids = []
        for name in ("a", "b", "c"):
            entry = store.insert_entry(project, make_info(name))
            assert entry is not None
            ids.append(entry.id)
        store.update_status(ids[0], FileStatus.ERROR, error_message="first")
        store.update_status(ids[2], FileStatus.ERROR, error_message="last")

        errors = store.recent_errors(project)
        assert [e.path for e in errors] == ["c", "a"]
        assert [e.error_message for e in errors] == ["last", "first"]

        assert len(store.recent_errors(project, limit=1)) == 1

    def test_recent_errors_without_message(
        self, store: CatalogStore, project: str, make_info: InfoFactory
    ) -> None:
        """Entries in ERROR are reported even when no message was stored."""
        entry = store.insert_entry(project, make_info("a"))
        assert entry is not None
        store.update_status(entry.id, FileStatus.ERROR)

        errors = store.recent_errors(project)

        assert [e.path for e in errors] == ["a"]
        assert errors[0].error_message is None
