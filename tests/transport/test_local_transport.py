"""Tests for the local filesystem transport."""

from __future__ import annotations

import io
from pathlib import Path

import pytest

from bucketsync.core.errors import CancelledException, NotFoundError, PermanentError
from bucketsync.transport.local import LocalTransport, is_temp_file


class TestLocalTransport:
    """Tests for LocalTransport implementation."""

    @pytest.fixture
    def transport(self, tmp_path: Path) -> LocalTransport:
        """Create a LocalTransport rooted in a temporary directory."""
        return LocalTransport(tmp_path / "root")

    def test_creates_root(self, tmp_path: Path) -> None:
        """Should create the root directory."""
        LocalTransport(tmp_path / "new" / "root")
        assert (tmp_path / "new" / "root").is_dir()

    def test_put_creates_parents(self, transport: LocalTransport) -> None:
        """put() should create intermediate directories."""
        written = transport.put("a/b/c.txt", io.BytesIO(b"hello"), 5)

        assert written == 5
        assert (transport.base_path / "a" / "b" / "c.txt").read_bytes() == b"hello"

    def test_put_replaces_existing(self, transport: LocalTransport) -> None:
        """put() should overwrite an existing file."""
        transport.put("a.txt", io.BytesIO(b"old"), 3)
        transport.put("a.txt", io.BytesIO(b"newer"), 5)

        assert (transport.base_path / "a.txt").read_bytes() == b"newer"

    def test_put_size_mismatch(self, transport: LocalTransport) -> None:
        """A short stream should fail and leave nothing behind."""
        with pytest.raises(PermanentError, match="Short write"):
            transport.put("a.txt", io.BytesIO(b"abc"), 10)

        assert not transport.exists("a.txt")
        assert list(transport.base_path.iterdir()) == []

    def test_put_cancelled_leaves_no_file(self, transport: LocalTransport) -> None:
        """A cancelled write should remove its temporary file."""
        with pytest.raises(CancelledException):
            transport.put("a.txt", io.BytesIO(b"abc"), 3, cancel_check=lambda: True)

        assert list(transport.base_path.iterdir()) == []

    def test_fetch_returns_stream(self, transport: LocalTransport) -> None:
        """fetch() should stream the file contents."""
        transport.put("docs/a.txt", io.BytesIO(b"content"), 7)

        with transport.fetch("docs/a.txt") as fetched:
            assert fetched.size == 7
            assert fetched.stream.read() == b"content"

    def test_fetch_missing_raises(self, transport: LocalTransport) -> None:
        """fetch() should raise NotFoundError for missing files."""
        with pytest.raises(NotFoundError):
            transport.fetch("missing.txt")

    def test_exists(self, transport: LocalTransport) -> None:
        """exists() should report presence without raising on absence."""
        transport.put("a.txt", io.BytesIO(b"x"), 1)

        assert transport.exists("a.txt") is True
        assert transport.exists("b.txt") is False

    def test_rejects_escaping_paths(self, transport: LocalTransport) -> None:
        """Paths leaving the root should be rejected."""
        with pytest.raises(PermanentError, match="Invalid object path"):
            transport.exists("../outside.txt")
        with pytest.raises(PermanentError):
            transport.exists("")

    def test_list_recursive(self, transport: LocalTransport) -> None:
        """list() should yield every file with its relative key."""
        transport.put("b.txt", io.BytesIO(b"bb"), 2)
        transport.put("docs/a.txt", io.BytesIO(b"a"), 1)
        (transport.base_path / ".a.txt.1234.bsync-tmp").write_bytes(b"partial")

        listed = {info.path: info for info in transport.list()}

        assert set(listed) == {"b.txt", "docs/a.txt"}
        assert listed["b.txt"].size == 2
        assert listed["b.txt"].fingerprint

    def test_list_prefix(self, transport: LocalTransport) -> None:
        """list() should filter by key prefix."""
        transport.put("docs/a.txt", io.BytesIO(b"a"), 1)
        transport.put("other/b.txt", io.BytesIO(b"b"), 1)

        assert [info.path for info in transport.list("docs/")] == ["docs/a.txt"]

    def test_list_cancelled(self, transport: LocalTransport) -> None:
        """list() should stop on cancellation."""
        transport.put("a.txt", io.BytesIO(b"a"), 1)

        with pytest.raises(CancelledException):
            list(transport.list(cancel_check=lambda: True))

    def test_cannot_copy_server_side(self, transport: LocalTransport, tmp_path: Path) -> None:
        """Local transports never copy server-side."""
        assert transport.can_copy_from(LocalTransport(tmp_path / "other")) is False


def test_is_temp_file() -> None:
    """Temporary write files are hidden and carry the temp suffix."""
    assert is_temp_file(".a.txt.deadbeef.bsync-tmp") is True
    assert is_temp_file("a.txt") is False
