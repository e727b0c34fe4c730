"""Tests for CLI commands - config, update-list, import-list, sync, status."""

from __future__ import annotations

import json
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

from bucketsync.cli import cli, format_size
from bucketsync.cli.config import get_project_config, load_config


@pytest.fixture
def runner() -> CliRunner:
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture
def home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point BUCKETSYNC_HOME at a temporary projects directory."""
    projects = tmp_path / "projects"
    monkeypatch.setenv("BUCKETSYNC_HOME", str(projects))
    return projects


@pytest.fixture
def s3_bucket() -> Iterator[Any]:
    """Mocked source bucket with a folder of three objects."""
    pytest.importorskip("moto")
    import boto3
    from moto import mock_aws

    with mock_aws():
        client = boto3.client("s3", region_name="us-east-1")
        client.create_bucket(Bucket="source")
        client.put_object(Bucket="source", Key="docs/a.txt", Body=b"alpha")
        client.put_object(Bucket="source", Key="docs/sub/b.txt", Body=b"bravo")
        client.put_object(Bucket="source", Key="docs/c.txt", Body=b"charlie")
        client.put_object(Bucket="source", Key="elsewhere.txt", Body=b"x")
        yield client


def configure(runner: CliRunner, dest: Path, *extra: str) -> None:
    result = runner.invoke(
        cli,
        [
            "config",
            "--project", "demo",
            "--source-bucket", "source",
            "--source-folder", "docs",
            "--source-access-key", "testing",
            "--source-secret-key", "testing",
            "--dest-type", "local",
            "--local-path", str(dest),
            *extra,
        ],
    )
    assert result.exit_code == 0, result.output


class TestConfigCommand:
    """Tests for 'bucketsync config'."""

    def test_saves_project(self, runner: CliRunner, home: Path, tmp_path: Path) -> None:
        """Should write the project into config.json."""
        configure(runner, tmp_path / "dest", "--workers", "3")

        data = json.loads((home / "config.json").read_text())
        assert data["projects"]["demo"]["source"]["bucket"] == "source"
        assert data["projects"]["demo"]["workers"] == 3

        config = get_project_config(home, "demo")
        assert config is not None
        assert config.database_path == home / "demo" / "catalog.db"
        assert config.dest_local is not None
        assert config.dest_local.path == str(tmp_path / "dest")

    def test_update_keeps_other_values(
        self, runner: CliRunner, home: Path, tmp_path: Path
    ) -> None:
        """Options not given keep their stored values."""
        configure(runner, tmp_path / "dest")

        result = runner.invoke(cli, ["config", "-p", "demo", "--workers", "9"])

        assert result.exit_code == 0, result.output
        config = get_project_config(home, "demo")
        assert config is not None
        assert config.workers == 9
        assert config.source.folder == "docs"

    def test_incomplete_config_rejected(self, runner: CliRunner, home: Path) -> None:
        """A project without a destination cannot be saved."""
        result = runner.invoke(
            cli, ["config", "-p", "demo", "--source-bucket", "source", "--dest-type", "local"]
        )

        assert result.exit_code == 1
        assert "Local path is required" in result.output
        assert load_config(home) == {}

    def test_unknown_project(self, runner: CliRunner, home: Path) -> None:
        """Commands on an unconfigured project fail with a hint."""
        result = runner.invoke(cli, ["status", "-p", "nope"])

        assert result.exit_code == 1
        assert "No configuration found for project nope" in result.output


class TestSyncFlow:
    """Tests for update-list, sync and status against a mocked bucket."""

    def test_update_sync_status(
        self, runner: CliRunner, home: Path, tmp_path: Path, s3_bucket: Any
    ) -> None:
        """The three-command workflow copies the folder and reports it."""
        dest = tmp_path / "dest"
        configure(runner, dest)

        listed = runner.invoke(cli, ["update-list", "-p", "demo"])
        assert listed.exit_code == 0, listed.output
        assert "3 added, 0 updated, 0 unchanged" in listed.output

        synced = runner.invoke(cli, ["sync", "-p", "demo", "--workers", "2"])
        assert synced.exit_code == 0, synced.output
        assert "3 copied" in synced.output
        assert (dest / "a.txt").read_bytes() == b"alpha"
        assert (dest / "sub" / "b.txt").read_bytes() == b"bravo"
        assert not (dest / "elsewhere.txt").exists()

        status = runner.invoke(cli, ["status", "-p", "demo"])
        assert status.exit_code == 0, status.output
        assert "completed" in status.output
        assert "Total: 3 files (17 B)" in status.output

    def test_sync_reports_failures(
        self, runner: CliRunner, home: Path, tmp_path: Path, s3_bucket: Any
    ) -> None:
        """A failed object makes sync exit non-zero and shows up in status."""
        configure(runner, tmp_path / "dest")
        runner.invoke(cli, ["update-list", "-p", "demo"])
        s3_bucket.delete_object(Bucket="source", Key="docs/c.txt")

        synced = runner.invoke(cli, ["sync", "-p", "demo"])

        assert synced.exit_code == 1
        assert "docs/c.txt" in synced.output
        assert "1 failed" in synced.output

        status = runner.invoke(cli, ["status", "-p", "demo"])
        assert "Recent Errors:" in status.output
        assert "File: docs/c.txt" in status.output

    def test_import_list(
        self, runner: CliRunner, home: Path, tmp_path: Path, s3_bucket: Any
    ) -> None:
        """import-list adds records from an mc listing file."""
        configure(runner, tmp_path / "dest")
        listing = tmp_path / "listing.json"
        records = [
            {"status": "success", "type": "file", "lastModified": "2024-01-01T00:00:00Z",
             "size": 5, "key": "a.txt", "etag": '"e1"'},
            {"status": "success", "type": "folder", "lastModified": "2024-01-01T00:00:00Z",
             "size": 0, "key": "sub/", "etag": ""},
        ]
        listing.write_text("\n".join(json.dumps(r) for r in records) + "\nnot json\n")

        result = runner.invoke(cli, ["import-list", "-p", "demo", str(listing)])

        assert result.exit_code == 0, result.output
        assert "Imported 1 new files" in result.output


class TestFormatSize:
    """Tests for format_size()."""

    def test_bytes(self) -> None:
        assert format_size(512) == "512 B"

    def test_binary_units(self) -> None:
        assert format_size(1536) == "1.5 KiB"
        assert format_size(5 * 1024 * 1024) == "5.0 MiB"
        assert format_size(3 * 1024**4) == "3.0 TiB"
