"""Catalog update commands for bucketsync CLI.

Commands:
- update-list: Reconcile the source bucket listing into the catalog
- import-list: Import a listing captured with ``mc ls --recursive --json``
"""

from __future__ import annotations

from pathlib import Path

import click

from bucketsync.cli.common import CLIContext, cancel_on_signal, fail, pass_context, require_project
from bucketsync.core.errors import CancelledException, SyncError


@click.command("update-list")
@click.option("--project", "-p", required=True, help="Project name.")
@pass_context
def update_list(ctx: CLIContext, project: str) -> None:
    """Update the catalog from the source bucket listing.

    New objects are queued for copy; objects whose ETag changed are queued
    again. Objects removed from the source are left alone.
    """
    from bucketsync.sync import SyncService

    config = require_project(ctx, project)
    click.echo("Updating source file list...")

    try:
        with SyncService(config) as service, cancel_on_signal() as cancel_event:
            result = service.reconcile(cancel_event=cancel_event)
    except CancelledException:
        fail("Listing interrupted; changes made so far are kept.")
    except SyncError as e:
        fail(f"Failed to update source file list: {e}")

    click.echo(
        f"Source file list updated: {result.added} added, {result.updated} updated, "
        f"{result.unchanged} unchanged"
    )


@click.command("import-list")
@click.option("--project", "-p", required=True, help="Project name.")
@click.argument("listing", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@pass_context
def import_list(ctx: CLIContext, project: str, listing: Path) -> None:
    """Import a pre-captured listing file into the catalog.

    LISTING holds one JSON record per line as produced by
    ``mc ls --recursive --json``. Only paths unknown to the catalog are
    added; malformed lines are skipped.
    """
    from bucketsync.sync import SyncService

    config = require_project(ctx, project)

    try:
        with SyncService(config) as service, cancel_on_signal() as cancel_event:
            result = service.import_file(listing, cancel_event=cancel_event)
    except CancelledException:
        fail("Import interrupted; records imported so far are kept.")
    except (SyncError, OSError) as e:
        fail(f"Failed to import {listing}: {e}")

    click.echo(f"Imported {result.added} new files ({result.unchanged} already known)")
