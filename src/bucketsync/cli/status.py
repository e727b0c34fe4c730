"""Status command for bucketsync CLI.

Commands:
- status: Show per-status counts and recent errors
"""

from __future__ import annotations

import click

from bucketsync.cli.common import CLIContext, fail, pass_context, require_project
from bucketsync.core.errors import SyncError


def format_size(size: int) -> str:
    """Format a byte count with binary units (e.g. "1.5 MiB")."""
    unit = 1024
    if size < unit:
        return f"{size} B"
    value = float(size)
    for suffix in ("KiB", "MiB", "GiB", "TiB", "PiB"):
        value /= unit
        if value < unit:
            break
    return f"{value:.1f} {suffix}"


@click.command()
@click.option("--project", "-p", required=True, help="Project name.")
@click.option(
    "--errors",
    "error_limit",
    type=click.IntRange(min=0),
    default=10,
    show_default=True,
    help="Number of recent errors to show.",
)
@pass_context
def status(ctx: CLIContext, project: str, error_limit: int) -> None:
    """Show the current sync status of a project."""
    from bucketsync.catalog import CatalogStore
    from bucketsync.sync import StatusReporter

    config = require_project(ctx, project)

    try:
        store = CatalogStore(config.database_path)
        try:
            report = StatusReporter(store).snapshot(project, error_limit)
        finally:
            store.close()
    except SyncError as e:
        fail(f"Failed to get sync status: {e}")

    click.echo("\nSync Status:")
    click.echo("------------")
    for count in report.counts:
        click.echo(
            f"{count.status.value:<10}: {count.count:>5} files ({format_size(count.total_size)})"
        )
    click.echo(f"\nTotal: {report.total_files} files ({format_size(report.total_size)})")

    if report.recent_errors:
        click.echo("\nRecent Errors:")
        click.echo("--------------")
        for entry in report.recent_errors:
            click.echo(f"File: {entry.path}")
            click.echo(f"Error: {entry.error_message}")
            click.echo(f"Time: {entry.updated_at.isoformat(timespec='seconds')}\n")
