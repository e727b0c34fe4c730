"""Sync command for bucketsync CLI.

Commands:
- sync: Copy every pending object to the destination
"""

from __future__ import annotations

import click

from bucketsync.cli.common import CLIContext, cancel_on_signal, fail, pass_context, require_project
from bucketsync.core.errors import SyncError


@click.command()
@click.option("--project", "-p", required=True, help="Project name.")
@click.option(
    "--workers",
    "-w",
    type=click.IntRange(min=1),
    help="Number of concurrent workers (default: project setting).",
)
@click.option("--no-progress", is_flag=True, help="Do not print one line per file.")
@pass_context
def sync(ctx: CLIContext, project: str, workers: int | None, no_progress: bool) -> None:
    """Copy pending and failed files to the destination.

    Files already present at the destination are skipped. Run again after
    an interruption or failure to resume.
    """
    from bucketsync.sync import CopyOutcome, CopyResult, SyncService

    config = require_project(ctx, project)
    worker_count = workers or config.workers

    symbols = {
        CopyOutcome.COMPLETED: "✓",
        CopyOutcome.EXISTS: "=",
        CopyOutcome.FAILED: "✗",
    }

    def on_result(result: CopyResult) -> None:
        symbol = symbols.get(result.outcome)
        if no_progress or symbol is None:
            return
        line = f"  {symbol} {result.path}"
        if result.error:
            line += f": {result.error}"
        click.echo(line)

    click.echo(f"Starting sync with {worker_count} workers...")
    try:
        with SyncService(config) as service, cancel_on_signal() as cancel_event:
            result = service.run(worker_count, cancel_event=cancel_event, on_result=on_result)
    except SyncError as e:
        fail(f"Sync aborted: {e}")

    click.echo(
        f"\n{result.completed} copied, {result.exists} already present, "
        f"{result.failed} failed ({result.elapsed_time:.1f}s)"
    )

    if result.cancelled:
        fail(f"Sync interrupted; {result.cancelled} files left for the next run.")
    if result.failed:
        click.echo(click.style("\nErrors:", fg="red"))
        for failure in result.failures:
            click.echo(f"  ✗ {failure.path}: {failure.error}")
        fail(f"Sync completed with {result.failed} errors")

    if result.total == 0:
        click.echo("Everything is up to date.")
    else:
        click.echo("Sync completed successfully")
