"""Command-line interface for bucketsync.

This module provides the main CLI entry point and assembles all commands.

Commands:
- config: Create or update a project's configuration
- update-list: Reconcile the source bucket listing into the catalog
- import-list: Import a listing captured with ``mc ls --json``
- sync: Copy pending files to the destination
- status: Show the sync status of a project
"""

from __future__ import annotations

from pathlib import Path

import click

from bucketsync.cli.catalog import import_list, update_list
from bucketsync.cli.common import CLIContext, setup_logging
from bucketsync.cli.config import HOME_ENV_VAR, get_projects_dir
from bucketsync.cli.project import config_cmd
from bucketsync.cli.status import format_size, status
from bucketsync.cli.sync import sync


@click.group()
@click.option(
    "--home",
    envvar=HOME_ENV_VAR,
    type=click.Path(file_okay=False, path_type=Path),
    help=f"Projects directory (default: ${HOME_ENV_VAR} or ./projects).",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging.")
@click.option("--quiet", "-q", is_flag=True, help="Only log warnings and errors.")
@click.version_option(package_name="bucketsync")
@click.pass_context
def cli(ctx: click.Context, home: Path | None, verbose: bool, quiet: bool) -> None:
    """bucketsync - Resumable bulk copy between object stores."""
    setup_logging(verbose, quiet)
    ctx.obj = CLIContext(projects_dir=home.expanduser() if home else get_projects_dir())


# Project commands
cli.add_command(config_cmd)

# Catalog commands
cli.add_command(update_list)
cli.add_command(import_list)

# Copy commands
cli.add_command(sync)
cli.add_command(status)


def main() -> None:
    """Entry point for the bucketsync command."""
    cli()


__all__ = ["cli", "format_size", "main"]
