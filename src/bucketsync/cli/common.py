"""Helpers shared by bucketsync CLI commands."""

from __future__ import annotations

import contextlib
import logging
import signal
import sys
import threading
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import Any, NoReturn

import click

from bucketsync.cli.config import get_project_config
from bucketsync.core.config import ProjectConfig
from bucketsync.core.errors import ConfigError

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


@dataclass
class CLIContext:
    """State shared by all commands of one invocation."""

    projects_dir: Path


pass_context = click.make_pass_decorator(CLIContext)


def setup_logging(verbose: bool, quiet: bool) -> None:
    """Configure the root logger for the CLI."""
    level = logging.INFO
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    logging.basicConfig(level=level, format=LOG_FORMAT, stream=sys.stderr, force=True)
    # boto internals are noisy at DEBUG
    for name in ("botocore", "boto3", "s3transfer", "urllib3"):
        logging.getLogger(name).setLevel(max(level, logging.INFO))


def fail(message: str) -> NoReturn:
    """Print an error and exit with status 1."""
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def require_project(ctx: CLIContext, name: str) -> ProjectConfig:
    """Load and validate a configured project, exiting if unusable."""
    try:
        config = get_project_config(ctx.projects_dir, name)
    except ConfigError as e:
        fail(str(e))
    if config is None:
        fail(f"No configuration found for project {name}. Run 'bucketsync config' first.")
    try:
        config.validate()
    except ConfigError as e:
        fail(f"Invalid configuration for project {name}: {e}")
    return config


@contextlib.contextmanager
def cancel_on_signal() -> Iterator[threading.Event]:
    """Set an event on SIGINT/SIGTERM for the duration of the block.

    The first signal requests a cooperative stop; handlers are restored
    on exit.
    """
    event = threading.Event()
    previous: dict[int, Any] = {}

    def handler(signum: int, frame: Any) -> None:
        if not event.is_set():
            click.echo("\nReceived interrupt signal. Finishing in-flight work...", err=True)
        event.set()

    if threading.current_thread() is threading.main_thread():
        for signum in (signal.SIGINT, signal.SIGTERM):
            previous[signum] = signal.signal(signum, handler)
    try:
        yield event
    finally:
        for signum, old in previous.items():
            signal.signal(signum, old)
