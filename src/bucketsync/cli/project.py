"""Project configuration command for bucketsync CLI.

Commands:
- config: Create or update a project's configuration
"""

from __future__ import annotations

from typing import Any

import click

from bucketsync.cli.common import CLIContext, fail, pass_context
from bucketsync.cli.config import default_database_path, get_project_config, set_project_config
from bucketsync.core.config import DestinationType, LocalConfig, ProjectConfig, S3Config
from bucketsync.core.errors import ConfigError


def _merge_s3(existing: S3Config | None, values: dict[str, Any]) -> S3Config:
    """Overlay the options given on the command line onto a stored bucket config."""
    data = existing.to_dict() if existing else {}
    data.update({k: v for k, v in values.items() if v is not None})
    return S3Config.from_dict(data)


@click.command("config")
@click.option("--project", "-p", required=True, help="Project name.")
@click.option("--source-endpoint", help="Source endpoint (host:port or URL).")
@click.option("--source-access-key", help="Source access key.")
@click.option("--source-secret-key", help="Source secret key.")
@click.option("--source-bucket", help="Source bucket.")
@click.option("--source-folder", help="Source folder prefix (e.g. documents/2024).")
@click.option("--source-region", help="Source region.")
@click.option("--source-use-ssl/--source-no-ssl", default=None, help="Use HTTPS for the source.")
@click.option(
    "--dest-type",
    type=click.Choice([t.value for t in DestinationType]),
    help="Destination type.",
)
@click.option("--dest-endpoint", help="Destination endpoint (dest-type s3).")
@click.option("--dest-access-key", help="Destination access key (dest-type s3).")
@click.option("--dest-secret-key", help="Destination secret key (dest-type s3).")
@click.option("--dest-bucket", help="Destination bucket (dest-type s3).")
@click.option("--dest-folder", help="Destination folder prefix (dest-type s3).")
@click.option("--dest-region", help="Destination region (dest-type s3).")
@click.option("--dest-use-ssl/--dest-no-ssl", default=None, help="Use HTTPS for the destination.")
@click.option("--local-path", help="Destination directory (dest-type local).")
@click.option("--workers", type=click.IntRange(min=1), help="Default number of copy workers.")
@pass_context
def config_cmd(ctx: CLIContext, project: str, **options: Any) -> None:
    """Save configuration for a project.

    Options not given keep their stored value, so an existing project can
    be updated one setting at a time.
    """
    try:
        existing = get_project_config(ctx.projects_dir, project)
    except ConfigError as e:
        fail(str(e))

    source = _merge_s3(
        existing.source if existing else None,
        {
            "endpoint": options["source_endpoint"],
            "access_key": options["source_access_key"],
            "secret_key": options["source_secret_key"],
            "bucket": options["source_bucket"],
            "folder": options["source_folder"],
            "region": options["source_region"],
            "use_ssl": options["source_use_ssl"],
        },
    )

    if options["dest_type"]:
        dest_type = DestinationType(options["dest_type"])
    elif existing:
        dest_type = existing.dest_type
    else:
        dest_type = DestinationType.S3

    dest_s3 = existing.dest_s3 if existing else None
    dest_local = existing.dest_local if existing else None
    if dest_type == DestinationType.S3:
        dest_s3 = _merge_s3(
            dest_s3,
            {
                "endpoint": options["dest_endpoint"],
                "access_key": options["dest_access_key"],
                "secret_key": options["dest_secret_key"],
                "bucket": options["dest_bucket"],
                "folder": options["dest_folder"],
                "region": options["dest_region"],
                "use_ssl": options["dest_use_ssl"],
            },
        )
        dest_local = None
    else:
        if options["local_path"]:
            dest_local = LocalConfig(path=options["local_path"])
        dest_s3 = None

    config = ProjectConfig(
        name=project,
        source=source,
        dest_type=dest_type,
        database_path=(
            existing.database_path if existing
            else default_database_path(ctx.projects_dir, project)
        ),
        dest_s3=dest_s3,
        dest_local=dest_local,
        workers=options["workers"] or (existing.workers if existing else 5),
    )

    try:
        config.validate()
    except ConfigError as e:
        fail(str(e))

    set_project_config(ctx.projects_dir, config)
    click.echo(f"Configuration saved for project {project}")
