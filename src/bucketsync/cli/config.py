"""Project configuration persistence for the bucketsync CLI.

Projects live in a single JSON document, ``config.json``, under the
projects directory. Each project also owns a sub-directory holding its
catalog database.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

from bucketsync.core.config import ProjectConfig
from bucketsync.core.errors import ConfigError

HOME_ENV_VAR = "BUCKETSYNC_HOME"
DEFAULT_PROJECTS_DIR = "projects"
CATALOG_FILENAME = "catalog.db"


def get_projects_dir() -> Path:
    """Get the projects directory.

    Returns:
        $BUCKETSYNC_HOME if set, ./projects otherwise.
    """
    return Path(os.environ.get(HOME_ENV_VAR) or DEFAULT_PROJECTS_DIR).expanduser()


def get_config_file(projects_dir: Path) -> Path:
    """Get the path to the config file."""
    return projects_dir / "config.json"


def default_database_path(projects_dir: Path, project: str) -> Path:
    """Default catalog location of a project."""
    return projects_dir / project / CATALOG_FILENAME


def load_config(projects_dir: Path) -> dict[str, Any]:
    """Load all project configurations.

    Returns:
        Mapping of project name to its serialized configuration
        (empty if the file does not exist).

    Raises:
        ConfigError: If the file exists but cannot be parsed.
    """
    config_file = get_config_file(projects_dir)
    if not config_file.exists():
        return {}
    try:
        data = json.loads(config_file.read_text())
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"Cannot read {config_file}: {e}") from e
    projects = data.get("projects", {}) if isinstance(data, dict) else {}
    return dict(projects)


def save_config(projects_dir: Path, projects: dict[str, Any]) -> None:
    """Save all project configurations."""
    config_file = get_config_file(projects_dir)
    config_file.parent.mkdir(parents=True, exist_ok=True)
    config_file.write_text(json.dumps({"projects": projects}, indent=2))


def get_project_config(projects_dir: Path, name: str) -> ProjectConfig | None:
    """Load one project's configuration.

    Returns:
        ProjectConfig, or None if the project is not configured.
    """
    data = load_config(projects_dir).get(name)
    if data is None:
        return None
    config = ProjectConfig.from_dict(name, data)
    if not str(data.get("database_path") or ""):
        config.database_path = default_database_path(projects_dir, name)
    return config


def set_project_config(projects_dir: Path, config: ProjectConfig) -> None:
    """Store one project's configuration, keeping the others."""
    projects = load_config(projects_dir)
    projects[config.name] = config.to_dict()
    save_config(projects_dir, projects)
