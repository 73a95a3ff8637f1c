"""
Reading the TOML files that make up the configuration.

``config.toml`` holds the builder settings and points at ``projects.toml``,
which lists every project as a ``[[projects]]`` table.
"""

import logging
import tomllib
from pathlib import Path
from typing import Any, Dict, List

from ..validation import ValidationError

logger = logging.getLogger(__name__)


def load_toml_file(file_path: Path, description: str = "configuration file") -> Dict[str, Any]:
    """
    Parse ``file_path`` as TOML.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValidationError: If the file is not valid TOML
    """
    logger.debug(f"Reading {description}: {file_path}")
    if not file_path.is_file():
        raise FileNotFoundError(f"{description} not found: {file_path}")

    with open(file_path, "rb") as f:
        try:
            return tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ValidationError(f"{description} {file_path} is not valid TOML: {e}") from e


def load_main_config(config_path: Path) -> Dict[str, Any]:
    return load_toml_file(config_path, "main configuration file")


def load_projects_config(projects_path: Path) -> List[Dict[str, Any]]:
    """
    Return the raw ``[[projects]]`` tables of ``projects_path``.

    Raises:
        ValidationError: If there is no non-empty ``projects`` array of tables
    """
    data = load_toml_file(projects_path, "projects configuration file")
    projects = data.get("projects")
    if not isinstance(projects, list) or not projects:
        raise ValidationError(
            f"{projects_path} must define at least one [[projects]] table",
            field_name="projects",
        )
    for index, entry in enumerate(projects):
        if not isinstance(entry, dict):
            raise ValidationError(
                f"projects[{index}] in {projects_path} must be a table",
                field_name=f"projects[{index}]",
                value=entry,
            )
    return projects


def get_config_paths(main_config_data: Dict[str, Any], config_dir: Path) -> Dict[str, Path]:
    """
    Resolve the files referenced from ``[paths]``.

    Relative paths are taken relative to the directory of config.toml.

    Raises:
        KeyError: If ``[paths] projects_config`` is missing
    """
    projects_file = main_config_data.get("paths", {}).get("projects_config")
    if not projects_file:
        raise KeyError("Missing 'projects_config' path in [paths] section of config.toml")

    projects_path = Path(projects_file).expanduser()
    if not projects_path.is_absolute():
        projects_path = config_dir / projects_path
    return {"projects": projects_path}
