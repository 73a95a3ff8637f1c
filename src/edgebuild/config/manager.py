"""
Process-wide configuration.

The configuration is loaded lazily on the first ``get_config()`` call and
cached until the path changes or the cache is cleared.
"""

import logging
import os
from pathlib import Path
from typing import Optional

from ..models.config import AppConfig
from ..validation import ErrorSeverity, handle_config_error
from .loader import get_config_paths, load_main_config, load_projects_config
from .validators import validate_builder_config, validate_projects_config

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "EDGEBUILD_CONFIG"

# conf/config.toml of the source checkout
DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent.parent / "conf" / "config.toml"

_CONFIG: Optional[AppConfig] = None
_CONFIG_FILE_PATH = DEFAULT_CONFIG_PATH


def resolve_config_path(explicit: Optional[Path] = None) -> Path:
    """
    Pick the config.toml to use.

    An explicit path wins over ``$EDGEBUILD_CONFIG``, which wins over the
    checkout's ``conf/config.toml``.
    """
    if explicit:
        return Path(explicit).expanduser()
    from_env = os.environ.get(CONFIG_ENV_VAR)
    if from_env:
        return Path(from_env).expanduser()
    return DEFAULT_CONFIG_PATH


def set_config_path(config_path: Path) -> None:
    """Point ``get_config()`` at ``config_path`` and drop the cached config."""
    global _CONFIG_FILE_PATH, _CONFIG
    _CONFIG_FILE_PATH = Path(config_path)
    _CONFIG = None
    logger.debug(f"Configuration path set to: {config_path}")


def get_config_path() -> Path:
    return _CONFIG_FILE_PATH


def clear_config_cache() -> None:
    global _CONFIG
    _CONFIG = None


def load_config(config_path: Path) -> AppConfig:
    """
    Load and validate config.toml and the projects file it references.

    Relative paths in config.toml are resolved against its directory, and
    relative paths in projects.toml against the projects file's directory.

    Raises:
        FileNotFoundError: If a configuration file is missing
        KeyError: If ``[paths] projects_config`` is missing
        ValidationError: If a file is malformed or a value is invalid
    """
    config_path = Path(config_path)
    logger.info(f"Loading configuration from {config_path}")
    try:
        main_config_data = load_main_config(config_path)
        projects_path = get_config_paths(main_config_data, config_path.parent)["projects"]

        builder = validate_builder_config(
            main_config_data.get("builder", {}), base_dir=config_path.parent
        )
        projects = validate_projects_config(
            load_projects_config(projects_path), base_dir=projects_path.parent
        )
    except FileNotFoundError as e:
        handle_config_error(e, "loading configuration file", severity=ErrorSeverity.ERROR,
                            reraise=False, logger=logger)
        raise

    names = ", ".join(p.name for p in projects)
    logger.info(f"Loaded {len(projects)} project(s): {names}")
    return AppConfig(builder=builder, projects=projects)


def get_config() -> AppConfig:
    """Return the cached AppConfig, loading it on first use."""
    global _CONFIG
    if _CONFIG is None:
        _CONFIG = load_config(_CONFIG_FILE_PATH)
    return _CONFIG


def is_config_loaded() -> bool:
    return _CONFIG is not None
