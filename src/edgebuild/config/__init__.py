"""
Configuration management for the edgebuild package.

This module provides a clean interface for loading, validating, and accessing
configuration data from TOML files with singleton pattern management.
"""

from .manager import (
    CONFIG_ENV_VAR,
    DEFAULT_CONFIG_PATH,
    clear_config_cache,
    get_config,
    get_config_path,
    is_config_loaded,
    load_config,
    resolve_config_path,
    set_config_path,
)

from .loader import (
    get_config_paths,
    load_main_config,
    load_projects_config,
    load_toml_file,
)
from .validators import (
    validate_builder_config,
    validate_project_config,
    validate_projects_config,
)

__all__ = [
    # Main interface
    "CONFIG_ENV_VAR",
    "DEFAULT_CONFIG_PATH",
    "resolve_config_path",
    "get_config",
    "get_config_path",
    "set_config_path",
    "clear_config_cache",
    "is_config_loaded",
    "load_config",
    # Advanced interface
    "load_toml_file",
    "load_main_config",
    "load_projects_config",
    "get_config_paths",
    "validate_builder_config",
    "validate_project_config",
    "validate_projects_config",
]
