"""
Configuration validation utilities.

Turns the raw dictionaries read from config.toml and projects.toml into
validated BuilderConfig and ProjectConfig instances.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..models.config import BuilderConfig, ProjectConfig
from ..validation import (
    ValidationError,
    validate_boolean,
    validate_enum_choice,
    validate_launcher_name,
    validate_non_empty_string,
    validate_positive_float,
    validate_positive_integer,
    validate_project_name,
)

logger = logging.getLogger(__name__)

PACKAGING_MODES = ["bundle", "binary"]


def _resolve_path(value: Any, base_dir: Optional[Path], field_name: str) -> Path:
    """Expand ``~`` and resolve relative paths against ``base_dir``."""
    raw = validate_non_empty_string(value, field_name=field_name)
    path = Path(raw).expanduser()
    if not path.is_absolute() and base_dir is not None:
        path = base_dir / path
    return path


def _validate_string_list(value: Any, field_name: str) -> List[str]:
    if not isinstance(value, list):
        raise ValidationError(f"{field_name} must be a list of strings", field_name=field_name, value=value)
    return [
        validate_non_empty_string(item, field_name=f"{field_name}[{i}]")
        for i, item in enumerate(value)
    ]


def validate_builder_config(builder_data: Dict[str, Any], base_dir: Optional[Path] = None) -> BuilderConfig:
    """
    Validate and create a BuilderConfig from the raw [builder] table.

    Args:
        builder_data: Raw builder configuration from TOML
        base_dir: Directory relative paths are resolved against

    Returns:
        Validated BuilderConfig instance

    Raises:
        ValidationError: If validation fails
    """
    general = builder_data.get("general", {})
    watch = builder_data.get("watch", {})
    toolchain = builder_data.get("toolchain", {})
    install = builder_data.get("install", {})

    log_root_dir = _resolve_path(
        general.get("log_root_dir", "logs"), base_dir, "builder.general.log_root_dir"
    )
    capture_build_output = validate_boolean(
        general.get("capture_build_output", False), "builder.general.capture_build_output"
    )
    release = validate_boolean(general.get("release", True), "builder.general.release")

    poll_interval_seconds = validate_positive_float(
        watch.get("poll_interval_seconds", 60.0),
        min_value=0.01,
        max_value=3600.0,
        field_name="builder.watch.poll_interval_seconds",
    )
    max_restarts = validate_positive_integer(
        watch.get("max_restarts", 5),
        min_value=0,
        max_value=1000,
        field_name="builder.watch.max_restarts",
    )
    restart_backoff_seconds = validate_positive_float(
        watch.get("restart_backoff_seconds", 0.0),
        min_value=0.0,
        max_value=3600.0,
        field_name="builder.watch.restart_backoff_seconds",
    )
    sync_retry_attempts = validate_positive_integer(
        watch.get("sync_retry_attempts", 3),
        min_value=1,
        max_value=20,
        field_name="builder.watch.sync_retry_attempts",
    )
    sync_retry_delay = validate_positive_float(
        watch.get("sync_retry_delay", 5.0),
        min_value=0.0,
        max_value=600.0,
        field_name="builder.watch.sync_retry_delay",
    )

    tune_toolchain = validate_boolean(
        toolchain.get("tune_toolchain", True), "builder.toolchain.tune_toolchain"
    )
    target_cpu_native = validate_boolean(
        toolchain.get("target_cpu_native", True), "builder.toolchain.target_cpu_native"
    )
    write_cargo_config = validate_boolean(
        toolchain.get("write_cargo_config", False), "builder.toolchain.write_cargo_config"
    )
    cargo_cache_dir = _resolve_path(
        toolchain.get("cargo_cache_dir", "~/.cargo"), None, "builder.toolchain.cargo_cache_dir"
    )
    brew_installable = _validate_string_list(
        toolchain.get("brew_installable", ["pkg-config"]), "builder.toolchain.brew_installable"
    )

    launcher_dir = _resolve_path(
        install.get("launcher_dir", "/usr/local/bin"), None, "builder.install.launcher_dir"
    )
    refresh_icon_cache = validate_boolean(
        install.get("refresh_icon_cache", False), "builder.install.refresh_icon_cache"
    )
    launch_after_install = validate_boolean(
        install.get("launch_after_install", False), "builder.install.launch_after_install"
    )

    return BuilderConfig(
        log_root_dir=log_root_dir,
        capture_build_output=capture_build_output,
        release=release,
        poll_interval_seconds=poll_interval_seconds,
        max_restarts=max_restarts,
        restart_backoff_seconds=restart_backoff_seconds,
        sync_retry_attempts=sync_retry_attempts,
        sync_retry_delay=sync_retry_delay,
        tune_toolchain=tune_toolchain,
        target_cpu_native=target_cpu_native,
        write_cargo_config=write_cargo_config,
        cargo_cache_dir=cargo_cache_dir,
        brew_installable=brew_installable,
        launcher_dir=launcher_dir,
        refresh_icon_cache=refresh_icon_cache,
        launch_after_install=launch_after_install,
    )


def validate_project_config(
    project_data: Dict[str, Any],
    index: int = 0,
    base_dir: Optional[Path] = None,
    existing_names: Optional[List[str]] = None,
) -> ProjectConfig:
    """
    Validate a single [[projects]] entry.

    Raises:
        ValidationError: If validation fails
    """
    prefix = f"projects[{index}]"
    if not isinstance(project_data, dict):
        raise ValidationError(f"{prefix} must be a table", field_name=prefix, value=project_data)

    name = validate_project_name(
        project_data.get("name", ""), existing_names=existing_names, field_name=f"{prefix}.name"
    )
    prefix = f"projects[{name}]"

    display_name = validate_non_empty_string(
        project_data.get("display_name", name), field_name=f"{prefix}.display_name"
    )
    bundle_identifier = validate_non_empty_string(
        project_data.get("bundle_identifier", f"dev.edgebuild.{name}"),
        field_name=f"{prefix}.bundle_identifier",
    )
    source_dir = _resolve_path(project_data.get("source_dir"), base_dir, f"{prefix}.source_dir")
    binary_name = validate_non_empty_string(
        project_data.get("binary_name"), field_name=f"{prefix}.binary_name"
    )
    install_dir = _resolve_path(project_data.get("install_dir"), base_dir, f"{prefix}.install_dir")

    managed_clone = validate_boolean(
        project_data.get("managed_clone", True), f"{prefix}.managed_clone"
    )
    repo_url = project_data.get("repo_url", "")
    if not isinstance(repo_url, str):
        raise ValidationError(f"{prefix}.repo_url must be a string", field_name=f"{prefix}.repo_url", value=repo_url)
    if managed_clone and not repo_url.strip():
        raise ValidationError(
            f"{prefix}.repo_url is required when managed_clone is true",
            field_name=f"{prefix}.repo_url",
            value=repo_url,
        )
    branch = validate_non_empty_string(project_data.get("branch", "main"), field_name=f"{prefix}.branch")

    watch_upstream = validate_boolean(
        project_data.get("watch_upstream", managed_clone), f"{prefix}.watch_upstream"
    )
    if watch_upstream and not repo_url.strip():
        raise ValidationError(
            f"{prefix}.watch_upstream requires repo_url",
            field_name=f"{prefix}.watch_upstream",
            value=watch_upstream,
        )
    # An unmanaged checkout is never synced, so it can't catch up with upstream
    if watch_upstream and not managed_clone:
        raise ValidationError(
            f"{prefix}.watch_upstream requires managed_clone = true",
            field_name=f"{prefix}.watch_upstream",
            value=watch_upstream,
        )

    packaging = validate_enum_choice(
        project_data.get("packaging", "bundle"),
        valid_choices=PACKAGING_MODES,
        field_name=f"{prefix}.packaging",
    )
    build_bundle_name = project_data.get("build_bundle_name", "")
    if not isinstance(build_bundle_name, str):
        raise ValidationError(
            f"{prefix}.build_bundle_name must be a string",
            field_name=f"{prefix}.build_bundle_name",
            value=build_bundle_name,
        )

    logo_path = None
    if project_data.get("logo_path"):
        logo_path = _resolve_path(project_data["logo_path"], base_dir, f"{prefix}.logo_path")

    required_tools = _validate_string_list(
        project_data.get("required_tools", ["git", "cargo"]), f"{prefix}.required_tools"
    )

    default_launcher_name = project_data.get("default_launcher_name", "")
    if default_launcher_name:
        default_launcher_name = validate_launcher_name(
            default_launcher_name, field_name=f"{prefix}.default_launcher_name"
        )

    debug_rust_log = project_data.get("debug_rust_log", "")
    if not isinstance(debug_rust_log, str):
        raise ValidationError(
            f"{prefix}.debug_rust_log must be a string",
            field_name=f"{prefix}.debug_rust_log",
            value=debug_rust_log,
        )

    build_command = _validate_string_list(
        project_data.get("build_command", []), f"{prefix}.build_command"
    )

    return ProjectConfig(
        name=name,
        display_name=display_name,
        bundle_identifier=bundle_identifier,
        source_dir=source_dir,
        binary_name=binary_name,
        install_dir=install_dir,
        managed_clone=managed_clone,
        repo_url=repo_url.strip(),
        branch=branch,
        build_bundle_name=build_bundle_name.strip(),
        packaging=packaging,
        logo_path=logo_path,
        required_tools=required_tools,
        watch_upstream=watch_upstream,
        default_launcher_name=default_launcher_name,
        debug_rust_log=debug_rust_log,
        build_command=build_command,
    )


def validate_projects_config(
    projects_data: List[Dict[str, Any]], base_dir: Optional[Path] = None
) -> List[ProjectConfig]:
    """
    Validate every [[projects]] entry; names must be unique.

    Raises:
        ValidationError: If the list is empty or any entry is invalid
    """
    if not isinstance(projects_data, list) or not projects_data:
        raise ValidationError("projects.toml must define at least one [[projects]] entry")

    projects: List[ProjectConfig] = []
    for i, project_data in enumerate(projects_data):
        project = validate_project_config(
            project_data,
            index=i,
            base_dir=base_dir,
            existing_names=[p.name for p in projects],
        )
        projects.append(project)
        logger.debug(f"Validated project '{project.name}' ({project.packaging})")

    return projects
