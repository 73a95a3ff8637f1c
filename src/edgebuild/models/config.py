"""
Configuration data models.

This module contains the configuration structures for the builder itself
and for each project it knows how to build and install.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional


@dataclass
class BuilderConfig:
    """
    Global builder behaviour, loaded from `config.toml`.
    """

    # [builder.general]
    log_root_dir: Path
    capture_build_output: bool
    release: bool

    # [builder.watch]
    poll_interval_seconds: float
    max_restarts: int  # 0 means unbounded
    restart_backoff_seconds: float
    sync_retry_attempts: int
    sync_retry_delay: float

    # [builder.toolchain]
    tune_toolchain: bool
    target_cpu_native: bool
    write_cargo_config: bool
    cargo_cache_dir: Path
    brew_installable: List[str] = field(default_factory=list)

    # [builder.install]
    launcher_dir: Path = Path("/usr/local/bin")
    refresh_icon_cache: bool = False
    launch_after_install: bool = False


@dataclass
class ProjectConfig:
    """
    A single buildable project, loaded from `projects.toml`.
    """

    # Unique identifier used on the command line (e.g. "zed-edge").
    name: str
    # Name shown in Finder and the Dock (e.g. "ZED EDGE").
    display_name: str
    # CFBundleIdentifier used when a bundle has to be synthesized.
    bundle_identifier: str
    # Working copy the build tool runs in.
    source_dir: Path
    # Name of the executable produced under target/<profile>/.
    binary_name: str
    # Destination of the installed application (e.g. /Applications/ZED EDGE.app).
    install_dir: Path
    # True when source_dir is a clone this tool creates and keeps in sync.
    managed_clone: bool = True
    repo_url: str = ""
    branch: str = "main"
    # App bundle the build tool may emit next to the binary (e.g. "Zed.app").
    build_bundle_name: str = ""
    # "bundle" builds a customized .app, "binary" only drops the binary into Contents/MacOS.
    packaging: str = "bundle"
    logo_path: Optional[Path] = None
    required_tools: List[str] = field(default_factory=lambda: ["git", "cargo"])
    watch_upstream: bool = True
    default_launcher_name: str = ""
    # RUST_LOG value exported when running a debug build.
    debug_rust_log: str = ""
    # Replaces the generated `cargo build` invocation when set.
    build_command: List[str] = field(default_factory=list)

    @property
    def marker_file(self) -> Path:
        """File recording the last successfully built revision."""
        return self.source_dir / ".last_built_commit"

    @property
    def backup_dir(self) -> Path:
        """Where the previous installation is kept during an install."""
        return self.install_dir.with_name(self.install_dir.name + ".bak")

    def artifact_path(self, release: bool) -> Path:
        """Path of the compiled binary for the given build profile."""
        profile = "release" if release else "debug"
        return self.source_dir / "target" / profile / self.binary_name


@dataclass
class AppConfig:
    """
    The root configuration object that aggregates all loaded settings.
    """

    builder: BuilderConfig
    projects: List[ProjectConfig]

    def get_project(self, name: str) -> ProjectConfig:
        """Return the project called ``name``; KeyError if unknown."""
        for project in self.projects:
            if project.name == name:
                return project
        raise KeyError(name)
