"""
edgebuild: build bleeding-edge applications from source and install them
as customized macOS app bundles.

The package is organized into specialized modules:
- config: Configuration management and validation
- models: Data structures and type definitions
- validation: Input validation and error handling
- system: Commands, git, toolchain tuning and process termination
- storage: The last-built revision marker
- packaging: Bundle staging, icons, installation and launchers
- orchestration: The sync -> compile -> install loop and update watcher
- cli: Command-line interface

Usage:
    From command line:
        edgebuild [--project NAME] [--mode full|quick|debug] [options]

    Programmatically:
        from edgebuild import BuildOrchestrator, RunPolicy, get_config
        config = get_config()
        project = config.get_project("zed-edge")
        BuildOrchestrator(project, config.builder).run(RunPolicy())
"""

# Main interfaces
from .config import clear_config_cache, get_config, set_config_path
from .orchestration import BuildOrchestrator, UpdateWatcher
from .cli import main_cli

# Model classes for external use
from .models import (
    AppConfig,
    BuilderConfig,
    BuildRecord,
    BuildStatus,
    CompileResult,
    ProjectConfig,
    RevisionId,
    RunPolicy,
    RunSummary,
)

# Errors
from .validation import (
    BuildError,
    BuildInterrupted,
    CompileFailedError,
    DependencyError,
    InstallError,
    RestartLimitExceeded,
    SyncError,
    ValidationError,
)

__version__ = "1.0.0"

__all__ = [
    # Main interfaces
    "get_config",
    "clear_config_cache",
    "set_config_path",
    "BuildOrchestrator",
    "UpdateWatcher",
    "main_cli",
    # Models
    "AppConfig",
    "BuilderConfig",
    "BuildRecord",
    "BuildStatus",
    "CompileResult",
    "ProjectConfig",
    "RevisionId",
    "RunPolicy",
    "RunSummary",
    # Errors
    "BuildError",
    "BuildInterrupted",
    "CompileFailedError",
    "DependencyError",
    "InstallError",
    "RestartLimitExceeded",
    "SyncError",
    "ValidationError",
]
