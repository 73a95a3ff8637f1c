"""
System interaction utilities.

This module provides the builder's contact points with the host system:

- Command execution with error handling and logging
- Dependency detection with Homebrew installation for selected tools
- The git client used for syncing and polling the remote
- Build process termination
- Rust toolchain tuning (environment and .cargo/config.toml)
"""

from .commands import (
    INSTALL_HINTS,
    check_dependencies,
    find_missing_tools,
    format_command,
    is_tool_available,
    run_command,
)

from .processes import get_process_children, is_process_alive, request_termination

from .toolchain import (
    build_command,
    detect_cpu_count,
    prepare_build_environment,
    write_cargo_config,
)

from .vcs import GitClient

__all__ = [
    # Commands
    "INSTALL_HINTS",
    "check_dependencies",
    "find_missing_tools",
    "format_command",
    "is_tool_available",
    "run_command",
    # Processes
    "get_process_children",
    "is_process_alive",
    "request_termination",
    # Toolchain
    "build_command",
    "detect_cpu_count",
    "prepare_build_environment",
    "write_cargo_config",
    # Version control
    "GitClient",
]
