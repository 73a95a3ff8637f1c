"""
Command execution and dependency checking utilities.

This module provides functions for executing system commands and for
checking that the external tools a project needs are installed.
"""

import logging
import shlex
import shutil
import subprocess
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from ..validation import DependencyError

logger = logging.getLogger(__name__)

Command = Union[str, Sequence[str]]

# Shown next to each missing tool when the dependency check fails.
INSTALL_HINTS: Dict[str, str] = {
    "git": "brew install git",
    "cargo": "curl --proto '=https' --tlsv1.2 -sSf https://sh.rustup.rs | sh",
    "node": "brew install node",
    "cmake": "brew install cmake",
    "pkg-config": "brew install pkg-config",
    "sips": "ships with macOS",
    "iconutil": "ships with Xcode command line tools (xcode-select --install)",
}


def format_command(command: Command) -> str:
    """Render a command for log output."""
    if isinstance(command, str):
        return command
    return shlex.join([str(part) for part in command])


def run_command(
    command: Command,
    cwd: Optional[Path] = None,
    shell: bool = False,
    executable_shell: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
    timeout: Optional[float] = None,
) -> Tuple[int, str, str]:
    """Execute a command and capture its output with robust error handling.

    Args:
        command: The command string or argument list to execute.
        cwd: Working directory path for command execution.
        shell: Whether to use shell for execution (default: False).
        executable_shell: Specific shell executable path (e.g., '/bin/bash').
        env: Environment for the child process (inherits when None).
        timeout: Seconds before the command is abandoned.

    Returns:
        Tuple of (return_code, stdout_string, stderr_string).
        return_code is -1 for execution errors.
    """
    rendered = format_command(command)
    logger.debug(f"Executing command: '{rendered}' in '{cwd}'")
    try:
        process = subprocess.run(
            command,
            cwd=cwd,
            shell=shell,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            executable=executable_shell,
            env=dict(env) if env is not None else None,
            timeout=timeout,
            check=False,
        )
        return process.returncode, process.stdout, process.stderr
    except FileNotFoundError as e:
        program = command.split()[0] if isinstance(command, str) else command[0]
        logger.error(f"Command not found: {program}: {type(e).__name__}: {e}")
        return -1, "", f"Error: Command not found '{program}'"
    except subprocess.TimeoutExpired:
        logger.error(f"Command timed out after {timeout}s: '{rendered}'")
        return -1, "", f"Error: Command timed out after {timeout}s"
    except Exception as e:
        logger.error(f"Unexpected error while running command '{rendered[:50]}': {type(e).__name__}: {e}", exc_info=True)
        return -1, "", f"An unexpected error occurred: {e}"


def is_tool_available(tool: str) -> bool:
    """Return True if ``tool`` is found on PATH."""
    return shutil.which(tool) is not None


def find_missing_tools(tools: Iterable[str]) -> List[str]:
    """Return the tools from ``tools`` that are not on PATH, in order."""
    return [tool for tool in tools if not is_tool_available(tool)]


def check_dependencies(
    tools: Iterable[str],
    brew_installable: Iterable[str] = (),
) -> None:
    """
    Make sure every tool in ``tools`` is installed.

    Missing tools listed in ``brew_installable`` are installed with Homebrew
    when ``brew`` itself is available.

    Raises:
        DependencyError: If any tool is still missing afterwards
    """
    logger.info("Checking dependencies...")
    missing = find_missing_tools(tools)
    installable = set(brew_installable)

    if missing and is_tool_available("brew"):
        for tool in [t for t in missing if t in installable]:
            logger.info(f"{tool} is required but not installed. Installing with Homebrew...")
            return_code, _, stderr = run_command(["brew", "install", tool])
            if return_code != 0:
                logger.error(f"brew install {tool} failed: {stderr.strip()}")
        missing = find_missing_tools(missing)

    if missing:
        hints = {tool: INSTALL_HINTS.get(tool, "install it and make sure it is on PATH") for tool in missing}
        for tool, hint in hints.items():
            logger.error(f"Missing dependency: {tool} ({hint})")
        raise DependencyError(missing, hints)

    logger.info("All dependencies are installed.")
