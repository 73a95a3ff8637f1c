"""
Command-line launcher that opens the installed application.
"""

import logging
import os
import shlex
from pathlib import Path

from ..validation import InstallError, validate_launcher_name

logger = logging.getLogger(__name__)

LAUNCHER_TEMPLATE = """#!/bin/bash
if [ $# -eq 0 ]; then
    open {app_path}
else
    open -a {app_name} "$@"
fi
"""


def render_launcher(install_dir: Path, display_name: str) -> str:
    return LAUNCHER_TEMPLATE.format(
        app_path=shlex.quote(str(install_dir)),
        app_name=shlex.quote(display_name),
    )


def create_launcher(launcher_dir: Path, name: str, install_dir: Path, display_name: str) -> Path:
    """
    Write an executable wrapper script ``launcher_dir/name``.

    Any existing file or symlink with that name is replaced.

    Raises:
        ValidationError: If ``name`` is not a plain file name
        InstallError: If the launcher cannot be written
    """
    name = validate_launcher_name(name)
    launcher_path = launcher_dir / name
    logger.info(f"Creating command-line wrapper at {launcher_path}...")

    try:
        launcher_dir.mkdir(parents=True, exist_ok=True)
        if launcher_path.is_symlink() or launcher_path.exists():
            launcher_path.unlink()
        launcher_path.write_text(render_launcher(install_dir, display_name), encoding="utf-8")
        os.chmod(launcher_path, 0o755)
    except PermissionError as e:
        raise InstallError(
            f"Cannot write launcher {launcher_path}: {e}. You may need admin privileges."
        ) from e
    except OSError as e:
        raise InstallError(f"Cannot write launcher {launcher_path}: {e}") from e

    return launcher_path
