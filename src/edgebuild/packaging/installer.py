"""
Backup-then-replace installation of a built artifact.

The existing installation is only removed once a complete new bundle has
been staged and a copy of the old one is safely in the backup location.
"""

import logging
import os
import plistlib
import shutil
from pathlib import Path
from typing import Optional, Tuple

from ..models.config import BuilderConfig, ProjectConfig
from ..models.runtime import InstallReport
from ..system.commands import run_command
from ..validation import InstallError
from .bundle import stage_bundle

logger = logging.getLogger(__name__)

STAGING_DIR_NAME = ".edgebuild-staging"
INCOMING_SUFFIX = ".incoming"


def _remove_path(path: Path) -> None:
    if path.is_symlink() or path.is_file():
        path.unlink()
    elif path.exists():
        shutil.rmtree(path)


def _copy_path(src: Path, dst: Path) -> None:
    if src.is_dir() and not src.is_symlink():
        shutil.copytree(src, dst, symlinks=True)
    else:
        shutil.copy2(src, dst, follow_symlinks=False)


def _permission_hint(path: Path) -> str:
    return f"You may need admin privileges to write to {path}"


def backup_and_replace(staged: Path, target: Path, backup: Path) -> Optional[Path]:
    """
    Replace ``target`` with ``staged``, keeping the old ``target`` in ``backup``.

    ``staged`` is first copied next to ``target`` so the final step is a
    rename on the same volume. A failed copy leaves ``target`` in place.

    Returns:
        The backup path if a previous installation was preserved

    Raises:
        InstallError: On any filesystem failure; ``backup_path`` is set once
            the backup exists
    """
    if not staged.exists():
        raise InstallError(f"Staged artifact {staged} does not exist")

    parent = target.parent
    try:
        parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise InstallError(f"Cannot create {parent}: {e}. {_permission_hint(parent)}") from e
    if not os.access(parent, os.W_OK):
        raise InstallError(f"{parent} is not writable. {_permission_hint(parent)}")

    incoming = parent / f".{target.name}{INCOMING_SUFFIX}"
    backup_path = None
    try:
        logger.info(f"Copying new version next to {target}...")
        try:
            _remove_path(incoming)
            _copy_path(staged, incoming)
        except PermissionError as e:
            raise InstallError(
                f"Could not copy to {parent}: {e}. {_permission_hint(parent)}"
            ) from e
        except OSError as e:
            raise InstallError(f"Could not copy to {parent}: {e}") from e

        if target.exists() or target.is_symlink():
            logger.info(f"Backing up existing installation to {backup}...")
            try:
                _remove_path(backup)
                _copy_path(target, backup)
            except OSError as e:
                raise InstallError(f"Could not back up {target} to {backup}: {e}") from e
            backup_path = backup

            try:
                _remove_path(target)
            except OSError as e:
                raise InstallError(
                    f"Could not remove the old installation at {target}: {e}", backup_path=backup_path
                ) from e

        logger.info(f"Installing to {target}...")
        try:
            incoming.rename(target)
        except OSError as e:
            raise InstallError(f"Could not move {incoming} to {target}: {e}", backup_path=backup_path) from e
    finally:
        if incoming.exists() or incoming.is_symlink():
            _remove_path(incoming)

    return backup_path


def install_target(project: ProjectConfig) -> Tuple[Path, Path]:
    """
    What an install replaces and where the previous version is kept.

    Returns:
        (target, backup): the whole bundle for ``bundle`` packaging, the
        executable inside Contents/MacOS for ``binary`` packaging
    """
    if project.packaging == "binary":
        macos_dir = project.install_dir / "Contents" / "MacOS"
        return macos_dir / project.binary_name, macos_dir / f"{project.binary_name}.bak"
    return project.install_dir, project.backup_dir


def restore_backup(project: ProjectConfig) -> bool:
    """Put the backup of the previous installation back in place."""
    target, backup = install_target(project)
    if not (backup.exists() or backup.is_symlink()):
        logger.warning(f"No backup found at {backup}")
        return False
    _remove_path(target)
    shutil.move(str(backup), str(target))
    logger.info(f"Restored {target} from {backup}")
    return True


def refresh_icon_cache() -> None:
    """Ask Finder and the Dock to reload so a new icon shows up."""
    logger.info("Refreshing icon cache...")
    for process_name in ("Finder", "Dock"):
        return_code, _, stderr = run_command(["killall", "-HUP", process_name])
        if return_code != 0:
            logger.warning(f"Could not refresh {process_name}: {stderr.strip()}")


def launch_application(install_dir: Path) -> bool:
    logger.info(f"Launching {install_dir.name}...")
    return_code, _, stderr = run_command(["open", str(install_dir)])
    if return_code != 0:
        logger.warning(f"Could not launch {install_dir}: {stderr.strip()}")
        return False
    return True


class Installer:
    """
    Installs compiled artifacts for one project.

    ``bundle`` packaging replaces the whole application bundle;
    ``binary`` packaging only replaces the executable inside an existing
    bundle's Contents/MacOS directory.
    """

    def __init__(self, project: ProjectConfig, builder: BuilderConfig):
        self.project = project
        self.builder = builder

    @property
    def staging_dir(self) -> Path:
        return self.project.source_dir / STAGING_DIR_NAME

    def install(self, artifact_path: Path) -> InstallReport:
        """
        Install ``artifact_path``.

        Raises:
            InstallError: If the artifact is missing or cannot be installed
        """
        artifact_path = Path(artifact_path)
        if not artifact_path.is_file():
            raise InstallError(f"Binary not found at {artifact_path}")

        if self.project.packaging == "binary":
            report = self._install_binary(artifact_path)
        else:
            report = self._install_bundle(artifact_path)

        if self.builder.refresh_icon_cache:
            refresh_icon_cache()

        logger.info(f"Installed {self.project.display_name} to {report.install_dir}")
        if report.backup_dir is not None:
            logger.info(f"Previous version is kept at {report.backup_dir}")
        return report

    def _install_bundle(self, artifact_path: Path) -> InstallReport:
        install_dir = self.project.install_dir
        try:
            staged, synthesized = stage_bundle(self.project, artifact_path, self.staging_dir)
        except (OSError, plistlib.InvalidFileException) as e:
            shutil.rmtree(self.staging_dir, ignore_errors=True)
            raise InstallError(f"Could not stage the application bundle: {e}") from e

        try:
            backup = backup_and_replace(staged, install_dir, self.project.backup_dir)
        finally:
            shutil.rmtree(self.staging_dir, ignore_errors=True)

        # Update the bundle timestamp so Finder notices the change
        os.utime(install_dir, None)
        return InstallReport(install_dir=install_dir, backup_dir=backup,
                             bundle_synthesized=synthesized)

    def _install_binary(self, artifact_path: Path) -> InstallReport:
        install_dir = self.project.install_dir
        target, backup = install_target(self.project)
        macos_dir = target.parent

        logger.info(f"Copying binary into {macos_dir}...")
        try:
            macos_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise InstallError(f"Cannot create {macos_dir}: {e}. {_permission_hint(macos_dir)}") from e

        staged = macos_dir / f".{self.project.binary_name}.new"
        try:
            shutil.copy2(artifact_path, staged)
        except OSError as e:
            raise InstallError(f"Could not stage {artifact_path} in {macos_dir}: {e}") from e

        try:
            backup_path = backup_and_replace(staged, target, backup)
        finally:
            staged.unlink(missing_ok=True)

        return InstallReport(install_dir=install_dir, backup_dir=backup_path)
