"""
Staging of customized macOS application bundles.

A bundle is always assembled in a staging directory first. Only a fully
staged bundle is ever handed to the installer, which keeps the existing
installation untouched until the new one is known to be copyable.
"""

import logging
import plistlib
import shutil
from pathlib import Path
from typing import Any, Dict, Optional, Tuple
from xml.parsers.expat import ExpatError

from ..models.config import ProjectConfig
from .icons import ICON_FILE_NAME, generate_icns

logger = logging.getLogger(__name__)


def default_info_plist(project: ProjectConfig) -> Dict[str, Any]:
    """Info.plist for a bundle synthesized around a bare binary."""
    return {
        "CFBundleExecutable": project.binary_name,
        "CFBundleIdentifier": project.bundle_identifier,
        "CFBundleName": project.display_name,
        "CFBundleDisplayName": project.display_name,
        "CFBundleIconFile": ICON_FILE_NAME,
        "CFBundlePackageType": "APPL",
        "CFBundleInfoDictionaryVersion": "6.0",
        "CFBundleShortVersionString": "1.0",
        "CFBundleVersion": "1",
        "LSMinimumSystemVersion": "10.14",
        "LSUIElement": False,
        "NSHighResolutionCapable": True,
    }


def read_info_plist(plist_path: Path) -> Dict[str, Any]:
    """
    Raises:
        plistlib.InvalidFileException: If the file is not a property list
    """
    with open(plist_path, "rb") as f:
        try:
            return plistlib.load(f)
        except ExpatError as e:
            raise plistlib.InvalidFileException(f"{plist_path} is not a valid plist: {e}") from e


def installed_version(install_dir: Path) -> Optional[str]:
    """
    CFBundleShortVersionString of the bundle at ``install_dir``.

    Returns None if nothing is installed there or the version can't be read.
    """
    plist_path = install_dir / "Contents" / "Info.plist"
    if not plist_path.is_file():
        return None
    try:
        version = read_info_plist(plist_path).get("CFBundleShortVersionString")
    except (OSError, plistlib.InvalidFileException) as e:
        logger.warning(f"Could not read {plist_path}: {e}")
        return None
    return str(version) if version else None


def update_info_plist(plist_path: Path, updates: Dict[str, Any]) -> bool:
    """
    Merge ``updates`` into an existing Info.plist.

    Returns:
        False if there is no Info.plist to update
    """
    if not plist_path.is_file():
        logger.warning(f"No Info.plist at {plist_path}; skipping metadata update")
        return False
    data = read_info_plist(plist_path)
    data.update(updates)
    with open(plist_path, "wb") as f:
        plistlib.dump(data, f)
    return True


def bundle_file_name(project: ProjectConfig) -> str:
    return f"{project.display_name}.app"


def _synthesize_bundle(project: ProjectConfig, artifact_path: Path, bundle_dir: Path) -> None:
    macos_dir = bundle_dir / "Contents" / "MacOS"
    macos_dir.mkdir(parents=True)
    (bundle_dir / "Contents" / "Resources").mkdir(parents=True)

    with open(bundle_dir / "Contents" / "Info.plist", "wb") as f:
        plistlib.dump(default_info_plist(project), f)

    shutil.copy2(artifact_path, macos_dir / project.binary_name)


def stage_bundle(
    project: ProjectConfig, artifact_path: Path, staging_dir: Path
) -> Tuple[Path, bool]:
    """
    Assemble the customized bundle for ``project`` inside ``staging_dir``.

    If the build tool produced its own bundle (``build_bundle_name`` next to
    the binary) it is copied and rebranded; otherwise a minimal bundle is
    synthesized around the binary.

    Returns:
        (path of the staged bundle, whether it was synthesized)

    Raises:
        OSError: If copying into the staging area fails
        plistlib.InvalidFileException: If the built bundle's Info.plist is malformed
    """
    staged = staging_dir / bundle_file_name(project)
    if staged.exists():
        shutil.rmtree(staged)
    staging_dir.mkdir(parents=True, exist_ok=True)

    built_bundle = artifact_path.parent / project.build_bundle_name if project.build_bundle_name else None
    synthesized = built_bundle is None or not built_bundle.is_dir()

    if synthesized:
        logger.info("No app bundle found in build output. Creating one now...")
        _synthesize_bundle(project, artifact_path, staged)
    else:
        logger.info(f"Found {project.build_bundle_name} bundle in build output.")
        shutil.copytree(built_bundle, staged, symlinks=True)

    resources_dir = staged / "Contents" / "Resources"
    resources_dir.mkdir(parents=True, exist_ok=True)
    has_icon = generate_icns(
        project.logo_path, resources_dir / f"{ICON_FILE_NAME}.icns", staging_dir
    )

    updates: Dict[str, Any] = {
        "CFBundleDisplayName": project.display_name,
        "CFBundleName": project.display_name,
    }
    if has_icon:
        updates["CFBundleIconFile"] = ICON_FILE_NAME
    update_info_plist(staged / "Contents" / "Info.plist", updates)

    logger.info(f"Staged {staged.name} in {staging_dir}")
    return staged, synthesized
