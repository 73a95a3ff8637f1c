"""
PNG to ICNS conversion with the macOS ``sips`` and ``iconutil`` tools.
"""

import logging
import shutil
from pathlib import Path
from typing import List, Optional, Tuple

from ..system.commands import is_tool_available, run_command

logger = logging.getLogger(__name__)

# (file name inside the .iconset, pixel size)
ICONSET_ENTRIES: List[Tuple[str, int]] = [
    ("icon_16x16.png", 16),
    ("icon_16x16@2x.png", 32),
    ("icon_32x32.png", 32),
    ("icon_32x32@2x.png", 64),
    ("icon_128x128.png", 128),
    ("icon_128x128@2x.png", 256),
    ("icon_256x256.png", 256),
    ("icon_256x256@2x.png", 512),
    ("icon_512x512.png", 512),
    ("icon_512x512@2x.png", 1024),
]

ICON_FILE_NAME = "AppIcon"


def icon_tools_available() -> bool:
    return is_tool_available("sips") and is_tool_available("iconutil")


def generate_icns(logo_path: Optional[Path], output_path: Path, work_dir: Path) -> bool:
    """
    Render ``logo_path`` at every iconset size and pack it into ``output_path``.

    The icon is cosmetic: a missing logo or missing tools only produce a
    warning, and the caller keeps the bundle's original icon.

    Returns:
        True if ``output_path`` was written
    """
    if logo_path is None:
        logger.debug("No logo configured; keeping the bundle icon")
        return False
    if not logo_path.is_file():
        logger.warning(f"Logo not found at {logo_path}; keeping the bundle icon")
        return False
    if not icon_tools_available():
        logger.warning("sips/iconutil not available; keeping the bundle icon")
        return False

    iconset_dir = work_dir / "tmp.iconset"
    if iconset_dir.exists():
        shutil.rmtree(iconset_dir)
    iconset_dir.mkdir(parents=True)

    try:
        for file_name, size in ICONSET_ENTRIES:
            return_code, _, stderr = run_command(
                ["sips", "-z", str(size), str(size), str(logo_path), "--out", str(iconset_dir / file_name)]
            )
            if return_code != 0:
                logger.warning(f"sips failed for {file_name}: {stderr.strip()}")
                return False

        output_path.parent.mkdir(parents=True, exist_ok=True)
        return_code, _, stderr = run_command(
            ["iconutil", "-c", "icns", str(iconset_dir), "-o", str(output_path)]
        )
        if return_code != 0:
            logger.warning(f"iconutil failed: {stderr.strip()}")
            return False
    finally:
        shutil.rmtree(iconset_dir, ignore_errors=True)

    logger.info(f"Generated application icon {output_path.name} from {logo_path.name}")
    return True
