"""
Packaging and installation of built artifacts.

- Staging of a customized .app bundle (Info.plist, icon)
- Backup-then-replace installation
- Command-line launcher script
"""

from .bundle import (
    default_info_plist,
    installed_version,
    read_info_plist,
    stage_bundle,
    update_info_plist,
)
from .icons import ICON_FILE_NAME, ICONSET_ENTRIES, generate_icns
from .installer import (
    Installer,
    backup_and_replace,
    install_target,
    launch_application,
    refresh_icon_cache,
    restore_backup,
)
from .launcher import create_launcher, render_launcher

__all__ = [
    # Bundle
    "default_info_plist",
    "installed_version",
    "read_info_plist",
    "stage_bundle",
    "update_info_plist",
    # Icons
    "ICON_FILE_NAME",
    "ICONSET_ENTRIES",
    "generate_icns",
    # Installer
    "Installer",
    "backup_and_replace",
    "install_target",
    "launch_application",
    "refresh_icon_cache",
    "restore_backup",
    # Launcher
    "create_launcher",
    "render_launcher",
]
