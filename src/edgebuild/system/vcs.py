"""
Git client used to sync the working copy and poll the remote.

Every operation shells out to the ``git`` CLI through :func:`run_command`
and raises :class:`SyncError` when git reports a failure.
"""

import logging
from pathlib import Path
from typing import List, Optional

from ..models.runtime import RevisionId
from ..validation import SyncError
from .commands import format_command, run_command

logger = logging.getLogger(__name__)


class GitClient:
    """Thin wrapper around the git command line."""

    def __init__(self, git_executable: str = "git", timeout: Optional[float] = None):
        self.git_executable = git_executable
        self.timeout = timeout

    def _git(self, args: List[str], cwd: Optional[Path] = None, context: str = "") -> str:
        command = [self.git_executable] + args
        return_code, stdout, stderr = run_command(command, cwd=cwd, timeout=self.timeout)
        if return_code != 0:
            detail = stderr.strip() or stdout.strip() or f"exit code {return_code}"
            raise SyncError(f"{context or format_command(command)} failed: {detail}")
        return stdout

    def clone(self, url: str, dest: Path, branch: str = "main") -> None:
        """Clone ``url`` into ``dest`` checking out ``branch``."""
        logger.info(f"Cloning {url} into {dest}...")
        dest.parent.mkdir(parents=True, exist_ok=True)
        self._git(
            ["clone", "--branch", branch, url, str(dest)],
            context=f"git clone {url}",
        )

    def update(self, dest: Path, branch: str = "main") -> None:
        """
        Bring an existing working copy to the tip of ``origin/<branch>``.

        Tracked files are reset, so a cancelled build or a previous toolchain
        tweak never leaves the checkout behind the remote. Untracked build
        output (target/) is kept for incremental builds.
        """
        logger.info(f"Updating repository in {dest}...")
        self._git(["fetch", "origin", branch], cwd=dest, context=f"git fetch origin {branch}")
        self._git(["checkout", branch], cwd=dest, context=f"git checkout {branch}")
        self._git(["reset", "--hard", f"origin/{branch}"], cwd=dest, context=f"git reset origin/{branch}")

    def current_revision(self, dest: Path) -> RevisionId:
        """Return the revision checked out in ``dest``."""
        output = self._git(["rev-parse", "HEAD"], cwd=dest, context="git rev-parse HEAD").strip()
        if not output:
            raise SyncError(f"Could not determine current revision in {dest}")
        return RevisionId(output)

    def remote_head(self, url: str, branch: str = "main") -> RevisionId:
        """
        Return the revision ``branch`` points to on the remote.

        Uses ``git ls-remote`` so the working copy is never touched.
        """
        output = self._git(
            ["ls-remote", url, f"refs/heads/{branch}"],
            context=f"git ls-remote {url} {branch}",
        )
        for line in output.splitlines():
            parts = line.split()
            if len(parts) >= 2 and parts[1] == f"refs/heads/{branch}":
                return RevisionId(parts[0])
        raise SyncError(f"Branch '{branch}' not found on {url}")

    def is_repository(self, path: Path) -> bool:
        return (path / ".git").exists()
