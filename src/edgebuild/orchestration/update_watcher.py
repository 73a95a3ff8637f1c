"""
Background poller that cancels a compile when upstream moves.
"""

import logging
import threading
from typing import Optional

from ..models.runtime import RevisionId
from ..system.vcs import GitClient
from ..validation import ErrorSeverity, handle_error
from .compiler import CompileHandle
from .shared_state import TimeoutConstants

logger = logging.getLogger(__name__)


class UpdateWatcher:
    """
    Polls the remote branch head while a compile is running.

    The watcher only reads the revision being built and, at most once,
    requests cancellation of the compile handle. It queries the remote
    with ``git ls-remote`` and never touches the working copy.
    """

    def __init__(self, vcs: GitClient, repo_url: str, branch: str, poll_interval: float):
        if poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        self.vcs = vcs
        self.repo_url = repo_url
        self.branch = branch
        self.poll_interval = poll_interval

        self.watched_revision: Optional[RevisionId] = None
        self.detected_revision: Optional[RevisionId] = None
        self.polls = 0
        self.fetch_failures = 0

        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self, watched_revision: RevisionId, compile_handle: CompileHandle) -> "UpdateWatcher":
        """
        Begin polling in a daemon thread.

        Returns:
            self, so the caller can keep the handle for ``stop()``
        """
        if self._thread is not None:
            raise RuntimeError("UpdateWatcher can only be started once")
        self.watched_revision = watched_revision
        self._thread = threading.Thread(
            target=self._poll_loop,
            args=(compile_handle,),
            name="update-watcher",
            daemon=True,
        )
        self._thread.start()
        logger.info(
            f"Watching {self.repo_url} ({self.branch}) every {self.poll_interval}s "
            f"for changes to {watched_revision.short}"
        )
        return self

    def stop(self, timeout: float = TimeoutConstants.WATCHER_JOIN_TIMEOUT) -> None:
        """Stop polling. Safe to call repeatedly, before or after start."""
        self._stop_event.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread() and thread.is_alive():
            thread.join(timeout)
            if thread.is_alive():
                logger.debug("Update watcher still finishing a poll; it will exit on its own")

    def _poll_loop(self, compile_handle: CompileHandle) -> None:
        while not self._stop_event.wait(self.poll_interval):
            self.polls += 1
            try:
                latest = self.vcs.remote_head(self.repo_url, self.branch)
            except Exception as e:
                self.fetch_failures += 1
                handle_error(
                    error=e,
                    context=f"polling {self.repo_url} for updates",
                    severity=ErrorSeverity.WARNING,
                    reraise=False,
                    logger=logger,
                )
                continue

            # stop() may have been called while the fetch was in flight
            if self._stop_event.is_set():
                break

            if latest != self.watched_revision:
                self.detected_revision = latest
                logger.info(
                    f"Upstream moved from {self.watched_revision.short} to {latest.short}; "
                    "cancelling the current build"
                )
                compile_handle.request_cancel()
                self._stop_event.set()
                break

            logger.debug(f"Upstream still at {latest.short} (poll {self.polls})")
