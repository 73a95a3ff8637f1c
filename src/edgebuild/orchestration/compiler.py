"""
Cancellable compile step.

The build tool runs as an external process. A :class:`CompileHandle` owns
that process and a one-shot cancellation signal that the update watcher
can trigger from its own thread.
"""

import logging
import subprocess
import threading
import time
from pathlib import Path
from typing import List, Optional

from ..models.runtime import CompileResult, RevisionId
from ..system import (
    build_command,
    format_command,
    prepare_build_environment,
    request_termination,
    write_cargo_config,
)
from ..validation import CompileFailedError
from .log_manager import LogManager
from .shared_state import OrchestratorConfig, RuntimeState, TimeoutConstants

logger = logging.getLogger(__name__)


class CompileHandle:
    """
    A running compile that can be cancelled exactly once.

    ``request_cancel`` only sets an event; the thread blocked in ``wait``
    notices it, sends a single SIGTERM to the process tree and waits for
    the process to exit.
    """

    def __init__(
        self,
        process: subprocess.Popen,
        revision: Optional[RevisionId],
        artifact_path: Path,
        shutdown_event: Optional[threading.Event] = None,
        poll_timeout: float = TimeoutConstants.COMPILE_WAIT_TIMEOUT,
    ):
        self.process = process
        self.revision = revision
        self.artifact_path = artifact_path
        self.poll_timeout = poll_timeout
        self._shutdown_event = shutdown_event or threading.Event()
        self._cancel_event = threading.Event()
        self._cancel_lock = threading.Lock()
        self._started_at = time.monotonic()

    @property
    def pid(self) -> int:
        return self.process.pid

    @property
    def cancel_requested(self) -> bool:
        return self._cancel_event.is_set()

    def request_cancel(self) -> bool:
        """
        Ask the compile to stop.

        Returns:
            True for the request that actually triggered cancellation,
            False for any later (ignored) request
        """
        with self._cancel_lock:
            if self._cancel_event.is_set():
                return False
            self._cancel_event.set()
        logger.info(f"Cancellation requested for build process (PID: {self.pid})")
        return True

    def _should_stop(self) -> bool:
        return self._cancel_event.is_set() or self._shutdown_event.is_set()

    def wait(self) -> CompileResult:
        """Block until the process exits and classify the outcome."""
        exit_code = None
        while exit_code is None:
            if self._should_stop():
                request_termination(self.pid, "build process")
                exit_code = self.process.wait()
                logger.info(f"Terminated build process exited with code: {exit_code}")
                break
            try:
                exit_code = self.process.wait(timeout=self.poll_timeout)
            except subprocess.TimeoutExpired:
                continue

        elapsed = time.monotonic() - self._started_at
        if self._should_stop():
            return CompileResult.cancelled(self.revision, exit_code, elapsed)
        if exit_code != 0:
            return CompileResult.failed(self.revision, exit_code, elapsed)
        return CompileResult.succeeded(self.revision, self.artifact_path, exit_code, elapsed)


class Compiler:
    """
    Starts the build tool for a project.

    The command is, in order of precedence: ``command`` passed here, the
    project's ``build_command``, or the generated ``cargo build``.
    """

    def __init__(
        self,
        config: OrchestratorConfig,
        state: RuntimeState,
        log_manager: LogManager,
        command: Optional[List[str]] = None,
        poll_timeout: float = TimeoutConstants.COMPILE_WAIT_TIMEOUT,
    ):
        self.config = config
        self.state = state
        self.log_manager = log_manager
        self.command = command
        self.poll_timeout = poll_timeout

    def prepare(self) -> None:
        """Toolchain setup in the freshly synced working copy."""
        builder = self.config.builder
        if builder.tune_toolchain and builder.write_cargo_config:
            write_cargo_config(self.config.project.source_dir, builder)

    def start(self, revision: Optional[RevisionId], attempt: int = 1) -> CompileHandle:
        """Launch the build process and return a handle to it."""
        project = self.config.project
        command = self.command or project.build_command or build_command(self.config.release)
        env = prepare_build_environment(self.config.builder)
        log_files = self.log_manager.open_attempt_logs(attempt)

        profile = "release" if self.config.release else "debug"
        label = revision.short if revision else "working copy"
        logger.info(f"Building {project.name} ({profile}) at {label}, attempt {attempt}...")
        logger.debug(f"Build command: {format_command(command)}")

        try:
            process = subprocess.Popen(
                command,
                cwd=project.source_dir,
                stdout=log_files.get("build_stdout"),
                stderr=log_files.get("build_stderr"),
                env=env,
            )
        except OSError as e:
            self.log_manager.close_log_files()
            raise CompileFailedError(None, f"Could not start build command '{format_command(command)}': {e}") from e
        logger.info(f"Build process started with PID: {process.pid} in directory {project.source_dir}")

        handle = CompileHandle(
            process,
            revision,
            self.config.artifact_path,
            shutdown_event=self.state.shutdown_requested,
            poll_timeout=self.poll_timeout,
        )
        self.state.compile_handle = handle
        return handle
