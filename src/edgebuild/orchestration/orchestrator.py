"""
BuildOrchestrator: sync, compile and install with restart on upstream change.

The orchestrator owns the BuildRecord and drives the top-level loop.
Specific tasks are delegated to the version control client, the compiler,
the update watcher, the installer and the record store, all of which can
be injected for testing.
"""

import logging
import os
import subprocess
from pathlib import Path
from typing import Optional

from ..models.config import BuilderConfig, ProjectConfig
from ..models.runtime import (
    BuildStatus,
    CompileResult,
    InstallReport,
    RevisionId,
    RunPolicy,
    RunSummary,
    UpdateCheck,
)
from ..packaging import Installer, create_launcher, installed_version, launch_application
from ..storage import BuildRecordStore
from ..system import GitClient, check_dependencies, request_termination
from ..validation import (
    BuildInterrupted,
    CompileFailedError,
    RestartLimitExceeded,
    SyncError,
    simple_retry,
)
from .compiler import Compiler
from .log_manager import LogManager
from .shared_state import BUILD_MODES, OrchestratorConfig, RuntimeState, TimeoutConstants
from .signal_handler import SignalHandler
from .update_watcher import UpdateWatcher

logger = logging.getLogger(__name__)

LOCAL_REVISION = "local"


class BuildOrchestrator:
    """
    Coordinates one project's build pipeline.

    Args:
        project: The project to build
        builder: Global builder settings
        mode: One of ``full``, ``quick`` or ``debug``
        vcs: Git client used for sync and for the update watcher
        compiler: Starts compile processes
        installer: Installs the compiled artifact
        record_store: Persists the last successfully built revision
    """

    def __init__(
        self,
        project: ProjectConfig,
        builder: BuilderConfig,
        mode: str = "full",
        vcs: Optional[GitClient] = None,
        compiler: Optional[Compiler] = None,
        installer: Optional[Installer] = None,
        record_store: Optional[BuildRecordStore] = None,
        log_manager: Optional[LogManager] = None,
    ):
        if mode not in BUILD_MODES:
            raise ValueError(f"Unknown build mode '{mode}'. Valid modes: {BUILD_MODES}")

        self.config = OrchestratorConfig(project=project, builder=builder, mode=mode)
        self.state = RuntimeState()

        self.vcs = vcs or GitClient()
        self.log_manager = log_manager or LogManager(builder.log_root_dir, builder.capture_build_output)
        self.compiler = compiler or Compiler(self.config, self.state, self.log_manager)
        self.installer = installer or Installer(project, builder)
        self.record_store = record_store or BuildRecordStore(project.marker_file)
        self.signal_handler = SignalHandler(self.state)

        self.state.record.last_successful = self.record_store.load()

    @property
    def project(self) -> ProjectConfig:
        return self.config.project

    @property
    def builder(self) -> BuilderConfig:
        return self.config.builder

    @property
    def record(self):
        return self.state.record

    # ------------------------------------------------------------------
    # Pipeline steps
    # ------------------------------------------------------------------

    def check_dependencies(self) -> None:
        """
        Raises:
            DependencyError: If a required tool is missing
        """
        check_dependencies(self.project.required_tools, self.builder.brew_installable)

    def check_for_updates(self) -> UpdateCheck:
        """
        Compare the remote head with the last successful build.

        Unmanaged sources are never synced, so they compare the current
        local revision instead.

        Raises:
            SyncError: If the remote cannot be queried
        """
        self._log_installed_version()
        if self.project.managed_clone:
            logger.info("Checking for updates...")
            latest = self._with_sync_retry(
                lambda: self.vcs.remote_head(self.project.repo_url, self.project.branch),
                f"git ls-remote {self.project.repo_url}",
            )
        elif self.vcs.is_repository(self.project.source_dir):
            latest = self.vcs.current_revision(self.project.source_dir)
        else:
            latest = None

        check = UpdateCheck(latest=latest, last_built=self.record.last_successful)
        if latest is None:
            logger.info("No revision information available for this project")
        elif check.up_to_date:
            logger.info(f"Already up to date at commit {latest.short}")
        elif check.has_previous_build:
            logger.info(f"Newer version available: {check.last_built.short} -> {latest.short}")
        else:
            logger.info(f"Latest commit: {latest.short}")
        return check

    def _log_installed_version(self) -> None:
        version = installed_version(self.project.install_dir)
        if version is None:
            logger.info(f"{self.project.display_name} is not currently installed")
        else:
            logger.info(f"Current installed version: {version}")

    def sync(self) -> RevisionId:
        """
        Bring the working copy to the remote branch head.

        A managed clone is created if missing, otherwise fetched and hard
        reset, which also undoes anything a cancelled build left behind.
        Network failures are retried ``sync_retry_attempts`` times.

        Returns:
            The revision now checked out

        Raises:
            SyncError: If the working copy cannot be synced
        """
        project = self.project
        if not project.managed_clone:
            return self._local_revision()

        def _sync_once() -> RevisionId:
            if self.vcs.is_repository(project.source_dir):
                self.vcs.update(project.source_dir, project.branch)
            else:
                self.vcs.clone(project.repo_url, project.source_dir, project.branch)
            return self.vcs.current_revision(project.source_dir)

        revision = self._with_sync_retry(_sync_once, f"sync of {project.source_dir}")
        logger.info(f"Working copy at {revision.short}")
        return revision

    def compile(self, revision: Optional[RevisionId], attempt: int = 1) -> CompileResult:
        """
        Run the build tool, watching upstream while it runs.

        Returns:
            A Succeeded, Failed or Cancelled CompileResult
        """
        handle = self.compiler.start(revision, attempt)
        watcher = None
        if self.config.watches_upstream and revision is not None:
            watcher = UpdateWatcher(
                self.vcs,
                self.project.repo_url,
                self.project.branch,
                self.builder.poll_interval_seconds,
            )
            self.state.watcher = watcher.start(revision, handle)

        try:
            result = handle.wait()
        finally:
            if watcher is not None:
                watcher.stop()
                if watcher.detected_revision is not None:
                    self.state.detected_revisions.append(watcher.detected_revision.value)
            self.state.compile_handle = None
            self.log_manager.close_log_files()

        self.log_manager.log_attempt_result(attempt, result)
        if result.is_cancelled:
            logger.info(f"Build cancelled after {result.elapsed_seconds:.1f}s")
        elif result.exit_code == 0:
            logger.info(f"Build completed in {result.elapsed_seconds:.1f}s")
        else:
            logger.error(f"Build failed with exit code {result.exit_code}")
        return result

    def install(self, artifact_path: Path) -> InstallReport:
        """
        Raises:
            InstallError: If the artifact is missing or cannot be installed
        """
        return self.installer.install(artifact_path)

    # ------------------------------------------------------------------
    # Top-level loop
    # ------------------------------------------------------------------

    def run(self, policy: Optional[RunPolicy] = None, update_check: Optional[UpdateCheck] = None) -> RunSummary:
        """
        Execute the whole pipeline according to ``policy``.

        ``update_check`` can be passed in when the caller already checked
        (e.g. to prompt the user) so the remote is not queried twice.

        Raises:
            BuildError: On any fatal failure
        """
        policy = policy or RunPolicy()
        summary = RunSummary(record=self.record)

        orchestrator_id = id(self)
        self.signal_handler.register_orchestrator(orchestrator_id, self)
        self.signal_handler.setup_signal_handlers()
        try:
            if self.config.syncs_source:
                if update_check is None:
                    update_check = self.check_for_updates()
                if self._should_skip(update_check, policy):
                    summary.skipped = True
                    return summary

            self.state.run_log_dir = self.log_manager.prepare_run_dir()
            self.log_manager.write_metadata({
                "project": self.project.name,
                "mode": self.config.mode,
                "release": self.config.release,
                "last_successful": self.record.last_successful,
            })
            result = self._build_until_stable(summary)

            if self.config.installs:
                self._install_and_record(result, policy, summary)
            else:
                summary.debug_exit_code = self.run_debug_binary(result.artifact_path)
            return summary
        finally:
            self.log_manager.close_log_files()
            self.signal_handler.cleanup_signal_handlers()
            self.signal_handler.unregister_orchestrator(orchestrator_id)

    def _should_skip(self, check: UpdateCheck, policy: RunPolicy) -> bool:
        if check.latest is None:
            return False
        if check.up_to_date and not policy.rebuild_if_current:
            logger.info("Already up to date. No rebuild requested.")
            return True
        if check.has_previous_build and not check.up_to_date and not policy.build_if_outdated:
            logger.info("Update available but build declined.")
            return True
        return False

    def _build_until_stable(self, summary: RunSummary) -> CompileResult:
        """Loop sync -> compile until a compile is not cancelled."""
        record = self.record
        while True:
            self._raise_if_interrupted()

            revision = self.sync() if self.config.syncs_source else self._local_revision()
            self.compiler.prepare()
            record.revision = revision
            record.attempts += 1
            record.transition(BuildStatus.IN_PROGRESS)

            result = self.compile(revision, record.attempts)
            summary.results.append(result)

            if self.state.shutdown_requested.is_set():
                record.transition(BuildStatus.FAILED)
                raise BuildInterrupted("Build interrupted by signal")

            if result.is_cancelled:
                record.transition(BuildStatus.RESTART_REQUESTED)
                self.state.restarts += 1
                summary.restarts = self.state.restarts
                max_restarts = self.builder.max_restarts
                if max_restarts and self.state.restarts > max_restarts:
                    raise RestartLimitExceeded(self.state.restarts)
                record.transition(BuildStatus.IDLE)
                logger.info(f"Restarting from sync (restart {self.state.restarts})")
                self._restart_backoff()
                continue

            if result.exit_code != 0:
                record.transition(BuildStatus.FAILED)
                raise CompileFailedError(result.exit_code)

            record.transition(BuildStatus.SUCCEEDED)
            return result

    def _install_and_record(self, result: CompileResult, policy: RunPolicy, summary: RunSummary) -> None:
        report = self.install(result.artifact_path)
        summary.install = report

        if result.revision is not None and result.revision.value != LOCAL_REVISION:
            self.record_store.save(result.revision)
            self.record.last_successful = result.revision

        if policy.create_launcher:
            name = policy.launcher_name or self.project.default_launcher_name or self.project.name
            report.launcher_path = create_launcher(
                self.builder.launcher_dir, name, report.install_dir, self.project.display_name
            )
            logger.info(f"You can now launch {self.project.display_name} by typing '{name}' in your terminal.")

        if policy.launch_after_install or self.builder.launch_after_install:
            launch_application(report.install_dir)

    def run_debug_binary(self, artifact_path: Path) -> int:
        """
        Run a debug build in the foreground with ``RUST_LOG`` set.

        Returns:
            The binary's exit code
        """
        env = dict(os.environ)
        if self.project.debug_rust_log:
            env["RUST_LOG"] = self.project.debug_rust_log
        logger.info(f"Running {artifact_path} with debug logging...")

        process = subprocess.Popen([str(artifact_path)], cwd=self.project.source_dir, env=env)
        exit_code = None
        while exit_code is None:
            if self.state.shutdown_requested.is_set():
                request_termination(process.pid, "debug binary")
                exit_code = process.wait()
                break
            try:
                exit_code = process.wait(timeout=TimeoutConstants.FOREGROUND_WAIT_TIMEOUT)
            except subprocess.TimeoutExpired:
                continue
        logger.info(f"Debug binary exited with code {exit_code}")
        return exit_code

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _local_revision(self) -> RevisionId:
        source_dir = self.project.source_dir
        if not source_dir.is_dir():
            raise SyncError(f"Source directory not found at {source_dir}")
        if self.vcs.is_repository(source_dir):
            return self.vcs.current_revision(source_dir)
        return RevisionId(LOCAL_REVISION)

    def _with_sync_retry(self, func, context: str):
        return simple_retry(
            func,
            max_attempts=self.builder.sync_retry_attempts,
            delay=self.builder.sync_retry_delay,
            context=context,
            retry_on=(SyncError,),
        )

    def _restart_backoff(self) -> None:
        delay = self.builder.restart_backoff_seconds
        if delay > 0 and self.state.shutdown_requested.wait(delay):
            raise BuildInterrupted("Build interrupted by signal")

    def _raise_if_interrupted(self) -> None:
        if self.state.shutdown_requested.is_set():
            raise BuildInterrupted("Build interrupted by signal")
