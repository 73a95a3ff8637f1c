"""
Unit tests for run logs, signal handling and the orchestrator configuration.
"""

import signal
from unittest.mock import Mock

import pytest

from edgebuild.models import CompileResult, RevisionId
from edgebuild.orchestration import LogManager, OrchestratorConfig, RuntimeState, SignalHandler
from edgebuild.orchestration.signal_handler import active_orchestrator_count


@pytest.mark.unit
class TestLogManager:

    def test_no_run_dir_without_capture(self, temp_dir):
        manager = LogManager(temp_dir / "logs")

        assert manager.prepare_run_dir() is None
        assert manager.open_attempt_logs(1) == {}
        manager.write_metadata({"project": "x"})

        assert not (temp_dir / "logs").exists()

    def test_attempt_logs(self, temp_dir):
        manager = LogManager(temp_dir / "logs", capture_build_output=True)
        run_dir = manager.prepare_run_dir("20260101_120000")

        files = manager.open_attempt_logs(1)
        files["build_stdout"].write("out")
        manager.close_log_files()

        assert run_dir == temp_dir / "logs" / "run_20260101_120000"
        assert (run_dir / "build_stdout_1.log").read_text() == "out"
        assert (run_dir / "build_stderr_1.log").exists()
        assert manager.log_files == {}

    def test_new_attempt_closes_previous_files(self, temp_dir):
        manager = LogManager(temp_dir / "logs", capture_build_output=True)
        manager.prepare_run_dir("run")

        first = manager.open_attempt_logs(1)
        manager.open_attempt_logs(2)

        assert all(f.closed for f in first.values())
        manager.close_log_files()

    def test_metadata_records_attempts(self, temp_dir):
        manager = LogManager(temp_dir / "logs", capture_build_output=True)
        run_dir = manager.prepare_run_dir("run")

        manager.write_metadata({"project": "zed-edge"})
        manager.log_attempt_result(1, CompileResult.cancelled(RevisionId("abc"), -15, 1.25))

        metadata = (run_dir / "metadata.log").read_text()
        assert "project: zed-edge" in metadata
        assert "attempt_1_outcome: cancelled" in metadata
        assert "attempt_1_exit_code: -15" in metadata
        assert "attempt_1_elapsed_seconds: 1.2" in metadata

    def test_open_failure_closes_partial_files(self, temp_dir):
        manager = LogManager(temp_dir / "logs", capture_build_output=True)
        run_dir = manager.prepare_run_dir("run")
        # A directory where the stderr log should go cannot be opened for writing
        (run_dir / "build_stderr_1.log").mkdir()

        with pytest.raises(IOError, match="Failed to open 1 log files"):
            manager.open_attempt_logs(1)

        assert manager.log_files == {}


@pytest.mark.unit
class TestSignalHandler:

    def test_signal_sets_shutdown_on_registered_orchestrators(self):
        first, second = Mock(state=RuntimeState()), Mock(state=RuntimeState())
        handler = SignalHandler(first.state)
        handler.register_orchestrator(1, first)
        handler.register_orchestrator(2, second)
        try:
            SignalHandler._global_signal_handler(signal.SIGINT, None)
        finally:
            handler.unregister_orchestrator(1)
            handler.unregister_orchestrator(2)

        assert first.state.shutdown_requested.is_set()
        assert second.state.shutdown_requested.is_set()

    def test_unregister(self):
        orchestrator = Mock(state=RuntimeState())
        handler = SignalHandler(orchestrator.state)
        before = active_orchestrator_count()

        handler.register_orchestrator(42, orchestrator)
        assert active_orchestrator_count() == before + 1
        handler.unregister_orchestrator(42)
        handler.unregister_orchestrator(42)

        assert active_orchestrator_count() == before

    def test_handlers_are_restored(self):
        original = signal.getsignal(signal.SIGTERM)
        handler = SignalHandler(RuntimeState())

        handler.setup_signal_handlers()
        assert signal.getsignal(signal.SIGTERM) == SignalHandler._global_signal_handler
        handler.cleanup_signal_handlers()

        assert signal.getsignal(signal.SIGTERM) == original


@pytest.mark.unit
class TestOrchestratorConfig:

    @pytest.mark.parametrize("mode,release,syncs,watches,installs", [
        ("full", True, True, True, True),
        ("quick", True, False, False, True),
        ("debug", False, True, False, False),
    ])
    def test_modes(self, project_config, builder_config, mode, release, syncs, watches, installs):
        config = OrchestratorConfig(project=project_config, builder=builder_config, mode=mode)

        assert config.release is release
        assert config.syncs_source is syncs
        assert config.watches_upstream is watches
        assert config.installs is installs

    def test_debug_artifact_path(self, project_config, builder_config):
        config = OrchestratorConfig(project=project_config, builder=builder_config, mode="debug")

        assert config.artifact_path == project_config.source_dir / "target" / "debug" / "app"

    def test_no_watch_without_remote(self, project_config, builder_config):
        project_config.repo_url = ""
        config = OrchestratorConfig(project=project_config, builder=builder_config)

        assert config.watches_upstream is False

    def test_no_watch_for_unmanaged_source(self, project_config, builder_config):
        project_config.managed_clone = False
        config = OrchestratorConfig(project=project_config, builder=builder_config)

        assert config.watches_upstream is False
