"""
Pytest configuration and shared fixtures for the edgebuild test suite.

This module provides common fixtures, test doubles and configuration for
all test modules in the edgebuild project.
"""

import os
import shutil
import subprocess
import sys
import tempfile
import threading
from pathlib import Path
from typing import Dict, List, Optional

import pytest

# Add src to Python path for testing
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from edgebuild.models import BuilderConfig, ProjectConfig, RevisionId  # noqa: E402
from edgebuild.validation import SyncError  # noqa: E402


REVISION_A = "a" * 40
REVISION_B = "b" * 40

# Simulated compile: ten units of work, then the artifact is written
COMPILE_SCRIPT = """
import pathlib, sys, time
unit = float(sys.argv[1])
for _ in range(10):
    time.sleep(unit)
artifact = pathlib.Path(sys.argv[2])
artifact.parent.mkdir(parents=True, exist_ok=True)
artifact.write_text("#!/bin/sh\\necho built\\n")
"""


# ============================================================================
# Test Configuration
# ============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers and settings."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
    config.addinivalue_line("markers", "e2e: mark test as an end-to-end test")
    config.addinivalue_line("markers", "slow: mark test as slow running")


# ============================================================================
# Core Fixtures
# ============================================================================


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    temp_path = tempfile.mkdtemp()
    yield Path(temp_path)
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def sample_builder_data():
    """Sample [builder] table as it appears in config.toml."""
    return {
        "general": {
            "log_root_dir": "logs",
            "capture_build_output": False,
            "release": True,
        },
        "watch": {
            "poll_interval_seconds": 0.05,
            "max_restarts": 3,
            "restart_backoff_seconds": 0.0,
            "sync_retry_attempts": 2,
            "sync_retry_delay": 0.0,
        },
        "toolchain": {
            "tune_toolchain": False,
            "target_cpu_native": False,
            "write_cargo_config": False,
            "cargo_cache_dir": "cargo-cache",
            "brew_installable": ["pkg-config"],
        },
        "install": {
            "launcher_dir": "bin",
            "refresh_icon_cache": False,
            "launch_after_install": False,
        },
    }


@pytest.fixture
def sample_project_data():
    """Sample [[projects]] entry as it appears in projects.toml."""
    return {
        "name": "test_app",
        "display_name": "TEST APP",
        "bundle_identifier": "dev.test.App",
        "repo_url": "file:///tmp/upstream.git",
        "branch": "main",
        "source_dir": "src_checkout",
        "binary_name": "app",
        "install_dir": "Applications/TEST APP.app",
        "packaging": "bundle",
        "required_tools": ["git"],
        "default_launcher_name": "test-app",
    }


@pytest.fixture
def builder_config(temp_dir):
    """A BuilderConfig tuned for fast tests."""
    return BuilderConfig(
        log_root_dir=temp_dir / "logs",
        capture_build_output=False,
        release=True,
        poll_interval_seconds=0.05,
        max_restarts=3,
        restart_backoff_seconds=0.0,
        sync_retry_attempts=2,
        sync_retry_delay=0.0,
        tune_toolchain=False,
        target_cpu_native=False,
        write_cargo_config=False,
        cargo_cache_dir=temp_dir / "cargo",
        brew_installable=[],
        launcher_dir=temp_dir / "bin",
    )


@pytest.fixture
def project_config(temp_dir):
    """A ProjectConfig whose paths all live in the temporary directory."""
    return ProjectConfig(
        name="test_app",
        display_name="TEST APP",
        bundle_identifier="dev.test.App",
        source_dir=temp_dir / "checkout",
        binary_name="app",
        install_dir=temp_dir / "Applications" / "TEST APP.app",
        repo_url="file:///tmp/upstream.git",
        required_tools=[],
        default_launcher_name="test-app",
    )


@pytest.fixture
def compile_command():
    """Build command factory: ``compile_command(unit_seconds)``."""
    def _make(unit: float = 0.05, artifact: str = "target/release/app") -> List[str]:
        return [sys.executable, "-c", COMPILE_SCRIPT, str(unit), artifact]
    return _make


@pytest.fixture
def sleeping_process():
    """Start a Python child that sleeps; killed at teardown if still alive."""
    processes = []

    def _start(seconds: float = 30.0, exit_code: int = 0) -> subprocess.Popen:
        code = f"import sys, time; time.sleep({seconds}); sys.exit({exit_code})"
        process = subprocess.Popen([sys.executable, "-c", code])
        processes.append(process)
        return process

    yield _start

    for process in processes:
        if process.poll() is None:
            process.kill()
            process.wait()


# ============================================================================
# Test Doubles
# ============================================================================


class ScriptedVcs:
    """
    In-memory stand-in for GitClient.

    ``remote`` is the current remote head. ``advance_on_call`` switches the
    remote to ``advance_to`` on the N-th call to ``remote_head`` (1-based),
    which lets a test move upstream while a compile is running.
    """

    def __init__(
        self,
        remote: str = REVISION_A,
        advance_on_call: Optional[int] = None,
        advance_to: str = REVISION_B,
        failing_calls: Optional[List[int]] = None,
    ):
        self.remote = remote
        self.advance_on_call = advance_on_call
        self.advance_to = advance_to
        self.failing_calls = set(failing_calls or [])
        self.checked_out: Optional[str] = None
        self.remote_head_calls = 0
        self.sync_calls: List[str] = []
        self._lock = threading.Lock()

    def remote_head(self, url: str, branch: str = "main") -> RevisionId:
        with self._lock:
            self.remote_head_calls += 1
            call = self.remote_head_calls
            if self.advance_on_call is not None and call == self.advance_on_call:
                self.remote = self.advance_to
            if call in self.failing_calls:
                raise SyncError(f"simulated network failure on call {call}")
            return RevisionId(self.remote)

    def is_repository(self, path: Path) -> bool:
        return self.checked_out is not None

    def clone(self, url: str, dest: Path, branch: str = "main") -> None:
        Path(dest).mkdir(parents=True, exist_ok=True)
        with self._lock:
            self.checked_out = self.remote
            self.sync_calls.append("clone")

    def update(self, dest: Path, branch: str = "main") -> None:
        with self._lock:
            self.checked_out = self.remote
            self.sync_calls.append("update")

    def current_revision(self, dest: Path) -> RevisionId:
        return RevisionId(self.checked_out)


@pytest.fixture
def scripted_vcs():
    return ScriptedVcs


def run_git(args: List[str], cwd: Path) -> str:
    """Run git for test setup; fails the test on error."""
    result = subprocess.run(
        ["git"] + args,
        cwd=cwd,
        capture_output=True,
        text=True,
        check=True,
        env={
            **os.environ,
            "GIT_AUTHOR_NAME": "Test",
            "GIT_AUTHOR_EMAIL": "test@example.com",
            "GIT_COMMITTER_NAME": "Test",
            "GIT_COMMITTER_EMAIL": "test@example.com",
        },
    )
    return result.stdout.strip()


@pytest.fixture
def upstream_repo(temp_dir):
    """
    A local "remote": a work repo with one commit on ``main`` plus a bare
    clone of it. Returns a dict with ``work``, ``bare``, ``url`` and a
    ``commit(message)`` helper that pushes a new commit and returns its hash.
    """
    work = temp_dir / "upstream_work"
    bare = temp_dir / "upstream.git"
    work.mkdir()
    run_git(["init", "-b", "main"], work)
    (work / "README").write_text("first\n")
    run_git(["add", "README"], work)
    run_git(["commit", "-m", "first"], work)
    run_git(["clone", "--bare", str(work), str(bare)], temp_dir)
    run_git(["remote", "add", "origin", str(bare)], work)

    def commit(message: str) -> str:
        (work / "README").write_text(f"{message}\n")
        run_git(["commit", "-am", message], work)
        run_git(["push", "origin", "main"], work)
        return run_git(["rev-parse", "HEAD"], work)

    return {
        "work": work,
        "bare": bare,
        "url": bare.as_uri(),
        "head": run_git(["rev-parse", "HEAD"], work),
        "commit": commit,
    }


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def config_files(temp_dir, sample_builder_data, sample_project_data) -> Dict[str, Path]:
    """Create temporary configuration files for testing."""
    import toml

    config_file = temp_dir / "config.toml"
    config_data = {
        "builder": sample_builder_data,
        "paths": {"projects_config": "projects.toml"},
    }
    with open(config_file, "w") as f:
        toml.dump(config_data, f)

    projects_file = temp_dir / "projects.toml"
    with open(projects_file, "w") as f:
        toml.dump({"projects": [sample_project_data]}, f)

    return {
        "config": config_file,
        "projects": projects_file,
        "dir": temp_dir,
    }


@pytest.fixture(autouse=True)
def clear_config_after_test():
    """Automatically clear configuration cache after each test."""
    original_config_path = Path(__file__).parent.parent / "conf" / "config.toml"

    yield

    from edgebuild.config import clear_config_cache, set_config_path

    clear_config_cache()
    set_config_path(original_config_path)
