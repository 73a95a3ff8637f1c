"""
Shared data structures for the orchestration module.

This module defines the configuration object, runtime state and constants
used across the orchestration components.
"""

import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional

from ..models.config import BuilderConfig, ProjectConfig
from ..models.runtime import BuildRecord

if TYPE_CHECKING:
    from .compiler import CompileHandle
    from .update_watcher import UpdateWatcher

BUILD_MODES = ["full", "quick", "debug"]


@dataclass
class OrchestratorConfig:
    """
    Everything a BuildOrchestrator needs to know about one run.

    ``mode`` selects the pipeline: ``full`` syncs, watches upstream, builds
    and installs; ``quick`` builds and installs the existing working copy;
    ``debug`` builds the debug profile and runs the binary directly.
    """
    project: ProjectConfig
    builder: BuilderConfig
    mode: str = "full"

    @property
    def release(self) -> bool:
        return self.mode != "debug" and self.builder.release

    @property
    def syncs_source(self) -> bool:
        return self.mode != "quick"

    @property
    def watches_upstream(self) -> bool:
        return (
            self.mode == "full"
            and self.project.watch_upstream
            and self.project.managed_clone
            and bool(self.project.repo_url)
        )

    @property
    def installs(self) -> bool:
        return self.mode != "debug"

    @property
    def artifact_path(self) -> Path:
        return self.project.artifact_path(self.release)


@dataclass
class RuntimeState:
    """
    Runtime state shared across orchestration components.
    """
    record: BuildRecord = field(default_factory=BuildRecord)
    shutdown_requested: threading.Event = field(default_factory=threading.Event)
    compile_handle: Optional["CompileHandle"] = None
    watcher: Optional["UpdateWatcher"] = None
    restarts: int = 0
    run_log_dir: Optional[Path] = None
    detected_revisions: List[str] = field(default_factory=list)


class TimeoutConstants:
    """
    Centralized timeout configuration.
    """
    # How often the compile wait loop checks for cancellation
    COMPILE_WAIT_TIMEOUT = 0.5

    # Watcher shutdown; a poll in flight may outlive this and is discarded
    WATCHER_JOIN_TIMEOUT = 5.0

    # Foreground run of a debug binary
    FOREGROUND_WAIT_TIMEOUT = 1.0
