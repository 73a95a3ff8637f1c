"""
Runtime data models.

This module contains data structures used during a build run: revision
identifiers, the build status state machine, the persisted build record,
compile results and the caller-supplied run policy.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, FrozenSet, Optional


@dataclass(frozen=True)
class RevisionId:
    """Opaque identifier of a point in the remote source history."""

    value: str

    def __post_init__(self):
        if not isinstance(self.value, str) or not self.value.strip():
            raise ValueError("RevisionId requires a non-empty string")
        object.__setattr__(self, "value", self.value.strip())

    @property
    def short(self) -> str:
        return self.value[:8]

    def __str__(self) -> str:
        return self.value


class BuildStatus(Enum):
    """Lifecycle of a single build attempt."""

    IDLE = "idle"
    IN_PROGRESS = "in_progress"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    RESTART_REQUESTED = "restart_requested"


_ALLOWED_TRANSITIONS: Dict[BuildStatus, FrozenSet[BuildStatus]] = {
    BuildStatus.IDLE: frozenset({BuildStatus.IN_PROGRESS}),
    BuildStatus.IN_PROGRESS: frozenset({
        BuildStatus.SUCCEEDED,
        BuildStatus.FAILED,
        BuildStatus.RESTART_REQUESTED,
    }),
    BuildStatus.RESTART_REQUESTED: frozenset({BuildStatus.IDLE}),
    BuildStatus.SUCCEEDED: frozenset(),
    BuildStatus.FAILED: frozenset(),
}


@dataclass
class BuildRecord:
    """
    The orchestrator's view of the current build.

    ``last_successful`` is loaded from the marker file at start and is only
    replaced after a successful install.
    """

    revision: Optional[RevisionId] = None
    status: BuildStatus = BuildStatus.IDLE
    last_successful: Optional[RevisionId] = None
    attempts: int = 0

    def transition(self, new_status: BuildStatus) -> None:
        """Move to ``new_status``; RuntimeError if the move is not allowed."""
        if new_status not in _ALLOWED_TRANSITIONS[self.status]:
            raise RuntimeError(
                f"Invalid build status transition {self.status.value} -> {new_status.value}"
            )
        self.status = new_status


class CompileOutcome(Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class CompileResult:
    """Result of one compile step."""

    outcome: CompileOutcome
    revision: Optional[RevisionId]
    exit_code: Optional[int] = None
    artifact_path: Optional[Path] = None
    elapsed_seconds: float = 0.0

    @classmethod
    def succeeded(cls, revision, artifact_path: Path, exit_code: int = 0,
                  elapsed_seconds: float = 0.0) -> "CompileResult":
        return cls(CompileOutcome.SUCCEEDED, revision, exit_code, artifact_path, elapsed_seconds)

    @classmethod
    def failed(cls, revision, exit_code: Optional[int],
               elapsed_seconds: float = 0.0) -> "CompileResult":
        return cls(CompileOutcome.FAILED, revision, exit_code, None, elapsed_seconds)

    @classmethod
    def cancelled(cls, revision, exit_code: Optional[int] = None,
                  elapsed_seconds: float = 0.0) -> "CompileResult":
        return cls(CompileOutcome.CANCELLED, revision, exit_code, None, elapsed_seconds)

    @property
    def is_cancelled(self) -> bool:
        return self.outcome is CompileOutcome.CANCELLED


@dataclass
class UpdateCheck:
    """Comparison of the remote head with the last successful build."""

    latest: Optional[RevisionId]
    last_built: Optional[RevisionId]

    @property
    def up_to_date(self) -> bool:
        return self.latest is not None and self.latest == self.last_built

    @property
    def has_previous_build(self) -> bool:
        return self.last_built is not None


@dataclass
class RunPolicy:
    """
    Answers to the run's yes/no questions.

    The CLI fills this in (from flags or prompts) and hands it to the
    orchestrator, which never asks the user anything itself.
    """

    rebuild_if_current: bool = False
    build_if_outdated: bool = True
    create_launcher: bool = False
    launcher_name: str = ""
    launch_after_install: bool = False


@dataclass
class InstallReport:
    """What an install changed on disk."""

    install_dir: Path
    backup_dir: Optional[Path] = None
    launcher_path: Optional[Path] = None
    bundle_synthesized: bool = False


@dataclass
class RunSummary:
    """Final outcome of :meth:`BuildOrchestrator.run`."""

    record: BuildRecord
    skipped: bool = False
    restarts: int = 0
    install: Optional[InstallReport] = None
    results: list = field(default_factory=list)
    # Exit code of the debug binary when run in debug mode
    debug_exit_code: Optional[int] = None
