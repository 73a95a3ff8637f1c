"""
Data models for the builder.

Configuration Models:
- Builder-wide settings (polling, restarts, toolchain, install)
- Per-project build and packaging settings

Runtime Models:
- Revision identifiers and the build status state machine
- The persisted build record and compile results
- The caller-supplied run policy and install/run reports
"""

from .config import AppConfig, BuilderConfig, ProjectConfig

from .runtime import (
    BuildRecord,
    BuildStatus,
    CompileOutcome,
    CompileResult,
    InstallReport,
    RevisionId,
    RunPolicy,
    RunSummary,
    UpdateCheck,
)

__all__ = [
    # Configuration
    "AppConfig",
    "BuilderConfig",
    "ProjectConfig",
    # Runtime
    "BuildRecord",
    "BuildStatus",
    "CompileOutcome",
    "CompileResult",
    "InstallReport",
    "RevisionId",
    "RunPolicy",
    "RunSummary",
    "UpdateCheck",
]
