"""
Orchestration of the build pipeline.

Components:
- BuildOrchestrator: main sync -> compile -> install loop
- Compiler / CompileHandle: cancellable build process
- UpdateWatcher: background poller that cancels a stale compile
- LogManager: per-run captured build output
- SignalHandler: SIGINT/SIGTERM handling
"""

from .compiler import CompileHandle, Compiler
from .log_manager import LogManager
from .orchestrator import BuildOrchestrator
from .shared_state import BUILD_MODES, OrchestratorConfig, RuntimeState, TimeoutConstants
from .signal_handler import SignalHandler
from .update_watcher import UpdateWatcher

__all__ = [
    "BUILD_MODES",
    "BuildOrchestrator",
    "CompileHandle",
    "Compiler",
    "LogManager",
    "OrchestratorConfig",
    "RuntimeState",
    "SignalHandler",
    "TimeoutConstants",
    "UpdateWatcher",
]
