"""
Signal handling for the orchestration module.

Signal handlers cannot be bound to instances, so active orchestrators are
kept in a registry and the module-level handler sets the shutdown event of
each of them.
"""

import logging
import signal
import threading
from typing import TYPE_CHECKING, Any, Dict

from .shared_state import RuntimeState

if TYPE_CHECKING:
    from .orchestrator import BuildOrchestrator

logger = logging.getLogger(__name__)

_active_orchestrators: Dict[int, "BuildOrchestrator"] = {}
_active_orchestrators_lock = threading.Lock()


class SignalHandler:
    """
    Installs the shutdown handler for SIGINT, SIGTERM and SIGHUP for the
    duration of a run and restores the previous handlers afterwards.
    """

    HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM, signal.SIGHUP)

    def __init__(self, state: RuntimeState):
        self.state = state
        self._previous_handlers: Dict[int, Any] = {}

    def setup_signal_handlers(self) -> None:
        try:
            for signum in self.HANDLED_SIGNALS:
                self._previous_handlers[signum] = signal.signal(signum, self._global_signal_handler)
            logger.debug("Shutdown signal handlers installed")
        except (ValueError, OSError) as e:
            # signal.signal only works from the main thread
            logger.warning(f"Could not install shutdown signal handlers: {e}")

    def cleanup_signal_handlers(self) -> None:
        while self._previous_handlers:
            signum, previous = self._previous_handlers.popitem()
            if previous is None:
                continue
            try:
                signal.signal(signum, previous)
            except (ValueError, OSError) as e:
                logger.warning(f"Could not restore handler for signal {signum}: {e}")

    def register_orchestrator(self, orchestrator_id: int, orchestrator: "BuildOrchestrator") -> None:
        with _active_orchestrators_lock:
            _active_orchestrators[orchestrator_id] = orchestrator
            logger.debug(f"Registered BuildOrchestrator {orchestrator_id} for signal handling")

    def unregister_orchestrator(self, orchestrator_id: int) -> None:
        with _active_orchestrators_lock:
            if _active_orchestrators.pop(orchestrator_id, None) is not None:
                logger.debug(f"Unregistered BuildOrchestrator {orchestrator_id} from signal handling")

    @staticmethod
    def _global_signal_handler(signum: int, frame: Any) -> None:
        logger.warning(f"Signal {signum} received. Stopping all active builds.")
        with _active_orchestrators_lock:
            for orchestrator_id, orchestrator in _active_orchestrators.items():
                logger.info(f"Requesting shutdown for BuildOrchestrator {orchestrator_id}")
                orchestrator.state.shutdown_requested.set()


def active_orchestrator_count() -> int:
    with _active_orchestrators_lock:
        return len(_active_orchestrators)
