"""
Process inspection and termination helpers.

Cancellation of a compile sends a single termination request to the build
process and its children and then waits for them to exit. There is no
escalation to SIGKILL.
"""

import logging
from typing import List

import psutil

logger = logging.getLogger(__name__)


def is_process_alive(process: psutil.Process) -> bool:
    """Safely check if a process is still alive and not a zombie."""
    try:
        if not process.is_running():
            return False
        return process.status() not in (psutil.STATUS_ZOMBIE, psutil.STATUS_DEAD)
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        return False


def get_process_children(parent: psutil.Process) -> List[psutil.Process]:
    """Return the live descendants of ``parent``, tolerating races."""
    try:
        return [child for child in parent.children(recursive=True) if is_process_alive(child)]
    except (psutil.NoSuchProcess, psutil.AccessDenied):
        return []


def request_termination(pid: int, name: str) -> bool:
    """
    Send SIGTERM once to ``pid`` and its descendants.

    Children are signalled too so that compiler workers spawned by the build
    tool do not outlive it.

    Returns:
        True if at least one process was signalled
    """
    if pid <= 0:
        logger.warning(f"Invalid PID {pid} for {name}, skipping termination")
        return False

    try:
        parent = psutil.Process(pid)
    except psutil.NoSuchProcess:
        logger.info(f"Process {name} (PID: {pid}) already terminated")
        return False

    children = get_process_children(parent)
    signalled = 0
    for process in [parent] + children:
        try:
            if not is_process_alive(process):
                continue
            process.terminate()
            signalled += 1
            logger.debug(f"Sent SIGTERM to PID {process.pid}")
        except psutil.NoSuchProcess:
            continue
        except psutil.AccessDenied:
            logger.warning(f"Access denied sending SIGTERM to PID {process.pid}")

    logger.info(f"Requested termination of {name} (PID: {pid}) and {len(children)} children")
    return signalled > 0
