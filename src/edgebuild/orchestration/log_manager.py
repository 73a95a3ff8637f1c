"""
Log management for the orchestration module.

This module handles the per-run log directory: captured compiler output
for each attempt and a metadata log describing the run.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, IO, Mapping, Optional

from ..models.runtime import CompileResult

logger = logging.getLogger(__name__)


class LogManager:
    """
    Handles log file operations for a build run.

    When capturing is disabled the compiler writes straight to the
    terminal and no run directory is created.
    """

    def __init__(self, log_root_dir: Path, capture_build_output: bool = False):
        self.log_root_dir = Path(log_root_dir)
        self.capture_build_output = capture_build_output
        self.run_dir: Optional[Path] = None
        self.log_files: Dict[str, IO[Any]] = {}

    def prepare_run_dir(self, timestamp: Optional[str] = None) -> Optional[Path]:
        """Create ``<log_root_dir>/run_<timestamp>/`` if capturing is enabled."""
        if not self.capture_build_output:
            return None
        timestamp = timestamp or datetime.now().strftime("%Y%m%d_%H%M%S")
        self.run_dir = self.log_root_dir / f"run_{timestamp}"
        self.run_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"Logs for this run will be in {self.run_dir}")
        return self.run_dir

    def open_attempt_logs(self, attempt: int) -> Dict[str, IO[Any]]:
        """
        Open stdout/stderr capture files for one compile attempt.

        Files from a previous attempt are closed first. Returns an empty
        mapping when capturing is disabled.

        Raises:
            IOError: If any log file cannot be opened
        """
        self.close_log_files()
        if self.run_dir is None:
            return {}

        file_paths = {
            "build_stdout": self.run_dir / f"build_stdout_{attempt}.log",
            "build_stderr": self.run_dir / f"build_stderr_{attempt}.log",
        }

        opened_files: Dict[str, IO[Any]] = {}
        failed_files = []
        for name, path in file_paths.items():
            try:
                opened_files[name] = open(path, "w", encoding="utf-8")
                logger.debug(f"Successfully opened log file: {name} -> {path}")
            except OSError as e:
                failed_files.append((name, path, str(e)))
                logger.error(f"Failed to open {name} at {path}: {e}")

        if failed_files:
            self._safe_close_files(opened_files)
            error_details = "; ".join(f"{name}({path}): {error}" for name, path, error in failed_files)
            raise IOError(f"Failed to open {len(failed_files)} log files: {error_details}")

        self.log_files = opened_files
        return self.log_files

    def close_log_files(self) -> None:
        if not self.log_files:
            return
        self._safe_close_files(self.log_files)
        self.log_files = {}

    def write_metadata(self, entries: Mapping[str, Any]) -> None:
        """Append ``key: value`` lines to the run's metadata log."""
        if self.run_dir is None:
            return
        with open(self.run_dir / "metadata.log", "a", encoding="utf-8") as f:
            for key, value in entries.items():
                f.write(f"{key}: {value}\n")

    def log_attempt_result(self, attempt: int, result: CompileResult) -> None:
        self.write_metadata({
            f"attempt_{attempt}_revision": result.revision,
            f"attempt_{attempt}_outcome": result.outcome.value,
            f"attempt_{attempt}_exit_code": result.exit_code,
            f"attempt_{attempt}_elapsed_seconds": f"{result.elapsed_seconds:.1f}",
        })

    def _safe_close_files(self, files_dict: Dict[str, IO[Any]]) -> None:
        """Close every handle, continuing past individual failures."""
        for name, file_handle in files_dict.items():
            try:
                file_handle.close()
            except OSError as e:
                logger.warning(f"Failed to close log file {name}: {e}")
