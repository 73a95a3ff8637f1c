"""
Exception types and error handling helpers.

This module provides the validation error type, the build error taxonomy
and the logging helpers used to report errors consistently across the
application.
"""

import logging
import sys
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Union

_module_logger = logging.getLogger(__name__)


class ErrorSeverity(Enum):
    """Log level used when reporting a handled error; values are logger method names."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ValidationError(Exception):
    """
    A configuration value or command-line argument is invalid.

    ``field_name`` is the dotted config key (e.g. ``builder.watch.max_restarts``)
    or the CLI argument that failed.
    """

    def __init__(self, message: str, field_name: Optional[str] = None,
                 value: Any = None, severity: ErrorSeverity = ErrorSeverity.ERROR):
        super().__init__(message)
        self.field_name = field_name
        self.value = value
        self.severity = severity


class BuildError(Exception):
    """Base class for fatal errors raised while building and installing."""


class DependencyError(BuildError):
    """Raised when required command-line tools are missing."""

    def __init__(self, missing: list, hints: Optional[dict] = None):
        self.missing = list(missing)
        self.hints = dict(hints or {})
        super().__init__(f"Missing required tools: {', '.join(self.missing)}")


class SyncError(BuildError):
    """Raised when the working copy cannot be cloned, updated or inspected."""


class CompileFailedError(BuildError):
    """Raised when the build tool exits with a nonzero code."""

    def __init__(self, exit_code: Optional[int], message: Optional[str] = None):
        self.exit_code = exit_code
        super().__init__(message or f"Build failed with exit code {exit_code}")


class InstallError(BuildError):
    """
    Raised when the artifact cannot be installed.

    ``backup_path`` is set when a previous installation was preserved before
    the failure, so the caller can point the user at it.
    """

    def __init__(self, message: str, backup_path: Optional[Path] = None):
        super().__init__(message)
        self.backup_path = backup_path


class RestartLimitExceeded(BuildError):
    """Raised when upstream keeps moving and the restart cap is reached."""

    def __init__(self, restarts: int):
        self.restarts = restarts
        super().__init__(
            f"Upstream changed {restarts} times during the build; giving up"
        )


class BuildInterrupted(BuildError):
    """Raised when a shutdown signal arrives during a run."""


# Severities whose log entry carries the traceback
_TRACEBACK_SEVERITIES = (ErrorSeverity.DEBUG, ErrorSeverity.CRITICAL)


def handle_error(
    error: Exception,
    context: str,
    severity: Union[ErrorSeverity, str] = ErrorSeverity.ERROR,
    reraise: bool = True,
    logger: Optional[logging.Logger] = None
) -> None:
    """
    Log ``error`` as "Error in <context>: <error>" and optionally re-raise it.

    Args:
        error: The exception that occurred
        context: What was being done when it occurred
        severity: Log level, as an ErrorSeverity or its name
        reraise: Re-raise ``error`` after logging
        logger: Logger of the calling module (defaults to this module's)
    """
    if isinstance(severity, str):
        severity = ErrorSeverity(severity.lower())
    log = getattr(logger or _module_logger, severity.value)
    log(f"Error in {context}: {error}", exc_info=severity in _TRACEBACK_SEVERITIES)

    if reraise:
        raise error


def handle_config_error(error: Exception, context: str, **kwargs) -> None:
    handle_error(error, f"config {context}", **kwargs)


def handle_cli_error(error: Exception, context: str, **kwargs) -> None:
    """
    Log a fatal CLI error and exit.

    Keyword Args:
        exit_code: Process exit code (default 1)
        include_traceback: Log at CRITICAL with the traceback
    """
    exit_code = kwargs.pop('exit_code', 1)
    severity = kwargs.pop('severity', ErrorSeverity.ERROR)
    if kwargs.pop('include_traceback', False):
        severity = ErrorSeverity.CRITICAL
    handle_error(error, f"CLI {context}", severity=severity, reraise=False, **kwargs)

    sys.exit(exit_code)
