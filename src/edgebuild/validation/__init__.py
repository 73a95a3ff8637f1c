"""
Validation and error handling for the edgebuild package.

This module provides input validation, the build error taxonomy and
error handling helpers with consistent error reporting across the
application.
"""

from .exceptions import (
    BuildError,
    BuildInterrupted,
    CompileFailedError,
    DependencyError,
    ErrorSeverity,
    InstallError,
    RestartLimitExceeded,
    SyncError,
    ValidationError,
    handle_cli_error,
    handle_config_error,
    handle_error,
)

from .strategies import simple_retry

from .validators import (
    validate_boolean,
    validate_enum_choice,
    validate_launcher_name,
    validate_non_empty_string,
    validate_positive_float,
    validate_positive_integer,
    validate_project_name,
)

__all__ = [
    # Errors
    "BuildError",
    "BuildInterrupted",
    "CompileFailedError",
    "DependencyError",
    "ErrorSeverity",
    "InstallError",
    "RestartLimitExceeded",
    "SyncError",
    "ValidationError",
    "handle_cli_error",
    "handle_config_error",
    "handle_error",
    # Strategies
    "simple_retry",
    # Validators
    "validate_boolean",
    "validate_enum_choice",
    "validate_launcher_name",
    "validate_non_empty_string",
    "validate_positive_float",
    "validate_positive_integer",
    "validate_project_name",
]
