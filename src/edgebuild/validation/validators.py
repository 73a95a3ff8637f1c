"""
Field validation functions.

Small, composable validators used by the configuration layer and the CLI.
Each returns the normalized value or raises ValidationError naming the
offending field.
"""

import re
from typing import Any, Callable, List, Optional, TypeVar

from .exceptions import ValidationError

N = TypeVar("N", int, float)

PROJECT_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")
# A single file name: no separators, no leading dot
LAUNCHER_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9_][a-zA-Z0-9_.-]*$")


def _invalid(message: str, field_name: str, value: Any) -> ValidationError:
    return ValidationError(f"{field_name} {message}", field_name=field_name, value=value)


def _validate_number(
    value: Any,
    cast: Callable[[Any], N],
    kind: str,
    min_value: N,
    max_value: Optional[N],
    field_name: str,
) -> N:
    # TOML booleans would otherwise pass as 0/1
    if isinstance(value, bool):
        raise _invalid(f"must be {kind}, got {value}", field_name, value)
    try:
        number = cast(value)
    except (ValueError, TypeError):
        raise _invalid(f"must be {kind}, got {value!r}", field_name, value) from None

    if number < min_value or (max_value is not None and number > max_value):
        upper = "" if max_value is None else f" and <= {max_value}"
        raise _invalid(f"must be >= {min_value}{upper}, got {number}", field_name, value)
    return number


def validate_positive_integer(
    value: Any,
    min_value: int = 1,
    max_value: Optional[int] = None,
    field_name: str = "value"
) -> int:
    """
    Validate an integer in ``[min_value, max_value]``.

    Numeric strings are accepted; booleans are not.

    Raises:
        ValidationError: If the value is not an integer or is out of range
    """
    return _validate_number(value, int, "an integer", min_value, max_value, field_name)


def validate_positive_float(
    value: Any,
    min_value: float = 0.0,
    max_value: Optional[float] = None,
    field_name: str = "value"
) -> float:
    """Like :func:`validate_positive_integer`, for seconds and other floats."""
    return _validate_number(value, float, "a number", min_value, max_value, field_name)


def validate_boolean(value: Any, field_name: str = "value") -> bool:
    """Accept only a real TOML ``true``/``false``."""
    if not isinstance(value, bool):
        raise _invalid(f"must be a boolean, got {value!r}", field_name, value)
    return value


def validate_non_empty_string(value: Any, field_name: str = "value") -> str:
    """Return ``value`` stripped; it must be a string with content."""
    if not isinstance(value, str) or not value.strip():
        raise _invalid("must be a non-empty string", field_name, value)
    return value.strip()


def validate_project_name(
    name: Any,
    existing_names: Optional[List[str]] = None,
    field_name: str = "project_name"
) -> str:
    """
    Project names are used on the command line and must be unique.

    Raises:
        ValidationError: If the name is empty, has characters other than
            letters, digits, ``_`` and ``-``, or is already taken
    """
    if not isinstance(name, str) or not name:
        raise _invalid("must be a non-empty string", field_name, name)
    if not PROJECT_NAME_PATTERN.match(name):
        raise _invalid(f"may only use letters, digits, '_' and '-': {name}", field_name, name)
    if existing_names and name in existing_names:
        raise _invalid(f"must be unique, '{name}' already exists", field_name, name)
    return name


def validate_launcher_name(name: Any, field_name: str = "launcher_name") -> str:
    """
    Validate the file name of a command-line launcher.

    The name becomes a file inside the launcher directory, so path
    separators and leading dots are rejected.
    """
    if not isinstance(name, str) or not name.strip():
        raise _invalid("must be a non-empty string", field_name, name)
    name = name.strip()
    if not LAUNCHER_NAME_PATTERN.match(name):
        raise _invalid(
            f"must be a plain file name (letters, digits, '.', '_', '-'): {name}", field_name, name
        )
    return name


def validate_enum_choice(
    value: Any,
    valid_choices: List[str],
    field_name: str = "value",
    case_sensitive: bool = True
) -> str:
    """
    Return the entry of ``valid_choices`` that ``value`` names.

    With ``case_sensitive=False`` the canonical spelling from
    ``valid_choices`` is returned.
    """
    if case_sensitive:
        lookup = {choice: choice for choice in valid_choices}
        key = str(value)
    else:
        lookup = {choice.lower(): choice for choice in valid_choices}
        key = str(value).lower()

    if key not in lookup:
        raise _invalid(f"must be one of {valid_choices}, got {value!r}", field_name, value)
    return lookup[key]
