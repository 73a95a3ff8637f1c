"""
Command-line interface for edgebuild.
"""

from .main import build_parser, main_cli, resolve_policy

__all__ = [
    "build_parser",
    "main_cli",
    "resolve_policy",
]
