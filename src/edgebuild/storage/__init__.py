"""
Persistent state kept between runs.
"""

from .record_store import BuildRecordStore

__all__ = [
    "BuildRecordStore",
]
