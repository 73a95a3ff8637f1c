"""
Unit tests for the last-built revision marker.
"""

import pytest

from edgebuild.models import RevisionId
from edgebuild.storage import BuildRecordStore


@pytest.mark.unit
class TestBuildRecordStore:

    def test_missing_marker_means_never_built(self, temp_dir):
        assert BuildRecordStore(temp_dir / ".last_built_commit").load() is None

    def test_save_then_load(self, temp_dir):
        store = BuildRecordStore(temp_dir / ".last_built_commit")

        store.save(RevisionId("c0ffee" * 6))

        assert store.load() == RevisionId("c0ffee" * 6)
        assert (temp_dir / ".last_built_commit").read_text() == "c0ffee" * 6 + "\n"

    def test_reads_marker_written_by_shell_tooling(self, temp_dir):
        """Markers written with `echo $hash > .last_built_commit` keep working."""
        marker = temp_dir / ".last_built_commit"
        marker.write_text("abc123\n")

        assert BuildRecordStore(marker).load() == RevisionId("abc123")

    def test_empty_marker_is_ignored(self, temp_dir):
        marker = temp_dir / ".last_built_commit"
        marker.write_text("\n")

        assert BuildRecordStore(marker).load() is None

    def test_unreadable_marker_is_ignored(self, temp_dir):
        # A directory in place of the marker file cannot be read as text
        marker = temp_dir / ".last_built_commit"
        marker.mkdir()

        assert BuildRecordStore(marker).load() is None

    def test_save_replaces_previous_value(self, temp_dir):
        store = BuildRecordStore(temp_dir / "nested" / ".last_built_commit")

        store.save(RevisionId("first"))
        store.save(RevisionId("second"))

        assert store.load() == RevisionId("second")
        leftovers = [p for p in (temp_dir / "nested").iterdir() if p.name != ".last_built_commit"]
        assert leftovers == []

    def test_clear(self, temp_dir):
        store = BuildRecordStore(temp_dir / ".last_built_commit")
        store.save(RevisionId("abc"))

        store.clear()
        store.clear()

        assert store.load() is None
