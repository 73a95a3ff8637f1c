"""
Unit tests for runtime data models: revisions, the build status state
machine and compile results.
"""

from pathlib import Path

import pytest

from edgebuild.models import (
    BuildRecord,
    BuildStatus,
    CompileOutcome,
    CompileResult,
    RevisionId,
    UpdateCheck,
)


@pytest.mark.unit
class TestRevisionId:

    def test_short_and_str(self):
        revision = RevisionId("0123456789abcdef")
        assert revision.short == "01234567"
        assert str(revision) == "0123456789abcdef"

    def test_whitespace_is_stripped(self):
        assert RevisionId(" abc\n") == RevisionId("abc")

    @pytest.mark.parametrize("value", ["", "   ", None])
    def test_rejects_empty(self, value):
        with pytest.raises(ValueError):
            RevisionId(value)


@pytest.mark.unit
class TestBuildRecord:
    """The status transitions a build attempt may take."""

    def test_successful_attempt(self):
        record = BuildRecord()
        record.transition(BuildStatus.IN_PROGRESS)
        record.transition(BuildStatus.SUCCEEDED)
        assert record.status is BuildStatus.SUCCEEDED

    def test_restart_loops_back_to_idle(self):
        record = BuildRecord()
        record.transition(BuildStatus.IN_PROGRESS)
        record.transition(BuildStatus.RESTART_REQUESTED)
        record.transition(BuildStatus.IDLE)
        record.transition(BuildStatus.IN_PROGRESS)
        assert record.status is BuildStatus.IN_PROGRESS

    @pytest.mark.parametrize("start,target", [
        (BuildStatus.IDLE, BuildStatus.SUCCEEDED),
        (BuildStatus.IDLE, BuildStatus.RESTART_REQUESTED),
        (BuildStatus.SUCCEEDED, BuildStatus.IN_PROGRESS),
        (BuildStatus.FAILED, BuildStatus.IDLE),
        (BuildStatus.RESTART_REQUESTED, BuildStatus.IN_PROGRESS),
    ])
    def test_invalid_transitions(self, start, target):
        record = BuildRecord(status=start)
        with pytest.raises(RuntimeError):
            record.transition(target)
        assert record.status is start


@pytest.mark.unit
class TestCompileResult:

    def test_constructors(self):
        revision = RevisionId("a" * 40)

        ok = CompileResult.succeeded(revision, Path("/tmp/app"), elapsed_seconds=1.5)
        failed = CompileResult.failed(revision, 101)
        cancelled = CompileResult.cancelled(revision, -15)

        assert ok.outcome is CompileOutcome.SUCCEEDED and ok.artifact_path == Path("/tmp/app")
        assert failed.outcome is CompileOutcome.FAILED and failed.exit_code == 101
        assert cancelled.is_cancelled and not failed.is_cancelled


@pytest.mark.unit
class TestUpdateCheck:

    def test_up_to_date(self):
        revision = RevisionId("abc")
        check = UpdateCheck(latest=revision, last_built=RevisionId("abc"))
        assert check.up_to_date and check.has_previous_build

    def test_never_built(self):
        check = UpdateCheck(latest=RevisionId("abc"), last_built=None)
        assert not check.up_to_date
        assert not check.has_previous_build

    def test_unknown_latest_is_not_up_to_date(self):
        assert not UpdateCheck(latest=None, last_built=None).up_to_date
