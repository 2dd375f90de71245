"""Tests for the analysis run lifecycle."""

import uuid

import pytest

from code_police.models.analysis_run import (
    AnalysisRun,
    InvalidRunTransition,
    RunStatus,
    TriggerType,
)
from code_police.models.code_issue import CodeIssue


def new_run(**overrides) -> AnalysisRun:
    fields = {
        "project_id": uuid.uuid4(),
        "user_id": uuid.uuid4(),
        "commit_sha": "0123456789abcdef",
        "branch": "main",
        "trigger_type": TriggerType.PUSH,
    }
    fields.update(overrides)
    return AnalysisRun.start(**fields)


class TestAnalysisRunLifecycle:
    """Test run state transitions."""

    def test_start_is_running_with_zero_counts(self):
        run = new_run()

        assert run.status == RunStatus.RUNNING.value
        assert run.issue_counts == {"critical": 0, "high": 0, "medium": 0, "low": 0, "info": 0}
        assert run.completed_at is None
        assert not run.is_terminal

    def test_complete_sets_results(self):
        run = new_run()

        run.complete({"critical": 1, "high": 0, "medium": 0, "low": 1, "info": 0}, "Summary")

        assert run.status == RunStatus.COMPLETED.value
        assert run.issue_counts["critical"] == 1
        assert run.summary == "Summary"
        assert run.completed_at is not None
        assert run.is_terminal

    def test_complete_keeps_trigger_author_when_none_given(self):
        run = new_run(author={"name": "octocat"})

        run.complete({}, "Summary")

        assert run.author == {"name": "octocat"}

    def test_fail_records_error(self):
        run = new_run()

        run.fail("Not Found: src/app.py")

        assert run.status == RunStatus.FAILED.value
        assert run.error == "Not Found: src/app.py"
        assert run.completed_at is not None

    def test_fail_without_message_gets_default(self):
        run = new_run()

        run.fail("")

        assert run.error == "Analysis failed"

    def test_terminal_run_cannot_change(self):
        """completed and failed are final."""
        run = new_run()
        run.complete({}, "Summary")

        with pytest.raises(InvalidRunTransition):
            run.fail("late error")
        with pytest.raises(InvalidRunTransition):
            run.complete({}, "again")

    def test_failed_run_cannot_complete(self):
        run = new_run()
        run.fail("boom")

        with pytest.raises(InvalidRunTransition):
            run.complete({}, "Summary")

    def test_rejects_unknown_trigger(self):
        with pytest.raises(ValueError):
            new_run(trigger_type="schedule")

    def test_short_sha(self):
        assert new_run().short_sha == "0123456"


class TestCodeIssueFromFinding:
    """Test issue construction from analyzer findings."""

    def test_synthetic_id_and_fields(self, finding_factory):
        run = new_run()
        finding = finding_factory(file_path="src/db.py", line=12, message="N+1 query")

        issue = CodeIssue.from_finding(finding, run, 3)

        assert issue.id == f"{run.id}-3"
        assert issue.run_id == run.id
        assert issue.project_id == run.project_id
        assert issue.file_path == "src/db.py"
        assert issue.line == 12
        assert issue.severity == "medium"
        assert issue.category == "bug"
        assert issue.is_muted is False
