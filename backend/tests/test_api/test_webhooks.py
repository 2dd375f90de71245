"""Tests for the GitHub webhook endpoint."""

import json

import pytest
from sqlalchemy import func, select

from code_police.models.analysis_run import AnalysisRun


def push_payload(repo_id: int = 555, **overrides) -> dict:
    payload = {
        "ref": "refs/heads/main",
        "after": "9f8e7d6c5b4a39281706f5e4d3c2b1a098765432",
        "deleted": False,
        "repository": {"id": repo_id, "full_name": "acme/widgets"},
        "head_commit": {"message": "Fix login flow"},
    }
    payload.update(overrides)
    return payload


def pr_payload(action: str = "opened", repo_id: int = 555) -> dict:
    return {
        "action": action,
        "number": 42,
        "pull_request": {
            "number": 42,
            "title": "Add login",
            "head": {"sha": "1234567890abcdef1234567890abcdef12345678", "ref": "feature/login"},
            "user": {"login": "octocat", "avatar_url": "https://avatars.example.com/u/1"},
        },
        "repository": {"id": repo_id, "full_name": "acme/widgets"},
    }


@pytest.fixture
def deliver(client, sign_payload):
    """POST a signed delivery."""

    async def _deliver(event: str, payload: dict, signature: str | bytes | None = "auto", body: bytes | None = None):
        raw = body if body is not None else json.dumps(payload).encode()
        headers = {"X-GitHub-Event": event, "X-GitHub-Delivery": "delivery-1", "Content-Type": "application/json"}
        if signature == "auto":
            headers["X-Hub-Signature-256"] = sign_payload(raw)
        elif signature is not None:
            headers["X-Hub-Signature-256"] = signature
        return await client.post("/webhooks/github", content=raw, headers=headers)

    return _deliver


async def run_count(db_session) -> int:
    result = await db_session.execute(select(func.count()).select_from(AnalysisRun))
    return result.scalar_one()


class TestWebhookValidation:
    """Test request validation and authentication."""

    @pytest.mark.asyncio
    async def test_missing_event_header(self, client, make_project):
        await make_project()

        response = await client.post("/webhooks/github", content=b"{}")

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_invalid_json(self, deliver, make_project):
        await make_project()

        response = await deliver("push", {}, body=b"not json")

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_missing_repository(self, deliver, make_project):
        await make_project()

        response = await deliver("push", {"ref": "refs/heads/main"})

        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_repository(self, deliver, make_project, db_session):
        await make_project()

        response = await deliver("push", push_payload(repo_id=999))

        assert response.status_code == 404
        assert await run_count(db_session) == 0

    @pytest.mark.asyncio
    async def test_bad_signature_rejected(self, deliver, make_project, db_session):
        await make_project()

        response = await deliver("push", push_payload(), signature="sha256=" + "0" * 64)

        assert response.status_code == 401
        assert await run_count(db_session) == 0

    @pytest.mark.asyncio
    async def test_missing_signature_rejected(self, deliver, make_project):
        await make_project()

        response = await deliver("push", push_payload(), signature=None)

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_non_ascii_signature_rejected(self, deliver, make_project, db_session):
        await make_project()

        response = await deliver("push", push_payload(), signature="sha256=é".encode())

        assert response.status_code == 401
        assert await run_count(db_session) == 0

    @pytest.mark.asyncio
    async def test_signature_checked_before_status(self, deliver, make_project):
        """A paused project still rejects forged deliveries."""
        await make_project(status="paused")

        response = await deliver("push", push_payload(), signature="sha256=bad")

        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_ping(self, deliver, make_project):
        await make_project()

        response = await deliver("ping", {"zen": "Design for failure.", "repository": {"id": 555}})

        assert response.status_code == 200
        assert response.json() == {"status": "pong"}


class TestWebhookStatusGating:
    """Test paused and stopped projects."""

    @pytest.mark.asyncio
    async def test_paused_project_skips(self, deliver, make_project, db_session):
        await make_project(status="paused")

        response = await deliver("push", push_payload())

        assert response.status_code == 200
        assert response.json()["status"] == "skipped"
        assert await run_count(db_session) == 0

    @pytest.mark.asyncio
    async def test_stopped_project_pr_synchronize(self, deliver, make_project, db_session, fake_github):
        """Deliveries for stopped projects are rejected without a run."""
        await make_project(status="stopped")

        response = await deliver("pull_request", pr_payload("synchronize"))

        assert response.status_code == 404
        assert await run_count(db_session) == 0
        assert fake_github.fetched_refs == []

    @pytest.mark.asyncio
    async def test_unknown_status_treated_as_active(self, deliver, make_project, db_session):
        await make_project(status="legacy")

        response = await deliver("push", push_payload())

        assert response.status_code == 200
        assert await run_count(db_session) == 1

    @pytest.mark.asyncio
    async def test_owner_without_token(self, deliver, make_project, user, db_session):
        user.github_access_token = None
        await db_session.commit()
        await make_project()

        response = await deliver("push", push_payload())

        assert response.status_code == 400


class TestPushEvents:
    """Test push handling."""

    @pytest.mark.asyncio
    async def test_push_creates_one_completed_run(self, deliver, make_project, db_session, fake_github):
        await make_project()

        response = await deliver("push", push_payload())

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "completed"
        assert await run_count(db_session) == 1
        assert fake_github.fetched_refs == ["9f8e7d6c5b4a39281706f5e4d3c2b1a098765432"]

        run = (await db_session.execute(select(AnalysisRun))).scalar_one()
        assert str(run.id) == data["run_id"]
        assert run.trigger_type == "push"
        assert run.branch == "main"
        assert run.pr_number is None

    @pytest.mark.asyncio
    async def test_push_emails_report(self, deliver, make_project, fake_email):
        await make_project(notification_prefs={"email_on_push": True})

        response = await deliver("push", push_payload())

        assert response.status_code == 200
        assert len(fake_email.sent) == 1

    @pytest.mark.asyncio
    async def test_branch_deletion_ignored(self, deliver, make_project, db_session):
        await make_project()

        response = await deliver(
            "push", push_payload(deleted=True, after="0000000000000000000000000000000000000000")
        )

        assert response.json()["status"] == "ignored"
        assert await run_count(db_session) == 0

    @pytest.mark.asyncio
    async def test_failed_run_is_still_200(self, deliver, make_project, fake_github):
        await make_project()
        fake_github.commit_error = RuntimeError("No commit found for SHA")

        response = await deliver("push", push_payload())

        assert response.status_code == 200
        assert response.json()["status"] == "failed"
        assert response.json()["error"] == "No commit found for SHA"


class TestPullRequestEvents:
    """Test pull_request handling."""

    @pytest.mark.asyncio
    async def test_opened_pr_comments(self, deliver, make_project, db_session, fake_github, fake_email, fake_analyzer):
        await make_project(notification_prefs={"email_on_push": True})

        response = await deliver("pull_request", pr_payload("opened"))

        assert response.status_code == 200
        assert response.json()["status"] == "completed"
        assert [n for n, _ in fake_github.comments] == [42]
        assert fake_email.sent == []
        assert fake_analyzer.calls[0]["commit_message"] == "Add login"

        run = (await db_session.execute(select(AnalysisRun))).scalar_one()
        assert run.trigger_type == "pull_request"
        assert run.pr_number == 42
        assert run.branch == "feature/login"
        assert run.author == {"name": "octocat", "avatar": "https://avatars.example.com/u/1"}

    @pytest.mark.asyncio
    async def test_comment_failure_still_completed(self, deliver, make_project, fake_github):
        await make_project()
        fake_github.comment_error = RuntimeError("Resource not accessible")

        response = await deliver("pull_request", pr_payload("synchronize"))

        assert response.status_code == 200
        assert response.json()["status"] == "completed"

    @pytest.mark.asyncio
    async def test_closed_pr_ignored(self, deliver, make_project, db_session):
        await make_project()

        response = await deliver("pull_request", pr_payload("closed"))

        assert response.json()["status"] == "ignored"
        assert await run_count(db_session) == 0

    @pytest.mark.asyncio
    async def test_other_events_ignored(self, deliver, make_project, db_session):
        await make_project()

        response = await deliver("issues", {"action": "opened", "repository": {"id": 555}})

        assert response.json() == {"status": "ignored", "event": "issues"}
        assert await run_count(db_session) == 0
