"""GitHub webhook handlers."""

import json
import logging

from fastapi import APIRouter, Header, HTTPException, Request, status
from sqlalchemy import select

from code_police.api.deps import DbSession, Pipeline
from code_police.models.analysis_run import TriggerType
from code_police.models.project import Project, ProjectStatus
from code_police.models.user import User
from code_police.services.github_service import GitHubService
from code_police.services.pipeline_service import AnalysisPipeline, AnalysisTrigger

logger = logging.getLogger(__name__)

router = APIRouter()

PR_ACTIONS = ("opened", "synchronize")


@router.post("/github")
async def github_webhook(
    request: Request,
    db: DbSession,
    pipeline: Pipeline,
    x_hub_signature_256: str | None = Header(None),
    x_github_event: str | None = Header(None),
    x_github_delivery: str | None = Header(None),
):
    """Handle GitHub webhooks.

    Supported events:
    - ping: webhook created
    - push: code pushed (triggers analysis + email report)
    - pull_request: PR opened/updated (triggers analysis + PR comment)
    """
    # Raw bytes are what GitHub signed; never verify a re-serialized body
    payload = await request.body()

    if not x_github_event:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing event header",
        )

    try:
        data = json.loads(payload)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid JSON payload",
        )

    repository = data.get("repository") if isinstance(data, dict) else None
    github_repo_id = repository.get("id") if isinstance(repository, dict) else None
    if not github_repo_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid payload",
        )

    result = await db.execute(
        select(Project).where(Project.github_repo_id == github_repo_id).limit(1)
    )
    project = result.scalars().first()

    if not project:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Project not found",
        )

    # Verify signature (constant-time comparison)
    if not GitHubService.authenticate_delivery(payload, x_hub_signature_256, project.webhook_secret):
        logger.warning(f"Rejected delivery {x_github_delivery} for project {project.id}: bad signature")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid webhook signature",
        )

    event = x_github_event
    if event == "ping":
        return {"status": "pong"}

    project_status = project.effective_status
    if project_status == ProjectStatus.PAUSED:
        logger.info(f"Project {project.id} is paused, skipping {event} delivery")
        return {"status": "skipped", "reason": "project paused"}
    if project_status == ProjectStatus.STOPPED:
        logger.info(f"Project {project.id} is stopped, rejecting {event} delivery")
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Project stopped",
        )

    owner = await db.get(User, project.user_id)
    if not owner or not owner.github_access_token:
        logger.error(f"No GitHub token found for user {project.user_id}")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No GitHub token",
        )

    if event == "push":
        return await handle_push(data, project, owner, pipeline)
    elif event == "pull_request":
        return await handle_pull_request(data, project, owner, pipeline)
    else:
        logger.info(f"Ignoring {event} event for {project.full_name}")
        return {"status": "ignored", "event": event}


async def handle_push(data: dict, project: Project, owner: User, pipeline: AnalysisPipeline):
    """Handle push events - analyze the head commit and email the report."""
    if data.get("deleted"):
        return {"status": "ignored", "reason": "branch deleted"}

    commit_sha = data.get("after")
    if not commit_sha:
        return {"status": "ignored", "reason": "no head commit"}

    branch = data.get("ref", "").removeprefix("refs/heads/")
    logger.info(f"Push to {project.full_name}:{branch} at {commit_sha[:7]}, starting analysis")
    trigger = AnalysisTrigger(
        trigger_type=TriggerType.PUSH,
        ref=commit_sha,
        branch=branch,
    )

    result = await pipeline.run(project, owner, trigger)
    return _run_response(result.run)


async def handle_pull_request(data: dict, project: Project, owner: User, pipeline: AnalysisPipeline):
    """Handle pull request events - analyze the head commit and comment on the PR."""
    action = data.get("action")

    # Only process opened and synchronize events
    if action not in PR_ACTIONS:
        logger.info(f"Ignoring pull_request action {action} for {project.full_name}")
        return {"status": "ignored", "reason": f"action {action} not handled"}

    pr_data = data.get("pull_request") or {}
    head = pr_data.get("head") or {}
    user = pr_data.get("user") or {}
    commit_sha = head.get("sha")
    if not commit_sha:
        return {"status": "ignored", "reason": "no head commit"}

    pr_number = data.get("number") or pr_data.get("number")
    logger.info(f"PR #{pr_number} on {project.full_name} ({action}) at {commit_sha[:7]}, starting analysis")
    trigger = AnalysisTrigger(
        trigger_type=TriggerType.PULL_REQUEST,
        ref=commit_sha,
        branch=head.get("ref", ""),
        commit_message=pr_data.get("title") or None,
        pr_number=pr_number,
        author={"name": user.get("login", "unknown"), "avatar": user.get("avatar_url")},
    )

    result = await pipeline.run(project, owner, trigger)
    return _run_response(result.run)


def _run_response(run) -> dict:
    response = {"status": run.status, "run_id": str(run.id)}
    if run.error:
        response["error"] = run.error
    return response
