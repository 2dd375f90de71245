"""Project connection and settings routes."""

import logging
from uuid import UUID

import httpx
from fastapi import APIRouter, HTTPException, status
from sqlalchemy import delete, select

from code_police.api.deps import CurrentUser, DbSession, GitHub, get_owned_project
from code_police.config import get_settings
from code_police.models.analysis_run import AnalysisRun
from code_police.models.code_issue import CodeIssue
from code_police.models.project import Project, ProjectStatus
from code_police.models.user import User
from code_police.schemas.project import (
    ProjectCreate,
    ProjectListResponse,
    ProjectResponse,
    ProjectUpdate,
)
from code_police.services.github_service import GitHubService, generate_webhook_secret
from code_police.services.outcome import attempt

logger = logging.getLogger(__name__)
settings = get_settings()

router = APIRouter()


@router.get("", response_model=ProjectListResponse)
async def list_projects(
    user: CurrentUser,
    db: DbSession,
):
    """List all projects for the current user."""
    result = await db.execute(
        select(Project)
        .where(Project.user_id == user.id)
        .order_by(Project.created_at.desc())
    )
    projects = result.scalars().all()

    return ProjectListResponse(
        projects=[ProjectResponse.model_validate(p) for p in projects],
        total=len(projects),
    )


@router.post("", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def connect_project(
    project_data: ProjectCreate,
    user: CurrentUser,
    db: DbSession,
    github_service: GitHub,
):
    """Connect a repository and install its webhook."""
    # Deliveries are routed by repository id, so a repository belongs to one project
    result = await db.execute(
        select(Project).where(Project.github_repo_id == project_data.github_repo_id).limit(1)
    )
    if result.scalars().first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Project already connected",
        )

    if not user.github_access_token:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No GitHub token",
        )

    webhook_secret = generate_webhook_secret()
    try:
        webhook_id = await github_service.create_webhook(
            user.github_access_token,
            project_data.github_owner,
            project_data.github_repo_name,
            settings.webhook_url,
            webhook_secret,
        )
    except httpx.HTTPError as e:
        logger.error(
            f"Failed to create webhook for {project_data.github_owner}/{project_data.github_repo_name}: {e}"
        )
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Failed to create GitHub webhook",
        )

    project = Project(
        user_id=user.id,
        name=project_data.name or project_data.github_repo_name,
        github_repo_id=project_data.github_repo_id,
        github_owner=project_data.github_owner,
        github_repo_name=project_data.github_repo_name,
        default_branch=project_data.default_branch,
        webhook_id=webhook_id,
        webhook_secret=webhook_secret,
        status=ProjectStatus.ACTIVE.value,
        custom_rules=project_data.custom_rules,
        owner_email=project_data.owner_email,
        notification_prefs=project_data.notification_prefs.model_dump(mode="json"),
    )
    db.add(project)
    await db.commit()
    await db.refresh(project)

    logger.info(f"Connected project {project.id} for {project.full_name} (webhook {webhook_id})")
    return ProjectResponse.model_validate(project)


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: UUID,
    user: CurrentUser,
    db: DbSession,
):
    """Get a project by ID."""
    project = await get_owned_project(db, project_id, user)
    return ProjectResponse.model_validate(project)


@router.patch("/{project_id}", response_model=ProjectResponse)
async def update_project(
    project_id: UUID,
    update: ProjectUpdate,
    user: CurrentUser,
    db: DbSession,
    github_service: GitHub,
):
    """Update project status and settings."""
    project = await get_owned_project(db, project_id, user)

    if update.status is not None:
        if update.status == ProjectStatus.STOPPED.value and project.effective_status != ProjectStatus.STOPPED:
            await _remove_webhook(github_service, project, user)
        project.status = update.status

    if update.custom_rules is not None:
        project.custom_rules = update.custom_rules

    if "owner_email" in update.model_fields_set:
        project.owner_email = update.owner_email

    if update.notification_prefs is not None:
        changes = update.notification_prefs.model_dump(mode="json", exclude_unset=True)
        project.notification_prefs = {**project.prefs.model_dump(mode="json"), **changes}

    await db.commit()
    await db.refresh(project)

    return ProjectResponse.model_validate(project)


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project_id: UUID,
    user: CurrentUser,
    db: DbSession,
    github_service: GitHub,
):
    """Remove the webhook, then delete the project with its runs and issues."""
    project = await get_owned_project(db, project_id, user)

    await _remove_webhook(github_service, project, user)

    await db.execute(delete(CodeIssue).where(CodeIssue.project_id == project.id))
    await db.execute(delete(AnalysisRun).where(AnalysisRun.project_id == project.id))
    await db.delete(project)
    await db.commit()

    logger.info(f"Deleted project {project_id}")


async def _remove_webhook(github_service: GitHubService, project: Project, user: User) -> None:
    """Delete the project's webhook. Failures are logged and ignored."""
    if not project.webhook_id or not user.github_access_token:
        return

    outcome = await attempt(
        f"Webhook removal for {project.full_name}",
        github_service.delete_webhook(
            user.github_access_token,
            project.github_owner,
            project.github_repo_name,
            project.webhook_id,
        ),
    )
    if outcome.ok:
        project.webhook_id = None
