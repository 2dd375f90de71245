"""Manual analysis and analysis history routes."""

import logging
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status
from sqlalchemy import select

from code_police.api.deps import CurrentUser, DbSession, Pipeline, get_owned_project
from code_police.models.analysis_run import AnalysisRun, RunStatus, TriggerType
from code_police.models.code_issue import CodeIssue
from code_police.schemas.analysis import (
    AnalysisHistoryResponse,
    AnalysisRunDetailResponse,
    AnalysisRunResponse,
    AnalyzeRequest,
    AnalyzeResponse,
    CodeIssueResponse,
)
from code_police.services.pipeline_service import AnalysisTrigger

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/analyze", response_model=AnalyzeResponse)
async def analyze_commit(
    request: AnalyzeRequest,
    user: CurrentUser,
    db: DbSession,
    pipeline: Pipeline,
):
    """Analyze a commit on demand.

    Runs the same pipeline as a push delivery but without automatic
    notifications. The report is emailed only when explicitly requested.
    """
    project = await get_owned_project(db, request.project_id, user)

    if not user.github_access_token:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No GitHub token",
        )

    trigger = AnalysisTrigger(
        trigger_type=TriggerType.PUSH,
        ref=request.commit_sha or project.default_branch,
        branch=project.default_branch,
    )
    result = await pipeline.run(project, user, trigger, notify=False)
    run = result.run

    if (
        request.send_email
        and request.recipient_email
        and run.status == RunStatus.COMPLETED.value
    ):
        await pipeline.notification_service.send_email_report(
            run, project, result.issues, [request.recipient_email]
        )

    return AnalyzeResponse(
        analysis_id=run.id,
        status=run.status,
        issue_counts=run.issue_counts,
        issue_count=len(result.issues),
        summary=run.summary,
        error=run.error,
        email_status=run.email_status,
    )


@router.get("/projects/{project_id}/runs", response_model=AnalysisHistoryResponse)
async def list_runs(
    project_id: UUID,
    user: CurrentUser,
    db: DbSession,
    limit: int = Query(10, ge=1, le=100),
):
    """Analysis history of a project, newest first."""
    project = await get_owned_project(db, project_id, user)

    result = await db.execute(
        select(AnalysisRun)
        .where(AnalysisRun.project_id == project.id)
        .order_by(AnalysisRun.created_at.desc())
        .limit(limit)
    )
    runs = result.scalars().all()

    return AnalysisHistoryResponse(
        runs=[AnalysisRunResponse.model_validate(r) for r in runs],
    )


@router.get("/runs/{run_id}", response_model=AnalysisRunDetailResponse)
async def get_run(
    run_id: UUID,
    user: CurrentUser,
    db: DbSession,
):
    """Get a run with its issues."""
    result = await db.execute(
        select(AnalysisRun)
        .where(AnalysisRun.id == run_id)
        .where(AnalysisRun.user_id == user.id)
    )
    run = result.scalar_one_or_none()

    if not run:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Analysis run not found",
        )

    issues_result = await db.execute(
        select(CodeIssue).where(CodeIssue.run_id == run.id).order_by(CodeIssue.position)
    )
    issues = issues_result.scalars().all()

    return AnalysisRunDetailResponse(
        **AnalysisRunResponse.model_validate(run).model_dump(),
        issues=[CodeIssueResponse.model_validate(i) for i in issues],
    )
