"""Code analysis pipeline for a single commit or pull request head."""

import logging
from dataclasses import dataclass
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from code_police.analyzers.llm_analyzer import (
    SUMMARY_FALLBACK,
    Finding,
    LLMCodeAnalyzer,
    detect_language,
    format_dependent_context,
)
from code_police.analyzers.severity import count_by_severity
from code_police.models.analysis_run import AnalysisRun, TriggerType
from code_police.models.code_issue import CodeIssue
from code_police.models.project import Project
from code_police.models.user import User
from code_police.services.github_service import Commit, GitHubService
from code_police.services.notification_service import NotificationService
from code_police.services.outcome import attempt

logger = logging.getLogger(__name__)


@dataclass
class AnalysisTrigger:
    """What to analyze and why."""

    trigger_type: TriggerType
    ref: str  # commit SHA, or a branch for manual runs
    branch: str
    commit_message: str | None = None  # overrides the commit's own message (PR title)
    pr_number: int | None = None
    author: dict[str, Any] | None = None


@dataclass
class PipelineResult:
    """Run in its terminal state and the issues written with it."""

    run: AnalysisRun
    issues: list[CodeIssue]


class AnalysisPipeline:
    """Runs one analysis: create run, analyze files, aggregate, persist, notify.

    Failure policy:
    - fetching commits or file contents and analyzing a file are hard
      steps; any error fails the whole run and no issue is persisted
    - dependent-file lookup and summary writing are best-effort
    - notifications happen after the run is completed and never change it
    """

    def __init__(
        self,
        db: AsyncSession,
        github_service: GitHubService,
        analyzer: LLMCodeAnalyzer,
        notification_service: NotificationService,
    ):
        self.db = db
        self.github_service = github_service
        self.analyzer = analyzer
        self.notification_service = notification_service

    async def run(
        self,
        project: Project,
        owner: User,
        trigger: AnalysisTrigger,
        notify: bool = True,
    ) -> PipelineResult:
        """Analyze a commit and return the run in its terminal state.

        Args:
            project: Project the delivery belongs to
            owner: Project owner, whose GitHub token is used
            trigger: Commit and event details
            notify: Fan out the report when the run completes

        Returns:
            PipelineResult with a completed or failed run
        """
        run = await self.start_run(project, trigger)

        try:
            issues = await self._analyze(run, project, owner.github_access_token or "", trigger)
        except Exception as e:
            logger.exception(f"Analysis run {run.id} for {project.full_name} failed")
            await self._fail(run, e, project, owner)
            return PipelineResult(run=run, issues=[])

        logger.info(
            f"Analysis run {run.id} for {project.full_name}@{run.short_sha} completed "
            f"with {len(issues)} issues"
        )

        if notify:
            await self.notification_service.notify(run, project, owner, issues)

        return PipelineResult(run=run, issues=issues)

    async def start_run(self, project: Project, trigger: AnalysisTrigger) -> AnalysisRun:
        """Persist a running run before any external call is made."""
        run = AnalysisRun.start(
            project_id=project.id,
            user_id=project.user_id,
            commit_sha=trigger.ref,
            branch=trigger.branch,
            trigger_type=trigger.trigger_type,
            pr_number=trigger.pr_number,
            author=trigger.author,
        )
        self.db.add(run)
        await self.db.commit()
        return run

    async def collect_findings(
        self,
        project: Project,
        access_token: str,
        commit: Commit,
        commit_message: str,
    ) -> list[Finding]:
        """Analyze every non-removed file of the commit, one after another."""
        owner, repo = project.github_owner, project.github_repo_name
        findings: list[Finding] = []

        for changed in commit.files:
            if changed.status == "removed":
                continue

            content = await self.github_service.get_file_content(
                access_token, owner, repo, changed.filename, commit.sha
            )
            language = detect_language(changed.filename)

            dependents = await attempt(
                f"Dependent file lookup for {changed.filename}",
                self.github_service.find_dependent_files(access_token, owner, repo, changed.filename),
            )
            dependent_context = format_dependent_context(dependents.value_or([]))

            findings.extend(
                await self.analyzer.analyze_file(
                    code=content,
                    file_path=changed.filename,
                    language=language,
                    commit_message=commit_message,
                    custom_rules=project.custom_rules or [],
                    dependent_context=dependent_context or None,
                )
            )

        return findings

    async def _analyze(
        self,
        run: AnalysisRun,
        project: Project,
        access_token: str,
        trigger: AnalysisTrigger,
    ) -> list[CodeIssue]:
        commit = await self.github_service.fetch_commit(
            access_token, project.github_owner, project.github_repo_name, trigger.ref
        )
        run.commit_sha = commit.sha

        findings = await self.collect_findings(
            project, access_token, commit, trigger.commit_message or commit.message
        )

        issue_counts = count_by_severity(findings)
        summary = await attempt(
            "Summary generation",
            self.analyzer.summarize(project.full_name, commit.sha, run.branch, findings),
        )
        issues = [CodeIssue.from_finding(finding, run, idx) for idx, finding in enumerate(findings)]

        author = None
        if trigger.author is None:
            author = {"name": commit.author.name, "email": commit.author.email}

        run.complete(issue_counts, summary.value_or(SUMMARY_FALLBACK), author)
        self.db.add_all(issues)
        await self.db.commit()
        return issues

    async def _fail(self, run: AnalysisRun, error: Exception, project: Project, owner: User) -> None:
        # Drop anything staged before the failure, then record it on the run.
        # Rollback expires every loaded instance, so reload the ones callers keep using.
        await self.db.rollback()
        for instance in (run, project, owner):
            await self.db.refresh(instance)
        run.fail(str(error) or error.__class__.__name__)
        await self.db.commit()
