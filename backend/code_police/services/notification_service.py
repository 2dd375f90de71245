"""Fan-out of completed runs to email and pull request comments."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from code_police.analyzers.severity import meets_threshold
from code_police.config import get_settings
from code_police.models.analysis_run import AnalysisRun, EmailStatus, RunStatus, TriggerType
from code_police.models.code_issue import CodeIssue
from code_police.models.project import Project
from code_police.models.user import User
from code_police.services.email_service import EmailService
from code_police.services.github_service import GitHubService
from code_police.services.outcome import Outcome, attempt
from code_police.services.report_service import email_subject, format_pr_comment, render_email_html

logger = logging.getLogger(__name__)
settings = get_settings()


def resolve_recipients(project: Project, owner: User) -> list[str]:
    """Owner address first, then the configured extra recipients, without blanks or repeats."""
    candidates = [project.owner_email or owner.email, *project.prefs.additional_emails]
    recipients: list[str] = []
    for address in candidates:
        if address and address not in recipients:
            recipients.append(address)
    return recipients


class NotificationService:
    """Delivers run reports. Every channel is best-effort.

    Runs reach this service already completed; nothing here changes a
    run's status.
    """

    def __init__(self, db: AsyncSession, github_service: GitHubService, email_service: EmailService):
        self.db = db
        self.github_service = github_service
        self.email_service = email_service

    async def notify(
        self,
        run: AnalysisRun,
        project: Project,
        owner: User,
        issues: list[CodeIssue],
    ) -> None:
        """Dispatch the report on the channel matching the run's trigger."""
        if run.status != RunStatus.COMPLETED.value:
            return

        if run.trigger_type == TriggerType.PUSH.value:
            if project.prefs.email_on_push:
                await self.send_email_report(run, project, issues, resolve_recipients(project, owner))
        elif run.trigger_type == TriggerType.PULL_REQUEST.value and run.pr_number:
            await self.post_pr_comment(run, project, issues, owner.github_access_token or "")

    async def send_email_report(
        self,
        run: AnalysisRun,
        project: Project,
        issues: list[CodeIssue],
        recipients: list[str],
    ) -> EmailStatus | None:
        """Email the report to each recipient.

        ``email_status`` reflects the last attempt only.

        Returns:
            Recorded email status, or None when there was nobody to email
        """
        if not recipients:
            logger.info(f"Run {run.id}: no email recipients configured")
            return None

        min_severity = project.prefs.min_severity
        reported = [issue for issue in issues if meets_threshold(issue.severity, min_severity)]
        subject = email_subject(run, len(issues))
        html = render_email_html(
            run,
            reported,
            run.summary or "",
            repo_name=project.full_name,
            commit_url=f"https://github.com/{project.full_name}/commit/{run.commit_sha}",
            dashboard_url=f"{settings.dashboard_url.rstrip('/')}/{project.id}",
        )

        outcome: Outcome[str] | None = None
        for recipient in recipients:
            outcome = await attempt(
                f"Email report to {recipient}",
                self.email_service.send(recipient, subject, html),
            )

        status = EmailStatus.SENT if outcome.ok else EmailStatus.FAILED
        run.email_status = status.value
        await self.db.commit()
        return status

    async def post_pr_comment(
        self,
        run: AnalysisRun,
        project: Project,
        issues: list[CodeIssue],
        access_token: str,
    ) -> Outcome[dict]:
        """Post the condensed report on the pull request."""
        body = format_pr_comment(issues, run.commit_sha, run.issue_counts)
        outcome = await attempt(
            f"PR comment on {project.full_name}#{run.pr_number}",
            self.github_service.post_issue_comment(
                access_token,
                project.github_owner,
                project.github_repo_name,
                run.pr_number,
                body,
            ),
        )
        if outcome.ok:
            logger.info(f"Posted PR comment for {project.full_name}#{run.pr_number}")
        return outcome
