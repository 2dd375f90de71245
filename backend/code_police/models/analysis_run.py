"""Analysis run model and its lifecycle."""

import uuid
from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import JSON, DateTime, ForeignKey, Integer, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from code_police.analyzers.severity import empty_counts
from code_police.database import Base, utcnow


class RunStatus(str, Enum):
    """Run lifecycle: running -> completed | failed."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class TriggerType(str, Enum):
    """Event that started a run."""

    PUSH = "push"
    PULL_REQUEST = "pull_request"


class EmailStatus(str, Enum):
    """Outcome of the last report email attempt."""

    SENT = "sent"
    FAILED = "failed"


class InvalidRunTransition(ValueError):
    """Raised when a terminal run is asked to change state."""


class AnalysisRun(Base):
    """One execution of the analysis pipeline for a commit or PR head."""

    __tablename__ = "analysis_runs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )

    # Trigger
    commit_sha: Mapped[str] = mapped_column(String(255), nullable=False)
    branch: Mapped[str] = mapped_column(String(255), nullable=False)
    trigger_type: Mapped[str] = mapped_column(String(20), nullable=False)
    # Allowed: push, pull_request
    pr_number: Mapped[int | None] = mapped_column(Integer)
    author: Mapped[dict[str, Any] | None] = mapped_column(JSON)

    # Status
    status: Mapped[str] = mapped_column(String(20), default=RunStatus.RUNNING.value)
    # Allowed: running, completed, failed
    error: Mapped[str | None] = mapped_column(Text)

    # Results
    issue_counts: Mapped[dict[str, int]] = mapped_column(JSON, default=empty_counts)
    summary: Mapped[str | None] = mapped_column(Text)

    # Notifications
    email_status: Mapped[str | None] = mapped_column(String(20))
    # Allowed: sent, failed

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, server_default=func.now())
    completed_at: Mapped[datetime | None] = mapped_column(DateTime)

    @classmethod
    def start(
        cls,
        *,
        project_id: uuid.UUID,
        user_id: uuid.UUID,
        commit_sha: str,
        branch: str,
        trigger_type: TriggerType,
        pr_number: int | None = None,
        author: dict[str, Any] | None = None,
    ) -> "AnalysisRun":
        """Create a run in the running state with all-zero counts."""
        return cls(
            id=uuid.uuid4(),
            project_id=project_id,
            user_id=user_id,
            commit_sha=commit_sha,
            branch=branch,
            trigger_type=TriggerType(trigger_type).value,
            pr_number=pr_number,
            author=author,
            status=RunStatus.RUNNING.value,
            issue_counts=empty_counts(),
        )

    @property
    def is_terminal(self) -> bool:
        return self.status in (RunStatus.COMPLETED.value, RunStatus.FAILED.value)

    def complete(
        self,
        issue_counts: dict[str, int],
        summary: str,
        author: dict[str, Any] | None = None,
    ) -> None:
        """Move a running run to completed with its aggregated results."""
        self._ensure_running(RunStatus.COMPLETED)
        self.status = RunStatus.COMPLETED.value
        self.issue_counts = dict(issue_counts)
        self.summary = summary
        if author is not None:
            self.author = author
        self.completed_at = utcnow()

    def fail(self, error: str) -> None:
        """Move a running run to failed, keeping the error message."""
        self._ensure_running(RunStatus.FAILED)
        self.status = RunStatus.FAILED.value
        self.error = error or "Analysis failed"
        self.completed_at = utcnow()

    def _ensure_running(self, target: RunStatus) -> None:
        if self.status != RunStatus.RUNNING.value:
            raise InvalidRunTransition(
                f"Cannot move run {self.id} from {self.status} to {target.value}"
            )

    @property
    def short_sha(self) -> str:
        return self.commit_sha[:7]
