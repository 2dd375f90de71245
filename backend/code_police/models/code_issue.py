"""Code issue model - one finding inside an analysis run."""

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from code_police.database import Base, utcnow

if TYPE_CHECKING:
    from code_police.analyzers.llm_analyzer import Finding
    from code_police.models.analysis_run import AnalysisRun


class CodeIssue(Base):
    """Finding reported by the analyzer.

    Immutable once written. The id is synthetic and only unique within
    its run: ``{run_id}-{position}``.
    """

    __tablename__ = "code_issues"

    id: Mapped[str] = mapped_column(String(80), primary_key=True)
    run_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("analysis_runs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    project_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False)

    # Location
    file_path: Mapped[str] = mapped_column(String(1000), nullable=False)
    line: Mapped[int] = mapped_column(Integer, nullable=False)
    end_line: Mapped[int | None] = mapped_column(Integer)

    # Classification
    severity: Mapped[str] = mapped_column(String(20), nullable=False)
    # Allowed: critical, high, medium, low, info
    category: Mapped[str] = mapped_column(String(30), nullable=False)
    # Allowed: security, performance, readability, bug, test, style
    rule_id: Mapped[str | None] = mapped_column(String(50))

    # Content
    message: Mapped[str] = mapped_column(Text, nullable=False)
    explanation: Mapped[str] = mapped_column(Text, default="")
    suggested_fix: Mapped[str | None] = mapped_column(Text)
    code_snippet: Mapped[str | None] = mapped_column(Text)

    is_muted: Mapped[bool] = mapped_column(Boolean, default=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, server_default=func.now())

    @classmethod
    def from_finding(cls, finding: "Finding", run: "AnalysisRun", position: int) -> "CodeIssue":
        return cls(
            id=f"{run.id}-{position}",
            run_id=run.id,
            project_id=run.project_id,
            position=position,
            file_path=finding.file_path,
            line=finding.line,
            end_line=finding.end_line,
            severity=finding.severity.value,
            category=finding.category.value,
            rule_id=finding.rule_id,
            message=finding.message,
            explanation=finding.explanation,
            suggested_fix=finding.suggested_fix,
            code_snippet=finding.code_snippet,
            is_muted=False,
        )
