"""Schemas for analysis runs, code issues and analyzer output."""

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field


# ---------------------------------------------------------------------------
# Analyzer structured output
# ---------------------------------------------------------------------------


class IssueOutput(BaseModel):
    """One issue as returned by the LLM."""

    severity: Literal["critical", "high", "medium", "low", "info"]
    category: Literal["security", "performance", "readability", "bug", "test", "style"]
    message: str = Field(..., description="Clear, concise description of the issue")
    line: int = Field(..., description="Starting line number of the issue")
    end_line: int | None = Field(
        default=None, description="Ending line number if the issue spans multiple lines"
    )
    suggested_fix: str | None = Field(default=None, description="Concrete code fix suggestion")
    explanation: str = Field(..., description="Why this is problematic and its impact")
    rule_id: str | None = Field(default=None, description="Rule identifier like SEC001, PERF001")


class AnalysisOutput(BaseModel):
    """Structured analyzer response."""

    issues: list[IssueOutput] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# API
# ---------------------------------------------------------------------------


class AnalyzeRequest(BaseModel):
    """Manual analysis request."""

    project_id: UUID
    commit_sha: str | None = Field(default=None, description="Commit SHA or branch, defaults to the default branch")
    send_email: bool = False
    recipient_email: EmailStr | None = None


class CodeIssueResponse(BaseModel):
    """Code issue response model."""

    id: str
    file_path: str
    line: int
    end_line: int | None
    severity: str
    category: str
    rule_id: str | None
    message: str
    explanation: str
    suggested_fix: str | None
    code_snippet: str | None
    is_muted: bool

    class Config:
        from_attributes = True


class AnalysisRunResponse(BaseModel):
    """Analysis run response model."""

    id: UUID
    project_id: UUID
    commit_sha: str
    branch: str
    trigger_type: str
    pr_number: int | None
    status: str
    issue_counts: dict[str, int]
    summary: str | None
    author: dict[str, Any] | None
    email_status: str | None
    error: str | None
    created_at: datetime | None
    completed_at: datetime | None

    class Config:
        from_attributes = True


class AnalysisRunDetailResponse(AnalysisRunResponse):
    """Analysis run with its issues."""

    issues: list[CodeIssueResponse]


class AnalysisHistoryResponse(BaseModel):
    """Analysis history for a project."""

    runs: list[AnalysisRunResponse]


class AnalyzeResponse(BaseModel):
    """Manual analysis result."""

    analysis_id: UUID
    status: str
    issue_counts: dict[str, int]
    issue_count: int
    summary: str | None
    error: str | None = None
    email_status: str | None = None
