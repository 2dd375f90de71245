"""SQLAlchemy models."""

from code_police.models.user import User
from code_police.models.project import Project, ProjectStatus
from code_police.models.analysis_run import (
    AnalysisRun,
    EmailStatus,
    InvalidRunTransition,
    RunStatus,
    TriggerType,
)
from code_police.models.code_issue import CodeIssue

__all__ = [
    "User",
    "Project",
    "ProjectStatus",
    "AnalysisRun",
    "EmailStatus",
    "InvalidRunTransition",
    "RunStatus",
    "TriggerType",
    "CodeIssue",
]
