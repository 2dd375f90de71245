"""Project schemas."""

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from code_police.analyzers.severity import Severity

ProjectStatusLiteral = Literal["active", "paused", "stopped"]


class NotificationPrefs(BaseModel):
    """Per-project notification settings."""

    email_on_push: bool = False
    email_on_pr: bool = False
    min_severity: Severity = Severity.INFO
    additional_emails: list[EmailStr] = Field(default_factory=list)


def connect_prefs() -> NotificationPrefs:
    """Settings stored for a freshly connected repository."""
    return NotificationPrefs(email_on_push=True, email_on_pr=True, min_severity=Severity.MEDIUM)


class NotificationPrefsUpdate(BaseModel):
    """Partial notification settings, merged over the stored ones."""

    email_on_push: bool | None = None
    email_on_pr: bool | None = None
    min_severity: Severity | None = None
    additional_emails: list[EmailStr] | None = None


def _clean_rules(rules: list[str]) -> list[str]:
    return [rule.strip() for rule in rules if isinstance(rule, str) and rule.strip()]


class ProjectCreate(BaseModel):
    """Schema for connecting a repository."""

    github_repo_id: int
    github_owner: str = Field(..., min_length=1)
    github_repo_name: str = Field(..., min_length=1)
    name: str | None = None
    default_branch: str = "main"
    custom_rules: list[str] = Field(default_factory=list)
    owner_email: EmailStr | None = None
    notification_prefs: NotificationPrefs = Field(default_factory=connect_prefs)

    @field_validator("custom_rules")
    @classmethod
    def strip_blank_rules(cls, v: list[str]) -> list[str]:
        """Drop blank rules."""
        return _clean_rules(v)


class ProjectUpdate(BaseModel):
    """Schema for project settings changes."""

    status: ProjectStatusLiteral | None = None
    custom_rules: list[str] | None = None
    owner_email: EmailStr | None = None
    notification_prefs: NotificationPrefsUpdate | None = None

    @field_validator("custom_rules")
    @classmethod
    def strip_blank_rules(cls, v: list[str] | None) -> list[str] | None:
        """Drop blank rules."""
        if v is None:
            return None
        return _clean_rules(v)


class ProjectResponse(BaseModel):
    """Project response schema."""

    id: UUID
    name: str
    github_repo_id: int
    github_owner: str
    github_repo_name: str
    default_branch: str
    webhook_id: int | None
    status: str
    custom_rules: list[str]
    owner_email: str | None
    notification_prefs: NotificationPrefs
    created_at: datetime

    class Config:
        from_attributes = True


class ProjectListResponse(BaseModel):
    """List of projects response."""

    projects: list[ProjectResponse]
    total: int
