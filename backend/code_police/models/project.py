"""Project model - a monitored GitHub repository."""

import uuid
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from sqlalchemy import JSON, BigInteger, DateTime, ForeignKey, String, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from code_police.database import Base, utcnow
from code_police.schemas.project import NotificationPrefs

if TYPE_CHECKING:
    from code_police.models.user import User


class ProjectStatus(str, Enum):
    """Project monitoring status.

    - active: every delivery is analyzed
    - paused: deliveries are accepted and ignored
    - stopped: webhook removed, deliveries are rejected
    """

    ACTIVE = "active"
    PAUSED = "paused"
    STOPPED = "stopped"


class Project(Base):
    """Repository connected for automated code review."""

    __tablename__ = "projects"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    # GitHub identifiers
    github_repo_id: Mapped[int] = mapped_column(BigInteger, nullable=False, index=True)
    github_owner: Mapped[str] = mapped_column(String(255), nullable=False)
    github_repo_name: Mapped[str] = mapped_column(String(255), nullable=False)
    default_branch: Mapped[str] = mapped_column(String(100), default="main")

    # Webhook
    webhook_id: Mapped[int | None] = mapped_column(BigInteger)
    webhook_secret: Mapped[str | None] = mapped_column(String(128))

    # Settings
    status: Mapped[str] = mapped_column(String(20), default=ProjectStatus.ACTIVE.value)
    # Allowed: active, paused, stopped
    custom_rules: Mapped[list[str]] = mapped_column(JSON, default=list)
    owner_email: Mapped[str | None] = mapped_column(String(255))
    notification_prefs: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=utcnow, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utcnow, server_default=func.now(), onupdate=utcnow
    )

    # Relationships
    user: Mapped["User"] = relationship("User", back_populates="projects")

    @property
    def full_name(self) -> str:
        return f"{self.github_owner}/{self.github_repo_name}"

    @property
    def prefs(self) -> NotificationPrefs:
        return NotificationPrefs.model_validate(self.notification_prefs or {})

    @property
    def effective_status(self) -> ProjectStatus:
        """Stored status, treating missing or unknown values as active."""
        try:
            return ProjectStatus(self.status)
        except ValueError:
            return ProjectStatus.ACTIVE
