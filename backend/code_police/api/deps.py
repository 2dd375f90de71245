"""API dependencies for dependency injection."""

import uuid
from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from code_police.analyzers.llm_analyzer import LLMCodeAnalyzer
from code_police.database import get_db
from code_police.models.project import Project
from code_police.models.user import User
from code_police.services.auth_service import AuthService
from code_police.services.email_service import EmailService
from code_police.services.github_service import GitHubService
from code_police.services.llm_service import LLMService
from code_police.services.notification_service import NotificationService
from code_police.services.pipeline_service import AnalysisPipeline

# Security scheme
security = HTTPBearer()

# Type aliases for cleaner signatures
DbSession = Annotated[AsyncSession, Depends(get_db)]


def get_github_service() -> GitHubService:
    return GitHubService()


def get_email_service() -> EmailService:
    return EmailService()


def get_analyzer() -> LLMCodeAnalyzer:
    return LLMCodeAnalyzer(LLMService())


GitHub = Annotated[GitHubService, Depends(get_github_service)]


def get_pipeline(
    db: DbSession,
    github_service: GitHub,
    analyzer: Annotated[LLMCodeAnalyzer, Depends(get_analyzer)],
    email_service: Annotated[EmailService, Depends(get_email_service)],
) -> AnalysisPipeline:
    """Build a request-scoped pipeline from request-scoped clients."""
    notifications = NotificationService(db, github_service, email_service)
    return AnalysisPipeline(db, github_service, analyzer, notifications)


Pipeline = Annotated[AnalysisPipeline, Depends(get_pipeline)]


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
    db: DbSession,
) -> User:
    """Get the current authenticated user from JWT token."""
    user_id = AuthService().user_id_from_token(credentials.credentials)
    if not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = await db.get(User, user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
        )

    return user


CurrentUser = Annotated[User, Depends(get_current_user)]


async def get_owned_project(db: AsyncSession, project_id: uuid.UUID, user: User) -> Project:
    """Load a project of the current user or raise 404."""
    result = await db.execute(
        select(Project).where(Project.id == project_id).where(Project.user_id == user.id)
    )
    project = result.scalar_one_or_none()
    if not project:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Project not found",
        )
    return project
