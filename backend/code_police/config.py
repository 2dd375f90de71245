"""Application configuration using Pydantic Settings."""

from functools import lru_cache
from typing import List

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    app_env: str = "development"
    app_debug: bool = False
    log_level: str = "INFO"
    api_url: str = "http://localhost:8000"
    dashboard_url: str = "http://localhost:3000/dashboard/code-police"

    # Database
    database_url: str = ""  # Required - no insecure default
    database_pool_size: int = 10

    # GitHub
    github_api_base: str = "https://api.github.com"
    github_timeout_seconds: float = 30.0
    dependent_files_limit: int = 3

    # Gemini
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.0-flash-lite"

    # Resend
    resend_api_key: str = ""
    resend_api_base: str = "https://api.resend.com"
    email_from_address: str = "noreply@ghostfounder.com"
    email_from_name: str = "GhostFounder Code Police"

    # JWT
    jwt_secret: str = ""  # Required - no insecure default
    jwt_algorithm: str = "HS256"
    jwt_expiry_hours: int = 24

    @field_validator("jwt_secret", mode="after")
    @classmethod
    def validate_secrets(cls, v: str, info) -> str:
        """Ensure secrets are set and not using insecure defaults."""
        insecure_values = {"", "change-me-in-production", "secret", "password"}
        if v.lower() in insecure_values:
            raise ValueError(
                f"{info.field_name} must be set to a secure value via environment variable. "
                f"Generate one with: python -c \"import secrets; print(secrets.token_urlsafe(32))\""
            )
        if len(v) < 32:
            raise ValueError(f"{info.field_name} must be at least 32 characters long")
        return v

    @field_validator("database_url", mode="after")
    @classmethod
    def validate_database_url(cls, v: str) -> str:
        """Ensure database URL is set."""
        if not v:
            raise ValueError("database_url must be set via DATABASE_URL environment variable")
        return v

    # CORS
    cors_origins: List[str] = ["http://localhost:3000"]

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"

    @property
    def webhook_url(self) -> str:
        return f"{self.api_url.rstrip('/')}/webhooks/github"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
