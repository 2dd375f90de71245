"""Bearer tokens for the dashboard API."""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from code_police.config import get_settings

settings = get_settings()


class AuthService:
    """Issues dashboard tokens and resolves them back to a user id."""

    def __init__(self):
        self.secret_key = settings.jwt_secret
        self.algorithm = settings.jwt_algorithm
        self.expiry_hours = settings.jwt_expiry_hours

    def create_jwt(self, user_id: uuid.UUID | str) -> str:
        """Create a token whose subject is the user's id."""
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id),
            "iat": now,
            "exp": now + timedelta(hours=self.expiry_hours),
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def verify_jwt(self, token: str) -> dict[str, Any] | None:
        """Verify a JWT token and return its payload, or None if invalid."""
        try:
            return jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            return None
        except jwt.InvalidTokenError:
            return None

    def user_id_from_token(self, token: str) -> uuid.UUID | None:
        """Resolve a bearer token to the user it was issued for.

        Returns None for invalid or expired tokens and for subjects that
        are not user ids.
        """
        payload = self.verify_jwt(token)
        if not payload:
            return None
        try:
            return uuid.UUID(str(payload.get("sub", "")))
        except ValueError:
            return None
