"""
JWT token management for authentication.

Session tokens are issued by the identity provider (HS256, shared secret,
``aud`` = AUTH_JWT_AUDIENCE, ``sub`` = user UUID). This module verifies them,
and can mint equivalent tokens for local development and tests.

It also signs the short-lived ``state`` parameter of the GitHub OAuth
connect flow, so the callback can identify the user without a session header.
"""

import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

from jose import JWTError, jwt
from pydantic import BaseModel, Field

from src.config import get_settings

OAUTH_STATE_AUDIENCE = "github-oauth-state"


class AccessTokenPayload(BaseModel):
    """JWT access token payload."""

    sub: str  # User ID
    email: str
    exp: datetime
    iat: Optional[datetime] = None
    user_metadata: Dict[str, Any] = Field(default_factory=dict)


class JWTManager:
    """
    JWT token creation and verification.

    Handles session tokens and OAuth state tokens.
    """

    def __init__(
        self,
        secret_key: Optional[str] = None,
        algorithm: Optional[str] = None,
        audience: Optional[str] = None,
        access_token_expire_minutes: Optional[int] = None,
        oauth_state_expire_minutes: Optional[int] = None,
    ):
        settings = get_settings()
        self.secret_key = secret_key or settings.auth_jwt_secret
        self.algorithm = algorithm or settings.auth_jwt_algorithm
        self.audience = audience or settings.auth_jwt_audience
        self.access_token_expire_minutes = (
            access_token_expire_minutes or settings.access_token_expire_minutes
        )
        self.oauth_state_expire_minutes = (
            oauth_state_expire_minutes or settings.github_oauth_state_minutes
        )

    def create_access_token(
        self,
        user_id: uuid.UUID,
        email: str,
        user_metadata: Optional[Dict[str, Any]] = None,
        expires_delta: Optional[timedelta] = None,
    ) -> tuple[str, datetime]:
        """
        Create a session token shaped like the identity provider's.

        Returns:
            Tuple of (token, expiration_datetime)
        """
        now = datetime.now(timezone.utc)
        expire = now + (expires_delta or timedelta(minutes=self.access_token_expire_minutes))

        payload = {
            "sub": str(user_id),
            "email": email,
            "aud": self.audience,
            "exp": expire,
            "iat": now,
            "user_metadata": user_metadata or {},
        }

        token = jwt.encode(payload, self.secret_key, algorithm=self.algorithm)
        return token, expire

    def verify_access_token(self, token: str) -> Optional[AccessTokenPayload]:
        """
        Verify and decode a session token.

        Returns:
            AccessTokenPayload if valid, None otherwise
        """
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                audience=self.audience,
            )
        except JWTError:
            return None

        if not payload.get("sub") or not payload.get("email"):
            return None

        return AccessTokenPayload(
            sub=payload["sub"],
            email=payload["email"],
            exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            iat=(
                datetime.fromtimestamp(payload["iat"], tz=timezone.utc)
                if payload.get("iat") else None
            ),
            user_metadata=payload.get("user_metadata") or {},
        )

    def create_oauth_state(self, user_id: uuid.UUID) -> str:
        """Signed, single-purpose state for the GitHub authorize redirect."""
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id),
            "aud": OAUTH_STATE_AUDIENCE,
            "exp": now + timedelta(minutes=self.oauth_state_expire_minutes),
            "iat": now,
            "nonce": uuid.uuid4().hex,
        }
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def verify_oauth_state(self, state: str) -> Optional[uuid.UUID]:
        """
        Verify an OAuth state value.

        Returns:
            The user id it was issued for, None if invalid or expired
        """
        try:
            payload = jwt.decode(
                state,
                self.secret_key,
                algorithms=[self.algorithm],
                audience=OAUTH_STATE_AUDIENCE,
            )
            return uuid.UUID(payload["sub"])
        except (JWTError, KeyError, ValueError):
            return None


# Default manager instance
_jwt_manager: Optional[JWTManager] = None


def get_jwt_manager() -> JWTManager:
    """Get or create the default JWT manager."""
    global _jwt_manager
    if _jwt_manager is None:
        _jwt_manager = JWTManager()
    return _jwt_manager


def reset_jwt_manager() -> None:
    """Drop the cached manager (after settings change)."""
    global _jwt_manager
    _jwt_manager = None


# Convenience functions
def create_access_token(
    user_id: uuid.UUID,
    email: str,
    user_metadata: Optional[Dict[str, Any]] = None,
    expires_delta: Optional[timedelta] = None,
) -> tuple[str, datetime]:
    """Create a session token."""
    return get_jwt_manager().create_access_token(user_id, email, user_metadata, expires_delta)


def verify_access_token(token: str) -> Optional[AccessTokenPayload]:
    """Verify a session token."""
    return get_jwt_manager().verify_access_token(token)
