"""
Authentication and GitHub connect schemas.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class UserResponse(BaseModel):
    """User profile response."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    email: str
    full_name: Optional[str] = None
    username: Optional[str] = None
    avatar_url: Optional[str] = None
    is_active: bool
    last_signin_at: Optional[datetime] = None
    created_at: datetime


class MeResponse(BaseModel):
    """Signed-in user with workspace role and GitHub connection state."""

    user: UserResponse
    role: str
    github_connected: bool = False


class GitHubConnectResponse(BaseModel):
    """Authorize URL for clients that cannot follow a redirect."""

    success: bool = True
    oauth_url: str


class KeystaticTokenResponse(BaseModel):
    """GitHub token handed to the owner's CMS editor."""

    token: str
    repo: dict
