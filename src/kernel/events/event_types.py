"""
Event type definitions using Pydantic for validation.

These are the payload schemas for events logged to the audit trail.
Payloads never carry credentials.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class BaseEvent(BaseModel):
    """Base event payload structure."""

    model_config = ConfigDict(extra="allow")

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: Dict[str, Any] = Field(default_factory=dict)


# User Events

class UserEvent(BaseEvent):
    """User-related event payloads."""

    email: Optional[str] = None
    role: Optional[str] = None


# GitHub Events

class GithubConnectedEvent(BaseEvent):
    """GitHub OAuth connect completed and the credential was stored."""

    github_login: str
    scopes: List[str] = Field(default_factory=list)
    reconnected: bool = False


class GithubTokenIssuedEvent(BaseEvent):
    """Decrypted credential handed to the CMS editor."""

    repo: str


# Workspace Events

class WorkspaceEvent(BaseEvent):
    workspace_name: Optional[str] = None
    repo_visibility: Optional[str] = None
    created: bool = False


class RepositoryInitializedEvent(BaseEvent):
    repo: str
    template: str
    draft_branch_created: bool = True


class SafetyAcknowledgedEvent(BaseEvent):
    safety_code: str
    protocol_version: str = "1"


# Content Events

class ContentWrittenEvent(BaseEvent):
    """Document committed to the draft branch."""

    path: str
    branch: str
    commit_sha: Optional[str] = None


class PublishAttemptedEvent(BaseEvent):
    """Outcome of a draft -> main publish."""

    state: str
    commit_sha: Optional[str] = None
    status_code: Optional[int] = None
