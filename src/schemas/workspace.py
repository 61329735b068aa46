"""
Workspace configuration schemas.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from src.kernel.models.workspace import RepoVisibility


class WorkspaceConfigureRequest(BaseModel):
    workspace_name: str = Field(..., max_length=255)
    repo_visibility: RepoVisibility = RepoVisibility.PUBLIC

    @field_validator("workspace_name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Workspace name is required")
        return v.strip()


class WorkspaceSettingsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    owner_id: uuid.UUID
    workspace_name: str
    repo_visibility: str
    setup_completed: bool
    allow_readers: bool
    reader_signup_enabled: bool
    readers_can_suggest: bool
    created_at: datetime
    updated_at: datetime


class WorkspaceConfigureResponse(BaseModel):
    success: bool = True
    message: str
    settings: WorkspaceSettingsResponse


class RepositoryInitRequest(BaseModel):
    """Name of the repository to create from the workspace template."""

    name: str = Field(..., min_length=1, max_length=100, pattern=r"^[A-Za-z0-9._-]+$")
    private: Optional[bool] = None  # defaults to the workspace repo_visibility


class RepositoryResponse(BaseModel):
    repo_owner: str
    repo_name: Optional[str] = None
    repo_url: Optional[str] = None
    default_branch: str
    is_template_forked: bool


class WorkspaceStatusResponse(BaseModel):
    """Setup progress for the signed-in user."""

    role: str
    github_connected: bool
    repository_initialized: bool
    setup_completed: bool
    workspace_name: Optional[str] = None
    repo_url: Optional[str] = None
