"""
Pydantic schemas for API request/response validation.
"""

from src.schemas.auth import (
    UserResponse,
    MeResponse,
    GitHubConnectResponse,
    KeystaticTokenResponse,
)
from src.schemas.workspace import (
    WorkspaceConfigureRequest,
    WorkspaceConfigureResponse,
    WorkspaceSettingsResponse,
    WorkspaceStatusResponse,
    RepositoryInitRequest,
    RepositoryResponse,
)
from src.schemas.publish import PublishStatusResponse, PublishResponse
from src.schemas.content import (
    SlugListResponse,
    DocumentResponse,
    UpdateCreate,
    DocumentWriteResponse,
)
from src.schemas.safety import SafetyAcknowledgeRequest, SafetyAcknowledgmentResponse
from src.schemas.common import (
    ErrorResponse,
    SuccessResponse,
    HealthResponse,
)

__all__ = [
    # Auth
    "UserResponse",
    "MeResponse",
    "GitHubConnectResponse",
    "KeystaticTokenResponse",
    # Workspace
    "WorkspaceConfigureRequest",
    "WorkspaceConfigureResponse",
    "WorkspaceSettingsResponse",
    "WorkspaceStatusResponse",
    "RepositoryInitRequest",
    "RepositoryResponse",
    # Publish
    "PublishStatusResponse",
    "PublishResponse",
    # Content
    "SlugListResponse",
    "DocumentResponse",
    "UpdateCreate",
    "DocumentWriteResponse",
    # Safety
    "SafetyAcknowledgeRequest",
    "SafetyAcknowledgmentResponse",
    # Common
    "ErrorResponse",
    "SuccessResponse",
    "HealthResponse",
]
