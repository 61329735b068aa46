"""
Kernel Data Models

SQLAlchemy models for users, workspace configuration, the GitHub
credential and the audit log.
"""

from src.kernel.models.base import Base, TimestampMixin, generate_uuid
from src.kernel.models.user import User, UserRole
from src.kernel.models.workspace import (
    RepoVisibility,
    SafetyAcknowledgment,
    UserRepo,
    WorkspaceMember,
    WorkspaceSettings,
)
from src.kernel.models.event_log import EventLog, EventType

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "generate_uuid",
    # User
    "User",
    "UserRole",
    # Workspace
    "RepoVisibility",
    "SafetyAcknowledgment",
    "UserRepo",
    "WorkspaceMember",
    "WorkspaceSettings",
    # Event Log
    "EventLog",
    "EventType",
]
