"""
Kernel Layer

Foundational components shared by every route:
- Identity (session verification, users and workspace roles)
- Credential encryption at rest
- Workspace configuration and the owner's GitHub credential
- Immutable event log
"""

from src.kernel.models import (
    User,
    UserRole,
    UserRepo,
    WorkspaceSettings,
    WorkspaceMember,
    SafetyAcknowledgment,
    EventLog,
    EventType,
)

__all__ = [
    # User & Identity
    "User",
    "UserRole",
    # Workspace
    "UserRepo",
    "WorkspaceSettings",
    "WorkspaceMember",
    "SafetyAcknowledgment",
    # Event Log
    "EventLog",
    "EventType",
]
