"""
Event sourcing infrastructure.

Provides append-only audit logging with immutable events.
"""

from src.kernel.events.event_store import EventStore
from src.kernel.events.event_types import (
    BaseEvent,
    UserEvent,
    GithubConnectedEvent,
    GithubTokenIssuedEvent,
    WorkspaceEvent,
    RepositoryInitializedEvent,
    SafetyAcknowledgedEvent,
    ContentWrittenEvent,
    PublishAttemptedEvent,
)

__all__ = [
    "EventStore",
    "BaseEvent",
    "UserEvent",
    "GithubConnectedEvent",
    "GithubTokenIssuedEvent",
    "WorkspaceEvent",
    "RepositoryInitializedEvent",
    "SafetyAcknowledgedEvent",
    "ContentWrittenEvent",
    "PublishAttemptedEvent",
]
