"""
Audit trail for credential, workspace, content and publish actions.

Rows are written in the same transaction as the change they describe and
are never updated afterwards.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import JSON, DateTime, Index, String, Uuid, event, func
from sqlalchemy.orm import Mapped, mapped_column

from src.kernel.models.base import Base, generate_uuid


class EventType(str, Enum):
    USER_REGISTERED = "user.registered"
    USER_SIGNED_OUT = "user.signed_out"

    GITHUB_CONNECTED = "github.connected"
    # Decrypted token handed to the CMS editor
    GITHUB_TOKEN_ISSUED = "github.token_issued"

    WORKSPACE_CONFIGURED = "workspace.configured"
    REPOSITORY_INITIALIZED = "repository.initialized"
    SAFETY_ACKNOWLEDGED = "safety.acknowledged"

    CONTENT_WRITTEN = "content.written"
    PUBLISH_ATTEMPTED = "publish.attempted"


class EventLog(Base):
    __tablename__ = "event_logs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(), primary_key=True, default=generate_uuid)
    event_type: Mapped[EventType] = mapped_column(String(100), nullable=False)
    # user, user_repo, workspace or safety_acknowledgment
    entity_type: Mapped[str] = mapped_column(String(50), nullable=False)
    entity_id: Mapped[uuid.UUID] = mapped_column(Uuid(), nullable=False)
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid(), nullable=True)
    payload: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    ip_address: Mapped[Optional[str]] = mapped_column(String(45), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        Index("ix_event_logs_entity_time", "entity_type", "entity_id", "created_at"),
        Index("ix_event_logs_type_user", "event_type", "user_id"),
    )

    def __repr__(self) -> str:
        return f"<EventLog {self.event_type} {self.entity_type}:{self.entity_id}>"


@event.listens_for(EventLog, "before_update")
def _reject_update(mapper, connection, target: EventLog) -> None:
    raise ValueError("event_logs rows are append-only")
