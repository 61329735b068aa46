"""
Append-only audit log.

Events are added to the caller's session and committed with the change they
describe. Payloads are typed event models from ``event_types``; they are
dumped to JSON-safe dicts so UUIDs and datetimes survive both backends.
"""

import uuid
from typing import List, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.kernel.events.event_types import BaseEvent, PublishAttemptedEvent
from src.kernel.models.event_log import EventLog, EventType


class EventStore:
    """
    Writes and reads the event_logs table.

    Usage:
        await EventStore(session).record(
            EventType.GITHUB_CONNECTED,
            "user_repo",
            user_repo.id,
            GithubConnectedEvent(github_login=login),
            user_id=current_user.id,
        )
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def record(
        self,
        event_type: EventType,
        entity_type: str,
        entity_id: uuid.UUID,
        payload: Optional[BaseEvent] = None,
        *,
        user_id: Optional[uuid.UUID] = None,
        ip_address: Optional[str] = None,
    ) -> EventLog:
        """Stage an event in the current transaction; the caller commits."""
        entry = EventLog(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id,
            user_id=user_id,
            payload=(payload or BaseEvent()).model_dump(mode="json"),
            ip_address=ip_address,
        )
        self.session.add(entry)
        return entry

    async def history(
        self,
        entity_type: str,
        entity_id: uuid.UUID,
        event_types: Optional[Sequence[EventType]] = None,
        limit: int = 50,
    ) -> List[EventLog]:
        """Events for one entity, newest first."""
        query = select(EventLog).where(
            EventLog.entity_type == entity_type,
            EventLog.entity_id == entity_id,
        )
        if event_types:
            query = query.where(EventLog.event_type.in_(event_types))
        query = query.order_by(EventLog.created_at.desc()).limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def count(
        self,
        event_type: EventType,
        user_id: Optional[uuid.UUID] = None,
    ) -> int:
        query = select(func.count(EventLog.id)).where(EventLog.event_type == event_type)
        if user_id is not None:
            query = query.where(EventLog.user_id == user_id)
        result = await self.session.execute(query)
        return result.scalar() or 0


async def log_publish_attempt(
    session: AsyncSession,
    user_repo_id: uuid.UUID,
    user_id: uuid.UUID,
    state: str,
    commit_sha: Optional[str] = None,
    status_code: Optional[int] = None,
    ip_address: Optional[str] = None,
) -> EventLog:
    """Record the outcome of one publish, including failed ones."""
    return await EventStore(session).record(
        EventType.PUBLISH_ATTEMPTED,
        "user_repo",
        user_repo_id,
        PublishAttemptedEvent(state=state, commit_sha=commit_sha, status_code=status_code),
        user_id=user_id,
        ip_address=ip_address,
    )
