"""
Identity service for user management operations.
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import get_settings
from src.kernel.models.user import User, UserRole
from src.kernel.models.workspace import WorkspaceMember
from src.kernel.models.event_log import EventType
from src.kernel.events.event_store import EventStore
from src.kernel.events.event_types import UserEvent
from src.kernel.identity.jwt import AccessTokenPayload
from src.logging_config import get_logger

logger = get_logger(__name__)


class IdentityService:
    """
    Service for user identity operations.

    Users sign in with the identity provider; this service mirrors them into
    the local users table and assigns their workspace role.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.event_store = EventStore(session)

    async def resolve_user(
        self,
        payload: AccessTokenPayload,
        ip_address: Optional[str] = None,
    ) -> User:
        """
        Return the local user for a verified session token, creating it on
        first sight.

        The first user whose email matches OWNER_EMAIL becomes the workspace
        owner; everyone else joins as a reader.
        """
        user_id = uuid.UUID(payload.sub)
        user = await self.get_user_by_id(user_id)
        metadata = payload.user_metadata
        now = datetime.now(timezone.utc)

        if user is None:
            user = User(
                id=user_id,
                email=payload.email.lower().strip(),
                full_name=metadata.get("full_name") or metadata.get("name"),
                username=metadata.get("user_name") or metadata.get("preferred_username"),
                avatar_url=metadata.get("avatar_url"),
                last_signin_at=now,
            )
            self.session.add(user)
            await self.session.flush()
            await self.session.refresh(user)

            role = await self._ensure_membership(user)
            await self.event_store.record(
                EventType.USER_REGISTERED,
                "user",
                user.id,
                UserEvent(email=user.email, role=role.value),
                user_id=user.id,
                ip_address=ip_address,
            )
            logger.info("Registered user %s as %s", user.id, role.value)
            return user

        user.last_signin_at = now
        if metadata.get("avatar_url"):
            user.avatar_url = metadata["avatar_url"]
        return user

    async def _ensure_membership(self, user: User) -> UserRole:
        """Create the membership row for a new user."""
        member = await self.get_membership(user.id)
        if member is not None:
            return UserRole(member.role)

        settings = get_settings()
        owner = await self.get_owner_membership()
        is_owner_email = bool(settings.owner_email) and (
            user.email == settings.owner_email.lower().strip()
        )
        if owner is None and is_owner_email:
            member = WorkspaceMember(user_id=user.id, role=UserRole.OWNER)
        else:
            member = WorkspaceMember(
                user_id=user.id,
                role=UserRole.READER,
                workspace_owner_id=owner.user_id if owner else None,
            )
        self.session.add(member)
        await self.session.flush()
        return UserRole(member.role)

    async def get_role(self, user_id: uuid.UUID) -> UserRole:
        """Workspace role of a user; readers by default."""
        member = await self.get_membership(user_id)
        if member is None:
            return UserRole.READER
        return UserRole(member.role)

    async def get_membership(self, user_id: uuid.UUID) -> Optional[WorkspaceMember]:
        query = select(WorkspaceMember).where(WorkspaceMember.user_id == user_id)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_owner_membership(self) -> Optional[WorkspaceMember]:
        query = select(WorkspaceMember).where(WorkspaceMember.role == UserRole.OWNER)
        result = await self.session.execute(query)
        return result.scalars().first()

    async def sign_out(
        self,
        user_id: uuid.UUID,
        ip_address: Optional[str] = None,
    ) -> bool:
        """
        Record a sign-out. Session tokens are revoked by the identity provider.
        """
        await self.event_store.record(
            EventType.USER_SIGNED_OUT,
            "user",
            user_id,
            user_id=user_id,
            ip_address=ip_address,
        )
        return True

    async def get_user_by_id(self, user_id: uuid.UUID) -> Optional[User]:
        """Get a user by ID."""
        query = select(User).where(User.id == user_id)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_user_by_email(self, email: str) -> Optional[User]:
        """Get a user by email."""
        query = select(User).where(User.email == email.lower().strip())
        result = await self.session.execute(query)
        return result.scalar_one_or_none()
