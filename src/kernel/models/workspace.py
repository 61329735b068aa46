"""
Workspace models: the owner's GitHub credential, workspace settings,
membership and reader safety acknowledgments.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, String, Text, UniqueConstraint, func, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from src.kernel.models.base import Base, TimestampMixin, generate_uuid
from src.kernel.models.user import UserRole


class RepoVisibility(str, Enum):
    PUBLIC = "public"
    PRIVATE = "private"


class UserRepo(Base, TimestampMixin):
    """
    GitHub credential and workspace repository for one user.

    github_token_encrypted holds the "iv:ciphertext:tag" hex bundle produced
    by the token cipher. The plaintext token is never stored.
    """

    __tablename__ = "user_repos"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
        index=True,
    )
    repo_url: Mapped[Optional[str]] = mapped_column(
        String(500),
        nullable=True,
    )
    repo_owner: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )
    repo_name: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
    )
    github_token_encrypted: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )
    default_branch: Mapped[str] = mapped_column(
        String(100),
        default="main",
        nullable=False,
    )
    is_template_forked: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<UserRepo {self.repo_owner}/{self.repo_name}>"


class WorkspaceSettings(Base, TimestampMixin):
    """Owner-level workspace configuration."""

    __tablename__ = "workspace_settings"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
        index=True,
    )
    workspace_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    repo_visibility: Mapped[RepoVisibility] = mapped_column(
        String(20),
        default=RepoVisibility.PUBLIC,
        nullable=False,
    )
    setup_completed: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    allow_readers: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )
    reader_signup_enabled: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )
    readers_can_suggest: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )


class WorkspaceMember(Base, TimestampMixin):
    """Membership of a user in the owner's workspace."""

    __tablename__ = "workspace_members"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
        index=True,
    )
    workspace_owner_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=True,
    )
    role: Mapped[UserRole] = mapped_column(
        String(20),
        default=UserRole.READER,
        nullable=False,
    )
    is_expert: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
    )


class SafetyAcknowledgment(Base):
    """A reader's signed acknowledgment of a safety protocol."""

    __tablename__ = "safety_acknowledgments"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    safety_code: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
    )
    protocol_version: Mapped[str] = mapped_column(
        String(20),
        default="1",
        nullable=False,
    )
    signed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("user_id", "safety_code", name="uq_safety_ack_user_code"),
    )
