"""
Workspace service: GitHub credential storage, workspace settings, repository
setup and reader safety acknowledgments.
"""

import uuid
from typing import Callable, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.config import get_settings
from src.content.repository import ContentRepositoryClient, RepoInfo
from src.errors import DecryptionError, NotInitialized
from src.kernel.crypto.token_cipher import decrypt_token, encrypt_token
from src.kernel.events.event_store import EventStore
from src.kernel.events.event_types import (
    GithubConnectedEvent,
    RepositoryInitializedEvent,
    SafetyAcknowledgedEvent,
    WorkspaceEvent,
)
from src.kernel.models.event_log import EventType
from src.kernel.models.user import UserRole
from src.kernel.models.workspace import (
    RepoVisibility,
    SafetyAcknowledgment,
    UserRepo,
    WorkspaceMember,
    WorkspaceSettings,
)
from src.logging_config import get_logger

logger = get_logger(__name__)

# (token, owner, repo) -> client
RepositoryFactory = Callable[[str, str, str], ContentRepositoryClient]


class WorkspaceService:
    """
    Service for workspace configuration and the owner's GitHub credential.

    The plaintext GitHub token only exists between decrypt and use; it is
    never stored, logged or placed in an event payload.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.event_store = EventStore(session)

    # ---- Credential ----

    async def get_user_repo(self, user_id: uuid.UUID) -> Optional[UserRepo]:
        query = select(UserRepo).where(UserRepo.user_id == user_id)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def get_owner_repo(self) -> Optional[UserRepo]:
        """Credential row of the workspace owner (readers read through it)."""
        query = (
            select(UserRepo)
            .join(WorkspaceMember, WorkspaceMember.user_id == UserRepo.user_id)
            .where(WorkspaceMember.role == UserRole.OWNER)
        )
        result = await self.session.execute(query)
        return result.scalars().first()

    async def store_github_credential(
        self,
        user_id: uuid.UUID,
        github_login: str,
        access_token: str,
        scopes: Optional[list[str]] = None,
        ip_address: Optional[str] = None,
    ) -> UserRepo:
        """
        Encrypt and upsert the user's GitHub token.

        A reconnect replaces the token and keeps the repository fields.
        """
        encrypted = encrypt_token(access_token)
        user_repo = await self.get_user_repo(user_id)
        reconnected = user_repo is not None
        if user_repo is None:
            user_repo = UserRepo(
                user_id=user_id,
                repo_owner=github_login,
                github_token_encrypted=encrypted,
                default_branch=get_settings().main_branch,
                is_template_forked=False,
            )
            self.session.add(user_repo)
        else:
            user_repo.repo_owner = github_login
            user_repo.github_token_encrypted = encrypted
        await self.session.flush()

        await self.event_store.record(
            EventType.GITHUB_CONNECTED,
            "user_repo",
            user_repo.id,
            user_id=user_id,
            payload=GithubConnectedEvent(
                github_login=github_login,
                scopes=scopes or [],
                reconnected=reconnected,
            ),
            ip_address=ip_address,
        )
        logger.info("Stored GitHub credential for user %s", user_id)
        return user_repo

    def github_token(self, user_repo: UserRepo) -> str:
        """
        Decrypt the stored token.

        Raises:
            DecryptionError: stored value unusable; the owner must reconnect
        """
        try:
            return decrypt_token(user_repo.github_token_encrypted)
        except DecryptionError as e:
            logger.error("Stored GitHub token for user %s could not be decrypted", user_repo.user_id)
            raise DecryptionError(
                "Stored GitHub token could not be decrypted. Please reconnect GitHub."
            ) from e

    def open_repository(
        self,
        user_repo: UserRepo,
        factory: RepositoryFactory = ContentRepositoryClient,
    ) -> ContentRepositoryClient:
        """
        Client for the workspace repository.

        Raises:
            NotInitialized: no repository has been created yet
        """
        if not user_repo.repo_name:
            raise NotInitialized("Repository not initialized. Please set up your workspace first.")
        return factory(self.github_token(user_repo), user_repo.repo_owner, user_repo.repo_name)

    async def initialize_repository(
        self,
        user_repo: UserRepo,
        factory: RepositoryFactory = ContentRepositoryClient,
        *,
        name: str,
        private: bool = False,
        ip_address: Optional[str] = None,
    ) -> UserRepo:
        """
        Create the workspace repository from the template and its draft branch.

        Idempotent: an already initialized repository is returned unchanged.
        """
        if user_repo.is_template_forked and user_repo.repo_name:
            return user_repo

        settings = get_settings()
        template = f"{settings.github_template_owner}/{settings.github_template_repo}"
        async with factory(self.github_token(user_repo), user_repo.repo_owner, name) as client:
            info: RepoInfo = await client.generate_from_template(
                settings.github_template_owner,
                settings.github_template_repo,
                name=name,
                private=private,
                description="Lab workspace content",
            )
            main_sha = await client.get_branch_sha(settings.main_branch)
            created = await client.create_branch(settings.draft_branch, main_sha)

        user_repo.repo_name = info.name
        user_repo.repo_url = info.html_url
        user_repo.default_branch = info.default_branch
        user_repo.is_template_forked = True
        await self.session.flush()

        await self.event_store.record(
            EventType.REPOSITORY_INITIALIZED,
            "user_repo",
            user_repo.id,
            user_id=user_repo.user_id,
            payload=RepositoryInitializedEvent(
                repo=f"{info.owner}/{info.name}",
                template=template,
                draft_branch_created=created,
            ),
            ip_address=ip_address,
        )
        return user_repo

    # ---- Settings ----

    async def get_workspace_settings(self, owner_id: uuid.UUID) -> Optional[WorkspaceSettings]:
        query = select(WorkspaceSettings).where(WorkspaceSettings.owner_id == owner_id)
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def configure(
        self,
        owner_id: uuid.UUID,
        workspace_name: str,
        repo_visibility: RepoVisibility,
        ip_address: Optional[str] = None,
    ) -> tuple[WorkspaceSettings, bool]:
        """
        Create or update workspace settings.

        Returns:
            Tuple of (settings, created)

        Raises:
            ValueError: empty workspace name
        """
        workspace_name = workspace_name.strip()
        if not workspace_name:
            raise ValueError("Workspace name is required")

        ws = await self.get_workspace_settings(owner_id)
        created = ws is None
        if ws is None:
            ws = WorkspaceSettings(
                owner_id=owner_id,
                workspace_name=workspace_name,
                repo_visibility=repo_visibility,
                setup_completed=True,
                reader_signup_enabled=False,
                readers_can_suggest=False,
            )
            self.session.add(ws)
        else:
            ws.workspace_name = workspace_name
            ws.repo_visibility = repo_visibility
            ws.setup_completed = True
        await self.session.flush()
        await self.session.refresh(ws)

        await self.event_store.record(
            EventType.WORKSPACE_CONFIGURED,
            "workspace",
            ws.id,
            user_id=owner_id,
            payload=WorkspaceEvent(
                workspace_name=workspace_name,
                repo_visibility=RepoVisibility(repo_visibility).value,
                created=created,
            ),
            ip_address=ip_address,
        )
        return ws, created

    # ---- Safety ----

    async def has_acknowledged(self, user_id: uuid.UUID, safety_code: Optional[str]) -> bool:
        """True if the user signed this safety code (or any code when None)."""
        query = select(SafetyAcknowledgment.id).where(SafetyAcknowledgment.user_id == user_id)
        if safety_code:
            query = query.where(SafetyAcknowledgment.safety_code == safety_code)
        result = await self.session.execute(query.limit(1))
        return result.scalar_one_or_none() is not None

    async def acknowledge_safety(
        self,
        user_id: uuid.UUID,
        safety_code: str,
        protocol_version: str = "1",
        ip_address: Optional[str] = None,
    ) -> SafetyAcknowledgment:
        """Record an acknowledgment; repeating it returns the existing row."""
        query = select(SafetyAcknowledgment).where(
            SafetyAcknowledgment.user_id == user_id,
            SafetyAcknowledgment.safety_code == safety_code,
        )
        result = await self.session.execute(query)
        ack = result.scalar_one_or_none()
        if ack is not None:
            return ack

        ack = SafetyAcknowledgment(
            user_id=user_id,
            safety_code=safety_code,
            protocol_version=protocol_version,
        )
        self.session.add(ack)
        await self.session.flush()
        await self.session.refresh(ack)
        await self.event_store.record(
            EventType.SAFETY_ACKNOWLEDGED,
            "safety_acknowledgment",
            ack.id,
            user_id=user_id,
            payload=SafetyAcknowledgedEvent(
                safety_code=safety_code, protocol_version=protocol_version
            ),
            ip_address=ip_address,
        )
        return ack
