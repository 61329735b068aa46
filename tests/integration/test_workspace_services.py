"""
Integration tests for identity and workspace services against SQLite.
"""

import uuid
from datetime import datetime, timedelta, timezone

import pytest

from src.errors import DecryptionError, NotInitialized
from src.kernel.events.event_store import EventStore, log_publish_attempt
from src.kernel.identity.identity_service import IdentityService
from src.kernel.identity.jwt import AccessTokenPayload
from src.kernel.models.event_log import EventType
from src.kernel.models.user import UserRole
from src.kernel.models.workspace import RepoVisibility
from src.kernel.workspace.workspace_service import WorkspaceService


def _payload(email: str, user_id: uuid.UUID = None, **metadata) -> AccessTokenPayload:
    return AccessTokenPayload(
        sub=str(user_id or uuid.uuid4()),
        email=email,
        exp=datetime.now(timezone.utc) + timedelta(hours=1),
        user_metadata=metadata,
    )


async def _owner(db_session):
    return await IdentityService(db_session).resolve_user(_payload("owner@example.com"))


class TestIdentityService:

    async def test_owner_email_becomes_owner(self, db_session):
        service = IdentityService(db_session)
        user = await service.resolve_user(_payload("Owner@Example.com", full_name="Lab Owner"))

        assert user.email == "owner@example.com"
        assert user.full_name == "Lab Owner"
        assert await service.get_role(user.id) == UserRole.OWNER
        assert await EventStore(db_session).count(EventType.USER_REGISTERED) == 1

    async def test_everyone_else_is_reader(self, db_session):
        service = IdentityService(db_session)
        owner = await _owner(db_session)
        reader = await service.resolve_user(_payload("reader@example.com"))

        assert await service.get_role(reader.id) == UserRole.READER
        membership = await service.get_membership(reader.id)
        assert membership.workspace_owner_id == owner.id

    async def test_known_user_is_not_registered_twice(self, db_session):
        service = IdentityService(db_session)
        user_id = uuid.uuid4()
        first = await service.resolve_user(_payload("reader@example.com", user_id))
        await db_session.flush()
        second = await service.resolve_user(_payload("reader@example.com", user_id, avatar_url="a.png"))

        assert first.id == second.id
        assert second.avatar_url == "a.png"
        assert await EventStore(db_session).count(EventType.USER_REGISTERED) == 1

    async def test_sign_out_is_logged(self, db_session):
        user = await _owner(db_session)
        await IdentityService(db_session).sign_out(user.id)
        await db_session.flush()
        assert await EventStore(db_session).count(EventType.USER_SIGNED_OUT, user.id) == 1


class TestGitHubCredential:

    async def test_token_stored_encrypted(self, db_session):
        user = await _owner(db_session)
        service = WorkspaceService(db_session)

        user_repo = await service.store_github_credential(user.id, "octo", "gho_secret", ["repo"])

        assert "gho_secret" not in user_repo.github_token_encrypted
        assert len(user_repo.github_token_encrypted.split(":")) == 3
        assert service.github_token(user_repo) == "gho_secret"
        assert user_repo.is_template_forked is False

        events = await EventStore(db_session).history("user_repo", user_repo.id)
        assert events[0].event_type == EventType.GITHUB_CONNECTED
        assert "gho_secret" not in str(events[0].payload)

    async def test_reconnect_replaces_token_and_keeps_repository(self, db_session):
        user = await _owner(db_session)
        service = WorkspaceService(db_session)
        user_repo = await service.store_github_credential(user.id, "octo", "gho_one")
        user_repo.repo_name = "workspace"

        again = await service.store_github_credential(user.id, "octo", "gho_two")

        assert again.id == user_repo.id
        assert again.repo_name == "workspace"
        assert service.github_token(again) == "gho_two"

    async def test_corrupt_token_asks_for_reconnect(self, db_session):
        user = await _owner(db_session)
        service = WorkspaceService(db_session)
        user_repo = await service.store_github_credential(user.id, "octo", "gho_one")
        user_repo.github_token_encrypted = "00:00:00"

        with pytest.raises(DecryptionError, match="reconnect"):
            service.github_token(user_repo)

    async def test_open_repository_requires_repo(self, db_session, github):
        user = await _owner(db_session)
        service = WorkspaceService(db_session)
        user_repo = await service.store_github_credential(user.id, "octo", "gho_one")

        with pytest.raises(NotInitialized):
            service.open_repository(user_repo, github.factory)


class TestRepositorySetup:

    async def test_initialize_from_template(self, db_session, github):
        user = await _owner(db_session)
        service = WorkspaceService(db_session)
        user_repo = await service.store_github_credential(user.id, "octo", "gho_one")
        github.add("POST", "/repos/workspace-by-ali/workspace-template/generate", (201, {
            "name": "lab", "owner": {"login": "octo"},
            "html_url": "https://github.com/octo/lab", "default_branch": "main",
        }))
        github.add("GET", "/repos/octo/lab/git/ref/heads/main", (200, {"object": {"sha": "s1"}}))
        github.add("POST", "/repos/octo/lab/git/refs", (201, {}))

        user_repo = await service.initialize_repository(user_repo, github.factory, name="lab")

        assert user_repo.repo_name == "lab"
        assert user_repo.repo_url == "https://github.com/octo/lab"
        assert user_repo.is_template_forked is True
        assert github.calls("POST", "/repos/octo/lab/git/refs")

        # Second call is a no-op
        count = len(github.requests)
        await service.initialize_repository(user_repo, github.factory, name="lab")
        assert len(github.requests) == count


class TestWorkspaceSettings:

    async def test_configure_creates_then_updates(self, db_session):
        user = await _owner(db_session)
        service = WorkspaceService(db_session)

        ws, created = await service.configure(user.id, " Plasma Lab ", RepoVisibility.PUBLIC)
        assert created is True
        assert ws.workspace_name == "Plasma Lab"
        assert ws.setup_completed is True

        ws2, created = await service.configure(user.id, "Renamed", RepoVisibility.PRIVATE)
        assert created is False
        assert ws2.id == ws.id
        assert ws2.repo_visibility == RepoVisibility.PRIVATE

    async def test_configure_requires_name(self, db_session):
        user = await _owner(db_session)
        with pytest.raises(ValueError):
            await WorkspaceService(db_session).configure(user.id, "  ", RepoVisibility.PUBLIC)


class TestSafetyAcknowledgment:

    async def test_acknowledge_is_idempotent(self, db_session):
        user = await _owner(db_session)
        service = WorkspaceService(db_session)

        assert await service.has_acknowledged(user.id, "HV-1") is False
        first = await service.acknowledge_safety(user.id, "HV-1")
        second = await service.acknowledge_safety(user.id, "HV-1")

        assert first.id == second.id
        assert first.signed_at is not None
        assert await service.has_acknowledged(user.id, "HV-1") is True
        assert await service.has_acknowledged(user.id, "OTHER") is False
        assert await service.has_acknowledged(user.id, None) is True


class TestEventStore:

    async def test_history_filters_by_type(self, db_session):
        user = await _owner(db_session)
        service = WorkspaceService(db_session)
        user_repo = await service.store_github_credential(user.id, "octo", "gho_one")
        await log_publish_attempt(db_session, user_repo.id, user.id, "merged", commit_sha="m1")
        await db_session.flush()

        store = EventStore(db_session)
        everything = await store.history("user_repo", user_repo.id)
        publishes = await store.history(
            "user_repo", user_repo.id, event_types=[EventType.PUBLISH_ATTEMPTED]
        )

        assert len(everything) == 2
        assert [e.payload["state"] for e in publishes] == ["merged"]
        assert publishes[0].payload["commit_sha"] == "m1"
        assert await store.count(EventType.PUBLISH_ATTEMPTED, user.id) == 1

    async def test_events_are_append_only(self, db_session):
        user = await _owner(db_session)
        entry = (await EventStore(db_session).history("user", user.id))[0]

        entry.payload = {"email": "someone-else@example.com"}
        with pytest.raises(ValueError, match="append-only"):
            await db_session.flush()
