"""
Pytest fixtures for workspace tests.
"""

import os
import tempfile
import uuid
from typing import AsyncGenerator, Callable

# Settings are read at import time; configure the test environment first
_tmp = tempfile.NamedTemporaryFile(suffix=".db", delete=False)
_tmp.close()
TEST_DB_PATH = _tmp.name
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{TEST_DB_PATH}"
os.environ["ENVIRONMENT"] = "development"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["OWNER_EMAIL"] = "owner@example.com"
os.environ["AUTH_JWT_SECRET"] = "test-secret-key-for-testing-only-0123456789"
# base64 of 32 bytes of "k"
os.environ["GITHUB_TOKEN_ENCRYPTION_KEY"] = "a2tr" * 10 + "a2s="
os.environ["GITHUB_CLIENT_ID"] = "test-client-id"
os.environ["GITHUB_CLIENT_SECRET"] = "test-client-secret"

import httpx
import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from src.config import get_settings

get_settings.cache_clear()

from src.content.repository import ContentRepositoryClient
from src.kernel.crypto.token_cipher import reset_cipher
from src.kernel.identity.jwt import JWTManager, reset_jwt_manager
from src.kernel.models import Base

reset_cipher()
reset_jwt_manager()

GITHUB_API = "https://api.github.com"


class FakeGitHub:
    """
    Route table standing in for the GitHub REST API.

    Routes are keyed by (method, path). A route given several responses
    serves them in order and then repeats the last one.
    """

    def __init__(self):
        self.routes = {}
        self.requests = []
        self._client = None

    def add(self, method: str, path: str, *responses) -> None:
        self.routes[(method, path)] = list(responses)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        queue = self.routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(404, json={"message": "Not Found"})
        status_code, body = queue.pop(0) if len(queue) > 1 else queue[0]
        if body is None:
            return httpx.Response(status_code)
        return httpx.Response(status_code, json=body)

    def calls(self, method: str, path: str) -> list:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    @property
    def http_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                transport=httpx.MockTransport(self.handler),
                base_url=GITHUB_API,
            )
        return self._client

    def factory(self, token: str, owner: str, repo: str) -> ContentRepositoryClient:
        """Drop-in for the ContentRepositoryClient constructor."""
        return ContentRepositoryClient(token, owner, repo, http_client=self.http_client)


@pytest_asyncio.fixture
async def github() -> AsyncGenerator[FakeGitHub, None]:
    fake = FakeGitHub()
    yield fake
    if fake._client is not None:
        await fake._client.aclose()


@pytest_asyncio.fixture(scope="function")
async def db_engine(tmp_path):
    """Create a test database engine on a temp SQLite file."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        echo=False,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    session_maker = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with session_maker() as session:
        yield session
        await session.rollback()


@pytest.fixture
def jwt_manager() -> JWTManager:
    """Create a JWT manager for tests."""
    return JWTManager()


@pytest.fixture
def make_token(jwt_manager: JWTManager) -> Callable[..., str]:
    """Session token factory shaped like the identity provider's."""

    def _make(email: str, user_id: uuid.UUID = None, **metadata) -> str:
        token, _ = jwt_manager.create_access_token(
            user_id=user_id or uuid.uuid4(),
            email=email,
            user_metadata=metadata,
        )
        return token

    return _make


# Sample documents

PUBLIC_UPDATE = """---
title: Coil rewind
category: plasma-hardware
status: published
updatedAt: 2025-03-02T10:00:00Z
tags: [coil, hv]
---

Rewound the secondary.
"""

PRIVATE_UPDATE = """---
title: Lab notebook
visibility: private
updatedAt: 2025-03-05T10:00:00Z
---

Not for readers.
"""


@pytest.fixture
def sample_public_update() -> str:
    return PUBLIC_UPDATE


@pytest.fixture
def sample_private_update() -> str:
    return PRIVATE_UPDATE


def pytest_sessionfinish(session, exitstatus):
    """Clean up the app database file after the run."""
    for suffix in ("", "-wal", "-shm"):
        try:
            os.unlink(TEST_DB_PATH + suffix)
        except FileNotFoundError:
            pass
