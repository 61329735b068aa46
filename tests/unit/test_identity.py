"""Unit tests for session tokens, OAuth state and the GitHub OAuth client."""

import json
import uuid
from datetime import timedelta
from urllib.parse import parse_qs, urlparse

import httpx
import pytest
from jose import jwt

from src.errors import OAuthError
from src.kernel.identity.github_oauth import GitHubOAuthClient
from src.kernel.identity.jwt import OAUTH_STATE_AUDIENCE, JWTManager


class TestSessionTokens:

    def test_round_trip(self, jwt_manager):
        user_id = uuid.uuid4()
        token, _ = jwt_manager.create_access_token(user_id, "a@example.com", {"full_name": "A"})
        payload = jwt_manager.verify_access_token(token)
        assert payload.sub == str(user_id)
        assert payload.email == "a@example.com"
        assert payload.user_metadata == {"full_name": "A"}

    def test_expired(self, jwt_manager):
        token, _ = jwt_manager.create_access_token(
            uuid.uuid4(), "a@example.com", expires_delta=timedelta(seconds=-5)
        )
        assert jwt_manager.verify_access_token(token) is None

    def test_wrong_secret(self, jwt_manager):
        token, _ = JWTManager(secret_key="another-secret").create_access_token(
            uuid.uuid4(), "a@example.com"
        )
        assert jwt_manager.verify_access_token(token) is None

    def test_wrong_audience(self, jwt_manager):
        token, _ = JWTManager(audience="someone-else").create_access_token(
            uuid.uuid4(), "a@example.com"
        )
        assert jwt_manager.verify_access_token(token) is None

    def test_missing_email(self, jwt_manager):
        token = jwt.encode(
            {"sub": str(uuid.uuid4()), "aud": jwt_manager.audience, "exp": 4102444800},
            jwt_manager.secret_key,
            algorithm=jwt_manager.algorithm,
        )
        assert jwt_manager.verify_access_token(token) is None

    def test_garbage(self, jwt_manager):
        assert jwt_manager.verify_access_token("not.a.token") is None


class TestOAuthState:

    def test_round_trip(self, jwt_manager):
        user_id = uuid.uuid4()
        assert jwt_manager.verify_oauth_state(jwt_manager.create_oauth_state(user_id)) == user_id

    def test_state_is_not_a_session_token(self, jwt_manager):
        state = jwt_manager.create_oauth_state(uuid.uuid4())
        assert jwt_manager.verify_access_token(state) is None

    def test_session_token_is_not_a_state(self, jwt_manager):
        token, _ = jwt_manager.create_access_token(uuid.uuid4(), "a@example.com")
        assert jwt_manager.verify_oauth_state(token) is None

    def test_expired_state(self):
        manager = JWTManager(oauth_state_expire_minutes=-1)
        assert manager.verify_oauth_state(manager.create_oauth_state(uuid.uuid4())) is None

    def test_state_audience(self, jwt_manager):
        state = jwt_manager.create_oauth_state(uuid.uuid4())
        claims = jwt.get_unverified_claims(state)
        assert claims["aud"] == OAUTH_STATE_AUDIENCE
        assert claims["nonce"]


def _oauth_client(handler) -> GitHubOAuthClient:
    return GitHubOAuthClient(
        "cid",
        "secret",
        oauth_url="https://github.com/login/oauth/authorize",
        token_url="https://github.com/login/oauth/access_token",
        api_url="https://api.github.com",
        scope="repo read:user",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


class TestGitHubOAuthClient:

    def test_authorize_url(self):
        client = _oauth_client(lambda request: httpx.Response(500))
        url = urlparse(client.authorize_url("st", "http://test/api/v1/auth/github/callback"))
        params = parse_qs(url.query)
        assert url.netloc == "github.com"
        assert params["client_id"] == ["cid"]
        assert params["scope"] == ["repo read:user"]
        assert params["state"] == ["st"]
        assert params["redirect_uri"] == ["http://test/api/v1/auth/github/callback"]

    def test_authorize_url_requires_client_id(self):
        client = GitHubOAuthClient(
            "", "", oauth_url="https://github.com/login/oauth/authorize",
            token_url="", api_url="https://api.github.com", scope="repo",
        )
        with pytest.raises(OAuthError) as exc_info:
            client.authorize_url("st", "http://x")
        assert exc_info.value.reason == "configuration_error"

    async def test_exchange_and_fetch_user(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/login/oauth/access_token":
                body = json.loads(request.content)
                assert body["code"] == "the-code"
                assert body["client_secret"] == "secret"
                return httpx.Response(200, json={
                    "access_token": "gho_abc", "token_type": "bearer", "scope": "repo,read:user",
                })
            assert request.headers["Authorization"] == "Bearer gho_abc"
            return httpx.Response(200, json={"login": "octo", "id": 7, "name": "Octo"})

        client = _oauth_client(handler)
        grant = await client.exchange_code("the-code")
        user = await client.fetch_user(grant.access_token)

        assert grant.scopes == ["repo", "read:user"]
        assert (user.login, user.id, user.name) == ("octo", 7, "Octo")

    @pytest.mark.parametrize("response, reason", [
        (httpx.Response(500), "token_exchange_failed"),
        (httpx.Response(200, json={"error": "bad_verification_code"}), "no_access_token"),
    ])
    async def test_exchange_failures(self, response, reason):
        client = _oauth_client(lambda request: response)
        with pytest.raises(OAuthError) as exc_info:
            await client.exchange_code("c")
        assert exc_info.value.reason == reason

    async def test_user_fetch_failure(self):
        client = _oauth_client(lambda request: httpx.Response(401))
        with pytest.raises(OAuthError) as exc_info:
            await client.fetch_user("gho_abc")
        assert exc_info.value.reason == "user_fetch_failed"

    async def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("down", request=request)

        with pytest.raises(OAuthError) as exc_info:
            await _oauth_client(handler).exchange_code("c")
        assert exc_info.value.reason == "unexpected_error"
