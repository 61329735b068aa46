"""
GitHub OAuth connect flow for repository access.

Separate from sign-in: the owner grants the ``repo read:user`` scope so the
service can read and write the workspace repository on their behalf.
"""

from dataclasses import dataclass
from typing import Any, Optional

import httpx

from src.config import get_settings
from src.errors import OAuthError
from src.logging_config import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class GitHubGrant:
    access_token: str
    token_type: str = "bearer"
    scope: str = ""

    @property
    def scopes(self) -> list[str]:
        return [s for s in self.scope.replace(",", " ").split() if s]


@dataclass(frozen=True)
class GitHubUser:
    login: str
    id: int
    name: Optional[str] = None
    avatar_url: Optional[str] = None


class GitHubOAuthClient:
    """Builds the authorize URL, exchanges codes and reads the GitHub profile."""

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        *,
        oauth_url: str,
        token_url: str,
        api_url: str,
        scope: str,
        timeout: float = 20.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.client_id = client_id
        self.client_secret = client_secret
        self.oauth_url = oauth_url
        self.token_url = token_url
        self.api_url = api_url.rstrip("/")
        self.scope = scope
        self.timeout = timeout
        self._http_client = http_client

    @classmethod
    def from_settings(cls, http_client: Optional[httpx.AsyncClient] = None) -> "GitHubOAuthClient":
        settings = get_settings()
        return cls(
            settings.github_client_id,
            settings.github_client_secret,
            oauth_url=settings.github_oauth_url,
            token_url=settings.github_token_url,
            api_url=settings.github_api_url,
            scope=settings.github_oauth_scope,
            timeout=settings.github_timeout_seconds,
            http_client=http_client,
        )

    @property
    def configured(self) -> bool:
        return bool(self.client_id and self.client_secret)

    def authorize_url(self, state: str, redirect_uri: str) -> str:
        if not self.client_id:
            raise OAuthError("GitHub OAuth not configured", reason="configuration_error")
        url = httpx.URL(
            self.oauth_url,
            params={
                "client_id": self.client_id,
                "redirect_uri": redirect_uri,
                "scope": self.scope,
                "state": state,
            },
        )
        return str(url)

    async def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            if self._http_client is not None:
                return await self._http_client.request(method, url, **kwargs)
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                return await client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            raise OAuthError(f"GitHub request failed: {e}", reason="unexpected_error") from e

    async def exchange_code(self, code: str, redirect_uri: Optional[str] = None) -> GitHubGrant:
        """
        Exchange an authorization code for an access token.

        Raises:
            OAuthError: reason token_exchange_failed or no_access_token
        """
        if not self.configured:
            raise OAuthError("GitHub OAuth not configured", reason="configuration_error")
        body = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "code": code,
        }
        if redirect_uri:
            body["redirect_uri"] = redirect_uri
        response = await self._request(
            "POST", self.token_url, json=body, headers={"Accept": "application/json"}
        )
        if response.status_code != 200:
            logger.warning("GitHub token exchange failed with status %s", response.status_code)
            raise OAuthError(
                "Token exchange failed",
                reason="token_exchange_failed",
                status_code=response.status_code,
            )
        data = response.json()
        if not data.get("access_token"):
            # GitHub answers 200 with {"error": ...} for bad or reused codes
            logger.warning("GitHub token exchange returned no token: %s", data.get("error"))
            raise OAuthError(
                data.get("error_description") or "No access token in response",
                reason="no_access_token",
            )
        return GitHubGrant(
            access_token=data["access_token"],
            token_type=data.get("token_type", "bearer"),
            scope=data.get("scope", ""),
        )

    async def fetch_user(self, access_token: str) -> GitHubUser:
        """
        Read the authenticated GitHub profile.

        Raises:
            OAuthError: reason user_fetch_failed
        """
        response = await self._request(
            "GET",
            f"{self.api_url}/user",
            headers={
                "Authorization": f"Bearer {access_token}",
                "Accept": "application/vnd.github+json",
                "X-GitHub-Api-Version": "2022-11-28",
            },
        )
        if response.status_code != 200:
            raise OAuthError(
                "GitHub user fetch failed",
                reason="user_fetch_failed",
                status_code=response.status_code,
            )
        data = response.json()
        return GitHubUser(
            login=data["login"],
            id=int(data.get("id", 0)),
            name=data.get("name"),
            avatar_url=data.get("avatar_url"),
        )
