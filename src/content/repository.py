"""
Content Repository Client - GitHub REST contents API.

Reads and writes Markdown documents on a named branch, lists directories,
compares and merges branches, and performs one-time repository setup.

Failure policy:
- 401 -> AuthError (stored credential expired or revoked; caller asks the
  owner to reconnect GitHub)
- 404 -> NotFound (expected absence; readers turn it into None / [])
- any other non-2xx, timeout or transport error -> RepositoryError with the
  upstream status kept in ``status_code``

GET requests are retried with backoff on 5xx and timeouts. Mutating requests
are sent once.
"""

import asyncio
import base64
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from src.config import get_settings
from src.content.frontmatter import parse_document, render_document
from src.content.authoring import slug_from_path
from src.content.models import ContentDocument, ContentKind
from src.errors import AuthError, NotFound, RepositoryError
from src.logging_config import get_logger

logger = get_logger(__name__)

MAX_RETRIES = 3
RETRY_BACKOFF = (0.5, 1.0, 2.0)  # seconds

GITHUB_ACCEPT = "application/vnd.github+json"
GITHUB_API_VERSION = "2022-11-28"


@dataclass(frozen=True)
class RepositoryFile:
    path: str
    sha: str
    text: str


@dataclass(frozen=True)
class DirectoryEntry:
    name: str
    path: str
    type: str  # "file" or "dir"
    sha: str = ""


@dataclass(frozen=True)
class CommitRef:
    sha: str
    html_url: Optional[str] = None


@dataclass(frozen=True)
class BranchComparison:
    ahead_by: int
    behind_by: int
    status: str  # ahead / behind / diverged / identical
    html_url: Optional[str] = None


@dataclass(frozen=True)
class RepoInfo:
    owner: str
    name: str
    html_url: str
    default_branch: str = "main"
    private: bool = False


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text[:200] or response.reason_phrase
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return response.reason_phrase


def _rate_limited(response: httpx.Response) -> bool:
    """GitHub also answers 403 when the primary rate limit is exhausted."""
    return response.headers.get("x-ratelimit-remaining") == "0"


class ContentRepositoryClient:
    """
    Async client bound to one repository and one credential.

    The token is only placed in the Authorization header; it is never logged.

    Usage:
        async with ContentRepositoryClient(token, "octo", "workspace") as repo:
            doc = await repo.read_document("content/docs/intro/index.md", "draft")
    """

    def __init__(
        self,
        token: str,
        owner: str,
        repo: str,
        *,
        api_url: Optional[str] = None,
        timeout: Optional[float] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        settings = get_settings()
        self.owner = owner
        self.repo = repo
        self.committer = {"name": settings.committer_name, "email": settings.committer_email}
        self._headers = {
            "Authorization": f"Bearer {token}",
            "Accept": GITHUB_ACCEPT,
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
            "User-Agent": settings.project_name,
        }
        if http_client is not None:
            # Shared clients stay credential-free; headers go on each request
            self._client = http_client
            self._owns_client = False
        else:
            self._client = httpx.AsyncClient(
                base_url=api_url or settings.github_api_url,
                timeout=timeout or settings.github_timeout_seconds,
            )
            self._owns_client = True

    async def __aenter__(self) -> "ContentRepositoryClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    @property
    def _repo_path(self) -> str:
        return f"/repos/{self.owner}/{self.repo}"

    async def _send(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        """Send a request; GETs are retried on 5xx and timeouts."""
        attempts = MAX_RETRIES if method == "GET" else 1
        for attempt in range(attempts):
            last = attempt == attempts - 1
            try:
                response = await self._client.request(
                    method, url, headers=self._headers, **kwargs
                )
            except httpx.TimeoutException as e:
                if not last:
                    await asyncio.sleep(RETRY_BACKOFF[attempt])
                    continue
                raise RepositoryError(f"GitHub request timed out: {method} {url}") from e
            except httpx.HTTPError as e:
                if not last and isinstance(e, httpx.ConnectError):
                    await asyncio.sleep(RETRY_BACKOFF[attempt])
                    continue
                raise RepositoryError(f"GitHub request failed: {e}") from e
            if response.status_code >= 500 and not last:
                await asyncio.sleep(RETRY_BACKOFF[attempt])
                continue
            return response
        raise RepositoryError(f"GitHub request failed: {method} {url}")

    async def _request(
        self,
        method: str,
        url: str,
        *,
        expected: tuple[int, ...] = (200,),
        **kwargs: Any,
    ) -> httpx.Response:
        """Send a request and map failures to the error taxonomy."""
        response = await self._send(method, url, **kwargs)
        status = response.status_code
        if status in expected:
            return response
        message = _error_message(response)
        if status == 401 or (status == 403 and not _rate_limited(response)):
            logger.warning("GitHub rejected credential for %s/%s", self.owner, self.repo)
            raise AuthError(
                "GitHub authorization failed. Please reconnect your GitHub account.",
                status_code=status,
            )
        if status == 404:
            raise NotFound(f"Not found: {url}", status_code=status)
        logger.warning(
            "GitHub API error",
            extra={"method": method, "url": url, "status": status},
        )
        raise RepositoryError(f"GitHub API error: {message}", status_code=status)

    # ---- Files ----

    async def read_file(self, path: str, branch: str) -> Optional[RepositoryFile]:
        """Raw text and blob SHA of a file, or None if it does not exist."""
        try:
            response = await self._request(
                "GET", f"{self._repo_path}/contents/{path}", params={"ref": branch}
            )
        except NotFound:
            return None
        data = response.json()
        if not isinstance(data, dict) or data.get("type") != "file":
            raise RepositoryError(f"Not a file: {path}")
        try:
            raw = base64.b64decode(data.get("content", ""))
            text = raw.decode("utf-8")
        except (ValueError, UnicodeDecodeError) as e:
            raise RepositoryError(f"Undecodable file content: {path}") from e
        return RepositoryFile(path=data.get("path", path), sha=data.get("sha", ""), text=text)

    async def read_document(
        self,
        path: str,
        branch: str,
        kind: Optional[ContentKind] = None,
    ) -> Optional[ContentDocument]:
        """
        Fetch and decode a Markdown document.

        Returns:
            The document with declared defaults applied, or None on 404.
        """
        file = await self.read_file(path, branch)
        if file is None:
            return None
        return parse_document(file.text, slug=slug_from_path(path), kind=kind)

    async def write_document(
        self,
        path: str,
        branch: str,
        document: ContentDocument,
        commit_message: str,
    ) -> CommitRef:
        """
        Create or update a document on a branch.

        Identical content still produces a commit.
        """
        existing = await self.read_file(path, branch)
        content = render_document(document)
        payload: Dict[str, Any] = {
            "message": commit_message,
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
            "branch": branch,
            "committer": self.committer,
            "author": self.committer,
        }
        if existing is not None:
            payload["sha"] = existing.sha
        response = await self._request(
            "PUT",
            f"{self._repo_path}/contents/{path}",
            json=payload,
            expected=(200, 201),
        )
        commit = response.json().get("commit", {})
        logger.info("Wrote %s on %s/%s@%s", path, self.owner, self.repo, branch)
        return CommitRef(sha=commit.get("sha", ""), html_url=commit.get("html_url"))

    async def list_directory(self, path: str, branch: str) -> List[DirectoryEntry]:
        """Immediate children of a directory; [] if it does not exist."""
        try:
            response = await self._request(
                "GET", f"{self._repo_path}/contents/{path}", params={"ref": branch}
            )
        except NotFound:
            return []
        data = response.json()
        if not isinstance(data, list):
            return []
        return [
            DirectoryEntry(
                name=item.get("name", ""),
                path=item.get("path", ""),
                type=item.get("type", ""),
                sha=item.get("sha", ""),
            )
            for item in data
        ]

    async def list_names(self, path: str, branch: str, kind: str = "dir") -> List[str]:
        """Names of children of the given type, sorted."""
        entries = await self.list_directory(path, branch)
        return sorted(e.name for e in entries if e.type == kind)

    # ---- Branches ----

    async def compare(self, base: str, head: str) -> BranchComparison:
        response = await self._request("GET", f"{self._repo_path}/compare/{base}...{head}")
        data = response.json()
        return BranchComparison(
            ahead_by=int(data.get("ahead_by", 0)),
            behind_by=int(data.get("behind_by", 0)),
            status=data.get("status", ""),
            html_url=data.get("html_url"),
        )

    async def merge(self, base: str, head: str, commit_message: str) -> Optional[CommitRef]:
        """
        Merge head into base.

        Returns:
            The merge commit, or None when there was nothing to merge (204).

        Raises:
            RepositoryError: status_code 409 on conflict
            NotFound: base or head branch missing
        """
        response = await self._request(
            "POST",
            f"{self._repo_path}/merges",
            json={"base": base, "head": head, "commit_message": commit_message},
            expected=(201, 204),
        )
        if response.status_code == 204:
            return None
        data = response.json()
        return CommitRef(sha=data.get("sha", ""), html_url=data.get("html_url"))

    async def get_branch_sha(self, branch: str) -> str:
        response = await self._request("GET", f"{self._repo_path}/git/ref/heads/{branch}")
        return response.json().get("object", {}).get("sha", "")

    async def create_branch(self, name: str, from_sha: str) -> bool:
        """
        Create a branch pointing at from_sha.

        Returns:
            False if the branch already exists
        """
        try:
            await self._request(
                "POST",
                f"{self._repo_path}/git/refs",
                json={"ref": f"refs/heads/{name}", "sha": from_sha},
                expected=(201,),
            )
        except RepositoryError as e:
            if e.status_code == 422:
                logger.info("Branch %s already exists in %s/%s", name, self.owner, self.repo)
                return False
            raise
        return True

    async def generate_from_template(
        self,
        template_owner: str,
        template_repo: str,
        *,
        name: str,
        private: bool = False,
        description: str = "",
    ) -> RepoInfo:
        """Create owner/name from a template repository (including all branches)."""
        response = await self._request(
            "POST",
            f"/repos/{template_owner}/{template_repo}/generate",
            json={
                "owner": self.owner,
                "name": name,
                "private": private,
                "description": description,
                "include_all_branches": True,
            },
            expected=(201,),
        )
        data = response.json()
        self.repo = data.get("name", name)
        return RepoInfo(
            owner=data.get("owner", {}).get("login", self.owner),
            name=self.repo,
            html_url=data.get("html_url", ""),
            default_branch=data.get("default_branch", "main"),
            private=bool(data.get("private", private)),
        )
