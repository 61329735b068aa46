"""
Publish Coordinator - merge the draft branch into main.

States:
    CHECKING -> UP_TO_DATE | AHEAD | CONFLICT | MISSING_BRANCH | MERGED

A publish is one merge call with no pre-check. "Nothing to merge" is a
success, not an error. Conflicts are reported, never retried or resolved.
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Protocol

from src.content.repository import BranchComparison, CommitRef
from src.errors import AuthError, NotFound, NotInitialized, PublishError, RepositoryError
from src.logging_config import get_logger

logger = get_logger(__name__)

PUBLISH_COMMIT_MESSAGE = "Publish draft changes to main"

MESSAGES = {
    "up_to_date": "Already up to date - no changes to publish",
    "merged": "Successfully published changes to main",
    "conflict": "Merge conflict detected. Please resolve conflicts in GitHub.",
    "missing_branch": "Draft or main branch not found",
}


class PublishState(str, Enum):
    CHECKING = "checking"
    UP_TO_DATE = "up_to_date"
    AHEAD = "ahead"
    CONFLICT = "conflict"
    MISSING_BRANCH = "missing_branch"
    MERGED = "merged"


class BranchClient(Protocol):
    """The part of ContentRepositoryClient the coordinator needs."""

    async def compare(self, base: str, head: str) -> BranchComparison: ...

    async def merge(self, base: str, head: str, commit_message: str) -> Optional[CommitRef]: ...


@dataclass(frozen=True)
class BranchStatus:
    commits_ahead: int
    commits_behind: int
    compare_url: str
    state: PublishState

    @property
    def has_unpublished_changes(self) -> bool:
        return self.commits_ahead > 0

    @property
    def needs_sync(self) -> bool:
        return self.commits_behind > 0


@dataclass(frozen=True)
class PublishResult:
    state: PublishState
    message: str
    commit_sha: Optional[str] = None
    commit_url: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.state in (PublishState.MERGED, PublishState.UP_TO_DATE)

    @property
    def up_to_date(self) -> bool:
        return self.state == PublishState.UP_TO_DATE


class PublishCoordinator:
    """Drives the draft -> main publish for one workspace repository."""

    def __init__(
        self,
        client: BranchClient,
        *,
        forked: bool,
        repo_url: str = "",
        draft_branch: str = "draft",
        main_branch: str = "main",
    ):
        self.client = client
        self.forked = forked
        self.repo_url = repo_url.rstrip("/")
        self.draft_branch = draft_branch
        self.main_branch = main_branch

    @property
    def compare_url(self) -> str:
        return f"{self.repo_url}/compare/{self.main_branch}...{self.draft_branch}"

    def _require_initialized(self) -> None:
        if not self.forked:
            raise NotInitialized("Repository not initialized. Please set up your workspace first.")

    async def check_status(self) -> BranchStatus:
        """
        Compare draft against main. Read-only.

        Raises:
            NotInitialized: repository was never created from the template
            AuthError: credential rejected
            PublishError: any other remote failure
        """
        self._require_initialized()
        try:
            comparison = await self.client.compare(self.main_branch, self.draft_branch)
        except AuthError:
            raise
        except NotFound as e:
            raise PublishError(MESSAGES["missing_branch"], status_code=e.status_code) from e
        except RepositoryError as e:
            raise PublishError(f"Failed to compare branches: {e.message}", status_code=e.status_code) from e

        if comparison.ahead_by > 0:
            state = PublishState.AHEAD
        else:
            state = PublishState.UP_TO_DATE
        return BranchStatus(
            commits_ahead=comparison.ahead_by,
            commits_behind=comparison.behind_by,
            compare_url=self.compare_url,
            state=state,
        )

    async def publish(self) -> PublishResult:
        """
        Merge draft into main with a single merge call.

        Returns:
            PublishResult in UP_TO_DATE, MERGED, CONFLICT or MISSING_BRANCH

        Raises:
            NotInitialized: before any remote call when not forked
            AuthError: credential rejected
            PublishError: any other remote failure (status preserved)
        """
        self._require_initialized()
        try:
            commit = await self.client.merge(
                self.main_branch, self.draft_branch, PUBLISH_COMMIT_MESSAGE
            )
        except AuthError:
            raise
        except NotFound:
            logger.warning("Publish failed: branch missing")
            return PublishResult(PublishState.MISSING_BRANCH, MESSAGES["missing_branch"])
        except RepositoryError as e:
            if e.status_code == 409:
                logger.info("Publish blocked by merge conflict")
                return PublishResult(PublishState.CONFLICT, MESSAGES["conflict"])
            raise PublishError(f"Failed to publish: {e.message}", status_code=e.status_code) from e

        if commit is None:
            return PublishResult(PublishState.UP_TO_DATE, MESSAGES["up_to_date"])

        logger.info("Published draft to main", extra={"commit_sha": commit.sha})
        return PublishResult(
            PublishState.MERGED,
            MESSAGES["merged"],
            commit_sha=commit.sha,
            commit_url=commit.html_url,
        )


class PublishLocks:
    """Per-user asyncio locks; serializes publishes for one user in this process."""

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}

    def for_user(self, user_id: str) -> asyncio.Lock:
        key = str(user_id)
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock


publish_locks = PublishLocks()
