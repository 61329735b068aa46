"""
Publish schemas.
"""

from typing import Optional

from pydantic import BaseModel


class PublishStatusResponse(BaseModel):
    """Draft vs main comparison for the publish widget."""

    has_repo: bool
    forked: bool = False
    repo_url: Optional[str] = None
    repo_name: Optional[str] = None
    has_unpublished_changes: bool = False
    commits_ahead: int = 0
    commits_behind: int = 0
    needs_sync: bool = False
    compare_url: Optional[str] = None


class PublishResponse(BaseModel):
    success: bool
    message: str
    up_to_date: bool = False
    commit_sha: Optional[str] = None
    merge_commit: Optional[str] = None  # URL of the merge commit
