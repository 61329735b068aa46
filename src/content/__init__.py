"""
Content layer.

Markdown documents with YAML frontmatter stored in the workspace GitHub
repository: decoding, the repository client, draft -> main publishing and
the offline index builder.
"""

from src.content.models import (
    ContentDocument,
    ContentKind,
    DocumentStatus,
    Visibility,
    SafetyLevel,
    UpdateType,
    MediaItem,
    VerificationInfo,
)
from src.content.frontmatter import parse_document, render_document, split_frontmatter
from src.content.repository import ContentRepositoryClient
from src.content.publish import PublishCoordinator, PublishResult, PublishState, BranchStatus
from src.content.index_builder import IndexArtifact, IndexItem, build_index, write_index

__all__ = [
    # Documents
    "ContentDocument",
    "ContentKind",
    "DocumentStatus",
    "Visibility",
    "SafetyLevel",
    "UpdateType",
    "MediaItem",
    "VerificationInfo",
    "parse_document",
    "render_document",
    "split_frontmatter",
    # Repository
    "ContentRepositoryClient",
    # Publish
    "PublishCoordinator",
    "PublishResult",
    "PublishState",
    "BranchStatus",
    # Index
    "IndexArtifact",
    "IndexItem",
    "build_index",
    "write_index",
]
