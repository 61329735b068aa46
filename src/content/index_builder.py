"""
Content Index Builder.

Walks a directory of Markdown documents and produces the index artifact:

    {"indexVersion": 2, "generatedAt": "...", "total": N, "items": [...]}

Private documents are excluded. Items are ordered newest first by effective
timestamp (updated, else published, else created, else file mtime); ties
keep walk order. Files that cannot be read or parsed are logged and skipped.
"""

import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from src.content.authoring import slug_from_path
from src.content.frontmatter import parse_document
from src.content.models import DocumentStatus, SafetyLevel, Visibility
from src.errors import FrontmatterError
from src.logging_config import get_logger

logger = get_logger(__name__)

INDEX_VERSION = 2


class IndexItem(BaseModel):
    """Summary row for one public or gated document."""

    slug: str
    title: str
    summary: str = ""
    category: str = ""
    tags: List[str] = Field(default_factory=list)
    status: DocumentStatus = DocumentStatus.DRAFT
    updated_at: datetime
    safety_level: SafetyLevel = SafetyLevel.OPEN
    repo_target: str = "personal"
    visibility: Visibility = Visibility.PUBLIC


class IndexArtifact(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    index_version: int = Field(INDEX_VERSION, alias="indexVersion")
    generated_at: datetime = Field(alias="generatedAt")
    total: int
    items: List[IndexItem]

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)


def _mtime(path: Path) -> datetime:
    return datetime.fromtimestamp(path.stat().st_mtime, tz=timezone.utc)


def _index_item(path: Path) -> Optional[IndexItem]:
    """Parse one file; None if it is private."""
    text = path.read_text(encoding="utf-8")
    document = parse_document(text, slug=slug_from_path(path.as_posix()), strict=True)
    if document.visibility == Visibility.PRIVATE:
        return None
    return IndexItem(
        slug=document.slug,
        title=document.title,
        summary=document.summary,
        category=document.category,
        tags=document.tags,
        status=document.status,
        updated_at=document.effective_timestamp or _mtime(path),
        safety_level=document.safety_level,
        repo_target=document.repo_target,
        visibility=document.visibility,
    )


def build_index(root: Union[str, Path], now: Optional[datetime] = None) -> IndexArtifact:
    """
    Build the index artifact for every *.md file under root.

    Raises:
        FileNotFoundError: root is not a directory
    """
    root = Path(root)
    if not root.is_dir():
        raise FileNotFoundError(f"Content directory not found: {root}")

    items: List[IndexItem] = []
    skipped = 0
    for path in sorted(root.rglob("*.md")):
        if not path.is_file():
            continue
        try:
            item = _index_item(path)
        except (OSError, ValueError, TypeError, FrontmatterError) as e:
            skipped += 1
            logger.warning("Skipping %s: %s", path, e)
            continue
        if item is not None:
            items.append(item)

    # list.sort is stable, so equal timestamps keep walk order
    items.sort(key=lambda item: item.updated_at, reverse=True)
    logger.info("Built index", extra={"total": len(items), "skipped": skipped})
    return IndexArtifact(
        index_version=INDEX_VERSION,
        generated_at=now or datetime.now(timezone.utc),
        total=len(items),
        items=items,
    )


def write_index(artifact: IndexArtifact, out_file: Union[str, Path]) -> Path:
    """Write the artifact atomically: temp file in the same directory, then replace."""
    out_file = Path(out_file)
    out_file.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{out_file.name}.", suffix=".tmp", dir=out_file.parent
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(artifact.to_json())
            fh.write("\n")
        os.replace(tmp_name, out_file)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise
    return out_file
