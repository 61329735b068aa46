"""
Repository layout and construction of new documents.

Paths inside the workspace repository:

    content/projects/{slug}/index.md
    content/projects/{project}/streams/{slug}/index.md
    content/updates/{category}/{YYYY-MM-DD-title}.md
    content/docs/{slug}/index.md
"""

import re
import uuid
from datetime import datetime, timezone
from pathlib import PurePosixPath
from typing import Iterable, Optional, Sequence

from src.content.models import ContentDocument, ContentKind, DocumentStatus

CONTENT_ROOT = "content"

_SLUG_RE = re.compile(r"[^a-z0-9]+")

UPDATE_TEMPLATE = "## Notes\n\n- Start writing here.\n"


def slugify(text: str) -> str:
    """Lower-case, collapse non-alphanumerics to '-', trim dashes."""
    return _SLUG_RE.sub("-", text.lower()).strip("-")


def collection_dir(kind: ContentKind, *, category: Optional[str] = None,
                   project_slug: Optional[str] = None) -> str:
    """Directory that holds the entries of a collection."""
    _check_segment("category", category)
    _check_segment("project", project_slug)
    if kind == ContentKind.PROJECT:
        return f"{CONTENT_ROOT}/projects"
    if kind == ContentKind.STREAM:
        if not project_slug:
            raise ValueError("Streams live under a project; project_slug is required")
        return f"{CONTENT_ROOT}/projects/{project_slug}/streams"
    if kind == ContentKind.UPDATE:
        if not category:
            raise ValueError("Updates are grouped by category; category is required")
        return f"{CONTENT_ROOT}/updates/{category}"
    return f"{CONTENT_ROOT}/docs"


def _check_segment(name: str, value: Optional[str]) -> None:
    if value is not None and (not value or "/" in value or value.startswith(".")):
        raise ValueError(f"Invalid {name}: {value!r}")


def document_path(kind: ContentKind, slug: str, *, category: Optional[str] = None,
                  project_slug: Optional[str] = None) -> str:
    """Repository path of a document."""
    _check_segment("slug", slug)
    base = collection_dir(kind, category=category, project_slug=project_slug)
    if kind == ContentKind.UPDATE:
        return f"{base}/{slug}.md"
    return f"{base}/{slug}/index.md"


def slug_from_path(path: str) -> str:
    """'content/docs/x/index.md' -> 'x'; 'updates/a/2025-01-01-y.md' -> '2025-01-01-y'."""
    p = PurePosixPath(str(path).replace("\\", "/"))
    if p.name == "index.md" and p.parent.name:
        return p.parent.name
    return p.stem


def new_update(
    title: str,
    category: str,
    *,
    categories: Sequence[str],
    summary: str = "",
    tags: Iterable[str] = (),
    status: DocumentStatus = DocumentStatus.DRAFT,
    author: Optional[str] = None,
    body: Optional[str] = None,
    now: Optional[datetime] = None,
) -> tuple[str, ContentDocument]:
    """
    Build a new update document and its repository path.

    Raises:
        ValueError: empty title or category not in categories
    """
    title = title.strip()
    if not title:
        raise ValueError("Title is required.")
    if category not in categories:
        raise ValueError(f"Invalid category {category!r}; expected one of {list(categories)}")

    now = now or datetime.now(timezone.utc)
    slug = f"{now.date().isoformat()}-{slugify(title)}"
    document = ContentDocument(
        id=str(uuid.uuid4()),
        slug=slug,
        title=title,
        kind=ContentKind.UPDATE,
        category=category,
        summary=summary,
        tags=list(tags),
        status=status,
        author=author,
        created_at=now,
        updated_at=now,
        published_at=now,
        body=body if body is not None else UPDATE_TEMPLATE,
    )
    return document_path(ContentKind.UPDATE, slug, category=category), document
