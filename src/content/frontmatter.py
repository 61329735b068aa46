"""Split, parse and render Markdown documents with a YAML frontmatter header"""

import re
from typing import Any, Optional

import yaml
from pydantic import ValidationError

from src.content.models import ContentDocument, ContentKind
from src.errors import FrontmatterError
from src.logging_config import get_logger

logger = get_logger(__name__)

DELIMITER = "---"
FRONTMATTER_RE = re.compile(
    r"\A---[ \t]*\r?\n(?P<meta>.*?)^---[ \t]*(?:\r?\n|\Z)",
    re.DOTALL | re.MULTILINE,
)


def _strip_blank_line(body: str) -> str:
    """Drop the single blank line that separates the header from the body."""
    if body.startswith("\r\n"):
        return body[2:]
    if body.startswith("\n"):
        return body[1:]
    return body


def split_frontmatter(text: str) -> tuple[dict[str, Any], str]:
    """
    Return (frontmatter_dict, body).

    A document without a header yields ({}, text).

    Raises:
        FrontmatterError: header present but not a YAML mapping
    """
    m = FRONTMATTER_RE.match(text)
    if not m:
        return {}, text
    body = _strip_blank_line(text[m.end():])
    try:
        meta = yaml.safe_load(m.group("meta")) or {}
    except (yaml.YAMLError, ValueError, TypeError) as e:
        # ValueError: impossible dates such as 2025-02-30
        raise FrontmatterError(f"Invalid YAML frontmatter: {e}") from e
    if not isinstance(meta, dict):
        raise FrontmatterError(
            f"Invalid YAML frontmatter: expected a mapping, got {type(meta).__name__}"
        )
    return meta, body


def parse_document(
    text: str,
    *,
    slug: str = "",
    kind: Optional[ContentKind] = None,
    strict: bool = False,
) -> ContentDocument:
    """
    Decode a Markdown file into a ContentDocument.

    With strict=False a malformed header is logged and treated as empty so
    readers always get a document; strict=True raises FrontmatterError instead.
    """
    try:
        meta, body = split_frontmatter(text)
    except FrontmatterError:
        if strict:
            raise
        logger.warning("Malformed frontmatter in %r, using defaults", slug or "<document>")
        m = FRONTMATTER_RE.match(text)
        meta, body = {}, _strip_blank_line(text[m.end():]) if m else text

    meta = {str(k): v for k, v in meta.items()}
    meta.pop("body", None)
    meta.pop("kind", None)
    meta["slug"] = meta.get("slug") or slug

    try:
        return ContentDocument.model_validate({**meta, "body": body, "kind": kind})
    except ValidationError as e:
        if strict:
            raise FrontmatterError(f"Invalid frontmatter fields: {e}") from e
        logger.warning("Frontmatter fields rejected for %r, using defaults", meta["slug"])
        return ContentDocument(slug=meta["slug"], body=body, kind=kind)


def render_document(document: ContentDocument) -> str:
    """Serialize a document back to frontmatter + blank line + body."""
    meta = yaml.safe_dump(
        document.frontmatter(),
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
    )
    return f"{DELIMITER}\n{meta}{DELIMITER}\n\n{document.body}"
