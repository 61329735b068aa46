"""Unit tests for repository layout, new updates and reader access."""

import uuid
from datetime import datetime, timezone

import pytest

from src.content.access import check_content_access
from src.content.authoring import (
    UPDATE_TEMPLATE,
    collection_dir,
    document_path,
    new_update,
    slug_from_path,
    slugify,
)
from src.content.models import ContentKind, DocumentStatus, Visibility

CATEGORIES = ["plasma-hardware", "saltwater-dynamics"]


class TestLayout:

    def test_document_paths(self):
        assert document_path(ContentKind.PROJECT, "coil") == "content/projects/coil/index.md"
        assert document_path(ContentKind.DOC, "safety") == "content/docs/safety/index.md"
        assert (
            document_path(ContentKind.STREAM, "winding", project_slug="coil")
            == "content/projects/coil/streams/winding/index.md"
        )
        assert (
            document_path(ContentKind.UPDATE, "2025-01-01-a", category="plasma-hardware")
            == "content/updates/plasma-hardware/2025-01-01-a.md"
        )

    def test_collection_requires_parent(self):
        with pytest.raises(ValueError):
            collection_dir(ContentKind.STREAM)
        with pytest.raises(ValueError):
            collection_dir(ContentKind.UPDATE)

    @pytest.mark.parametrize("segment", ["", "../etc", "a/b", ".hidden"])
    def test_path_segments_rejected(self, segment):
        with pytest.raises(ValueError):
            document_path(ContentKind.UPDATE, "x", category=segment)
        with pytest.raises(ValueError):
            document_path(ContentKind.DOC, segment)

    def test_slug_from_path(self):
        assert slug_from_path("content/docs/intro/index.md") == "intro"
        assert slug_from_path("content/updates/a/2025-01-01-y.md") == "2025-01-01-y"
        assert slug_from_path("updates\\a\\z.md") == "z"

    def test_slugify(self):
        assert slugify("  Hello, World!  ") == "hello-world"
        assert slugify("HV Coil #2 (rewind)") == "hv-coil-2-rewind"


class TestNewUpdate:

    def test_builds_dated_update(self):
        now = datetime(2025, 4, 9, 15, 30, tzinfo=timezone.utc)
        path, doc = new_update(
            "First Light!",
            "plasma-hardware",
            categories=CATEGORIES,
            summary="It glows",
            tags=["glow"],
            now=now,
        )
        assert path == "content/updates/plasma-hardware/2025-04-09-first-light.md"
        assert doc.slug == "2025-04-09-first-light"
        assert uuid.UUID(doc.id)
        assert doc.kind == ContentKind.UPDATE
        assert doc.status == DocumentStatus.DRAFT
        assert doc.created_at == doc.updated_at == doc.published_at == now
        assert doc.body == UPDATE_TEMPLATE
        assert doc.tags == ["glow"]

    def test_explicit_body_and_status(self):
        _, doc = new_update(
            "T", "plasma-hardware", categories=CATEGORIES,
            body="Custom", status=DocumentStatus.PUBLISHED,
        )
        assert doc.body == "Custom"
        assert doc.status == DocumentStatus.PUBLISHED

    def test_empty_title(self):
        with pytest.raises(ValueError, match="Title"):
            new_update("   ", "plasma-hardware", categories=CATEGORIES)

    def test_unknown_category(self):
        with pytest.raises(ValueError, match="category"):
            new_update("T", "cooking", categories=CATEGORIES)


class TestContentAccess:

    def test_public_always_allowed(self):
        assert check_content_access(Visibility.PUBLIC, is_owner=False).allowed

    def test_owner_sees_everything(self):
        for visibility in Visibility:
            assert check_content_access(visibility, is_owner=True).allowed

    def test_private_denied_to_readers(self):
        decision = check_content_access(Visibility.PRIVATE, False, has_acknowledged_safety=True)
        assert not decision.allowed
        assert decision.reason == "This content is private"

    def test_gated_requires_acknowledgment(self):
        denied = check_content_access(Visibility.GATED, False)
        assert not denied.allowed
        assert denied.reason == "Safety acknowledgment required"
        assert check_content_access(Visibility.GATED, False, True).allowed
