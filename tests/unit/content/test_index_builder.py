"""Unit tests for the content index builder."""

import json
import os
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import patch

import pytest

from src.content.index_builder import INDEX_VERSION, build_index, write_index

NOW = datetime(2025, 6, 1, tzinfo=timezone.utc)


def _write(root: Path, rel: str, text: str) -> Path:
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def _update(title: str, updated: str, **extra) -> str:
    lines = [f"title: {title}", f"updatedAt: '{updated}'"]
    lines += [f"{k}: {v}" for k, v in extra.items()]
    return "---\n" + "\n".join(lines) + "\n---\n\nBody\n"


class TestBuildIndex:

    def test_private_excluded_and_newest_first(self, tmp_path, sample_public_update, sample_private_update):
        _write(tmp_path, "plasma-hardware/2025-03-02-coil-rewind.md", sample_public_update)
        _write(tmp_path, "plasma-hardware/2025-03-05-notebook.md", sample_private_update)
        _write(tmp_path, "saltwater-dynamics/2025-04-01-tides.md",
               _update("Tides", "2025-04-01T00:00:00Z", visibility="gated"))

        artifact = build_index(tmp_path, now=NOW)

        assert artifact.index_version == INDEX_VERSION == 2
        assert artifact.generated_at == NOW
        assert artifact.total == 2
        assert [item.slug for item in artifact.items] == [
            "2025-04-01-tides",
            "2025-03-02-coil-rewind",
        ]
        assert artifact.items[0].visibility.value == "gated"
        assert artifact.items[1].category == "plasma-hardware"
        assert artifact.items[1].repo_target == "personal"

    def test_ties_keep_walk_order(self, tmp_path):
        for name in ("c", "a", "b"):
            _write(tmp_path, f"{name}.md", _update(name.upper(), "2025-01-01T00:00:00Z"))
        artifact = build_index(tmp_path, now=NOW)
        assert [item.slug for item in artifact.items] == ["a", "b", "c"]

    def test_malformed_file_skipped(self, tmp_path):
        _write(tmp_path, "good.md", _update("Good", "2025-01-01T00:00:00Z"))
        _write(tmp_path, "bad.md", "---\ntitle: [unclosed\n---\n")
        (tmp_path / "binary.md").write_bytes(b"\xff\xfe\x00bad")

        artifact = build_index(tmp_path, now=NOW)

        assert [item.slug for item in artifact.items] == ["good"]

    def test_impossible_date_skipped(self, tmp_path):
        _write(tmp_path, "good.md", _update("Good", "2025-01-01T00:00:00Z"))
        _write(tmp_path, "bad.md", "---\ntitle: Bad\nupdatedAt: 2025-02-30\n---\n")

        artifact = build_index(tmp_path, now=NOW)

        assert artifact.total == 1
        assert [item.slug for item in artifact.items] == ["good"]

    def test_three_dates_newest_first(self, tmp_path):
        _write(tmp_path, "jan.md", _update("Jan", "2025-01-01T00:00:00Z"))
        _write(tmp_path, "mar.md", _update("Mar", "2025-03-01T00:00:00Z"))
        _write(tmp_path, "feb.md", _update("Feb", "2025-02-01T00:00:00Z"))

        items = build_index(tmp_path, now=NOW).items

        assert [item.updated_at.date().isoformat() for item in items] == [
            "2025-03-01", "2025-02-01", "2025-01-01",
        ]

    def test_falls_back_to_file_mtime(self, tmp_path):
        path = _write(tmp_path, "undated.md", "---\ntitle: Undated\n---\n")
        stamp = datetime(2024, 2, 3, tzinfo=timezone.utc).timestamp()
        os.utime(path, (stamp, stamp))

        item = build_index(tmp_path, now=NOW).items[0]

        assert item.updated_at == datetime(2024, 2, 3, tzinfo=timezone.utc)

    def test_frontmatter_slug_wins(self, tmp_path):
        _write(tmp_path, "x.md", "---\nslug: custom\ntitle: X\n---\n")
        assert build_index(tmp_path, now=NOW).items[0].slug == "custom"

    def test_empty_directory(self, tmp_path):
        artifact = build_index(tmp_path, now=NOW)
        assert artifact.total == 0
        assert artifact.items == []

    def test_missing_root(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            build_index(tmp_path / "missing")


class TestWriteIndex:

    def test_json_shape(self, tmp_path, sample_public_update):
        _write(tmp_path / "content", "a.md", sample_public_update)
        out = tmp_path / "public" / "updates-index.json"

        write_index(build_index(tmp_path / "content", now=NOW), out)

        data = json.loads(out.read_text(encoding="utf-8"))
        assert data["indexVersion"] == 2
        assert data["total"] == 1
        assert data["generatedAt"].startswith("2025-06-01T00:00:00")
        item = data["items"][0]
        assert item["title"] == "Coil rewind"
        assert item["tags"] == ["coil", "hv"]
        assert item["status"] == "published"
        assert item["safety_level"] == "open"
        assert out.read_text(encoding="utf-8").endswith("\n")

    def test_no_temp_files_left(self, tmp_path):
        out = tmp_path / "index.json"
        write_index(build_index(tmp_path, now=NOW), out)
        assert [p.name for p in tmp_path.iterdir()] == ["index.json"]

    def test_failed_replace_keeps_previous_file(self, tmp_path):
        out = tmp_path / "index.json"
        out.write_text("previous", encoding="utf-8")

        artifact = build_index(tmp_path, now=NOW)

        with patch("src.content.index_builder.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(OSError):
                write_index(artifact, out)

        assert out.read_text(encoding="utf-8") == "previous"
        assert [p.name for p in tmp_path.iterdir()] == ["index.json"]
