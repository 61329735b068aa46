"""CLI tests via typer's CliRunner."""

import base64
import json

from typer.testing import CliRunner

from src.cli import app

runner = CliRunner()


def test_help():
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "build-index" in result.output


def test_build_index(tmp_path, sample_public_update, sample_private_update):
    root = tmp_path / "updates"
    (root / "plasma-hardware").mkdir(parents=True)
    (root / "plasma-hardware" / "a.md").write_text(sample_public_update, encoding="utf-8")
    (root / "plasma-hardware" / "b.md").write_text(sample_private_update, encoding="utf-8")
    out = tmp_path / "public" / "updates-index.json"

    result = runner.invoke(app, ["build-index", str(root), "--out", str(out)])

    assert result.exit_code == 0, result.output
    assert "1 items" in result.output
    data = json.loads(out.read_text(encoding="utf-8"))
    assert data["total"] == 1
    assert data["items"][0]["slug"] == "a"


def test_build_index_missing_root(tmp_path):
    result = runner.invoke(
        app, ["build-index", str(tmp_path / "nope"), "--out", str(tmp_path / "i.json")]
    )
    assert result.exit_code == 1
    assert not (tmp_path / "i.json").exists()


def test_new_update(tmp_path):
    result = runner.invoke(app, [
        "new-update", "First Light",
        "--category", "plasma-hardware",
        "--summary", "It glows",
        "--tag", "glow", "--tag", "hv",
        "--root", str(tmp_path),
    ])

    assert result.exit_code == 0, result.output
    files = list((tmp_path / "plasma-hardware").glob("*-first-light.md"))
    assert len(files) == 1
    text = files[0].read_text(encoding="utf-8")
    assert text.startswith("---\n")
    assert "title: First Light" in text
    assert "Start writing here." in text


def test_new_update_refuses_to_overwrite(tmp_path):
    args = ["new-update", "Twice", "--category", "plasma-hardware", "--root", str(tmp_path)]
    assert runner.invoke(app, args).exit_code == 0
    assert runner.invoke(app, args).exit_code == 1


def test_new_update_unknown_category(tmp_path):
    result = runner.invoke(
        app, ["new-update", "T", "--category", "cooking", "--root", str(tmp_path)]
    )
    assert result.exit_code == 1
    assert not any(tmp_path.iterdir())


def test_check_encryption():
    result = runner.invoke(app, ["check-encryption"])
    assert result.exit_code == 0, result.output
    assert "OK" in result.output


def test_generate_key():
    result = runner.invoke(app, ["generate-key"])
    assert result.exit_code == 0
    assert len(base64.b64decode(result.output.strip())) == 32
