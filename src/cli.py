"""CLI entrypoint: offline content tooling and encryption checks"""

import base64
import secrets
from pathlib import Path, PurePosixPath
from typing import Annotated, List, Optional

import typer

from src.config import get_settings
from src.content.authoring import new_update
from src.content.frontmatter import render_document
from src.content.index_builder import build_index, write_index
from src.errors import EncryptionError
from src.kernel.crypto.token_cipher import TokenCipher, load_key
from src.logging_config import configure_logging

app = typer.Typer(name="workspace", no_args_is_help=True, help="Lab workspace content tools")


@app.callback()
def main(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log at DEBUG level")] = False,
):
    settings = get_settings()
    configure_logging(
        log_level="DEBUG" if verbose else "WARNING",
        environment=settings.environment,
        debug=verbose,
    )


def _fail(msg: str, cause: Exception = None) -> None:
    """Print a user-friendly error to stderr and exit 1."""
    typer.echo(f"Error: {msg}", err=True)
    if cause:
        typer.echo(f"  {cause}", err=True)
    raise typer.Exit(1)


@app.command(name="build-index")
def build_index_cmd(
    root: Annotated[Optional[Path], typer.Argument(help="Directory of Markdown updates")] = None,
    out: Annotated[Optional[Path], typer.Option("--out", help="Index file to write")] = None,
):
    """Build the JSON index of public updates."""
    settings = get_settings()
    root = root or Path(settings.content_root)
    out = out or Path(settings.index_output)
    try:
        artifact = build_index(root)
    except FileNotFoundError as e:
        _fail(str(e))
    try:
        write_index(artifact, out)
    except OSError as e:
        _fail(f"Could not write {out}", e)
    typer.echo(f"Built index ({artifact.total} items) -> {out}")


@app.command(name="new-update")
def new_update_cmd(
    title: Annotated[str, typer.Argument(help="Update title")],
    category: Annotated[str, typer.Option("--category", "-c", help="Update category")],
    summary: Annotated[str, typer.Option("--summary", help="One-line summary")] = "",
    tags: Annotated[Optional[List[str]], typer.Option("--tag", help="Tag (repeatable)")] = None,
    root: Annotated[Optional[Path], typer.Option("--root", help="Updates directory")] = None,
):
    """Create a dated update file from the starter template."""
    settings = get_settings()
    try:
        path, document = new_update(
            title,
            category,
            categories=settings.update_categories,
            summary=summary,
            tags=tags or [],
        )
    except ValueError as e:
        _fail(str(e))

    target = (root or Path(settings.content_root)) / category / PurePosixPath(path).name
    if target.exists():
        _fail(f"{target} already exists")
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(render_document(document), encoding="utf-8")
    typer.echo(f"Created {target}")


@app.command(name="check-encryption")
def check_encryption_cmd():
    """Round-trip a sample value through the configured token cipher."""
    settings = get_settings()
    try:
        cipher = TokenCipher(load_key(settings.github_token_encryption_key, settings.environment))
    except EncryptionError as e:
        _fail(e.message)
    if not cipher.self_test():
        _fail("Token cipher self-test failed")
    typer.echo("Token encryption OK")


@app.command(name="generate-key")
def generate_key_cmd():
    """Print a new GITHUB_TOKEN_ENCRYPTION_KEY value."""
    typer.echo(base64.b64encode(secrets.token_bytes(32)).decode("ascii"))


if __name__ == "__main__":
    app()
