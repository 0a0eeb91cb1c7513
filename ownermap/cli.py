"""CLI entrypoint for ownermap."""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import NoReturn, Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from ownermap.config import Config, load_config
from ownermap.errors import OwnershipError

app = typer.Typer(
    name="ownermap",
    help="Resolve MAINTAINERS ownership for directories, patches, and pull requests.",
    add_completion=False,
)
console = Console()


def _setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False, rich_tracebacks=True)],
    )


def _config(
    root: Optional[str],
    email: Optional[str],
    handle: Optional[str],
    config_file: Optional[str],
) -> Config:
    return load_config(
        config_path=config_file,
        overrides={"repo_root": root, "user_email": email, "user_handle": handle},
    )


def _fail(message: str) -> NoReturn:
    console.print(f"[red]Error: {escape(message)}[/red]")
    raise typer.Exit(1)


def _identity(cfg: Config) -> tuple[str, str]:
    email, handle = cfg.identity()
    if not email and not handle:
        _fail("Provide --email or --handle (or set OWNERMAP_EMAIL / OWNERMAP_HANDLE)")
    return email, handle


# ---------------------------------------------------------------------------
# mine
# ---------------------------------------------------------------------------

@app.command()
def mine(
    root: str = typer.Option(None, "--root", help="Repository root to scan"),
    email: str = typer.Option(None, "--email", help="Acting user's email"),
    handle: str = typer.Option(None, "--handle", help="Acting user's handle"),
    config_file: str = typer.Option(None, "--config", help="Path to config YAML"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """List the directories you are entitled to act on."""
    _setup_logging(verbose)
    cfg = _config(root, email, handle, config_file)
    user_email, user_handle = _identity(cfg)

    from ownermap.tree import build_ownership_set

    try:
        owned = build_ownership_set(
            cfg.repo_root,
            user_email,
            user_handle,
            file_name=cfg.maintainers_file,
            exclude_inactive=cfg.exclude_inactive,
        )
    except OwnershipError as e:
        _fail(str(e))

    if not owned:
        console.print("[yellow]You do not own any directory in this tree.[/yellow]")
        return
    for path in sorted(owned):
        console.print(path)


# ---------------------------------------------------------------------------
# reviewers
# ---------------------------------------------------------------------------

@app.command()
def reviewers(
    patch: str = typer.Argument(..., help="Path to a diff/patch file, or - for stdin"),
    root: str = typer.Option(None, "--root", help="Repository root to scan"),
    config_file: str = typer.Option(None, "--config", help="Path to config YAML"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Show the maintainers who should review each file of a patch."""
    _setup_logging(verbose)
    cfg = _config(root, None, None, config_file)

    from ownermap.review import resolve_reviewers, reviewers_summary
    from ownermap.tree import build_directory_owners

    patch_bytes = _read_patch(patch)
    try:
        owners = build_directory_owners(
            cfg.repo_root,
            file_name=cfg.maintainers_file,
            exclude_inactive=cfg.exclude_inactive,
        )
        reviewer_map = resolve_reviewers(patch_bytes, owners)
    except OwnershipError as e:
        _fail(str(e))

    if not reviewer_map:
        console.print("[yellow]No files found in the patch.[/yellow]")
        return

    table = Table(title="Reviewers")
    table.add_column("File", style="cyan")
    table.add_column("Maintainers", style="green")
    for path, maintainers in sorted(reviewer_map.items()):
        table.add_row(path, ", ".join(m.display() for m in maintainers) or "-")
    console.print(table)

    summary = reviewers_summary(reviewer_map)
    if summary:
        console.print("")
        for who, files in summary.items():
            console.print(f"[bold]{who}[/bold]: {len(files)} file(s)")


def _read_patch(patch: str) -> bytes:
    if patch == "-":
        return sys.stdin.buffer.read()
    patch_path = Path(patch)
    if not patch_path.exists():
        _fail(f"Patch file not found: {patch}")
    return patch_path.read_bytes()


# ---------------------------------------------------------------------------
# filter
# ---------------------------------------------------------------------------

@app.command(name="filter")
def filter_changes(
    changes_file: str = typer.Argument(..., help="JSON file listing changes and their files"),
    show_all: bool = typer.Option(False, "--all", help="Show every change, owned or not"),
    root: str = typer.Option(None, "--root", help="Repository root to scan"),
    email: str = typer.Option(None, "--email", help="Acting user's email"),
    handle: str = typer.Option(None, "--handle", help="Acting user's handle"),
    config_file: str = typer.Option(None, "--config", help="Path to config YAML"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """List the changes that touch directories you own."""
    _setup_logging(verbose)
    cfg = _config(root, email, handle, config_file)
    user_email, user_handle = ("", "") if show_all else _identity(cfg)

    from ownermap.change_filter import filter_by_ownership
    from ownermap.tree import build_ownership_set

    changes = _load_changes(changes_file)
    try:
        owned = frozenset() if show_all else build_ownership_set(
            cfg.repo_root,
            user_email,
            user_handle,
            file_name=cfg.maintainers_file,
            exclude_inactive=cfg.exclude_inactive,
        )
    except OwnershipError as e:
        _fail(str(e))

    kept = filter_by_ownership(changes, owned, lambda c: c.files, show_all=show_all)
    if not kept:
        console.print("[yellow]No changes to look at.[/yellow]")
        return

    table = Table(title="Changes")
    table.add_column("#", style="cyan", justify="right")
    table.add_column("Title")
    table.add_column("Author", style="green")
    for change in kept:
        table.add_row(str(change.number), change.title, change.author)
    console.print(table)


def _load_changes(path: str) -> list:
    """Load a JSON list of ``{"number", "title", "author", "files"}`` objects."""
    from ownermap.schemas import Change

    changes_path = Path(path)
    if not changes_path.exists():
        _fail(f"Changes file not found: {path}")
    try:
        data = json.loads(changes_path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        _fail(f"Invalid JSON in {path}: {e}")
    if not isinstance(data, list):
        _fail(f"Expected a JSON list of changes in {path}")
    try:
        return [Change.model_validate(item) for item in data]
    except ValidationError as e:
        _fail(f"Invalid change in {path}: {e}")


# ---------------------------------------------------------------------------
# check
# ---------------------------------------------------------------------------

@app.command()
def check(
    path: str = typer.Argument("MAINTAINERS", help="MAINTAINERS file to parse"),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
) -> None:
    """Parse a MAINTAINERS file and print its records."""
    _setup_logging(verbose)

    from ownermap.records import parse_maintainers_file

    file_path = Path(path)
    if not file_path.exists():
        _fail(f"File not found: {path}")
    try:
        records = parse_maintainers_file(file_path.read_text(encoding="utf-8"), path)
    except UnicodeDecodeError as e:
        _fail(f"{path} is not valid UTF-8: {e}")
    except OwnershipError as e:
        _fail(str(e))

    table = Table(title=path)
    table.add_column("Name")
    table.add_column("Email", style="cyan")
    table.add_column("Handle", style="green")
    table.add_column("Target")
    table.add_column("Active", justify="center")
    for r in records:
        table.add_row(r.full_name, r.email, r.username, r.target, "yes" if r.active else "no")
    console.print(table)


if __name__ == "__main__":
    app()
