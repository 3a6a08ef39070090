"""Main CLI entry point for Gitlet."""

import sys
from pathlib import Path
from typing import List, Optional

import click
import typer
from rich.console import Console
from rich.markup import escape
from typer.core import TyperCommand

from gitlet.constants import EXIT_STATUS
from gitlet.core import Repository, format_commit
from gitlet.core.merge import RESULT_ALREADY_MERGED, RESULT_FAST_FORWARD
from gitlet.errors import GitletError
from gitlet.logging_config import configure_logging, resolve_level

console = Console()
app = typer.Typer(
    name="gitlet",
    help="A miniature version-control system",
    add_completion=False,
)


class RawArgsCommand(TyperCommand):
    """Command that records its unparsed arguments in ``ctx.meta``.

    Click drops a bare ``--`` while parsing, but checkout needs it to tell
    ``checkout -- <file>`` from ``checkout <branch>``.
    """

    def parse_args(self, ctx: click.Context, args: List[str]) -> List[str]:
        ctx.meta["raw_args"] = list(args)
        return super().parse_args(ctx, args)


def _report(message: str) -> None:
    """Print a one-line failure message and stop the command."""
    console.print(escape(message), style="red", soft_wrap=True)
    raise typer.Exit(EXIT_STATUS)


def _open_repository() -> Repository:
    return Repository(Path.cwd())


@app.callback()
def callback(
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Log engine activity to stderr",
    ),
) -> None:
    """A miniature version-control system."""
    configure_logging(resolve_level(verbose))


@app.command()
def init() -> None:
    """Initialize a Gitlet repository in the current directory."""
    try:
        Repository.init(Path.cwd())
    except GitletError as e:
        _report(str(e))


@app.command()
def add(file: str = typer.Argument(..., help="File to stage")) -> None:
    """Add a file to the staging area."""
    try:
        _open_repository().add(file)
    except GitletError as e:
        _report(str(e))


@app.command()
def commit(
    message: Optional[str] = typer.Argument(None, help="Commit message"),
) -> None:
    """Commit staged files as a snapshot."""
    try:
        _open_repository().commit(message or "")
    except GitletError as e:
        _report(str(e))


@app.command()
def rm(file: str = typer.Argument(..., help="File to unstage or remove")) -> None:
    """Unstage a file, or stage its removal if it is tracked."""
    try:
        _open_repository().rm(file)
    except GitletError as e:
        _report(str(e))


@app.command()
def log() -> None:
    """Show history from HEAD along first parents."""
    try:
        for entry in _open_repository().log():
            typer.echo(format_commit(entry))
    except GitletError as e:
        _report(str(e))


@app.command("global-log")
def global_log() -> None:
    """Show every commit ever made."""
    try:
        for entry in _open_repository().global_log():
            typer.echo(format_commit(entry))
    except GitletError as e:
        _report(str(e))


@app.command()
def find(message: str = typer.Argument(..., help="Exact commit message")) -> None:
    """Print the ids of all commits with the given message."""
    try:
        for commit_id in _open_repository().find(message):
            typer.echo(commit_id)
    except GitletError as e:
        _report(str(e))


@app.command()
def status() -> None:
    """Show branches, staged changes and working-tree status."""
    try:
        report = _open_repository().status()
    except GitletError as e:
        _report(str(e))
        return

    typer.echo("=== Branches ===")
    for branch in report.branches:
        marker = "*" if branch == report.current_branch else ""
        typer.echo(f"{marker}{branch}")
    typer.echo()

    sections = [
        ("Staged Files", report.staged),
        ("Removed Files", report.removed),
        ("Modifications Not Staged For Commit", report.modified),
        ("Untracked Files", report.untracked),
    ]
    for title, paths in sections:
        typer.echo(f"=== {title} ===")
        for path in paths:
            typer.echo(path)
        typer.echo()


@app.command(
    cls=RawArgsCommand,
    context_settings={"ignore_unknown_options": True},
)
def checkout(
    ctx: typer.Context,
    operands: Optional[List[str]] = typer.Argument(
        None,
        help="-- <file> | <commit> -- <file> | <branch>",
    ),
) -> None:
    """Restore a file, or switch branches."""
    args = ctx.meta.get("raw_args", operands or [])
    try:
        repo = _open_repository()
        if len(args) == 2 and args[0] == "--":
            repo.checkout_file(args[1])
        elif len(args) == 3 and args[1] == "--":
            repo.checkout_commit_file(args[0], args[2])
        elif len(args) == 1 and args[0] != "--":
            repo.checkout_branch(args[0])
        else:
            _report("Incorrect operands.")
    except GitletError as e:
        _report(str(e))


@app.command()
def branch(name: str = typer.Argument(..., help="New branch name")) -> None:
    """Create a branch at the current commit."""
    try:
        _open_repository().branch(name)
    except GitletError as e:
        _report(str(e))


@app.command("rm-branch")
def rm_branch(name: str = typer.Argument(..., help="Branch to delete")) -> None:
    """Delete a branch pointer."""
    try:
        _open_repository().rm_branch(name)
    except GitletError as e:
        _report(str(e))


@app.command()
def reset(commit_id: str = typer.Argument(..., help="Commit id (abbreviations allowed)")) -> None:
    """Check out a commit and move the current branch to it."""
    try:
        _open_repository().reset(commit_id)
    except GitletError as e:
        _report(str(e))


@app.command()
def merge(branch_name: str = typer.Argument(..., metavar="BRANCH", help="Branch to merge in")) -> None:
    """Merge a branch into the current branch."""
    try:
        result = _open_repository().merge(branch_name)
    except GitletError as e:
        _report(str(e))
        return

    if result.kind == RESULT_ALREADY_MERGED:
        typer.echo("Given branch is an ancestor of the current branch.")
    elif result.kind == RESULT_FAST_FORWARD:
        typer.echo("Current branch fast-forwarded.")
    elif result.conflicted:
        typer.echo("Encountered a merge conflict.")


def main() -> None:
    """Entry point for the CLI.

    Argument-count problems print one line instead of click's usage text,
    and every outcome exits with EXIT_STATUS.
    """
    command = typer.main.get_command(app)
    args = sys.argv[1:]
    if not args:
        console.print("Please enter a command.")
        sys.exit(EXIT_STATUS)
    if not args[0].startswith("-") and args[0] not in command.commands:
        console.print("No command with that name exists.")
        sys.exit(EXIT_STATUS)

    try:
        command.main(args=args, prog_name="gitlet", standalone_mode=False)
    except click.UsageError:
        console.print("Incorrect operands.")
    sys.exit(EXIT_STATUS)


if __name__ == "__main__":
    main()
