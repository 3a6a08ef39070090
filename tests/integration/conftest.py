"""Fixtures for CLI integration tests."""

from pathlib import Path

import pytest
from typer.testing import CliRunner

from gitlet.cli.main import app


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def cli_workspace(workspace: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Run every command from inside the workspace directory."""
    monkeypatch.chdir(workspace)
    return workspace


@pytest.fixture
def initialized_repo(runner: CliRunner, cli_workspace: Path) -> Path:
    """Create a workspace with an initialized Gitlet repository.

    Returns:
        Path: Path to the workspace root
    """
    result = runner.invoke(app, ["init"])
    if result.exit_code != 0 or result.stdout:
        raise RuntimeError(f"Failed to initialize repo: {result.stdout}")
    return cli_workspace


@pytest.fixture
def gitlet(runner: CliRunner):
    """Invoke the CLI and return the result; every command exits 0."""

    def _invoke(*args: str):
        result = runner.invoke(app, list(args))
        assert result.exit_code == 0, result.stdout
        return result

    return _invoke
