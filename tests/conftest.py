"""Pytest configuration and shared fixtures."""

from pathlib import Path

import pytest

from gitlet.constants import GITLET_DIR
from gitlet.core import Repository


class FakeClock:
    """Clock that advances one minute per reading.

    Commits made in the same second with the same message and snapshot would
    share a hash, so tests never rely on the wall clock.
    """

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        self.now += 60
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def workspace(tmp_path: Path) -> Path:
    """Create an empty workspace directory."""
    root = tmp_path / "workspace"
    root.mkdir()
    return root


@pytest.fixture
def gitlet_dir(workspace: Path) -> Path:
    """Create a bare .gitlet directory without the rest of the layout."""
    path = workspace / GITLET_DIR
    path.mkdir()
    return path


@pytest.fixture
def repo(workspace: Path, clock: FakeClock) -> Repository:
    """Create an initialized repository."""
    return Repository.init(workspace, clock=clock)


@pytest.fixture
def write_file(workspace: Path):
    """Return a helper that writes a working file under the workspace."""

    def _write(path: str, content: str) -> Path:
        target = workspace / path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
        return target

    return _write
