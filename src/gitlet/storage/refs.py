"""HEAD and branch references.

HEAD is either symbolic (``ref: refs/heads/<name>``) or detached (a raw
commit hash). Branches are text files under .gitlet/refs/heads/ holding a
commit hash.
"""

import logging
import re
from pathlib import Path
from typing import List, Optional

from gitlet.constants import (
    BRANCH_NAME_PATTERN,
    BRANCH_REF_PREFIX,
    HASH_LENGTH,
    HEAD_FILE,
    HEADS_DIR,
    REFS_DIR,
    SYMBOLIC_REF_PREFIX,
)
from gitlet.errors import (
    CorruptStateError,
    DuplicateObjectError,
    InvalidStateError,
    NotFoundError,
)
from gitlet.storage.object_store import atomic_write

logger = logging.getLogger(__name__)

_BRANCH_NAME_RE = re.compile(rf"^{BRANCH_NAME_PATTERN}$")
_HASH_RE = re.compile(rf"^[0-9a-f]{{{HASH_LENGTH}}}$")


def validate_branch_name(name: str) -> str:
    """Check that a branch name is safe to use as a file name.

    Raises:
        InvalidStateError: If the name is empty or contains unsafe characters
    """
    if not _BRANCH_NAME_RE.match(name or "") or ".." in name:
        raise InvalidStateError(f"Invalid branch name: {name!r}")
    return name


class ReferenceStore:
    """Reads and writes HEAD and branch pointers.

    Attributes:
        gitlet_dir: Path to .gitlet directory
        head_path: Path to the HEAD file
        heads_dir: Directory holding one file per branch
    """

    def __init__(self, gitlet_dir: Path) -> None:
        self.gitlet_dir = Path(gitlet_dir)
        self.head_path = self.gitlet_dir / HEAD_FILE
        self.heads_dir = self.gitlet_dir / REFS_DIR / HEADS_DIR

    # HEAD

    def read_head(self) -> str:
        """Return the raw HEAD record, stripped.

        Raises:
            CorruptStateError: If HEAD is missing or empty
        """
        if not self.head_path.is_file():
            raise CorruptStateError("HEAD file is missing")
        content = self.head_path.read_text(encoding="utf-8").strip()
        if not content:
            raise CorruptStateError("HEAD file is empty")
        return content

    def current_branch(self) -> Optional[str]:
        """Name of the checked-out branch, or None when HEAD is detached.

        Raises:
            CorruptStateError: If HEAD is malformed
        """
        content = self.read_head()
        if content.startswith(SYMBOLIC_REF_PREFIX):
            target = content[len(SYMBOLIC_REF_PREFIX):].strip()
            if not target.startswith(BRANCH_REF_PREFIX):
                raise CorruptStateError(f"HEAD file content is invalid: {content}")
            name = target[len(BRANCH_REF_PREFIX):]
            if not _BRANCH_NAME_RE.match(name):
                raise CorruptStateError(f"HEAD file content is invalid: {content}")
            return name
        if not _HASH_RE.match(content):
            raise CorruptStateError(f"HEAD file content is invalid: {content}")
        return None

    def is_detached(self) -> bool:
        return self.current_branch() is None

    def resolve_head(self) -> str:
        """Dereference HEAD to a commit hash.

        Follows one level of symbolic indirection.

        Raises:
            CorruptStateError: If HEAD is malformed or names a missing branch
        """
        branch = self.current_branch()
        if branch is None:
            return self.read_head()
        try:
            return self.read_branch(branch)
        except NotFoundError as e:
            raise CorruptStateError(f"HEAD points at missing branch {branch}") from e

    def set_head_branch(self, name: str) -> None:
        """Make HEAD symbolic, pointing at the given branch."""
        validate_branch_name(name)
        self._write(self.head_path, f"{SYMBOLIC_REF_PREFIX}{BRANCH_REF_PREFIX}{name}")
        logger.debug("HEAD -> %s", name)

    def detach_head(self, commit_hash: str) -> None:
        """Point HEAD directly at a commit."""
        self._write(self.head_path, self._check_hash(commit_hash))
        logger.debug("HEAD detached at %s", commit_hash[:7])

    def update_head(self, commit_hash: str) -> None:
        """Move whatever HEAD designates to a new commit.

        Moves the active branch when HEAD is symbolic, HEAD itself otherwise.
        """
        branch = self.current_branch()
        if branch is None:
            self.detach_head(commit_hash)
        else:
            self.set_branch(branch, commit_hash)

    # Branches

    def branch_exists(self, name: str) -> bool:
        return _BRANCH_NAME_RE.match(name or "") is not None and (self.heads_dir / name).is_file()

    def read_branch(self, name: str) -> str:
        """Return the commit hash a branch points at.

        Raises:
            NotFoundError: If the branch does not exist
            CorruptStateError: If the branch file does not hold a hash
        """
        if not self.branch_exists(name):
            raise NotFoundError("A branch with that name does not exist.")
        content = (self.heads_dir / name).read_text(encoding="utf-8").strip()
        if not _HASH_RE.match(content):
            raise CorruptStateError(f"Branch {name} holds an invalid hash: {content!r}")
        return content

    def create_branch(self, name: str, commit_hash: str) -> None:
        """Create a new branch.

        Raises:
            InvalidStateError: If the name is not path-safe
            DuplicateObjectError: If the branch already exists
        """
        validate_branch_name(name)
        if self.branch_exists(name):
            raise DuplicateObjectError("A branch with that name already exists.")
        self.set_branch(name, commit_hash)

    def set_branch(self, name: str, commit_hash: str) -> None:
        """Point a branch (new or existing) at a commit."""
        validate_branch_name(name)
        self._write(self.heads_dir / name, self._check_hash(commit_hash))
        logger.debug("branch %s -> %s", name, commit_hash[:7])

    def delete_branch(self, name: str) -> None:
        """Delete a branch pointer; the commits it reached are kept.

        Raises:
            NotFoundError: If the branch does not exist
            InvalidStateError: If the branch is checked out
        """
        if not self.branch_exists(name):
            raise NotFoundError("A branch with that name does not exist.")
        if name == self.current_branch():
            raise InvalidStateError("Cannot remove the current branch.")
        (self.heads_dir / name).unlink()
        logger.debug("deleted branch %s", name)

    def list_branches(self) -> List[str]:
        """All branch names, sorted."""
        if not self.heads_dir.is_dir():
            return []
        return sorted(
            entry.name
            for entry in self.heads_dir.iterdir()
            if entry.is_file() and _BRANCH_NAME_RE.match(entry.name)
        )

    @staticmethod
    def _check_hash(commit_hash: str) -> str:
        if not _HASH_RE.match(commit_hash or ""):
            raise CorruptStateError(f"Not a commit hash: {commit_hash!r}")
        return commit_hash

    @staticmethod
    def _write(path: Path, content: str) -> None:
        atomic_write(path, content.encode("utf-8"))
