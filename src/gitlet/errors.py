"""Error taxonomy for Gitlet.

Every error is terminal to the command that raised it. The CLI prints the
message and stops; nothing inside the engine retries or recovers.
"""

from typing import Iterable, Optional


class GitletError(Exception):
    """Base class for every error reported to the user."""


class NotFoundError(GitletError):
    """Raised when a file, commit, blob or branch does not exist."""


class AmbiguousOrNotFoundError(GitletError):
    """Raised when an abbreviated commit id matches zero or several commits."""


class DuplicateObjectError(GitletError):
    """Raised when creating something that already exists.

    Covers re-initializing a repository, re-creating a branch and writing a
    commit whose hash is already stored.
    """


class InvalidStateError(GitletError):
    """Raised when the repository state forbids the requested operation."""


class CorruptStateError(InvalidStateError):
    """Raised when HEAD, a ref, the index or a commit record is malformed."""


class UntrackedOverwriteError(GitletError):
    """Raised when a checkout, reset or merge would clobber an untracked file."""

    def __init__(self, paths: Iterable[str], message: Optional[str] = None) -> None:
        self.paths = sorted(paths)
        super().__init__(
            message
            or "There is an untracked file in the way; delete it, or add and commit it first."
        )
