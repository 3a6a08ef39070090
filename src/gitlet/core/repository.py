"""Repository facade: one method per Gitlet command.

A Repository owns the per-invocation state (object store, references,
staging area, working tree, commit graph) for one workspace. Nothing here is
process-global; every command builds its own Repository.
"""

import logging
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterator, List, Optional

from gitlet.constants import (
    BLOBS_DIR,
    COMMITS_DIR,
    DEFAULT_BRANCH,
    GITLET_DIR,
    HEADS_DIR,
    LOG_DATE_FORMAT,
    LOG_SEPARATOR,
    REFS_DIR,
)
from gitlet.core.graph import CommitGraph
from gitlet.core.merge import MergeEngine, MergeResult
from gitlet.core.staging import StagingArea
from gitlet.core.working_tree import STATUS_UNTRACKED, WorkingTree
from gitlet.errors import (
    AmbiguousOrNotFoundError,
    DuplicateObjectError,
    InvalidStateError,
    NotFoundError,
)
from gitlet.storage.commit import Commit
from gitlet.storage.object_store import ObjectStore, compute_hash
from gitlet.storage.refs import ReferenceStore, validate_branch_name

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


def format_commit(commit: Commit) -> str:
    """Render a commit the way log and global-log print it."""
    lines = [LOG_SEPARATOR, f"commit {commit.hash}"]
    if commit.is_merge:
        lines.append(f"Merge: {commit.first_parent[:7]} {commit.second_parent[:7]}")
    date = datetime.fromtimestamp(commit.timestamp, tz=timezone.utc).astimezone()
    lines.append(f"Date: {date.strftime(LOG_DATE_FORMAT)}")
    lines.append(commit.message)
    return "\n".join(lines) + "\n"


class StatusReport:
    """Everything the status command shows, each section sorted.

    Attributes:
        branches: All branch names
        current_branch: Checked-out branch, None when HEAD is detached
        staged: Paths staged for addition
        removed: Paths staged for removal
        modified: Unstaged modifications as "path (modified)" / "path (deleted)"
        untracked: Working files neither tracked nor staged
    """

    def __init__(
        self,
        branches: List[str],
        current_branch: Optional[str],
        staged: List[str],
        removed: List[str],
        modified: List[str],
        untracked: List[str],
    ):
        self.branches = branches
        self.current_branch = current_branch
        self.staged = staged
        self.removed = removed
        self.modified = modified
        self.untracked = untracked


class Repository:
    """A Gitlet repository rooted at a workspace directory.

    Attributes:
        workspace_root: Root directory of the workspace
        gitlet_dir: Path to the .gitlet directory
        clock: Returns the current time in epoch seconds
    """

    def __init__(self, workspace_root: Path, clock: Clock = time.time) -> None:
        """Open an existing repository.

        Raises:
            InvalidStateError: If workspace_root holds no .gitlet directory
        """
        self.workspace_root = Path(workspace_root)
        self.gitlet_dir = self.workspace_root / GITLET_DIR
        self.clock = clock

        if not self.gitlet_dir.is_dir():
            raise InvalidStateError("Not in an initialized Gitlet directory.")

        self.object_store = ObjectStore(self.gitlet_dir)
        self.refs = ReferenceStore(self.gitlet_dir)
        self.staging = StagingArea(self.gitlet_dir)
        self.working_tree = WorkingTree(self.workspace_root, self.object_store, self.staging)
        self.graph = CommitGraph(self.object_store)

    @classmethod
    def init(cls, workspace_root: Path, clock: Clock = time.time) -> "Repository":
        """Create .gitlet/ with the root commit on the default branch.

        Raises:
            DuplicateObjectError: If a repository already exists here
        """
        gitlet_dir = Path(workspace_root) / GITLET_DIR
        if gitlet_dir.exists():
            raise DuplicateObjectError(
                "A Gitlet version-control system already exists in the current directory."
            )

        gitlet_dir.mkdir(parents=True)
        (gitlet_dir / BLOBS_DIR).mkdir()
        (gitlet_dir / COMMITS_DIR).mkdir()
        (gitlet_dir / REFS_DIR / HEADS_DIR).mkdir(parents=True)

        repo = cls(workspace_root, clock)
        root = Commit.initial()
        repo.object_store.write_commit(root)
        repo.refs.set_branch(DEFAULT_BRANCH, root.hash)
        repo.refs.set_head_branch(DEFAULT_BRANCH)
        repo.staging.clear()
        logger.info("initialized repository in %s", gitlet_dir)
        return repo

    # Helpers

    def head_commit(self) -> Commit:
        return self.object_store.read_commit(self.refs.resolve_head())

    def resolve_commit(self, commit_id: str) -> Commit:
        """Load a commit from a full or abbreviated id.

        Raises:
            NotFoundError: If no single commit matches
        """
        try:
            full_hash = self.object_store.resolve_commit_id(commit_id)
        except AmbiguousOrNotFoundError as e:
            raise NotFoundError("No commit with that id exists.") from e
        return self.object_store.read_commit(full_hash)

    def normalize_path(self, path: str) -> str:
        """Turn a user-supplied path into a workspace-relative POSIX path.

        Raises:
            InvalidStateError: If the path leaves the workspace or points into
                .gitlet/
        """
        root = self.workspace_root.resolve()
        absolute = (root / path).resolve()
        try:
            relative = absolute.relative_to(root)
        except ValueError:
            raise InvalidStateError(f"Path {path} is outside the workspace {root}")
        rel_path = relative.as_posix()
        if rel_path == "." or rel_path.split("/")[0] == GITLET_DIR:
            raise InvalidStateError(f"Cannot track {path}")
        return rel_path

    # Commands

    def add(self, path: str) -> bool:
        """Stage the working copy of a file.

        A file identical to the current commit's version is unstaged instead
        (this also cancels a staged removal).

        Returns:
            True if the file is now staged for addition

        Raises:
            NotFoundError: If the file does not exist
        """
        rel_path = self.normalize_path(path)
        if not self.working_tree.exists(rel_path):
            raise NotFoundError("File does not exist.")

        content = self.working_tree.read_file(rel_path)
        blob_hash = compute_hash(content)
        entries = self.staging.load()

        if self.head_commit().files.get(rel_path) == blob_hash:
            self.staging.unstage(entries, rel_path)
            staged = False
        else:
            self.object_store.write_blob(content)
            self.staging.stage(entries, rel_path, blob_hash, len(content))
            staged = True

        self.staging.save(entries)
        return staged

    def commit(
        self,
        message: str,
        second_parent: Optional[str] = None,
        allow_empty: bool = False,
    ) -> Commit:
        """Snapshot the staged changes on top of HEAD.

        The new snapshot is the parent's minus staged removals plus staged
        additions. HEAD's branch (or HEAD itself when detached) moves to the
        new commit and the staging area is cleared.

        Raises:
            InvalidStateError: Empty message, or nothing staged
            DuplicateObjectError: If an identical commit already exists
        """
        if not message or not message.strip():
            raise InvalidStateError("Please enter a commit message.")

        entries = self.staging.load()
        if not entries and not allow_empty:
            raise InvalidStateError("No changes added to the commit.")

        parent = self.head_commit()
        files = dict(parent.files)
        for path in StagingArea.removals(entries):
            files.pop(path, None)
        files.update(StagingArea.additions(entries))

        new_commit = Commit(
            message=message,
            timestamp=int(self.clock()),
            files=files,
            first_parent=parent.hash,
            second_parent=second_parent,
        )
        self.object_store.write_commit(new_commit)
        self.refs.update_head(new_commit.hash)
        self.staging.clear()
        logger.info("committed %s %r", new_commit.hash[:7], message)
        return new_commit

    def rm(self, path: str) -> None:
        """Unstage a file, and stage its removal if the current commit tracks it.

        A tracked file is also deleted from the working tree.

        Raises:
            InvalidStateError: If the file is neither staged nor tracked
        """
        rel_path = self.normalize_path(path)
        entries = self.staging.load()
        was_staged = self.staging.unstage(entries, rel_path)
        tracked = rel_path in self.head_commit().files

        if not was_staged and not tracked:
            raise InvalidStateError("No reason to remove the file.")

        if tracked:
            self.staging.mark_removal(entries, rel_path)
            self.working_tree.remove(rel_path)

        self.staging.save(entries)

    def log(self) -> Iterator[Commit]:
        """Commits from HEAD back to the root, following first parents."""
        return self.graph.first_parent_history(self.refs.resolve_head())

    def global_log(self) -> Iterator[Commit]:
        """Every commit ever made, in no particular order."""
        for commit_hash in self.object_store.iter_commit_ids():
            yield self.object_store.read_commit(commit_hash)

    def find(self, message: str) -> List[str]:
        """Ids of all commits whose message is exactly message.

        Raises:
            NotFoundError: If there are none
        """
        matches = sorted(c.hash for c in self.global_log() if c.message == message)
        if not matches:
            raise NotFoundError("Found no commit with that message.")
        return matches

    def status(self) -> StatusReport:
        head = self.head_commit()
        entries = self.staging.load()
        statuses = self.working_tree.classify(head.files, entries, self.working_tree.snapshot())

        return StatusReport(
            branches=self.refs.list_branches(),
            current_branch=self.refs.current_branch(),
            staged=sorted(StagingArea.additions(entries)),
            removed=sorted(StagingArea.removals(entries)),
            modified=sorted(
                f"{path} ({status})"
                for path, status in statuses.items()
                if status != STATUS_UNTRACKED
            ),
            untracked=sorted(
                path for path, status in statuses.items() if status == STATUS_UNTRACKED
            ),
        )

    def checkout_file(self, path: str) -> None:
        """Restore a file from the head commit without staging it."""
        self._checkout_file_from(self.head_commit(), path)

    def checkout_commit_file(self, commit_id: str, path: str) -> None:
        """Restore a file from the given (possibly abbreviated) commit."""
        self._checkout_file_from(self.resolve_commit(commit_id), path)

    def checkout_branch(self, name: str) -> None:
        """Switch to a branch, rewriting the working tree to its tip.

        Raises:
            NotFoundError: If the branch does not exist
            InvalidStateError: If it is already checked out
            UntrackedOverwriteError: If an untracked file would be overwritten
        """
        if not self.refs.branch_exists(name):
            raise NotFoundError("No such branch exists.")
        if self.refs.current_branch() == name:
            raise InvalidStateError("No need to checkout the current branch.")

        target = self.object_store.read_commit(self.refs.read_branch(name))
        self._move_working_tree(target)
        self.refs.set_head_branch(name)
        logger.info("switched to branch %s", name)

    def branch(self, name: str) -> None:
        """Create a branch at the head commit without switching to it."""
        validate_branch_name(name)
        self.refs.create_branch(name, self.refs.resolve_head())

    def rm_branch(self, name: str) -> None:
        self.refs.delete_branch(name)

    def reset(self, commit_id: str) -> None:
        """Check out an arbitrary commit and move the current branch to it.

        Raises:
            NotFoundError: If no commit matches commit_id
            UntrackedOverwriteError: If an untracked file would be overwritten
        """
        target = self.resolve_commit(commit_id)
        self._move_working_tree(target)
        self.refs.update_head(target.hash)
        logger.info("reset to %s", target.hash[:7])

    def merge(self, branch: str) -> MergeResult:
        engine = MergeEngine(
            object_store=self.object_store,
            refs=self.refs,
            staging=self.staging,
            working_tree=self.working_tree,
            graph=self.graph,
            commit=self._merge_commit,
        )
        return engine.merge(branch)

    # Internals

    def _merge_commit(self, message: str, second_parent: str) -> str:
        return self.commit(message, second_parent=second_parent, allow_empty=True).hash

    def _checkout_file_from(self, commit: Commit, path: str) -> None:
        rel_path = self.normalize_path(path)
        blob_hash = commit.files.get(rel_path)
        if blob_hash is None:
            raise NotFoundError("File does not exist in that commit.")
        # The file itself is overwritten unconditionally; untracked files
        # blocking its directory or nested under it are not.
        self.working_tree.check_untracked_overwrite(
            [rel_path], self.head_commit().files, self.staging.load(), exact=False
        )
        self.working_tree.materialize(rel_path, blob_hash)

    def _move_working_tree(self, target: Commit) -> None:
        current = self.head_commit()
        entries = self.staging.load()
        self.working_tree.check_untracked_overwrite(target.files, current.files, entries)
        self.working_tree.checkout_commit(current.files, target.files)
