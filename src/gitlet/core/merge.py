"""Three-way merge between the current branch and a given branch.

Every path present in the split point, the current tip or the given tip is
resolved independently. The whole plan is computed and checked against
untracked files before anything on disk changes.
"""

import logging
from typing import Callable, List, Mapping, Optional

from gitlet.constants import CONFLICT_HEADER, CONFLICT_SEPARATOR, CONFLICT_TRAILER
from gitlet.core.graph import CommitGraph
from gitlet.core.staging import Entries, StagingArea
from gitlet.core.working_tree import WorkingTree
from gitlet.errors import InvalidStateError, NotFoundError
from gitlet.storage.object_store import ObjectStore
from gitlet.storage.refs import ReferenceStore

logger = logging.getLogger(__name__)

ACTION_TAKE_GIVEN = "take"
ACTION_DELETE = "delete"
ACTION_CONFLICT = "conflict"

RESULT_ALREADY_MERGED = "ancestor"
RESULT_FAST_FORWARD = "fast-forward"
RESULT_MERGED = "merged"


class MergeAction:
    """One change the merge makes to a path.

    Attributes:
        path: Relative file path
        kind: ACTION_TAKE_GIVEN, ACTION_DELETE or ACTION_CONFLICT
        current_hash: Blob hash on the current side (None if absent)
        given_hash: Blob hash on the given side (None if absent)
    """

    def __init__(
        self,
        path: str,
        kind: str,
        current_hash: Optional[str] = None,
        given_hash: Optional[str] = None,
    ):
        self.path = path
        self.kind = kind
        self.current_hash = current_hash
        self.given_hash = given_hash

    @property
    def writes_file(self) -> bool:
        return self.kind in (ACTION_TAKE_GIVEN, ACTION_CONFLICT)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MergeAction):
            return NotImplemented
        return (self.path, self.kind, self.current_hash, self.given_hash) == (
            other.path, other.kind, other.current_hash, other.given_hash,
        )

    def __repr__(self) -> str:
        return f"MergeAction({self.path}: {self.kind})"


class MergeResult:
    """Outcome of a merge.

    Attributes:
        kind: RESULT_ALREADY_MERGED, RESULT_FAST_FORWARD or RESULT_MERGED
        split_point: Hash of the common ancestor used as merge base
        commit_id: New merge commit (RESULT_MERGED), or the tip the branch
            now points at
        conflicts: Paths written with conflict markers
    """

    def __init__(
        self,
        kind: str,
        split_point: str,
        commit_id: str,
        conflicts: Optional[List[str]] = None,
    ):
        self.kind = kind
        self.split_point = split_point
        self.commit_id = commit_id
        self.conflicts = sorted(conflicts or [])

    @property
    def conflicted(self) -> bool:
        return bool(self.conflicts)


def plan_merge(
    split_files: Mapping[str, str],
    current_files: Mapping[str, str],
    given_files: Mapping[str, str],
) -> List[MergeAction]:
    """Resolve every path of a three-way merge.

    A missing path compares as None, so additions and deletions follow the
    same rules as modifications:

        current == given              keep current
        split == current != given     take given (delete if given lacks it)
        split == given != current     keep current
        all three differ              conflict

    Returns:
        Actions for paths that change, sorted by path
    """
    actions: List[MergeAction] = []
    paths = set(split_files) | set(current_files) | set(given_files)
    for path in sorted(paths):
        split_hash = split_files.get(path)
        current_hash = current_files.get(path)
        given_hash = given_files.get(path)

        if current_hash == given_hash or split_hash == given_hash:
            continue
        if split_hash == current_hash:
            kind = ACTION_TAKE_GIVEN if given_hash is not None else ACTION_DELETE
        else:
            kind = ACTION_CONFLICT
        actions.append(MergeAction(path, kind, current_hash, given_hash))
    return actions


class MergeEngine:
    """Merges a named branch into the checked-out branch.

    The final commit goes through the repository's ordinary commit path,
    passed in as ``commit``: ``commit(message, second_parent) -> hash``.
    """

    def __init__(
        self,
        object_store: ObjectStore,
        refs: ReferenceStore,
        staging: StagingArea,
        working_tree: WorkingTree,
        graph: CommitGraph,
        commit: Callable[[str, str], str],
    ):
        self.object_store = object_store
        self.refs = refs
        self.staging = staging
        self.working_tree = working_tree
        self.graph = graph
        self._commit = commit

    def merge(self, given_branch: str) -> MergeResult:
        """Merge given_branch into the current branch.

        Raises:
            InvalidStateError: Uncommitted changes, detached HEAD, or merging
                a branch into itself
            NotFoundError: If given_branch does not exist
            UntrackedOverwriteError: If the merge would clobber an untracked
                file; nothing is modified in that case
        """
        entries = self.staging.load()
        if entries:
            raise InvalidStateError("You have uncommitted changes.")

        current_branch = self.refs.current_branch()
        if current_branch is None:
            raise InvalidStateError("Cannot merge into a detached HEAD.")
        if not self.refs.branch_exists(given_branch):
            raise NotFoundError("A branch with that name does not exist.")
        if given_branch == current_branch:
            raise InvalidStateError("Cannot merge a branch with itself.")

        current_id = self.refs.resolve_head()
        given_id = self.refs.read_branch(given_branch)
        split_id = self.graph.find_split_point(current_id, given_id)

        if split_id == given_id:
            logger.info("%s already contains %s", current_branch, given_branch)
            return MergeResult(RESULT_ALREADY_MERGED, split_id, current_id)

        current = self.object_store.read_commit(current_id)
        given = self.object_store.read_commit(given_id)

        if split_id == current_id:
            self.working_tree.check_untracked_overwrite(given.files, current.files, entries)
            self.working_tree.checkout_commit(current.files, given.files)
            self.refs.set_branch(current_branch, given_id)
            logger.info("fast-forwarded %s to %s", current_branch, given_id[:7])
            return MergeResult(RESULT_FAST_FORWARD, split_id, given_id)

        split = self.object_store.read_commit(split_id)
        actions = plan_merge(split.files, current.files, given.files)
        self.working_tree.check_untracked_overwrite(
            [a.path for a in actions if a.writes_file], current.files, entries
        )

        conflicts = self._apply(actions, entries)
        self.staging.save(entries)

        message = f"Merged {given_branch} into {current_branch}."
        commit_id = self._commit(message, given_id)
        logger.info("merge commit %s (%d conflict(s))", commit_id[:7], len(conflicts))
        return MergeResult(RESULT_MERGED, split_id, commit_id, conflicts)

    def conflict_content(self, current_hash: Optional[str], given_hash: Optional[str]) -> bytes:
        """Build the marked file for a conflicted path; a missing side is empty."""
        current = self.object_store.read_blob(current_hash) if current_hash else b""
        given = self.object_store.read_blob(given_hash) if given_hash else b""
        return CONFLICT_HEADER + current + CONFLICT_SEPARATOR + given + CONFLICT_TRAILER

    def _apply(self, actions: List[MergeAction], entries: Entries) -> List[str]:
        conflicts: List[str] = []
        # Deletions first so a written file can take the place of a directory.
        ordered = sorted(actions, key=lambda a: (a.writes_file, a.path))
        for action in ordered:
            logger.debug("merge %s: %s", action.path, action.kind)
            if action.kind == ACTION_TAKE_GIVEN:
                content = self.object_store.read_blob(action.given_hash)
                self.working_tree.write_file(action.path, content)
                self.staging.stage(entries, action.path, action.given_hash, len(content))
            elif action.kind == ACTION_DELETE:
                self.working_tree.remove(action.path)
                self.staging.mark_removal(entries, action.path)
            else:
                content = self.conflict_content(action.current_hash, action.given_hash)
                self.working_tree.write_file(action.path, content)
                blob_hash = self.object_store.write_blob(content)
                self.staging.stage(entries, action.path, blob_hash, len(content))
                conflicts.append(action.path)
        return conflicts
