"""Commit graph traversal.

Commits form a DAG through their first/second parent links. All walks here
are iterative with an explicit queue and visited set, so history depth is
not bounded by the interpreter's recursion limit.
"""

import logging
from collections import deque
from typing import Dict, Iterator, List, Optional, Set, Tuple

from gitlet.errors import NotFoundError
from gitlet.storage.commit import Commit
from gitlet.storage.object_store import ObjectStore

logger = logging.getLogger(__name__)


class CommitGraph:
    """Read-only view of the commit DAG stored in an ObjectStore.

    Parent links are cached per instance; commits are immutable so the cache
    never goes stale.
    """

    def __init__(self, object_store: ObjectStore) -> None:
        self.object_store = object_store
        self._parents: Dict[str, List[str]] = {}

    def parents(self, commit_hash: str) -> List[str]:
        """Parent hashes of a commit, first parent first."""
        if commit_hash not in self._parents:
            self._parents[commit_hash] = self.object_store.read_commit(commit_hash).parents
        return self._parents[commit_hash]

    def ancestors(self, commit_hash: str) -> Iterator[str]:
        """Yield the commit and every ancestor, breadth first.

        First parents are queued before second parents; each commit is
        yielded once.
        """
        for ancestor, _ in self._walk(commit_hash):
            yield ancestor

    def distances(self, commit_hash: str) -> Dict[str, int]:
        """Map every ancestor (including the commit itself) to its BFS depth."""
        return dict(self._walk(commit_hash))

    def first_parent_history(self, commit_hash: str) -> Iterator[Commit]:
        """Yield commits from commit_hash back to the root along first parents."""
        current: Optional[str] = commit_hash
        while current is not None:
            commit = self.object_store.read_commit(current)
            yield commit
            current = commit.first_parent

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        return any(c == ancestor for c in self.ancestors(descendant))

    def find_split_point(self, current: str, given: str) -> str:
        """Find the best common ancestor of two commits.

        A best common ancestor is a common ancestor that is not itself an
        ancestor of another common ancestor. Criss-cross histories can have
        several; the one closest to ``current``, then closest to ``given``,
        then smallest by hash is returned.

        Raises:
            NotFoundError: If the commits share no ancestor
        """
        current_depths = self.distances(current)
        given_depths = self.distances(given)
        common = [c for c in current_depths if c in given_depths]
        if not common:
            raise NotFoundError(f"No common ancestor for {current[:7]} and {given[:7]}")

        # Anything reachable from a common ancestor (besides itself) is dominated.
        dominated: Set[str] = set()
        for candidate in common:
            if candidate in dominated:
                continue
            queue = deque(self.parents(candidate))
            while queue:
                ancestor = queue.popleft()
                if ancestor in dominated:
                    continue
                dominated.add(ancestor)
                queue.extend(self.parents(ancestor))

        best = [c for c in common if c not in dominated]
        split = min(best, key=lambda c: (current_depths[c], given_depths[c], c))
        logger.debug(
            "split point of %s and %s is %s (%d candidate(s))",
            current[:7], given[:7], split[:7], len(best),
        )
        return split

    def _walk(self, commit_hash: str) -> Iterator[Tuple[str, int]]:
        visited: Set[str] = {commit_hash}
        queue = deque([(commit_hash, 0)])
        while queue:
            node, depth = queue.popleft()
            yield node, depth
            for parent in self.parents(node):
                if parent not in visited:
                    visited.add(parent)
                    queue.append((parent, depth + 1))
