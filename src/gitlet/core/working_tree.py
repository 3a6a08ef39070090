"""Working-tree synchronization for Gitlet.

Compares the files on disk with the staged and committed state, and writes
committed blobs back to disk on checkout, reset and merge.
"""

import logging
import shutil
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Mapping, Set

from gitlet.constants import GITLET_DIR
from gitlet.core.staging import Entries, StagingArea
from gitlet.errors import UntrackedOverwriteError
from gitlet.storage.object_store import ObjectStore, compute_hash

logger = logging.getLogger(__name__)

STATUS_MODIFIED = "modified"
STATUS_DELETED = "deleted"
STATUS_UNTRACKED = "untracked"


def parent_paths(path: str) -> List[str]:
    """Directory prefixes of a relative path: "a/b/c.txt" -> ["a", "a/b"]."""
    parts = path.split("/")
    return ["/".join(parts[:i]) for i in range(1, len(parts))]


class WorkingTree:
    """The user's files under the workspace root.

    Paths are POSIX strings relative to the workspace root. Everything below
    .gitlet/ is invisible to the working tree.

    Attributes:
        workspace_root: Root directory of the workspace
        object_store: Store used to read blobs back out
        staging: Staging area cleared by checkout_commit
    """

    def __init__(self, workspace_root: Path, object_store: ObjectStore, staging: StagingArea):
        self.workspace_root = Path(workspace_root)
        self.gitlet_dir = self.workspace_root / GITLET_DIR
        self.object_store = object_store
        self.staging = staging

    def iter_files(self) -> Iterator[str]:
        """Yield the relative path of every plain file in the working tree."""
        for item in sorted(self.workspace_root.rglob("*")):
            if self._is_gitlet_path(item) or not item.is_file():
                continue
            yield item.relative_to(self.workspace_root).as_posix()

    def snapshot(self) -> Dict[str, str]:
        """Hash every working file. Nothing is cached between calls."""
        return {path: self.hash_file(path) for path in self.iter_files()}

    def hash_file(self, path: str) -> str:
        return compute_hash(self.path_for(path).read_bytes())

    def read_file(self, path: str) -> bytes:
        return self.path_for(path).read_bytes()

    def exists(self, path: str) -> bool:
        return self.path_for(path).is_file()

    def path_for(self, path: str) -> Path:
        return self.workspace_root / path

    def classify(
        self,
        commit_files: Mapping[str, str],
        entries: Entries,
        snapshot: Mapping[str, str],
    ) -> Dict[str, str]:
        """Classify every path whose working copy disagrees with the index.

        Precedence:
            1. tracked, changed on disk, no staging entry -> modified
            2. tracked, gone from disk, not staged for removal -> deleted
            3. staged for addition, gone from disk -> deleted
            4. staged for addition, different on disk -> modified
            5. on disk, neither tracked nor staged -> untracked

        Unmodified paths are left out of the result.

        Args:
            commit_files: Snapshot of the current commit (path -> blob hash)
            entries: Loaded staging entries
            snapshot: Working tree snapshot (path -> blob hash)

        Returns:
            Mapping of path to one of STATUS_MODIFIED, STATUS_DELETED,
            STATUS_UNTRACKED
        """
        additions = StagingArea.additions(entries)
        removals = StagingArea.removals(entries)
        statuses: Dict[str, str] = {}

        for path, blob_hash in commit_files.items():
            if path in snapshot:
                if snapshot[path] != blob_hash and path not in entries:
                    statuses[path] = STATUS_MODIFIED
            elif path not in removals:
                statuses[path] = STATUS_DELETED

        for path, blob_hash in additions.items():
            if path in statuses:
                continue
            if path not in snapshot:
                statuses[path] = STATUS_DELETED
            elif snapshot[path] != blob_hash:
                statuses[path] = STATUS_MODIFIED

        for path in self.untracked(commit_files, entries, snapshot):
            statuses.setdefault(path, STATUS_UNTRACKED)

        return statuses

    @staticmethod
    def untracked(
        commit_files: Mapping[str, str],
        entries: Entries,
        snapshot: Iterable[str],
    ) -> Set[str]:
        """Working files absent from both the current commit and the index."""
        return {path for path in snapshot if path not in commit_files and path not in entries}

    def check_untracked_overwrite(
        self,
        paths: Iterable[str],
        commit_files: Mapping[str, str],
        entries: Entries,
        exact: bool = True,
    ) -> None:
        """Refuse to continue if writing paths would destroy an untracked file.

        An untracked file is in the way when it sits at a target path, at a
        directory prefix of a target path, or below a target path that is a
        directory on disk. Must run before the first file is touched.

        Args:
            paths: Paths about to be written
            commit_files: Snapshot of the current commit
            entries: Loaded staging entries
            exact: Whether an untracked file at the target path itself counts

        Raises:
            UntrackedOverwriteError: Listing the untracked paths in the way
        """
        untracked = self.untracked(commit_files, entries, self.iter_files())
        in_the_way: Set[str] = set()
        for path in paths:
            if exact and path in untracked:
                in_the_way.add(path)
            in_the_way.update(p for p in parent_paths(path) if p in untracked)
            prefix = path + "/"
            in_the_way.update(p for p in untracked if p.startswith(prefix))

        if in_the_way:
            logger.debug("untracked files in the way: %s", sorted(in_the_way))
            raise UntrackedOverwriteError(in_the_way)

    def materialize(self, path: str, blob_hash: str) -> None:
        """Write a blob to path, overwriting whatever is there."""
        self.write_file(path, self.object_store.read_blob(blob_hash))

    def write_file(self, path: str, content: bytes) -> None:
        """Write content to path, clearing whatever occupies its location.

        A file standing where a parent directory must go, or a directory
        standing where the file must go, is deleted. Callers run
        check_untracked_overwrite first so only tracked or staged files are
        lost this way.
        """
        self._make_room(path)
        target = self.path_for(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(content)
        logger.debug("wrote %s (%d bytes)", path, len(content))

    def remove(self, path: str) -> None:
        """Delete a working file if present and prune emptied directories."""
        target = self.path_for(path)
        if not target.is_file():
            return
        target.unlink()
        logger.debug("deleted %s", path)

        parent = target.parent
        while parent != self.workspace_root and not any(parent.iterdir()):
            parent.rmdir()
            parent = parent.parent

    def checkout_commit(
        self,
        current_files: Mapping[str, str],
        target_files: Mapping[str, str],
    ) -> None:
        """Make the working tree match target_files and clear the index.

        Files tracked by current_files but absent from the target are
        deleted first, so a file can replace a directory and the other way
        round. Files whose working copy already has the target hash are not
        rewritten; untracked files are left alone. Callers run
        check_untracked_overwrite first.
        """
        for path in sorted(current_files):
            if path not in target_files:
                self.remove(path)

        for path, blob_hash in sorted(target_files.items()):
            if self.exists(path) and self.hash_file(path) == blob_hash:
                continue
            self.materialize(path, blob_hash)

        self.staging.clear()

    def _make_room(self, path: str) -> None:
        for parent in parent_paths(path):
            blocker = self.path_for(parent)
            if blocker.is_file() or blocker.is_symlink():
                blocker.unlink()
                logger.debug("deleted %s to make room for %s", parent, path)
                break

        target = self.path_for(path)
        if target.is_dir() and not target.is_symlink():
            shutil.rmtree(target)
            logger.debug("deleted directory %s to make room for a file", path)

    def _is_gitlet_path(self, item: Path) -> bool:
        try:
            item.relative_to(self.gitlet_dir)
            return True
        except ValueError:
            return False
