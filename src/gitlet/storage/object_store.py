"""Content-addressable object storage for Gitlet.

This module implements a Git-like object store using SHA-1 hashing for
content addressing. Blobs and commits live in separate trees under .gitlet/,
each sharded by the first two characters of the object hash.
"""

import hashlib
import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Iterator, List

from gitlet.constants import (
    BLOBS_DIR,
    COMMITS_DIR,
    HASH_ALGORITHM,
    HASH_LENGTH,
    MIN_PREFIX_LENGTH,
    SHARD_LENGTH,
)
from gitlet.errors import (
    AmbiguousOrNotFoundError,
    CorruptStateError,
    DuplicateObjectError,
    NotFoundError,
)
from gitlet.storage.commit import Commit

logger = logging.getLogger(__name__)

_HEX_RE = re.compile(r"^[0-9a-f]+$")
_TMP_PREFIX = ".tmp_"


def compute_hash(content: bytes) -> str:
    """Compute the SHA-1 hash of raw content.

    Args:
        content: Binary data to hash

    Returns:
        Hex string of hash (40 characters for SHA-1)
    """
    hasher = hashlib.new(HASH_ALGORITHM)
    hasher.update(content)
    return hasher.hexdigest()


def atomic_write(path: Path, data: bytes) -> None:
    """Write bytes to path via a temp file in the same directory + rename."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=_TMP_PREFIX)
    try:
        with os.fdopen(tmp_fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise


class ObjectStore:
    """Content-addressable storage for blobs and commits.

    Storage layout:
        .gitlet/blobs/<hash[:2]>/<hash>      # Raw file content
        .gitlet/commits/<hash[:2]>/<hash>    # Commit record (JSON)

    Attributes:
        gitlet_dir: Path to the .gitlet directory
        blobs_dir: Path to the blob tree
        commits_dir: Path to the commit tree

    Example:
        >>> store = ObjectStore(Path(".gitlet"))
        >>> blob_hash = store.write_blob(b"hello\\n")
        >>> assert store.read_blob(blob_hash) == b"hello\\n"
    """

    def __init__(self, gitlet_dir: Path) -> None:
        """Initialize the object store.

        Args:
            gitlet_dir: Path to .gitlet directory

        Raises:
            NotFoundError: If gitlet_dir doesn't exist
        """
        self.gitlet_dir = Path(gitlet_dir)
        self.blobs_dir = self.gitlet_dir / BLOBS_DIR
        self.commits_dir = self.gitlet_dir / COMMITS_DIR

        if not self.gitlet_dir.exists():
            raise NotFoundError(f"Gitlet directory not found: {gitlet_dir}")

    # Blobs

    def write_blob(self, content: bytes) -> str:
        """Write a blob to the object store.

        If a blob with the same hash already exists, returns the hash without
        writing (content addressing makes this a cache hit).

        Args:
            content: Binary content to store

        Returns:
            SHA-1 hash of the content (40 hex characters)

        Example:
            >>> hash1 = store.write_blob(b"data")
            >>> hash2 = store.write_blob(b"data")
            >>> assert hash1 == hash2
        """
        blob_hash = compute_hash(content)
        blob_path = self._object_path(self.blobs_dir, blob_hash)
        if blob_path.exists():
            logger.debug("blob %s already stored", blob_hash[:7])
            return blob_hash

        atomic_write(blob_path, content)
        logger.debug("stored blob %s (%d bytes)", blob_hash[:7], len(content))
        return blob_hash

    def read_blob(self, blob_hash: str) -> bytes:
        """Read a blob from the object store.

        Args:
            blob_hash: SHA-1 hash of the blob

        Returns:
            Binary content of the blob

        Raises:
            NotFoundError: If the shard directory or blob file is missing
        """
        blob_path = self._existing_object_path(self.blobs_dir, blob_hash, "Blob")
        return blob_path.read_bytes()

    def blob_exists(self, blob_hash: str) -> bool:
        """Check if a blob exists in the store."""
        if not self._is_full_hash(blob_hash):
            return False
        return self._object_path(self.blobs_dir, blob_hash).is_file()

    # Commits

    def write_commit(self, commit: Commit) -> str:
        """Persist a commit record.

        Commits are write-once; storing the same hash twice is an error.

        Args:
            commit: Commit to persist

        Returns:
            The commit hash

        Raises:
            DuplicateObjectError: If a commit with that hash is already stored
        """
        commit_path = self._object_path(self.commits_dir, commit.hash)
        if commit_path.exists():
            raise DuplicateObjectError(f"Commit already exists: {commit.hash}")

        json_str = json.dumps(commit.to_dict(), indent=2, ensure_ascii=False)
        atomic_write(commit_path, json_str.encode("utf-8"))
        logger.debug("stored commit %s %r", commit.hash[:7], commit.message)
        return commit.hash

    def read_commit(self, commit_hash: str) -> Commit:
        """Read a commit record by its full hash.

        Raises:
            NotFoundError: If the commit is not stored
            CorruptStateError: If the record is unreadable or its hash is wrong
        """
        commit_path = self._existing_object_path(self.commits_dir, commit_hash, "Commit")
        try:
            data = json.loads(commit_path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise CorruptStateError(f"Corrupted commit file {commit_hash}: {e}") from e

        commit = Commit.from_dict(data)
        if commit.hash != commit_hash:
            raise CorruptStateError(
                f"Commit hash mismatch: expected {commit_hash}, got {commit.hash}"
            )
        return commit

    def commit_exists(self, commit_hash: str) -> bool:
        """Check if a commit exists in the store."""
        if not self._is_full_hash(commit_hash):
            return False
        return self._object_path(self.commits_dir, commit_hash).is_file()

    def resolve_commit_id(self, commit_id: str) -> str:
        """Expand a (possibly abbreviated) commit id to the full hash.

        A prefix must be at least MIN_PREFIX_LENGTH characters. Only the
        shard directory named by its first two characters is scanned, and
        exactly one stored commit may match.

        Args:
            commit_id: Full hash or prefix

        Returns:
            Full 40-character commit hash

        Raises:
            AmbiguousOrNotFoundError: If zero or several commits match
        """
        commit_id = commit_id.strip().lower()
        if len(commit_id) < MIN_PREFIX_LENGTH or len(commit_id) > HASH_LENGTH:
            raise AmbiguousOrNotFoundError("No commit with that id exists.")
        if not _HEX_RE.match(commit_id):
            raise AmbiguousOrNotFoundError("No commit with that id exists.")

        if len(commit_id) == HASH_LENGTH:
            if self.commit_exists(commit_id):
                return commit_id
            raise AmbiguousOrNotFoundError("No commit with that id exists.")

        shard_dir = self.commits_dir / commit_id[:SHARD_LENGTH]
        matches: List[str] = []
        if shard_dir.is_dir():
            matches = [
                entry.name
                for entry in shard_dir.iterdir()
                if entry.is_file() and entry.name.startswith(commit_id)
            ]

        if len(matches) != 1:
            logger.debug("prefix %s matched %d commits", commit_id, len(matches))
            raise AmbiguousOrNotFoundError("No commit with that id exists.")
        return matches[0]

    def iter_commit_ids(self) -> Iterator[str]:
        """Yield the hash of every stored commit, in shard order."""
        if not self.commits_dir.is_dir():
            return
        for shard_dir in sorted(self.commits_dir.iterdir()):
            if not shard_dir.is_dir():
                continue
            for entry in sorted(shard_dir.iterdir()):
                if entry.is_file() and not entry.name.startswith(_TMP_PREFIX):
                    yield entry.name

    # Paths

    def _object_path(self, root: Path, object_hash: str) -> Path:
        """Get the filesystem path for an object: <root>/<hash[:2]>/<hash>."""
        return root / object_hash[:SHARD_LENGTH] / object_hash

    def _existing_object_path(self, root: Path, object_hash: str, kind: str) -> Path:
        if not self._is_full_hash(object_hash):
            raise NotFoundError(f"{kind} not found: {object_hash}")

        shard_dir = root / object_hash[:SHARD_LENGTH]
        if not shard_dir.is_dir():
            raise NotFoundError(f"{kind} not found: {object_hash} (no shard {shard_dir.name})")

        object_path = shard_dir / object_hash
        if not object_path.is_file():
            raise NotFoundError(f"{kind} not found: {object_hash}")
        return object_path

    @staticmethod
    def _is_full_hash(object_hash: str) -> bool:
        return (
            isinstance(object_hash, str)
            and len(object_hash) == HASH_LENGTH
            and _HEX_RE.match(object_hash) is not None
        )
