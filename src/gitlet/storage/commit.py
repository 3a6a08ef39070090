"""Commit records and their serialization.

A commit is an immutable snapshot of tracked files (path -> blob hash) plus
links to its parents. Its identity is a SHA-1 digest over the message, the
timestamp and the canonical serialization of the snapshot.
"""

import hashlib
import json
from typing import Any, Dict, List, Mapping, Optional

from gitlet.constants import (
    HASH_ALGORITHM,
    INITIAL_COMMIT_MESSAGE,
    INITIAL_COMMIT_TIMESTAMP,
)
from gitlet.errors import CorruptStateError


def compute_commit_hash(message: str, timestamp: int, files: Mapping[str, str]) -> str:
    """Compute the SHA-1 identity of a commit.

    Hash is computed over the canonical JSON representation (sorted keys,
    no whitespace) of the message, timestamp and snapshot. Parents are not
    part of the identity.

    Args:
        message: Commit message
        timestamp: Epoch seconds
        files: Mapping of path to blob hash

    Returns:
        SHA-1 hash as hex string (40 characters)
    """
    canonical_json = json.dumps(
        {"message": message, "timestamp": timestamp, "files": dict(files)},
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
    )
    hasher = hashlib.new(HASH_ALGORITHM)
    hasher.update(canonical_json.encode("utf-8"))
    return hasher.hexdigest()


class Commit:
    """An immutable commit record.

    Attributes:
        message: Free-text commit message
        timestamp: Creation time in epoch seconds (0 for the root commit)
        files: Snapshot mapping of path to blob hash
        first_parent: Hash of the first parent, None only for the root
        second_parent: Hash of the merged-in branch tip, merge commits only
        hash: SHA-1 identity (40 hex characters)
    """

    def __init__(
        self,
        message: str,
        timestamp: int,
        files: Optional[Mapping[str, str]] = None,
        first_parent: Optional[str] = None,
        second_parent: Optional[str] = None,
    ):
        self.message = message
        self.timestamp = int(timestamp)
        self.files: Dict[str, str] = dict(files or {})
        self.first_parent = first_parent
        self.second_parent = second_parent
        self.hash = compute_commit_hash(self.message, self.timestamp, self.files)

    @classmethod
    def initial(cls) -> "Commit":
        """Build the root commit shared by every repository."""
        return cls(INITIAL_COMMIT_MESSAGE, INITIAL_COMMIT_TIMESTAMP)

    @property
    def parents(self) -> List[str]:
        """Parent hashes, first parent first."""
        return [p for p in (self.first_parent, self.second_parent) if p is not None]

    @property
    def is_merge(self) -> bool:
        return self.second_parent is not None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the on-disk dictionary representation."""
        return {
            "hash": self.hash,
            "message": self.message,
            "timestamp": self.timestamp,
            "parents": [self.first_parent, self.second_parent],
            "files": dict(sorted(self.files.items())),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Commit":
        """Rebuild a commit from its dictionary form.

        Raises:
            CorruptStateError: If fields are missing or the stored hash does
                not match the recomputed one
        """
        try:
            first_parent, second_parent = data["parents"]
            commit = cls(
                message=data["message"],
                timestamp=data["timestamp"],
                files=data["files"],
                first_parent=first_parent,
                second_parent=second_parent,
            )
        except (KeyError, TypeError, ValueError) as e:
            raise CorruptStateError(f"Malformed commit record: {e}") from e

        stored_hash = data.get("hash")
        if stored_hash != commit.hash:
            raise CorruptStateError(
                f"Commit hash mismatch: expected {stored_hash}, got {commit.hash}"
            )
        return commit

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Commit):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __hash__(self) -> int:
        return hash(self.hash)

    def __repr__(self) -> str:
        return f"Commit({self.hash[:7]} {self.message!r})"
