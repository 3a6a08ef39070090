"""Staging area management for Gitlet.

The staging area (index) records the intended state of each path in the next
commit: either a staged blob or a staged removal. The whole document is read
once per command, mutated in memory and written back once.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Set

from gitlet.constants import INDEX_FILE, INDEX_VERSION, STAGE_ADD, STAGE_REMOVE
from gitlet.errors import CorruptStateError, InvalidStateError
from gitlet.storage.object_store import atomic_write

logger = logging.getLogger(__name__)

Entries = Dict[str, Dict[str, Any]]


class StagingArea:
    """Manager for the staging area (index).

    Index format (JSON):
    {
        "version": 1,
        "entries": {
            "relative/path/to/file": {
                "action": "add",
                "blob_hash": "sha1...",
                "size_bytes": 1024
            },
            "deleted/file": {"action": "remove"}
        }
    }

    Attributes:
        gitlet_dir: Path to .gitlet directory
        index_path: Path to the index file (.gitlet/index)
    """

    def __init__(self, gitlet_dir: Path):
        """Initialize StagingArea.

        Args:
            gitlet_dir: Path to .gitlet directory

        Raises:
            InvalidStateError: If gitlet_dir doesn't exist
        """
        self.gitlet_dir = Path(gitlet_dir)
        self.index_path = self.gitlet_dir / INDEX_FILE

        if not self.gitlet_dir.exists():
            raise InvalidStateError("Not in an initialized Gitlet directory.")

    def load(self) -> Entries:
        """Load all entries from disk. A missing index reads as empty."""
        if not self.index_path.exists():
            return {}

        try:
            index = json.loads(self.index_path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise CorruptStateError(f"Corrupted index file: {e}") from e

        if not isinstance(index, dict) or index.get("version") != INDEX_VERSION:
            version = index.get("version") if isinstance(index, dict) else None
            raise CorruptStateError(f"Unsupported index version: {version}")

        entries = index.get("entries")
        if not isinstance(entries, dict):
            raise CorruptStateError("Corrupted index file: entries missing")
        return entries

    def save(self, entries: Entries) -> None:
        """Replace the whole index with the given entries."""
        index = {"version": INDEX_VERSION, "entries": dict(sorted(entries.items()))}
        data = json.dumps(index, indent=2, ensure_ascii=False)
        atomic_write(self.index_path, data.encode("utf-8"))
        logger.debug("saved index with %d entries", len(entries))

    def clear(self) -> None:
        """Clear all staged entries."""
        self.save({})

    def is_empty(self) -> bool:
        return not self.load()

    @staticmethod
    def stage(entries: Entries, path: str, blob_hash: str, size_bytes: int = 0) -> None:
        """Stage a blob for path, overwriting any earlier entry."""
        entries[path] = {
            "action": STAGE_ADD,
            "blob_hash": blob_hash,
            "size_bytes": size_bytes,
        }

    @staticmethod
    def unstage(entries: Entries, path: str) -> bool:
        """Drop the entry for path. Returns True if there was one."""
        return entries.pop(path, None) is not None

    @staticmethod
    def mark_removal(entries: Entries, path: str) -> None:
        """Stage the removal of path from the next commit."""
        entries[path] = {"action": STAGE_REMOVE}

    @staticmethod
    def additions(entries: Entries) -> Dict[str, str]:
        """Paths staged with a blob, mapped to the blob hash."""
        return {
            path: entry["blob_hash"]
            for path, entry in entries.items()
            if entry.get("action") == STAGE_ADD
        }

    @staticmethod
    def removals(entries: Entries) -> Set[str]:
        """Paths staged for removal."""
        return {
            path for path, entry in entries.items() if entry.get("action") == STAGE_REMOVE
        }
