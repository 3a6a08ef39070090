"""Storage layer for Gitlet.

This module provides the content-addressable object store, commit records
and the HEAD/branch reference store.
"""

from gitlet.storage.commit import Commit, compute_commit_hash
from gitlet.storage.object_store import ObjectStore, atomic_write, compute_hash
from gitlet.storage.refs import ReferenceStore, validate_branch_name

__all__ = [
    "Commit",
    "compute_commit_hash",
    "ObjectStore",
    "atomic_write",
    "compute_hash",
    "ReferenceStore",
    "validate_branch_name",
]
