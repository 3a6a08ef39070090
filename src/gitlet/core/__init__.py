"""Core engine layer for Gitlet.

This module provides the version-control logic: staging, commit graph
traversal, working-tree synchronization, merging and the repository facade.
"""

from gitlet.core.graph import CommitGraph
from gitlet.core.merge import MergeEngine, MergeResult, plan_merge
from gitlet.core.repository import Repository, StatusReport, format_commit
from gitlet.core.staging import StagingArea
from gitlet.core.working_tree import WorkingTree

__all__ = [
    "CommitGraph",
    "MergeEngine",
    "MergeResult",
    "plan_merge",
    "Repository",
    "StatusReport",
    "format_commit",
    "StagingArea",
    "WorkingTree",
]
