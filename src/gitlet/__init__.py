"""Gitlet - a miniature version-control engine.

Gitlet stores file snapshots in a content-addressed object store, keeps a
commit graph with branches, and reconciles branches with a three-way merge.
"""

__version__ = "0.1.0"
__author__ = "Gitlet Contributors"

__all__ = ["__version__", "__author__"]
