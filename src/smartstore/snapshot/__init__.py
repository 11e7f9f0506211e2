"""Snapshot models and providers consumed by the organizer."""

from .discovery import SnapshotScanner, scan_root
from .models import FileNode
from .tree import build_tree, flatten_tree, iter_tree, node_id, normalize_root

__all__ = [
    "FileNode",
    "SnapshotScanner",
    "build_tree",
    "flatten_tree",
    "iter_tree",
    "node_id",
    "normalize_root",
    "scan_root",
]
