"""Filesystem snapshot provider."""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable

from .models import FileNode
from .tree import node_id

LOGGER = logging.getLogger(__name__)


class SnapshotScanner:
    """Build an immutable ``FileNode`` tree from a directory on disk."""

    def __init__(
        self,
        *,
        recursive: bool = True,
        include_hidden: bool = False,
        follow_symlinks: bool = False,
        exclude_names: Iterable[str] = (),
    ) -> None:
        self.recursive = recursive
        self.include_hidden = include_hidden
        self.follow_symlinks = follow_symlinks
        self.exclude_names = frozenset(exclude_names)

    def scan(self, root: Path) -> list[FileNode]:
        """Return the children of ``root`` as snapshot nodes.

        Args:
            root: Directory to scan.

        Returns:
            list[FileNode]: Nodes directly under ``root``, sorted by name.

        Raises:
            NotADirectoryError: If ``root`` is not a directory.
        """
        root = root.expanduser().resolve()
        if not root.is_dir():
            raise NotADirectoryError(f"Snapshot root is not a directory: {root}")
        return self._scan_directory(root)

    def _scan_directory(self, directory: Path) -> list[FileNode]:
        nodes: list[FileNode] = []
        try:
            entries = sorted(directory.iterdir(), key=lambda entry: entry.name)
        except OSError as exc:
            LOGGER.warning("Unable to list %s: %s", directory, exc)
            return nodes

        for entry in entries:
            if entry.name in self.exclude_names:
                continue
            if not self.include_hidden and entry.name.startswith("."):
                continue
            if entry.is_symlink() and not self.follow_symlinks:
                continue
            try:
                stat = entry.stat()
            except OSError as exc:
                LOGGER.warning("Skipping unreadable entry %s: %s", entry, exc)
                continue

            path = entry.as_posix()
            modified = datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc)
            created_ts = getattr(stat, "st_birthtime", stat.st_ctime)
            created = datetime.fromtimestamp(created_ts, tz=timezone.utc)

            if entry.is_dir():
                children = self._scan_directory(entry) if self.recursive else []
                nodes.append(
                    FileNode(
                        id=node_id(path),
                        name=entry.name,
                        path=path,
                        kind="folder",
                        children=children,
                        modified_at=modified,
                        created_at=created,
                    )
                )
            elif entry.is_file():
                nodes.append(
                    FileNode(
                        id=node_id(path),
                        name=entry.name,
                        path=path,
                        size_bytes=stat.st_size,
                        modified_at=modified,
                        created_at=created,
                    )
                )
        return nodes


def scan_root(root: Path | str, **options: Any) -> list[FileNode]:
    """Convenience wrapper returning ``SnapshotScanner(**options).scan(root)``."""

    return SnapshotScanner(**options).scan(Path(os.fspath(root)))


__all__ = ["SnapshotScanner", "scan_root"]
