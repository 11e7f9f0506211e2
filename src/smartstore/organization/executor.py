"""Executors that carry out (and revert) individual move operations."""

from __future__ import annotations

import logging
import posixpath
from pathlib import Path
from typing import Iterable, Literal, Protocol, runtime_checkable

from smartstore.history.models import HistoryEntry
from smartstore.snapshot.models import FileNode
from smartstore.snapshot.tree import build_tree, iter_tree, normalize_root

from .errors import MoveExecutionError
from .models import MoveOperation

LOGGER = logging.getLogger(__name__)


@runtime_checkable
class PlanExecutor(Protocol):
    """Capability used by the plan lifecycle to touch files."""

    def execute(self, operation: MoveOperation) -> None:
        """Move ``operation.source_path`` to ``operation.destination_path``."""

    def revert(self, entry: HistoryEntry) -> None:
        """Move a recorded entry back to its source path."""


class SimulatedExecutor:
    """Apply moves to an in-memory copy of a snapshot.

    Files are addressed by path; the folder tree is rebuilt on demand, so
    folders emptied by a move simply disappear from ``snapshot()``.
    """

    def __init__(self, snapshot: Iterable[FileNode], root_path: str) -> None:
        self._root = normalize_root(root_path)
        self._files: dict[str, FileNode] = {
            node.path: node for node in iter_tree(snapshot) if node.is_file
        }

    def execute(self, operation: MoveOperation) -> None:
        self._move(operation.source_path, operation.destination_path)

    def revert(self, entry: HistoryEntry) -> None:
        if entry.destination_path is None:
            raise MoveExecutionError(f"Entry {entry.id} has no destination to restore from.")
        self._move(entry.destination_path, entry.source_path)

    def snapshot(self) -> list[FileNode]:
        """Return the current simulated tree."""
        return build_tree(self._files.values(), self._root)

    def _move(self, source: str, destination: str) -> None:
        if source == destination:
            return
        node = self._files.get(source)
        if node is None:
            raise MoveExecutionError(f"Source path is missing: {source}")
        if destination in self._files:
            raise MoveExecutionError(f"Destination already exists: {destination}")
        del self._files[source]
        self._files[destination] = node.model_copy(
            update={"path": destination, "name": posixpath.basename(destination)}
        )


class FilesystemExecutor:
    """Apply moves on disk below a collection root."""

    def __init__(self, root: Path) -> None:
        self._root = root.expanduser().resolve()

    @property
    def root(self) -> Path:
        return self._root

    def execute(self, operation: MoveOperation) -> None:
        """Rename the source file into place, creating parent folders.

        Raises:
            MoveExecutionError: If the source is missing, outside the root, or
                the destination is taken.
            OSError: If the rename itself fails.
        """
        source = Path(operation.source_path)
        destination = Path(operation.destination_path)
        self._move(source, destination)

    def revert(self, entry: HistoryEntry) -> None:
        """Move an entry back and drop folders the undo left empty."""
        if entry.destination_path is None:
            raise MoveExecutionError(f"Entry {entry.id} has no destination to restore from.")
        current = Path(entry.destination_path)
        self._move(current, Path(entry.source_path))
        self._remove_empty_parents(current.parent)

    def _move(self, source: Path, destination: Path) -> None:
        self._validate_path(source)
        self._validate_path(destination)
        if not source.exists():
            raise MoveExecutionError(f"Source path is missing: {source}")
        if destination.exists() and destination != source:
            raise MoveExecutionError(f"Destination already exists: {destination}")
        destination.parent.mkdir(parents=True, exist_ok=True)
        source.rename(destination)
        LOGGER.debug("Moved %s -> %s", source, destination)

    def _validate_path(self, path: Path) -> None:
        resolved = path.parent.resolve() / path.name
        if self._root not in resolved.parents:
            raise MoveExecutionError(f"Path {path} is outside collection root {self._root}")

    def _remove_empty_parents(self, directory: Path) -> None:
        current = directory.resolve()
        while current != self._root and self._root in current.parents:
            try:
                current.rmdir()
            except OSError:
                return
            LOGGER.debug("Removed empty folder %s", current)
            current = current.parent


ExecutorKind = Literal["simulated", "filesystem"]


def create_executor(
    kind: ExecutorKind,
    *,
    root_path: str,
    snapshot: Iterable[FileNode] = (),
) -> SimulatedExecutor | FilesystemExecutor:
    """Select the executor implementation once, at startup.

    Args:
        kind: ``simulated`` for an in-memory run, ``filesystem`` for real moves.
        root_path: Organization root.
        snapshot: Initial tree for the simulated executor.

    Raises:
        ValueError: If ``kind`` is unknown.
    """

    if kind == "simulated":
        return SimulatedExecutor(snapshot, root_path)
    if kind == "filesystem":
        return FilesystemExecutor(Path(root_path))
    raise ValueError(f"Unknown executor kind: {kind!r}")


__all__ = [
    "ExecutorKind",
    "FilesystemExecutor",
    "PlanExecutor",
    "SimulatedExecutor",
    "create_executor",
]
