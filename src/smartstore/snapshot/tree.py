"""Helpers for traversing and rebuilding snapshot trees."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Iterable, Iterator

from .models import FileNode

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def node_id(path: str) -> str:
    """Return a stable identifier for the entry at ``path``."""

    return uuid.uuid5(uuid.NAMESPACE_URL, f"smartstore:{path}").hex


def normalize_root(root_path: str) -> str:
    """Return ``root_path`` without trailing separators (``/`` becomes ``""``)."""

    return root_path.replace("\\", "/").rstrip("/")


def iter_tree(nodes: Iterable[FileNode]) -> Iterator[FileNode]:
    """Yield every node of the given forest in pre-order."""

    for node in nodes:
        yield node
        yield from iter_tree(node.children)


def flatten_tree(nodes: Iterable[FileNode]) -> list[FileNode]:
    """Return every node of the given forest as a pre-order list."""

    return list(iter_tree(nodes))


class _FolderDraft:
    __slots__ = ("name", "path", "entries")

    def __init__(self, name: str, path: str) -> None:
        self.name = name
        self.path = path
        self.entries: dict[str, _FolderDraft | FileNode] = {}

    def folder(self, name: str) -> "_FolderDraft":
        existing = self.entries.get(name)
        if isinstance(existing, _FolderDraft):
            return existing
        if existing is not None:
            raise ValueError(f"Cannot create folder over existing file: {self.path}/{name}")
        draft = _FolderDraft(name, f"{self.path}/{name}")
        self.entries[name] = draft
        return draft

    def freeze(self) -> list[FileNode]:
        nodes: list[FileNode] = []
        for entry in self.entries.values():
            if isinstance(entry, FileNode):
                nodes.append(entry)
                continue
            children = entry.freeze()
            files = [node for node in iter_tree(children) if node.is_file]
            nodes.append(
                FileNode(
                    id=node_id(entry.path),
                    name=entry.name,
                    path=entry.path,
                    kind="folder",
                    children=children,
                    modified_at=max((node.modified_at for node in files), default=_EPOCH),
                    created_at=min((node.created_at for node in files), default=_EPOCH),
                )
            )
        return nodes


def build_tree(files: Iterable[FileNode], root_path: str) -> list[FileNode]:
    """Rebuild a folder forest from file nodes located under ``root_path``.

    Intermediate folders are created in first-seen order and carry the summed
    size of their descendants.

    Args:
        files: File nodes whose ``path`` lies below ``root_path``.
        root_path: Absolute root the returned forest hangs from.

    Returns:
        list[FileNode]: Top-level nodes directly below the root.

    Raises:
        ValueError: If a file lies outside the root or two entries collide.
    """

    root = normalize_root(root_path)
    top = _FolderDraft("", root)
    for file in files:
        if not file.is_file:
            continue
        prefix = f"{root}/"
        if not file.path.startswith(prefix):
            raise ValueError(f"{file.path} is outside root {root or '/'}")
        segments = [segment for segment in file.path[len(prefix) :].split("/") if segment]
        folder = top
        for segment in segments[:-1]:
            folder = folder.folder(segment)
        if segments[-1] in folder.entries:
            raise ValueError(f"Duplicate entry in snapshot: {file.path}")
        folder.entries[segments[-1]] = file
    return top.freeze()


__all__ = [
    "build_tree",
    "flatten_tree",
    "iter_tree",
    "node_id",
    "normalize_root",
]
