"""Snapshot models describing files and folders handed to the organizer."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from smartstore.classification import Category, classify, get_extension


def _now() -> datetime:
    return datetime.now(timezone.utc)


class FileNode(BaseModel):
    """Immutable view of a file or folder inside a snapshot.

    Attributes:
        id: Opaque identifier, stable for the lifetime of the snapshot provider.
        name: Base name of the entry.
        path: Absolute ``/``-delimited path of the entry.
        kind: Either ``file`` or ``folder``.
        category: Semantic file category (files only).
        size_bytes: File size, or the recursive sum of descendant file sizes for folders.
        modified_at: Last modification timestamp.
        created_at: Creation timestamp.
        children: Ordered child nodes (folders only).
    """

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    path: str
    kind: Literal["file", "folder"] = "file"
    category: Optional[Category] = None
    size_bytes: int = Field(default=0, ge=0)
    modified_at: datetime = Field(default_factory=_now)
    created_at: datetime = Field(default_factory=_now)
    children: List["FileNode"] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def _derive_fields(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        values = dict(data)
        if values.get("kind", "file") == "folder":
            values["category"] = None
            children = values.get("children") or []
            values["size_bytes"] = sum(_child_size(child) for child in children)
        else:
            if values.get("children"):
                raise ValueError("File nodes cannot have children.")
            if values.get("category") is None:
                values["category"] = classify(values.get("name", ""))
        return values

    @property
    def is_file(self) -> bool:
        return self.kind == "file"

    @property
    def is_folder(self) -> bool:
        return self.kind == "folder"

    @property
    def extension(self) -> str:
        """Return the extension of the node name without the leading dot."""
        return get_extension(self.name)


def _child_size(child: Any) -> int:
    if isinstance(child, FileNode):
        return child.size_bytes
    if isinstance(child, dict):
        if child.get("kind", "file") == "folder":
            return sum(_child_size(grandchild) for grandchild in child.get("children") or [])
        return int(child.get("size_bytes", 0))
    return 0


__all__ = ["FileNode"]
