"""History ledger data models."""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from smartstore.classification import Category
from smartstore.organization.models import new_id


def _now() -> datetime:
    return datetime.now(timezone.utc)


class OperationType(str, Enum):
    MOVE = "move"
    RENAME = "rename"
    CREATE_FOLDER = "create_folder"
    DELETE = "delete"


class FileData(BaseModel):
    """Minimal description of the file an entry touched."""

    model_config = ConfigDict(frozen=True)

    name: str
    size_bytes: int = 0
    category: Optional[Category] = None


class HistoryEntry(BaseModel):
    """One recorded operation inside a batch.

    Attributes:
        id: Entry identifier.
        batch_id: Identifier of the owning batch.
        operation_type: Kind of operation; the organizer only records moves.
        source_path: Path before the operation.
        destination_path: Path after the operation.
        file_data: Snapshot of the file name, size and category.
        timestamp: When the operation was recorded.
        is_undone: Whether the operation has been reverted.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    batch_id: str
    operation_type: OperationType = OperationType.MOVE
    source_path: str
    destination_path: Optional[str] = None
    file_data: Optional[FileData] = None
    timestamp: datetime = Field(default_factory=_now)
    is_undone: bool = False


class HistoryBatch(BaseModel):
    """The undoable record of one applied plan."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    name: str
    description: str = ""
    entries: List[HistoryEntry] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=_now)
    is_undone: bool = False

    def mark_undone(self) -> "HistoryBatch":
        """Return a copy with the batch and every entry flagged as undone."""
        return self.model_copy(
            update={
                "is_undone": True,
                "entries": [entry.model_copy(update={"is_undone": True}) for entry in self.entries],
            }
        )


class BatchSummary(BaseModel):
    """Display-friendly view of a batch."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str
    timestamp: datetime
    file_count: int
    is_undone: bool

    @classmethod
    def from_batch(cls, batch: HistoryBatch) -> "BatchSummary":
        return cls(
            id=batch.id,
            name=batch.name,
            description=batch.description,
            timestamp=batch.timestamp,
            file_count=len(batch.entries),
            is_undone=batch.is_undone,
        )


__all__ = [
    "BatchSummary",
    "FileData",
    "HistoryBatch",
    "HistoryEntry",
    "OperationType",
]
