"""Persistence backends for the history ledger."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from pydantic import ValidationError

from .errors import HistoryStoreError
from .models import HistoryBatch

HISTORY_FILENAME = "history.json"
_FORMAT_VERSION = 1


@runtime_checkable
class HistoryStore(Protocol):
    """Durable storage for history batches, keyed by batch id."""

    def save(self, batch: HistoryBatch) -> None: ...

    def load_all(self) -> list[HistoryBatch]: ...

    def update(self, batch: HistoryBatch) -> None: ...

    def prune(self, keep_count: int) -> None: ...


def _most_recent_first(batches: list[HistoryBatch]) -> list[HistoryBatch]:
    # batches arrive in insertion order; equal timestamps keep the newest first
    return sorted(reversed(batches), key=lambda batch: batch.timestamp, reverse=True)


class InMemoryHistoryStore:
    """Volatile store used by simulations and tests."""

    def __init__(self) -> None:
        self._batches: dict[str, HistoryBatch] = {}

    def save(self, batch: HistoryBatch) -> None:
        self._batches[batch.id] = batch

    def load_all(self) -> list[HistoryBatch]:
        return _most_recent_first(list(self._batches.values()))

    def update(self, batch: HistoryBatch) -> None:
        self._batches[batch.id] = batch

    def prune(self, keep_count: int) -> None:
        keep = {batch.id for batch in self.load_all()[: max(keep_count, 0)]}
        self._batches = {key: value for key, value in self._batches.items() if key in keep}


class JsonHistoryStore:
    """Keep every batch, entries inline, in a single JSON document."""

    def __init__(self, path: Path) -> None:
        """Initialize the store.

        Args:
            path: Location of the JSON document; parents are created on write.
        """
        self._path = path

    @property
    def path(self) -> Path:
        return self._path

    def save(self, batch: HistoryBatch) -> None:
        """Insert or replace ``batch``.

        Raises:
            HistoryStoreError: If the document cannot be read or written.
        """
        records = self._read()
        records[batch.id] = batch
        self._write(records)

    def load_all(self) -> list[HistoryBatch]:
        """Return every stored batch, most recent first.

        Raises:
            HistoryStoreError: If the document cannot be parsed.
        """
        return _most_recent_first(list(self._read().values()))

    def update(self, batch: HistoryBatch) -> None:
        self.save(batch)

    def prune(self, keep_count: int) -> None:
        """Drop all but the ``keep_count`` most recent batches."""
        batches = self.load_all()
        if len(batches) <= keep_count:
            return
        kept = batches[: max(keep_count, 0)]
        self._write({batch.id: batch for batch in reversed(kept)})

    def _read(self) -> dict[str, HistoryBatch]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise HistoryStoreError(f"Invalid history data in {self._path}: {exc}") from exc
        except OSError as exc:
            raise HistoryStoreError(f"Unable to read {self._path}: {exc}") from exc

        if not isinstance(data, dict) or not isinstance(data.get("batches"), dict):
            raise HistoryStoreError(f"History file {self._path} has an unexpected layout.")

        try:
            return {
                key: HistoryBatch.model_validate(value) for key, value in data["batches"].items()
            }
        except ValidationError as exc:
            raise HistoryStoreError(f"Invalid history batch in {self._path}: {exc}") from exc

    def _write(self, records: dict[str, HistoryBatch]) -> None:
        payload: dict[str, Any] = {
            "version": _FORMAT_VERSION,
            "batches": {key: batch.model_dump(mode="json") for key, batch in records.items()},
        }
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        except OSError as exc:
            raise HistoryStoreError(f"Unable to write {self._path}: {exc}") from exc


__all__ = ["HISTORY_FILENAME", "HistoryStore", "InMemoryHistoryStore", "JsonHistoryStore"]
