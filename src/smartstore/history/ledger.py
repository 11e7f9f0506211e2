"""Append-only ledger of applied plans with undo support."""

from __future__ import annotations

import logging
import threading
from typing import Callable, Iterable, Optional

from smartstore.organization.models import MoveOperation

from .errors import HistoryStoreError
from .models import BatchSummary, FileData, HistoryBatch, HistoryEntry, OperationType
from .store import HistoryStore, InMemoryHistoryStore

LOGGER = logging.getLogger(__name__)

Restorer = Callable[[HistoryEntry], None]


class HistoryLedger:
    """Record applied plans as batches and undo them.

    Batches are held most-recent-first. The store is a durability aid only:
    when it fails the error is logged, ``persistence_failures`` is
    incremented and the in-memory ledger stays authoritative.
    """

    def __init__(
        self,
        store: Optional[HistoryStore] = None,
        *,
        restorer: Optional[Restorer] = None,
    ) -> None:
        """Initialize the ledger.

        Args:
            store: Persistence backend; defaults to an in-memory store.
            restorer: Callback that moves one entry's file back to its source path.
        """
        self._store: HistoryStore = store if store is not None else InMemoryHistoryStore()
        self._restorer = restorer
        self._batches: list[HistoryBatch] = []
        self._lock = threading.RLock()
        self.persistence_failures = 0
        self.last_restore_failures: list[HistoryEntry] = []

    # ------------------------------------------------------------------ #
    # Queries                                                            #
    # ------------------------------------------------------------------ #

    @property
    def batches(self) -> tuple[HistoryBatch, ...]:
        with self._lock:
            return tuple(self._batches)

    @property
    def last_batch(self) -> Optional[HistoryBatch]:
        """Return the most recent batch that has not been undone."""
        with self._lock:
            return next((batch for batch in self._batches if not batch.is_undone), None)

    @property
    def can_undo(self) -> bool:
        return self.last_batch is not None

    @property
    def undo_count(self) -> int:
        with self._lock:
            return sum(1 for batch in self._batches if not batch.is_undone)

    def get(self, batch_id: str) -> Optional[HistoryBatch]:
        with self._lock:
            return next((batch for batch in self._batches if batch.id == batch_id), None)

    def display_history(self, limit: Optional[int] = None) -> list[BatchSummary]:
        """Return summaries of the ledger, most recent first."""
        with self._lock:
            batches = self._batches if limit is None else self._batches[:limit]
            return [BatchSummary.from_batch(batch) for batch in batches]

    # ------------------------------------------------------------------ #
    # Mutations                                                          #
    # ------------------------------------------------------------------ #

    def load(self) -> int:
        """Replace the in-memory ledger with the store contents.

        Returns:
            int: Number of batches loaded; ``0`` when the store is unreadable.
        """
        try:
            batches = self._store.load_all()
        except (HistoryStoreError, OSError) as exc:
            self._record_failure("load history", exc)
            return 0
        with self._lock:
            self._batches = sorted(batches, key=lambda batch: batch.timestamp, reverse=True)
            return len(self._batches)

    def add_batch(
        self,
        name: str,
        description: str,
        operations: Iterable[MoveOperation],
    ) -> HistoryBatch:
        """Record applied operations as a new batch.

        Args:
            name: Batch display name, usually the plan name.
            description: Batch description.
            operations: Successfully applied operations, in plan order.

        Returns:
            HistoryBatch: The recorded batch.
        """
        batch = HistoryBatch(name=name, description=description)
        entries = [
            HistoryEntry(
                batch_id=batch.id,
                operation_type=OperationType.MOVE,
                source_path=operation.source_path,
                destination_path=operation.destination_path,
                file_data=FileData(
                    name=operation.source_file.name,
                    size_bytes=operation.source_file.size_bytes,
                    category=operation.source_file.category,
                ),
            )
            for operation in operations
        ]
        batch = batch.model_copy(update={"entries": entries})

        with self._lock:
            self._batches.insert(0, batch)
            self._persist("save history", self._store.save, batch)
        LOGGER.info("Recorded history batch %s with %d entries.", batch.id, len(entries))
        return batch

    def undo_last(self) -> bool:
        """Undo the most recent batch that is not undone yet.

        Returns:
            bool: ``False`` when there is nothing to undo.
        """
        with self._lock:
            batch = self.last_batch
            if batch is None:
                return False
            return self.undo_batch(batch.id)

    def undo_batch(self, batch_id: str) -> bool:
        """Undo the batch with ``batch_id`` and restore its files.

        Entries are restored newest first. Restore failures are logged and do
        not stop the remaining entries; the batch is marked undone either way
        and the entries left in place are kept in ``last_restore_failures``.

        Returns:
            bool: ``False`` if the batch is unknown or already undone.
        """
        with self._lock:
            self.last_restore_failures = []
            index = next(
                (position for position, batch in enumerate(self._batches) if batch.id == batch_id),
                None,
            )
            if index is None or self._batches[index].is_undone:
                return False

            undone = self._batches[index].mark_undone()
            self._batches[index] = undone
            self._persist("update history", self._store.update, undone)
            self.last_restore_failures = self._restore(undone)
        LOGGER.info(
            "Undid history batch %s (%d of %d file(s) restored).",
            batch_id,
            len(undone.entries) - len(self.last_restore_failures),
            len(undone.entries),
        )
        return True

    def prune(self, keep_count: int) -> None:
        """Keep only the ``keep_count`` most recently created batches.

        Raises:
            ValueError: If ``keep_count`` is negative.
        """
        if keep_count < 0:
            raise ValueError("keep_count must be zero or positive")
        with self._lock:
            ordered = sorted(self._batches, key=lambda batch: batch.timestamp, reverse=True)
            dropped = len(ordered) - keep_count
            self._batches = ordered[:keep_count]
            self._persist("prune history", self._store.prune, keep_count)
        if dropped > 0:
            LOGGER.info("Pruned %d history batch(es).", dropped)

    def clear(self) -> None:
        self.prune(0)

    # ------------------------------------------------------------------ #
    # Helpers                                                            #
    # ------------------------------------------------------------------ #

    def _restore(self, batch: HistoryBatch) -> list[HistoryEntry]:
        failures: list[HistoryEntry] = []
        if self._restorer is None:
            return failures
        for entry in reversed(batch.entries):
            try:
                self._restorer(entry)
            except Exception as exc:
                LOGGER.warning(
                    "Unable to restore %s -> %s: %s",
                    entry.destination_path,
                    entry.source_path,
                    exc,
                )
                failures.append(entry)
        return failures

    def _persist(self, action: str, write: Callable[..., None], *args: object) -> None:
        try:
            write(*args)
        except (HistoryStoreError, OSError) as exc:
            self._record_failure(action, exc)

    def _record_failure(self, action: str, exc: Exception) -> None:
        self.persistence_failures += 1
        LOGGER.error("Failed to %s; continuing with in-memory state: %s", action, exc)


__all__ = ["HistoryLedger", "Restorer"]
