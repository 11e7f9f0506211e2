"""Tests for the history ledger and its stores."""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from smartstore.history import (
    HistoryBatch,
    HistoryEntry,
    HistoryLedger,
    HistoryStoreError,
    InMemoryHistoryStore,
    JsonHistoryStore,
)
from smartstore.organization.models import MoveOperation
from smartstore.snapshot import FileNode, node_id


def _operation(name: str) -> MoveOperation:
    source = f"/r/{name}"
    node = FileNode(id=node_id(source), name=name, path=source, size_bytes=3)
    return MoveOperation(
        source_file=node,
        source_path=source,
        destination_path=f"/r/Dest/{name}",
        destination_folder="Dest",
    )


class _FailingStore(InMemoryHistoryStore):
    """Store whose writes always fail."""

    def save(self, batch: HistoryBatch) -> None:
        raise HistoryStoreError("disk full")

    def update(self, batch: HistoryBatch) -> None:
        raise OSError("read-only filesystem")

    def prune(self, keep_count: int) -> None:
        raise HistoryStoreError("disk full")


def test_add_batch_records_entries_most_recent_first() -> None:
    ledger = HistoryLedger()

    first = ledger.add_batch("one", "first", [_operation("a.txt")])
    second = ledger.add_batch("two", "second", [_operation("b.txt"), _operation("c.txt")])

    assert [batch.id for batch in ledger.batches] == [second.id, first.id]
    assert ledger.last_batch == second
    assert ledger.undo_count == 2
    entry = second.entries[0]
    assert entry.batch_id == second.id
    assert entry.source_path == "/r/b.txt"
    assert entry.destination_path == "/r/Dest/b.txt"
    assert entry.file_data is not None and entry.file_data.size_bytes == 3


def test_undo_last_is_lifo_and_restores_in_reverse_order() -> None:
    restored: list[str] = []
    ledger = HistoryLedger(restorer=lambda entry: restored.append(entry.source_path))
    older = ledger.add_batch("one", "", [_operation("a.txt")])
    newer = ledger.add_batch("two", "", [_operation("b.txt"), _operation("c.txt")])

    assert ledger.undo_last() is True
    assert restored == ["/r/c.txt", "/r/b.txt"]
    assert ledger.get(newer.id).is_undone
    assert all(entry.is_undone for entry in ledger.get(newer.id).entries)
    assert ledger.last_batch == older

    assert ledger.undo_last() is True
    assert ledger.undo_last() is False
    assert not ledger.can_undo


def test_undo_batch_ignores_unknown_and_already_undone() -> None:
    ledger = HistoryLedger()
    batch = ledger.add_batch("one", "", [_operation("a.txt")])

    assert ledger.undo_batch("missing") is False
    assert ledger.undo_batch(batch.id) is True
    assert ledger.undo_batch(batch.id) is False


def test_restore_failures_do_not_stop_undo() -> None:
    seen: list[str] = []

    def _restorer(entry: HistoryEntry) -> None:
        seen.append(entry.source_path)
        if entry.source_path.endswith("b.txt"):
            raise OSError("gone")

    ledger = HistoryLedger(restorer=_restorer)
    batch = ledger.add_batch("one", "", [_operation("a.txt"), _operation("b.txt")])

    assert ledger.undo_batch(batch.id) is True
    assert seen == ["/r/b.txt", "/r/a.txt"]
    assert ledger.get(batch.id).is_undone
    assert [entry.source_path for entry in ledger.last_restore_failures] == ["/r/b.txt"]

    assert ledger.undo_batch(batch.id) is False
    assert ledger.last_restore_failures == []


def test_prune_keeps_most_recent_batches() -> None:
    ledger = HistoryLedger()
    batches = [ledger.add_batch(f"b{index}", "", [_operation(f"{index}.txt")]) for index in range(5)]

    ledger.prune(2)

    assert [batch.id for batch in ledger.batches] == [batches[4].id, batches[3].id]
    with pytest.raises(ValueError):
        ledger.prune(-1)

    ledger.clear()
    assert ledger.batches == ()


def test_display_history_limits_summaries() -> None:
    ledger = HistoryLedger()
    for index in range(3):
        ledger.add_batch(f"b{index}", "desc", [_operation(f"{index}.txt")])

    summaries = ledger.display_history(2)

    assert [summary.name for summary in summaries] == ["b2", "b1"]
    assert summaries[0].file_count == 1
    assert summaries[0].is_undone is False


def test_persistence_failures_are_counted_not_raised() -> None:
    ledger = HistoryLedger(_FailingStore())

    batch = ledger.add_batch("one", "", [_operation("a.txt")])
    ledger.undo_batch(batch.id)
    ledger.prune(0)

    assert ledger.persistence_failures == 3
    assert ledger.batches == ()


def test_json_store_round_trips_batches(tmp_path: Path) -> None:
    path = tmp_path / "state" / "history.json"
    ledger = HistoryLedger(JsonHistoryStore(path))
    first = ledger.add_batch("one", "", [_operation("a.txt")])
    second = ledger.add_batch("two", "", [_operation("b.txt")])
    ledger.undo_batch(first.id)

    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["version"] == 1
    assert set(data["batches"]) == {first.id, second.id}

    reloaded = HistoryLedger(JsonHistoryStore(path))
    assert reloaded.load() == 2
    assert [batch.id for batch in reloaded.batches] == [second.id, first.id]
    assert reloaded.get(first.id).is_undone
    assert reloaded.last_batch.id == second.id


def test_json_store_prune_keeps_newest(tmp_path: Path) -> None:
    store = JsonHistoryStore(tmp_path / "history.json")
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    for index in range(4):
        store.save(HistoryBatch(name=f"b{index}", timestamp=base + timedelta(days=index)))

    store.prune(2)

    assert [batch.name for batch in store.load_all()] == ["b3", "b2"]


def test_json_store_rejects_corrupt_documents(tmp_path: Path) -> None:
    path = tmp_path / "history.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(HistoryStoreError):
        JsonHistoryStore(path).load_all()

    path.write_text(json.dumps({"version": 1, "batches": []}), encoding="utf-8")
    with pytest.raises(HistoryStoreError):
        JsonHistoryStore(path).load_all()


def test_ledger_load_survives_corrupt_store(tmp_path: Path) -> None:
    path = tmp_path / "history.json"
    path.write_text("[]", encoding="utf-8")
    ledger = HistoryLedger(JsonHistoryStore(path))

    assert ledger.load() == 0
    assert ledger.persistence_failures == 1


def test_prune_preserves_undone_flags(tmp_path: Path) -> None:
    path = tmp_path / "history.json"
    ledger = HistoryLedger(JsonHistoryStore(path))
    batches = [
        ledger.add_batch(f"b{index}", "", [_operation(f"{index}.txt")]) for index in range(5)
    ]
    ledger.undo_batch(batches[3].id)

    ledger.prune(2)

    assert [batch.id for batch in ledger.batches] == [batches[4].id, batches[3].id]
    assert ledger.get(batches[3].id).is_undone
    assert not ledger.get(batches[4].id).is_undone
    assert ledger.last_batch.id == batches[4].id

    stored = {batch.id: batch.is_undone for batch in JsonHistoryStore(path).load_all()}
    assert stored == {batches[4].id: False, batches[3].id: True}
