"""History ledger for applied organization plans."""

from .errors import HistoryError, HistoryStoreError
from .ledger import HistoryLedger, Restorer
from .models import BatchSummary, FileData, HistoryBatch, HistoryEntry, OperationType
from .store import HISTORY_FILENAME, HistoryStore, InMemoryHistoryStore, JsonHistoryStore

__all__ = [
    "BatchSummary",
    "FileData",
    "HISTORY_FILENAME",
    "HistoryBatch",
    "HistoryEntry",
    "HistoryError",
    "HistoryLedger",
    "HistoryStore",
    "HistoryStoreError",
    "InMemoryHistoryStore",
    "JsonHistoryStore",
    "OperationType",
    "Restorer",
]
