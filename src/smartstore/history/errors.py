"""History ledger errors."""


class HistoryError(Exception):
    """Base exception for history ledger operations."""


class HistoryStoreError(HistoryError):
    """Raised when a history store cannot read or write its records."""
