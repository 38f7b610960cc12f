"""Error taxonomy for the inventory sync engine.

None of these are fatal to the process: validation and parse failures abort a
single operation, persistence failures leave state in memory to be retried by
the next save trigger.
"""
from __future__ import annotations

from typing import Sequence


class InventorySyncError(Exception):
    """Base class for errors raised by this package."""


class ValidationError(InventorySyncError, ValueError):
    """A mutation was rejected; no state was changed."""


class RecordNotFound(InventorySyncError, KeyError):
    """An item or variant id does not exist in the current inventory."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class ParseError(InventorySyncError, ValueError):
    """The tabular import could not produce any items."""

    def __init__(self, message: str, *, skipped_rows: Sequence[int] = ()) -> None:
        super().__init__(message)
        self.skipped_rows = list(skipped_rows)


class PersistenceError(InventorySyncError):
    """A remote read or write failed. In-memory state is kept."""

    def __init__(self, message: str, *, reason: str | None = None) -> None:
        super().__init__(message)
        self.reason = reason


__all__ = [
    "InventorySyncError",
    "ValidationError",
    "RecordNotFound",
    "ParseError",
    "PersistenceError",
]
