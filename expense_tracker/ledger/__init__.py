"""Ledger store package."""

from expense_tracker.ledger.store import (
    LedgerStore,
    deserialize_records,
    serialize_records,
)

__all__ = ["LedgerStore", "deserialize_records", "serialize_records"]
