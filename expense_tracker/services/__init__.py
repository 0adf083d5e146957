"""Services package."""

from expense_tracker.services.storage import (
    JsonFileSlot,
    MalformedPayloadError,
    PersistenceError,
    StorageError,
    StorageSlot,
)

__all__ = [
    # Storage services
    "JsonFileSlot",
    "MalformedPayloadError",
    "PersistenceError",
    "StorageError",
    "StorageSlot",
]
