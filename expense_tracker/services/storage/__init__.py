"""
Storage Services Package

Provides the abstract storage slot interface and a JSON-file implementation.
"""

from expense_tracker.services.storage.interface import (
    MalformedPayloadError,
    PersistenceError,
    StorageError,
    StorageSlot,
)
from expense_tracker.services.storage.json_file import JsonFileSlot

__all__ = [
    # Interface
    "StorageSlot",
    # Exceptions
    "MalformedPayloadError",
    "PersistenceError",
    "StorageError",
    # File implementation
    "JsonFileSlot",
]
