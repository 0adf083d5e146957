"""
Abstract Storage Interface

DESIGN DECISION: The ledger only needs one durable key/value slot.
The slot stores an opaque text payload; encoding the records is the
ledger store's job, not the slot's.

Keeping the interface this small means a browser-style local storage,
a file, or anything else with read/write-by-key semantics can back it.
"""

from abc import ABC, abstractmethod
from typing import Optional


class StorageSlot(ABC):
    """
    A single named, durable location holding a text payload.

    Any storage implementation must implement these methods.
    """

    @property
    @abstractmethod
    def key(self) -> str:
        """Name of the slot."""

    @abstractmethod
    def read(self) -> Optional[str]:
        """
        Read the slot's payload.

        Returns:
            The stored text, or None if the slot was never written

        Raises:
            PersistenceError: If the slot exists but cannot be read
        """

    @abstractmethod
    def write(self, payload: str) -> None:
        """
        Replace the slot's payload atomically.

        Readers see either the previous payload or the new one, never a
        partial write.

        Raises:
            PersistenceError: If the write fails
        """


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class PersistenceError(StorageError):
    """The storage slot could not be read or written."""
    pass


class MalformedPayloadError(PersistenceError):
    """The slot was readable but its content is not a valid ledger."""
    pass
