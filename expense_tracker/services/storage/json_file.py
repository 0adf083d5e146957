"""
JSON File Storage Implementation

DESIGN DECISION: Each storage slot is one file inside a data directory,
named after the slot key. This is the desktop equivalent of a browser's
local storage entry:
1. Survives restarts
2. Users can open and back up the file directly
3. No database to set up

Writes go to a temporary file in the same directory which then replaces
the target with os.replace, so a crash mid-write leaves the previous
ledger intact.
"""

import os
import re
import tempfile
from pathlib import Path
from typing import Optional, Union

from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from expense_tracker.audit import get_logger
from expense_tracker.services.storage.interface import PersistenceError, StorageSlot


_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")

logger = get_logger(__name__)


class JsonFileSlot(StorageSlot):
    """
    File-backed storage slot.

    The slot is exclusively owned by one running instance; concurrent
    writers from several processes are not supported.
    """

    def __init__(
        self,
        data_dir: Union[str, Path],
        key: str,
        fsync: bool = True,
    ):
        if not _KEY_PATTERN.match(key) or key in {".", ".."}:
            raise ValueError(f"Invalid storage slot key: {key!r}")
        self._data_dir = Path(data_dir)
        self._key = key
        self._fsync = fsync

    @property
    def key(self) -> str:
        return self._key

    @property
    def path(self) -> Path:
        return self._data_dir / f"{self._key}.json"

    def read(self) -> Optional[str]:
        try:
            return self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            raise PersistenceError(f"Failed to read slot {self._key!r}: {e}") from e

    def write(self, payload: str) -> None:
        try:
            self._atomic_write(payload)
        except (OSError, ValueError) as e:
            raise PersistenceError(f"Failed to write slot {self._key!r}: {e}") from e

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
        retry=retry_if_exception_type(OSError),
        reraise=True,
    )
    def _atomic_write(self, payload: str) -> None:
        """Write to a sibling temp file, then swap it into place."""
        self._data_dir.mkdir(parents=True, exist_ok=True)
        temp_name = None
        try:
            with tempfile.NamedTemporaryFile(
                mode="w",
                encoding="utf-8",
                dir=self._data_dir,
                prefix=f"{self._key}-",
                suffix=".tmp",
                delete=False,
            ) as handle:
                temp_name = handle.name
                handle.write(payload)
                handle.flush()
                if self._fsync:
                    os.fsync(handle.fileno())
            os.replace(temp_name, self.path)
        except (OSError, ValueError):
            # ValueError covers text the file encoding cannot represent
            if temp_name and os.path.exists(temp_name):
                try:
                    os.unlink(temp_name)
                except OSError:
                    logger.warning("temp_file_cleanup_failed", path=temp_name)
            raise

        logger.debug("slot_written", key=self._key, path=str(self.path), size=len(payload))
