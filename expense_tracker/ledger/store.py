"""
Ledger Store

Owns the in-memory collection of expense records and keeps the storage
slot in step with it.

GUARANTEES:
- The newest record is always first; edits keep position; deletes keep
  the relative order of the remaining records
- Record ids are unique
- Invalid data is rejected before the collection is touched
- Every successful mutation writes the full collection back to the slot
- Storage failures never escape: reads fall back to an empty ledger,
  writes keep the in-memory state and are logged

DESIGN DECISION: Persistence is an explicit call after each mutation,
not a subscription. There is exactly one writer.
"""

import json
from collections.abc import Iterator, Mapping
from decimal import Decimal
from typing import Optional, Union

from pydantic import ValidationError as PydanticValidationError

from expense_tracker.audit import AuditLogger
from expense_tracker.models.expense import ExpensePatch, ExpenseRecord, ValidationIssue
from expense_tracker.services.storage import (
    MalformedPayloadError,
    PersistenceError,
    StorageSlot,
)
from expense_tracker.validation import ExpenseValidationError, ExpenseValidator


def _encode_value(value: object) -> str:
    if isinstance(value, Decimal):
        # A finite Decimal's str() is already a valid JSON number literal
        return str(value)
    return json.dumps(value, ensure_ascii=False)


def serialize_records(records: list[ExpenseRecord]) -> str:
    """
    Encode the ledger as a JSON array of plain objects.

    Amounts are written with their exact decimal digits, so a record
    reloads unchanged however many digits it carries.
    """
    entries = (
        "{" + ", ".join(
            f"{json.dumps(key)}: {_encode_value(value)}"
            for key, value in record.to_storage_dict().items()
        ) + "}"
        for record in records
    )
    return "[" + ", ".join(entries) + "]"


def deserialize_records(payload: str) -> tuple[list[ExpenseRecord], int]:
    """
    Decode a stored ledger.

    Returns (records, skipped). Entries that fail validation or repeat an
    earlier id are skipped.

    Raises:
        MalformedPayloadError: If the payload is not a JSON array
    """
    try:
        # Integers are read as Decimal too, so long digit strings never hit
        # the int conversion limit
        data = json.loads(payload, parse_float=Decimal, parse_int=Decimal)
    except ValueError as e:
        raise MalformedPayloadError(f"Stored ledger is not valid JSON: {e}") from e
    except RecursionError as e:
        raise MalformedPayloadError("Stored ledger is nested too deeply") from e

    if not isinstance(data, list):
        raise MalformedPayloadError(
            f"Stored ledger must be a JSON array, got {type(data).__name__}"
        )

    records: list[ExpenseRecord] = []
    seen_ids: set[str] = set()
    skipped = 0
    for entry in data:
        if not isinstance(entry, dict):
            skipped += 1
            continue
        try:
            record = ExpenseRecord.model_validate(entry)
        except PydanticValidationError:
            skipped += 1
            continue
        if record.id in seen_ids:
            skipped += 1
            continue
        seen_ids.add(record.id)
        records.append(record)

    return records, skipped


class LedgerStore:
    """
    The ledger: every expense record held by the running instance.

    Usage:
        store = LedgerStore(JsonFileSlot(".expense_data", "expenses"))
        store.load()
        record = store.add({"amount": 120, "category": "Food", "date": "2024-01-05"})
        store.update(record.id, {"amount": 95})
        store.remove(record.id)
    """

    def __init__(
        self,
        slot: StorageSlot,
        validator: Optional[ExpenseValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._slot = slot
        self._validator = validator or ExpenseValidator()
        self._audit_logger = audit_logger or AuditLogger()
        self._records: list[ExpenseRecord] = []
        self.last_persist_error: Optional[str] = None
        self.last_warnings: list[str] = []

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    @property
    def records(self) -> tuple[ExpenseRecord, ...]:
        """Snapshot of the ledger, newest first."""
        return tuple(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[ExpenseRecord]:
        return iter(tuple(self._records))

    def __contains__(self, record_id: object) -> bool:
        return self._index_of(record_id) is not None

    def get(self, record_id: str) -> Optional[ExpenseRecord]:
        index = self._index_of(record_id)
        return None if index is None else self._records[index]

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def load(self) -> tuple[ExpenseRecord, ...]:
        """
        Replace the in-memory ledger with what the slot holds.

        Missing data gives an empty ledger. Unreadable or malformed data
        is logged and also gives an empty ledger.
        """
        try:
            payload = self._slot.read()
            records, skipped = (
                deserialize_records(payload) if payload and payload.strip() else ([], 0)
            )
        except PersistenceError as e:
            self._audit_logger.log_ledger_load_failed(str(e))
            self._records = []
            return ()

        self._records = records
        self._audit_logger.log_ledger_loaded(len(records), skipped)
        return self.records

    # -------------------------------------------------------------------------
    # Mutations
    # -------------------------------------------------------------------------

    def add(self, record: Union[ExpenseRecord, Mapping]) -> ExpenseRecord:
        """
        Validate and prepend a record, then persist.

        Non-blocking validation warnings for the stored record are kept in
        last_warnings until the next mutation.

        Raises:
            ExpenseValidationError: If the record is invalid or its id exists
        """
        result = self._validator.validate(record)
        if result.is_valid and result.record is not None and result.record.id in self:
            result = result.model_copy(update={
                "is_valid": False,
                "record": None,
                "issues": result.issues + [ValidationIssue(
                    field="id",
                    issue_type="duplicate",
                    message=f"A record with id {result.record.id!r} already exists",
                    severity="error",
                )],
            })

        if not result.is_valid or result.record is None:
            self.last_warnings = []
            self._audit_logger.log_validation_failed(
                "add", [issue.model_dump() for issue in result.issues]
            )
            raise ExpenseValidationError(result)

        stored = result.record
        self._records.insert(0, stored)
        self.last_warnings = result.warnings
        self._audit_logger.log_record_added(
            stored.id, stored.category.value, str(stored.amount), result.warnings
        )
        self._persist()
        return stored

    def update(
        self,
        record_id: str,
        patch: Union[ExpensePatch, Mapping],
    ) -> Optional[ExpenseRecord]:
        """
        Replace the mutable fields of a record in place, then persist.

        Returns the updated record, or None when no record has this id
        (the ledger is left unchanged).

        Raises:
            ExpenseValidationError: If the patched record would be invalid
        """
        index = self._index_of(record_id)
        if index is None:
            self.last_warnings = []
            self._audit_logger.log_record_not_found(str(record_id), "update")
            return None

        current = self._records[index]
        result = self._validator.validate_patch(current, patch)
        if not result.is_valid or result.record is None:
            self.last_warnings = []
            self._audit_logger.log_validation_failed(
                "update", [issue.model_dump() for issue in result.issues]
            )
            raise ExpenseValidationError(result)

        updated = result.record
        changed = [
            field for field in ("amount", "category", "date")
            if getattr(updated, field) != getattr(current, field)
        ]
        self._records[index] = updated
        self.last_warnings = result.warnings
        self._audit_logger.log_record_updated(updated.id, changed, result.warnings)
        self._persist()
        return updated

    def remove(self, record_id: str) -> bool:
        """
        Delete a record by id, then persist.

        Returns False (and writes nothing) when no record has this id.
        """
        index = self._index_of(record_id)
        if index is None:
            self._audit_logger.log_record_not_found(str(record_id), "remove")
            return False

        del self._records[index]
        self.last_warnings = []
        self._audit_logger.log_record_deleted(record_id)
        self._persist()
        return True

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _index_of(self, record_id: object) -> Optional[int]:
        for index, record in enumerate(self._records):
            if record.id == record_id:
                return index
        return None

    def _persist(self) -> bool:
        """Write the whole ledger to the slot. Failures are logged, not raised."""
        try:
            self._slot.write(serialize_records(self._records))
        except (PersistenceError, OSError, ValueError) as e:
            self.last_persist_error = str(e)
            self._audit_logger.log_persist_failed(str(e), len(self._records))
            return False

        self.last_persist_error = None
        return True
