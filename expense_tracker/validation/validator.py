"""
Two-Stage Validation Pipeline

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - SCHEMA VALIDATION:
- Required field presence (amount, category, date)
- Type checking (amounts are numbers, categories are known)
- Date format
- Failures here reject the record

STAGE 2 - SEMANTIC VALIDATION:
- Future dates
- Absurd amounts
- Zero amounts
- These only produce warnings; the record is still accepted

IMPORTANT: Validation NEVER silently fixes issues.
It reports them so the caller can show them.
"""

import datetime as dt
from collections.abc import Mapping
from decimal import Decimal
from typing import Any, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from expense_tracker.config import AppSettings, get_settings
from expense_tracker.models.expense import (
    ExpensePatch,
    ExpenseRecord,
    ValidationIssue,
    ValidationResult,
)


MUTABLE_FIELDS = ("amount", "category", "date")


class ExpenseValidationError(ValueError):
    """Record data was rejected before touching the ledger."""

    def __init__(self, result: ValidationResult):
        self.result = result
        messages = [
            f"{issue.field}: {issue.message}"
            for issue in result.issues
            if issue.severity == "error"
        ]
        super().__init__("; ".join(messages) or "Invalid expense")

    @property
    def issues(self) -> list[ValidationIssue]:
        return self.result.issues


class ExpenseValidator:
    """
    Validates expense data through a two-stage pipeline.

    Stage 1: Schema validation (pydantic model construction)
    Stage 2: Semantic validation (settings-driven sanity checks)
    """

    def __init__(self, settings: Optional[AppSettings] = None):
        self._settings = settings or get_settings().app

    def validate(self, data: Union[ExpenseRecord, Mapping]) -> ValidationResult:
        """
        Validate raw record data (or an already-built record).

        The returned result carries the record only when it is valid.
        """
        record, issues = self._validate_schema(data)
        if record is None:
            return ValidationResult(is_valid=False, issues=issues)

        issues.extend(self._validate_semantic(record))
        return ValidationResult(
            is_valid=not any(issue.severity == "error" for issue in issues),
            issues=issues,
            record=record,
        )

    def validate_patch(
        self,
        current: ExpenseRecord,
        patch: Union[ExpensePatch, Mapping],
    ) -> ValidationResult:
        """
        Validate the record that results from applying a patch.

        The id of the current record is always kept.
        """
        if isinstance(patch, ExpensePatch):
            changes = patch.changes()
        else:
            unknown = [key for key in patch if key not in MUTABLE_FIELDS]
            if unknown:
                return ValidationResult(
                    is_valid=False,
                    issues=[
                        ValidationIssue(
                            field=str(key),
                            issue_type="immutable",
                            message=f"{key!r} cannot be changed by an edit",
                            severity="error",
                        )
                        for key in unknown
                    ],
                )
            changes = dict(patch)

        merged = {
            "id": current.id,
            "amount": current.amount,
            "category": current.category,
            "date": current.date,
        }
        merged.update(changes)
        return self.validate(merged)

    def _validate_schema(
        self,
        data: Union[ExpenseRecord, Mapping],
    ) -> tuple[Optional[ExpenseRecord], list[ValidationIssue]]:
        """
        Stage 1: Schema validation.

        Returns: (record_or_None, list_of_issues)
        """
        if isinstance(data, ExpenseRecord):
            return data, []

        if not isinstance(data, Mapping):
            return None, [
                ValidationIssue(
                    field="record",
                    issue_type="invalid_type",
                    message=f"Expected a mapping of fields, got {type(data).__name__}",
                    severity="error",
                )
            ]

        try:
            return ExpenseRecord.model_validate(dict(data)), []
        except PydanticValidationError as e:
            return None, [_issue_from_error(error) for error in e.errors()]

    def _validate_semantic(self, record: ExpenseRecord) -> list[ValidationIssue]:
        """
        Stage 2: Semantic validation.

        Checks:
        - Future dates (beyond tolerance)
        - Absurd amounts
        - Zero amounts
        """
        issues = []
        today = dt.date.today()

        max_future_date = today + dt.timedelta(days=self._settings.future_date_tolerance_days)
        if record.date > max_future_date:
            issues.append(ValidationIssue(
                field="date",
                issue_type="future_date",
                message=f"Expense date ({record.date.isoformat()}) is in the future",
                severity="warning",
            ))

        if record.amount > Decimal(str(self._settings.max_expense_amount)):
            issues.append(ValidationIssue(
                field="amount",
                issue_type="suspicious_value",
                message=f"Amount {record.amount} is unusually large",
                severity="warning",
            ))
        elif record.amount == 0:
            issues.append(ValidationIssue(
                field="amount",
                issue_type="zero_amount",
                message="Amount is zero",
                severity="warning",
            ))

        return issues


def _issue_from_error(error: dict[str, Any]) -> ValidationIssue:
    """Turn one pydantic error into a ValidationIssue."""
    field = ".".join(str(part) for part in error.get("loc", ())) or "record"
    error_type = error.get("type", "")
    message = error.get("msg", "Invalid value")
    if message.startswith("Value error, "):
        message = message[len("Value error, "):]

    if error_type == "missing":
        issue_type = "missing"
        message = f"{field} is required"
    elif "required" in message:
        issue_type = "missing"
    else:
        issue_type = "invalid_value"

    return ValidationIssue(
        field=field,
        issue_type=issue_type,
        message=message,
        severity="error",
    )
