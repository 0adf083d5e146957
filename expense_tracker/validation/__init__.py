"""Validation package."""

from expense_tracker.validation.validator import (
    MUTABLE_FIELDS,
    ExpenseValidationError,
    ExpenseValidator,
)

__all__ = ["MUTABLE_FIELDS", "ExpenseValidationError", "ExpenseValidator"]
