"""
Data Models Package

This package contains all Pydantic models used in the Expense Tracker.
All data flowing through the system must conform to these schemas.
"""

from expense_tracker.models.expense import (
    CategoryTotal,
    ExpenseCategory,
    ExpensePatch,
    ExpenseRecord,
    Granularity,
    PeriodSummary,
    ValidationIssue,
    ValidationResult,
    new_record_id,
)
from expense_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Expense models
    "CategoryTotal",
    "ExpenseCategory",
    "ExpensePatch",
    "ExpenseRecord",
    "Granularity",
    "PeriodSummary",
    "ValidationIssue",
    "ValidationResult",
    "new_record_id",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
