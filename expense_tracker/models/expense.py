"""
Core Data Models for Expense Tracker

These models define the strict schemas for all data flowing through the system.
They are designed to:
1. Reject bad input at the boundary instead of trusting caller-supplied shapes
2. Provide clear validation error messages
3. Serialize to a stable, timezone-free storage format

DESIGN DECISION: Amounts are Decimals and are never parsed from text.
A string amount is a bug somewhere upstream, so it is rejected loudly.
"""

import datetime as dt
import math
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_validator,
)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class ExpenseCategory(str, Enum):
    """
    Supported expense categories.

    DESIGN DECISION: Using a closed set rather than free text keeps the
    per-category breakdown meaningful.
    """
    FOOD = "Food"
    TRAVEL = "Travel"
    SHOPPING = "Shopping"
    BILLS = "Bills"
    ENTERTAINMENT = "Entertainment"
    HEALTH = "Health"
    OTHER = "Other"

    @classmethod
    def from_label(cls, label: str) -> "ExpenseCategory":
        """Match a label case-insensitively. Raises ValueError if unknown."""
        wanted = label.strip().lower()
        for category in cls:
            if category.value.lower() == wanted or category.name.lower() == wanted:
                return category
        raise ValueError(
            f"Unknown category {label!r}. "
            f"Allowed: {', '.join(c.value for c in cls)}"
        )


class Granularity(str, Enum):
    """Calendar bucket size used to filter records for a summary."""
    DAY = "day"
    MONTH = "month"
    YEAR = "year"

    @property
    def key_format(self) -> str:
        """strftime pattern whose output identifies one bucket."""
        return _KEY_FORMATS[self]


_KEY_FORMATS = {
    Granularity.DAY: "%Y-%m-%d",
    Granularity.MONTH: "%Y-%m",
    Granularity.YEAR: "%Y",
}


# =============================================================================
# FIELD COERCION - shared by records and patches
# =============================================================================

def new_record_id() -> str:
    """Generate a fresh record identifier."""
    return uuid4().hex


def _coerce_id(value: Any) -> Any:
    # Older ledgers used creation timestamps as numeric ids
    if isinstance(value, bool):
        raise ValueError("id must be text or an integer")
    if isinstance(value, int):
        return str(value)
    if isinstance(value, Decimal) and value.is_finite() and value == value.to_integral_value():
        return format(value, "f")
    return value


def _coerce_amount(value: Any) -> Any:
    if value is None:
        return value
    if isinstance(value, bool) or isinstance(value, str):
        raise ValueError("amount must be a number, not text")
    if isinstance(value, float) and not math.isfinite(value):
        raise ValueError("amount must be a finite number")
    if isinstance(value, Decimal) and not value.is_finite():
        raise ValueError("amount must be a finite number")
    return value


def _coerce_category(value: Any) -> Any:
    if isinstance(value, ExpenseCategory) or value is None:
        return value
    if isinstance(value, str):
        if not value.strip():
            raise ValueError("category is required")
        return ExpenseCategory.from_label(value)
    return value


def _coerce_date(value: Any) -> Any:
    if isinstance(value, dt.datetime):
        # Take the calendar date as written; no timezone conversion
        return value.date()
    if isinstance(value, str):
        text = value.strip()
        if not text:
            raise ValueError("date is required")
        if len(text) > 10 and text[10] in "T ":
            text = text[:10]
        return dt.date.fromisoformat(text)
    return value


# =============================================================================
# CORE EXPENSE MODEL
# =============================================================================

class ExpenseRecord(BaseModel):
    """
    A single expense in the ledger.

    Records are immutable values. The ledger store replaces a record
    with a new value on edit, keeping its id and position.
    """
    model_config = ConfigDict(frozen=True, str_strip_whitespace=True)

    id: str = Field(
        default_factory=new_record_id,
        min_length=1,
        max_length=64,
        description="Unique record identifier"
    )
    amount: Decimal = Field(
        ...,
        ge=0,
        description="Amount spent"
    )
    category: ExpenseCategory = Field(
        ...,
        description="Expense category"
    )
    date: dt.date = Field(
        ...,
        description="Calendar date of the expense"
    )

    @field_validator('id', mode='before')
    @classmethod
    def validate_id(cls, v: Any) -> Any:
        return _coerce_id(v)

    @field_validator('amount', mode='before')
    @classmethod
    def validate_amount(cls, v: Any) -> Any:
        return _coerce_amount(v)

    @field_validator('category', mode='before')
    @classmethod
    def validate_category(cls, v: Any) -> Any:
        return _coerce_category(v)

    @field_validator('date', mode='before')
    @classmethod
    def validate_date(cls, v: Any) -> Any:
        return _coerce_date(v)

    def to_storage_dict(self) -> dict:
        """
        Convert to the persisted shape:
        {"id": str, "amount": number, "category": str, "date": "YYYY-MM-DD"}

        The amount stays a Decimal; the ledger writes its exact digits
        as a JSON number.
        """
        return {
            "id": self.id,
            "amount": self.amount,
            "category": self.category.value,
            "date": self.date.isoformat(),
        }


class ExpensePatch(BaseModel):
    """
    Changes to apply to an existing record.

    Fields left unset keep their current value. The id cannot be patched.
    """
    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)

    amount: Optional[Decimal] = Field(default=None, ge=0)
    category: Optional[ExpenseCategory] = None
    date: Optional[dt.date] = None

    @field_validator('amount', mode='before')
    @classmethod
    def validate_amount(cls, v: Any) -> Any:
        return _coerce_amount(v)

    @field_validator('category', mode='before')
    @classmethod
    def validate_category(cls, v: Any) -> Any:
        return _coerce_category(v)

    @field_validator('date', mode='before')
    @classmethod
    def validate_date(cls, v: Any) -> Any:
        return _coerce_date(v)

    def changes(self) -> dict:
        """Only the fields the caller actually set."""
        return self.model_dump(exclude_unset=True, exclude_none=True)


# =============================================================================
# AGGREGATION MODELS
# =============================================================================

class CategoryTotal(BaseModel):
    """Per-category subtotal within a period."""
    model_config = ConfigDict(frozen=True)

    category: ExpenseCategory
    amount: Decimal = Field(ge=0)

    def as_tuple(self) -> tuple[ExpenseCategory, Decimal]:
        return self.category, self.amount


class PeriodSummary(BaseModel):
    """
    Everything the UI and the insight prompts need about one period.

    Computed on demand, never cached.
    """
    model_config = ConfigDict(frozen=True)

    granularity: Granularity
    reference: dt.date
    label: str
    total: Decimal
    breakdown: list[CategoryTotal] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.breakdown

    def share_of(self, item: CategoryTotal) -> float:
        """Fraction of the period total spent in one category."""
        if not self.total:
            return 0.0
        return float(item.amount / self.total)


# =============================================================================
# VALIDATION MODELS
# =============================================================================

class ValidationIssue(BaseModel):
    """A single validation issue found."""

    field: str = Field(
        ...,
        description="Field with the issue"
    )
    issue_type: str = Field(
        ...,
        description="Type of issue (e.g., 'missing', 'invalid_value', 'duplicate')"
    )
    message: str = Field(
        ...,
        description="Human-readable description of the issue"
    )
    severity: str = Field(
        ...,
        pattern="^(error|warning|info)$",
        description="Issue severity"
    )


class ValidationResult(BaseModel):
    """
    Result of the two-stage validation.

    Stage 1: Schema validation (types, required fields)
    Stage 2: Semantic validation (suspicious but allowed values)
    """

    is_valid: bool = Field(
        ...,
        description="Overall validation result"
    )
    issues: list[ValidationIssue] = Field(
        default_factory=list,
        description="All validation issues found"
    )
    record: Optional[ExpenseRecord] = Field(
        default=None,
        description="The validated record, present only when valid"
    )

    @property
    def has_errors(self) -> bool:
        """Check if there are any error-level issues."""
        return any(issue.severity == "error" for issue in self.issues)

    @property
    def error_count(self) -> int:
        """Count error-level issues."""
        return sum(1 for issue in self.issues if issue.severity == "error")

    @property
    def warnings(self) -> list[str]:
        """Messages of the non-blocking issues."""
        return [issue.message for issue in self.issues if issue.severity == "warning"]
