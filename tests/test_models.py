"""
Tests for Expense Tracker

Test strategy:
1. Unit tests for individual components (models, validator, aggregation)
2. Store tests against in-memory and temp-dir storage slots
3. No real API calls in tests (use fakes)
"""

import pytest
from datetime import date, datetime, timezone
from decimal import Decimal

from expense_tracker.models.expense import (
    CategoryTotal,
    ExpenseCategory,
    ExpensePatch,
    ExpenseRecord,
    Granularity,
    PeriodSummary,
    ValidationIssue,
    ValidationResult,
)
from expense_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


class TestExpenseRecord:
    """Tests for the ExpenseRecord model."""

    def test_record_creation(self):
        """Test ExpenseRecord creation with a generated id."""
        record = ExpenseRecord(
            amount=Decimal("120.50"),
            category=ExpenseCategory.FOOD,
            date=date(2024, 1, 5),
        )
        assert record.amount == Decimal("120.50")
        assert record.category == ExpenseCategory.FOOD
        assert len(record.id) == 32

    def test_generated_ids_are_distinct(self):
        """Test that two records never share a generated id."""
        first = ExpenseRecord(amount=1, category="Food", date="2024-01-01")
        second = ExpenseRecord(amount=1, category="Food", date="2024-01-01")
        assert first.id != second.id

    def test_numeric_id_is_kept_as_text(self):
        """Test that timestamp-style ids from older data become strings."""
        record = ExpenseRecord(id=1704412800000, amount=5, category="Food", date="2024-01-05")
        assert record.id == "1704412800000"

    def test_rejects_negative_amount(self):
        """Test that negative amounts are rejected."""
        with pytest.raises(ValueError):
            ExpenseRecord(amount=Decimal("-1"), category="Food", date="2024-01-05")

    def test_rejects_string_amount(self):
        """Test that amounts are never parsed from text."""
        with pytest.raises(ValueError, match="amount must be a number"):
            ExpenseRecord(amount="100", category="Food", date="2024-01-05")

    def test_rejects_boolean_amount(self):
        """Test that True is not accepted as 1."""
        with pytest.raises(ValueError):
            ExpenseRecord(amount=True, category="Food", date="2024-01-05")

    def test_rejects_non_finite_amount(self):
        """Test that NaN and infinity are rejected."""
        with pytest.raises(ValueError):
            ExpenseRecord(amount=float("nan"), category="Food", date="2024-01-05")
        with pytest.raises(ValueError):
            ExpenseRecord(amount=float("inf"), category="Food", date="2024-01-05")

    def test_category_matching_is_case_insensitive(self):
        """Test category labels are matched regardless of case."""
        record = ExpenseRecord(amount=1, category="  travel ", date="2024-01-05")
        assert record.category == ExpenseCategory.TRAVEL

    def test_rejects_unknown_category(self):
        """Test that categories outside the enum are rejected."""
        with pytest.raises(ValueError, match="Unknown category"):
            ExpenseRecord(amount=1, category="Yachts", date="2024-01-05")

    def test_rejects_empty_category(self):
        """Test that an empty category is rejected."""
        with pytest.raises(ValueError, match="category is required"):
            ExpenseRecord(amount=1, category="", date="2024-01-05")

    def test_full_iso_timestamp_keeps_calendar_date(self):
        """Test that an ISO timestamp does not drift across timezones."""
        record = ExpenseRecord(amount=1, category="Food", date="2024-01-31T23:30:00-08:00")
        assert record.date == date(2024, 1, 31)

    def test_datetime_keeps_calendar_date(self):
        """Test that a datetime contributes only its calendar date."""
        record = ExpenseRecord(
            amount=1,
            category="Food",
            date=datetime(2024, 3, 1, 0, 15, tzinfo=timezone.utc),
        )
        assert record.date == date(2024, 3, 1)

    def test_rejects_invalid_date(self):
        """Test that malformed dates are rejected."""
        with pytest.raises(ValueError):
            ExpenseRecord(amount=1, category="Food", date="2024-02-30")

    def test_records_are_immutable(self):
        """Test that records cannot be changed in place."""
        record = ExpenseRecord(amount=1, category="Food", date="2024-01-05")
        with pytest.raises(ValueError):
            record.amount = Decimal("2")

    def test_to_storage_dict(self):
        """Test the persisted shape of a record."""
        record = ExpenseRecord(id="a1", amount=Decimal("12.50"), category="Bills", date="2024-01-05")
        assert record.to_storage_dict() == {
            "id": "a1",
            "amount": Decimal("12.50"),
            "category": "Bills",
            "date": "2024-01-05",
        }

    def test_storage_dict_keeps_exact_amount(self):
        """Test that the stored amount is not rounded through a float."""
        amount = Decimal("12345678901234567.89")
        record = ExpenseRecord(id="a1", amount=amount, category="Food", date="2024-01-05")
        assert record.to_storage_dict()["amount"] == amount

    def test_integral_decimal_id_is_kept_as_text(self):
        """Test that numeric ids read back as Decimal become plain digits."""
        record = ExpenseRecord(id=Decimal("1704412800000"), amount=5, category="Food", date="2024-01-05")
        assert record.id == "1704412800000"


class TestExpensePatch:
    """Tests for ExpensePatch."""

    def test_changes_only_include_set_fields(self):
        """Test that unset fields are not part of the change set."""
        patch = ExpensePatch(amount=Decimal("5"))
        assert patch.changes() == {"amount": Decimal("5")}

    def test_rejects_id_field(self):
        """Test that ids cannot be patched."""
        with pytest.raises(ValueError):
            ExpensePatch(id="other")

    def test_patch_validates_values(self):
        """Test that a patch applies the same field rules as a record."""
        with pytest.raises(ValueError):
            ExpensePatch(amount="5")
        assert ExpensePatch(category="health").category == ExpenseCategory.HEALTH


class TestAggregationModels:
    """Tests for CategoryTotal and PeriodSummary."""

    def test_category_total_as_tuple(self):
        """Test tuple form used by chart and prompt code."""
        item = CategoryTotal(category=ExpenseCategory.FOOD, amount=Decimal("150"))
        assert item.as_tuple() == ("Food", Decimal("150"))

    def test_share_of(self):
        """Test category share of the period total."""
        food = CategoryTotal(category=ExpenseCategory.FOOD, amount=Decimal("75"))
        travel = CategoryTotal(category=ExpenseCategory.TRAVEL, amount=Decimal("25"))
        summary = PeriodSummary(
            granularity=Granularity.MONTH,
            reference=date(2024, 1, 1),
            label="January 2024",
            total=Decimal("100"),
            breakdown=[food, travel],
        )
        assert summary.share_of(food) == 0.75
        assert summary.is_empty is False

    def test_empty_summary(self):
        """Test that an empty period has a zero share for anything."""
        summary = PeriodSummary(
            granularity=Granularity.YEAR,
            reference=date(2024, 1, 1),
            label="2024",
            total=Decimal("0"),
        )
        assert summary.is_empty is True
        assert summary.share_of(CategoryTotal(category="Food", amount=1)) == 0.0


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.RECORD_ADDED,
            description="Expense added",
        )
        assert event.event_type == AuditEventType.RECORD_ADDED
        assert event.severity == AuditSeverity.INFO
        assert event.timestamp.tzinfo is not None

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        event = AuditEventBuilder.record_added("abc", "Food", "120")
        log_dict = event.to_log_dict()
        assert log_dict["event_type"] == "record_added"
        assert log_dict["entity_id"] == "abc"
        assert log_dict["details"]["amount"] == "120"
        assert log_dict["is_user_action"] is True

    def test_record_added_carries_warnings(self):
        """Test that accepted-with-warnings records are logged as warnings."""
        event = AuditEventBuilder.record_added("abc", "Food", "0", ["Amount is zero"])
        assert event.severity == AuditSeverity.WARNING
        assert event.details["warnings"] == ["Amount is zero"]
        assert AuditEventBuilder.record_added("abc", "Food", "5").details["warnings"] == []

    def test_persist_failed_is_an_error(self):
        """Test AuditEventBuilder.persist_failed severity."""
        event = AuditEventBuilder.persist_failed("disk full", 3)
        assert event.severity == AuditSeverity.ERROR
        assert event.error_message == "disk full"
        assert event.details["record_count"] == 3

    def test_ledger_loaded_warns_on_skipped_entries(self):
        """Test that skipped entries raise the load event to a warning."""
        assert AuditEventBuilder.ledger_loaded(5, 0).severity == AuditSeverity.INFO
        assert AuditEventBuilder.ledger_loaded(5, 2).severity == AuditSeverity.WARNING


class TestValidationResult:
    """Tests for ValidationResult model."""

    def test_validation_result_has_errors(self):
        """Test has_errors property."""
        result = ValidationResult(
            is_valid=False,
            issues=[
                ValidationIssue(
                    field="amount",
                    issue_type="missing",
                    message="amount is required",
                    severity="error",
                ),
            ],
        )
        assert result.has_errors is True
        assert result.error_count == 1

    def test_validation_result_warnings_only(self):
        """Test that warnings don't count as errors."""
        result = ValidationResult(
            is_valid=True,
            issues=[
                ValidationIssue(
                    field="date",
                    issue_type="future_date",
                    message="Date in future",
                    severity="warning",
                ),
            ],
        )
        assert result.has_errors is False
        assert result.error_count == 0
        assert result.warnings == ["Date in future"]


class TestEnums:
    """Tests for category and granularity enums."""

    def test_all_categories_exist(self):
        """Test that expected categories exist."""
        expected = ["Food", "Travel", "Shopping", "Bills", "Entertainment", "Health", "Other"]
        assert [c.value for c in ExpenseCategory] == expected

    def test_granularity_key_formats(self):
        """Test calendar key patterns per granularity."""
        assert Granularity.DAY.key_format == "%Y-%m-%d"
        assert Granularity.MONTH.key_format == "%Y-%m"
        assert Granularity.YEAR.key_format == "%Y"


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
