"""
Audit Models for Expense Tracker

Every ledger mutation, persistence failure and insight request is logged.
This provides:
1. Traceability of every change to the ledger
2. Debugging information when storage or the LLM fails
3. A record of failures that were deliberately not shown as crashes

DESIGN DECISION: Audit events are append-only log lines. Nothing here
reads them back.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Ledger lifecycle
    LEDGER_LOADED = "ledger_loaded"
    LEDGER_LOAD_FAILED = "ledger_load_failed"

    # Mutations
    RECORD_ADDED = "record_added"
    RECORD_UPDATED = "record_updated"
    RECORD_DELETED = "record_deleted"
    RECORD_NOT_FOUND = "record_not_found"
    VALIDATION_FAILED = "validation_failed"

    # Persistence
    PERSIST_FAILED = "persist_failed"

    # Insights
    INSIGHT_REQUESTED = "insight_requested"
    INSIGHT_COMPLETED = "insight_completed"
    INSIGHT_FAILED = "insight_failed"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


class AuditEvent(BaseModel):
    """
    A single audit event.

    Every significant action creates one of these.
    """

    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the event occurred (UTC)"
    )

    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # What entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'expense', 'ledger', 'insight')"
    )
    entity_id: Optional[str] = None

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(default_factory=dict)

    error_message: Optional[str] = None
    is_user_action: bool = False

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.record_added(record_id, "Food", "120")
        event = AuditEventBuilder.persist_failed("disk full", 12)
    """

    @staticmethod
    def ledger_loaded(record_count: int, skipped: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_LOADED,
            severity=AuditSeverity.WARNING if skipped else AuditSeverity.INFO,
            entity_type="ledger",
            description=f"Ledger loaded with {record_count} records",
            details={
                "record_count": record_count,
                "skipped_entries": skipped,
            },
        )

    @staticmethod
    def ledger_load_failed(error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.LEDGER_LOAD_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="ledger",
            description="Stored ledger could not be read; starting empty",
            error_message=error_message,
        )

    @staticmethod
    def record_added(
        record_id: str,
        category: str,
        amount: str,
        warnings: Optional[list[str]] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_ADDED,
            severity=AuditSeverity.WARNING if warnings else AuditSeverity.INFO,
            entity_type="expense",
            entity_id=record_id,
            description=f"Expense added: {category}",
            details={
                "category": category,
                "amount": amount,
                "warnings": warnings or [],
            },
            is_user_action=True,
        )

    @staticmethod
    def record_updated(
        record_id: str,
        changed_fields: list[str],
        warnings: Optional[list[str]] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_UPDATED,
            severity=AuditSeverity.WARNING if warnings else AuditSeverity.INFO,
            entity_type="expense",
            entity_id=record_id,
            description=f"Expense updated: {', '.join(changed_fields) or 'no changes'}",
            details={
                "changed_fields": changed_fields,
                "warnings": warnings or [],
            },
            is_user_action=True,
        )

    @staticmethod
    def record_deleted(record_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_DELETED,
            entity_type="expense",
            entity_id=record_id,
            description="Expense deleted",
            is_user_action=True,
        )

    @staticmethod
    def record_not_found(record_id: str, operation: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.RECORD_NOT_FOUND,
            severity=AuditSeverity.WARNING,
            entity_type="expense",
            entity_id=record_id,
            description=f"No expense matched for {operation}",
            details={"operation": operation},
            is_user_action=True,
        )

    @staticmethod
    def validation_failed(operation: str, issues: list[dict]) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.VALIDATION_FAILED,
            severity=AuditSeverity.WARNING,
            entity_type="expense",
            description=f"{operation.capitalize()} rejected with {len(issues)} issues",
            details={
                "operation": operation,
                "issues": issues,
            },
            is_user_action=True,
        )

    @staticmethod
    def persist_failed(error_message: str, record_count: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PERSIST_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="ledger",
            description="Ledger could not be written; changes kept in memory",
            error_message=error_message,
            details={"record_count": record_count},
        )

    @staticmethod
    def insight_requested(kind: str, period_label: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INSIGHT_REQUESTED,
            entity_type="insight",
            description=f"{kind.capitalize()} requested for {period_label}",
            details={
                "kind": kind,
                "period": period_label,
            },
            is_user_action=True,
        )

    @staticmethod
    def insight_completed(kind: str, period_label: str, characters: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INSIGHT_COMPLETED,
            entity_type="insight",
            description=f"{kind.capitalize()} generated for {period_label}",
            details={
                "kind": kind,
                "period": period_label,
                "characters": characters,
            },
        )

    @staticmethod
    def insight_failed(kind: str, error_message: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.INSIGHT_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="insight",
            description=f"External service error while generating {kind}",
            error_message=error_message,
            details={"kind": kind, "service": "gemini"},
        )
