"""
Audit Logger

DESIGN DECISION: Every change to the ledger and every call to the
text-generation service is logged as a structured event.

The audit logger:
- Is synchronous, like the ledger it observes
- Renders JSON lines through structlog on top of stdlib logging
- Only ever receives JSON-safe details (amounts arrive as strings)
"""

import logging
from typing import Optional

import structlog

from expense_tracker.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


def configure_logging(debug: bool = False) -> None:
    """Route stdlib logging (and therefore structlog) to stderr."""
    logging.basicConfig(
        format="%(message)s",
        level=logging.DEBUG if debug else logging.INFO,
    )


def get_logger(name: Optional[str] = None):
    """Structured logger for modules that log outside the audit trail."""
    return structlog.get_logger(name)


class AuditLogger:
    """Central audit logging service for ledger and insight events."""

    def __init__(self, name: str = "expense_tracker.audit"):
        self._logger = structlog.get_logger(name)

    def log(self, event: AuditEvent) -> None:
        """Log an audit event at the level matching its severity."""
        log_dict = event.to_log_dict()

        if event.severity == AuditSeverity.ERROR:
            self._logger.error("audit_event", **log_dict)
        elif event.severity == AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        elif event.severity == AuditSeverity.DEBUG:
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

    def log_ledger_loaded(self, record_count: int, skipped: int = 0) -> None:
        self.log(AuditEventBuilder.ledger_loaded(record_count, skipped))

    def log_ledger_load_failed(self, error_message: str) -> None:
        self.log(AuditEventBuilder.ledger_load_failed(error_message))

    def log_record_added(
        self,
        record_id: str,
        category: str,
        amount: str,
        warnings: Optional[list[str]] = None,
    ) -> None:
        self.log(AuditEventBuilder.record_added(record_id, category, amount, warnings))

    def log_record_updated(
        self,
        record_id: str,
        changed_fields: list[str],
        warnings: Optional[list[str]] = None,
    ) -> None:
        self.log(AuditEventBuilder.record_updated(record_id, changed_fields, warnings))

    def log_record_deleted(self, record_id: str) -> None:
        self.log(AuditEventBuilder.record_deleted(record_id))

    def log_record_not_found(self, record_id: str, operation: str) -> None:
        self.log(AuditEventBuilder.record_not_found(record_id, operation))

    def log_validation_failed(self, operation: str, issues: list[dict]) -> None:
        self.log(AuditEventBuilder.validation_failed(operation, issues))

    def log_persist_failed(self, error_message: str, record_count: int) -> None:
        self.log(AuditEventBuilder.persist_failed(error_message, record_count))

    def log_insight_requested(self, kind: str, period_label: str) -> None:
        self.log(AuditEventBuilder.insight_requested(kind, period_label))

    def log_insight_completed(self, kind: str, period_label: str, characters: int) -> None:
        self.log(AuditEventBuilder.insight_completed(kind, period_label, characters))

    def log_insight_failed(self, kind: str, error_message: str) -> None:
        self.log(AuditEventBuilder.insight_failed(kind, error_message))
