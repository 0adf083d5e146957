"""
Main Orchestrator for Expense Tracker

Ties the components together behind one facade used by the UI:
1. Ledger (add / edit / delete → validate → persist)
2. Summary (ledger → period aggregation)
3. Insights (summary → Gemini → text, with fallback)

DESIGN DECISION: The insight agent is built lazily. A missing Gemini key
must not stop anyone from recording expenses; it only turns the insight
buttons into a "not configured" message.
"""

import datetime as dt
from collections.abc import Mapping
from typing import Optional, Union

from pydantic import ValidationError as PydanticValidationError

from expense_tracker.agents import (
    InsightAgent,
    InsightKind,
    InsightResponse,
    InsightStatus,
)
from expense_tracker.aggregation import summarize_period
from expense_tracker.aggregation.period import DateLike, GranularityLike
from expense_tracker.audit import AuditLogger, get_logger
from expense_tracker.config import Settings, get_settings
from expense_tracker.ledger import LedgerStore
from expense_tracker.models.expense import (
    ExpensePatch,
    ExpenseRecord,
    PeriodSummary,
)
from expense_tracker.services.storage import JsonFileSlot, StorageSlot
from expense_tracker.validation import ExpenseValidator


NOT_CONFIGURED_MESSAGE = (
    "Insights are not configured. Set GEMINI_API_KEY to enable them."
)

logger = get_logger(__name__)


class ExpenseTracker:
    """
    Facade over the ledger, the aggregator and the insight agent.

    The tracker owns the single ledger instance for the running process.
    """

    def __init__(
        self,
        store: LedgerStore,
        insight_agent: Optional[InsightAgent] = None,
        settings: Optional[Settings] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._insight_agent = insight_agent
        self._settings = settings or get_settings()
        self._audit_logger = audit_logger or AuditLogger()

    @property
    def store(self) -> LedgerStore:
        return self._store

    @property
    def records(self) -> tuple[ExpenseRecord, ...]:
        return self._store.records

    @property
    def last_persist_error(self) -> Optional[str]:
        return self._store.last_persist_error

    @property
    def last_warnings(self) -> list[str]:
        """Warnings raised by the validator for the latest add or edit."""
        return self._store.last_warnings

    # -------------------------------------------------------------------------
    # Ledger
    # -------------------------------------------------------------------------

    def add_expense(self, data: Union[ExpenseRecord, Mapping]) -> ExpenseRecord:
        """Raises ExpenseValidationError if the data is rejected."""
        return self._store.add(data)

    def update_expense(
        self,
        record_id: str,
        patch: Union[ExpensePatch, Mapping],
    ) -> Optional[ExpenseRecord]:
        """None means no record has this id."""
        return self._store.update(record_id, patch)

    def delete_expense(self, record_id: str) -> bool:
        return self._store.remove(record_id)

    # -------------------------------------------------------------------------
    # Summaries
    # -------------------------------------------------------------------------

    def summary(
        self,
        granularity: GranularityLike,
        reference: Optional[DateLike] = None,
    ) -> PeriodSummary:
        """Fresh aggregation of the current ledger. Reference defaults to today."""
        return summarize_period(
            self._store.records,
            granularity,
            reference if reference is not None else dt.date.today(),
        )

    # -------------------------------------------------------------------------
    # Insights
    # -------------------------------------------------------------------------

    @property
    def insights_busy(self) -> bool:
        return self._insight_agent is not None and self._insight_agent.is_busy

    async def analyze(
        self,
        granularity: GranularityLike,
        reference: Optional[DateLike] = None,
    ) -> InsightResponse:
        summary = self.summary(granularity, reference)
        agent = self._get_insight_agent()
        if agent is None:
            return _not_configured(InsightKind.ANALYSIS, summary)
        return await agent.request_analysis(summary)

    async def tips(
        self,
        granularity: GranularityLike,
        reference: Optional[DateLike] = None,
    ) -> InsightResponse:
        summary = self.summary(granularity, reference)
        agent = self._get_insight_agent()
        if agent is None:
            return _not_configured(InsightKind.TIPS, summary)
        return await agent.request_tips(summary)

    def _get_insight_agent(self) -> Optional[InsightAgent]:
        if self._insight_agent is None:
            try:
                gemini_settings = self._settings.gemini
            except PydanticValidationError as e:
                logger.warning("insights_not_configured", error=str(e))
                return None
            self._insight_agent = InsightAgent(
                settings=gemini_settings,
                audit_logger=self._audit_logger,
                currency_symbol=self._settings.app.currency_symbol,
            )
        return self._insight_agent


def _not_configured(kind: InsightKind, summary: PeriodSummary) -> InsightResponse:
    return InsightResponse(
        kind=kind,
        status=InsightStatus.FALLBACK,
        text=NOT_CONFIGURED_MESSAGE,
        period_label=summary.label,
    )


def create_tracker(
    settings: Optional[Settings] = None,
    slot: Optional[StorageSlot] = None,
    insight_agent: Optional[InsightAgent] = None,
) -> ExpenseTracker:
    """
    Create all components and load the ledger.

    Args:
        settings: Root settings; defaults to the cached environment settings.
        slot: Storage slot override; defaults to the configured JSON file.
        insight_agent: Insight agent override; built lazily when omitted.
    """
    settings = settings or get_settings()
    audit_logger = AuditLogger()

    if slot is None:
        storage_settings = settings.storage
        slot = JsonFileSlot(
            data_dir=storage_settings.data_dir,
            key=storage_settings.slot_key,
            fsync=storage_settings.fsync,
        )

    store = LedgerStore(
        slot=slot,
        validator=ExpenseValidator(settings.app),
        audit_logger=audit_logger,
    )
    store.load()

    return ExpenseTracker(
        store=store,
        insight_agent=insight_agent,
        settings=settings,
        audit_logger=audit_logger,
    )
