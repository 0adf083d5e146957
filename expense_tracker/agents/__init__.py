"""AI Agents package."""

from expense_tracker.agents.insight_agent import (
    BUSY_MESSAGE,
    EMPTY_PERIOD_MESSAGE,
    FALLBACK_MESSAGE,
    InsightAgent,
    InsightKind,
    InsightRequestError,
    InsightResponse,
    InsightResponseError,
    InsightStatus,
    extract_generated_text,
)

__all__ = [
    "BUSY_MESSAGE",
    "EMPTY_PERIOD_MESSAGE",
    "FALLBACK_MESSAGE",
    "InsightAgent",
    "InsightKind",
    "InsightRequestError",
    "InsightResponse",
    "InsightResponseError",
    "InsightStatus",
    "extract_generated_text",
]
