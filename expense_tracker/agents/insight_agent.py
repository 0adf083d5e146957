"""
AI Insight Agent for Expense Tracker

Turns a period summary into natural-language "analysis" and "tips" text
using Google Gemini.

CRITICAL BOUNDARIES:
- The LLM only ever sees aggregated figures computed by the ledger
  (period label, total, per-category subtotals); never raw records
- The LLM is told to use ONLY those figures
- Any failure (network, timeout, unexpected response shape) is turned
  into a fixed fallback message; nothing propagates to the UI
- Only one request may be in flight; a second request while one is
  pending is refused instead of racing the first

The LLM is a WRITER, not an ACCOUNTANT. The numbers come from us.
"""

import asyncio
from collections.abc import Mapping
from decimal import Decimal
from enum import Enum
from typing import Any, Optional

import google.generativeai as genai
from pydantic import BaseModel

from expense_tracker.aggregation import TIPS_CATEGORY_LIMIT, top_categories
from expense_tracker.audit import AuditLogger
from expense_tracker.config import GeminiSettings, get_settings
from expense_tracker.models.expense import CategoryTotal, PeriodSummary


DEFAULT_REQUEST_TIMEOUT_SECONDS = 30.0

FALLBACK_MESSAGE = (
    "Sorry, we couldn't generate insights right now. "
    "Please check your connection and try again."
)
EMPTY_PERIOD_MESSAGE = (
    "There are no expenses recorded for {label} yet. "
    "Add a few expenses to get insights."
)
BUSY_MESSAGE = "Insights are already being generated. Please wait."


class InsightKind(str, Enum):
    """Which prompt was sent."""
    ANALYSIS = "analysis"
    TIPS = "tips"


class InsightStatus(str, Enum):
    """How an insight request ended."""
    OK = "ok"                  # Generated by the model
    EMPTY = "empty"            # Nothing to analyze; no request sent
    FALLBACK = "fallback"      # Request failed; fallback text substituted
    BUSY = "busy"              # Another request was in flight; not sent


class InsightResponse(BaseModel):
    """
    Text shown to the user for an insight request.

    The text is always user-readable, whatever the status.
    """

    kind: InsightKind
    status: InsightStatus
    text: str
    period_label: str

    @property
    def generated(self) -> bool:
        return self.status == InsightStatus.OK


class InsightRequestError(Exception):
    """The text-generation service failed or returned something unusable."""
    pass


class InsightResponseError(InsightRequestError):
    """The service answered, but not in the expected nested shape."""
    pass


def _field(container: Any, name: str) -> Any:
    if isinstance(container, Mapping):
        return container[name]
    return getattr(container, name)


def extract_generated_text(response: Any) -> str:
    """
    Pull the generated text out of a Gemini response.

    Reads candidates[0].content.parts[*].text. Works on SDK response
    objects and on the plain dicts of the REST API.

    Raises:
        InsightResponseError: If the shape does not match or the text is empty
    """
    try:
        candidate = _field(response, "candidates")[0]
        parts = _field(_field(candidate, "content"), "parts")
        text = "".join(str(_field(part, "text")) for part in parts)
    except (AttributeError, IndexError, KeyError, TypeError) as e:
        raise InsightResponseError(f"Unexpected response shape: {e!r}") from e

    text = text.strip()
    if not text:
        raise InsightResponseError("Response contained no text")
    return text


def format_amount(amount: Decimal, currency_symbol: str) -> str:
    return f"{currency_symbol}{amount:,.2f}"


class InsightAgent:
    """
    AI agent producing spending analysis and saving tips.

    RESPONSIBILITIES:
    - Build prompts from a PeriodSummary
    - Call the model with a timeout
    - Substitute a fallback message on any failure

    BOUNDARIES:
    - NEVER reads or mutates the ledger
    - NEVER raises to the caller
    """

    def __init__(
        self,
        model: Optional[Any] = None,
        settings: Optional[GeminiSettings] = None,
        audit_logger: Optional[AuditLogger] = None,
        currency_symbol: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
    ):
        """
        Initialize the agent.

        Args:
            model: Object with an async generate_content_async(prompt).
                   If None, a Gemini model is configured from settings.
            settings: Gemini settings. Loaded from the environment when a
                      model has to be built and none are given.
            audit_logger: Where request outcomes are logged.
            currency_symbol: Prefix for amounts in prompts.
            timeout_seconds: Overrides the configured request timeout.
        """
        if model is None:
            settings = settings or get_settings().gemini
            model = self._build_model(settings)
        self._model = model
        self._audit_logger = audit_logger or AuditLogger()
        self._currency = (
            currency_symbol if currency_symbol is not None
            else get_settings().app.currency_symbol
        )
        if timeout_seconds is not None:
            self._timeout = timeout_seconds
        elif settings is not None:
            self._timeout = settings.request_timeout_seconds
        else:
            self._timeout = DEFAULT_REQUEST_TIMEOUT_SECONDS
        self._in_flight = False

    @staticmethod
    def _build_model(settings: GeminiSettings) -> Any:
        """Configure Google Generative AI."""
        genai.configure(api_key=settings.api_key)
        return genai.GenerativeModel(
            model_name=settings.model_name,
            generation_config={
                "temperature": settings.temperature,
                "max_output_tokens": settings.max_tokens,
            },
        )

    @property
    def is_busy(self) -> bool:
        """True while a request is in flight; the UI disables its buttons."""
        return self._in_flight

    async def request_analysis(self, summary: PeriodSummary) -> InsightResponse:
        """Ask for a short analysis of the period's spending."""
        return await self._request(InsightKind.ANALYSIS, summary, self.build_analysis_prompt)

    async def request_tips(self, summary: PeriodSummary) -> InsightResponse:
        """Ask for saving tips focused on the largest categories."""
        return await self._request(InsightKind.TIPS, summary, self.build_tips_prompt)

    def build_analysis_prompt(self, summary: PeriodSummary) -> str:
        lines = "\n".join(self._category_line(item, summary) for item in summary.breakdown)
        return f"""You are a personal finance assistant reviewing a household expense ledger.

Period: {summary.label}
Total spent: {format_amount(summary.total, self._currency)}

Spending by category:
{lines}

Write a short analysis (3 to 5 sentences) of this spending pattern.
- Point out which categories dominate
- Mention anything that looks unbalanced
- Use simple, friendly language

IMPORTANT: Use ONLY the figures above. Do NOT invent amounts, categories or periods."""

    def build_tips_prompt(self, summary: PeriodSummary) -> str:
        top = top_categories(summary.breakdown, TIPS_CATEGORY_LIMIT)
        lines = "\n".join(self._category_line(item, summary) for item in top)
        return f"""You are a personal finance assistant helping someone spend less.

Period: {summary.label}
Total spent: {format_amount(summary.total, self._currency)}

Top spending categories:
{lines}

Give 3 short, practical tips to reduce spending in these categories.
- One tip per line, starting with "- "
- Be specific to the categories listed

IMPORTANT: Use ONLY the figures above. Do NOT invent amounts or categories."""

    def _category_line(self, item: CategoryTotal, summary: PeriodSummary) -> str:
        return (
            f"- {item.category.value}: {format_amount(item.amount, self._currency)} "
            f"({summary.share_of(item):.0%})"
        )

    async def _request(self, kind: InsightKind, summary: PeriodSummary, build_prompt) -> InsightResponse:
        if self._in_flight:
            return InsightResponse(
                kind=kind,
                status=InsightStatus.BUSY,
                text=BUSY_MESSAGE,
                period_label=summary.label,
            )

        if summary.is_empty:
            return InsightResponse(
                kind=kind,
                status=InsightStatus.EMPTY,
                text=EMPTY_PERIOD_MESSAGE.format(label=summary.label),
                period_label=summary.label,
            )

        self._in_flight = True
        try:
            self._audit_logger.log_insight_requested(kind.value, summary.label)
            text = await self._generate(build_prompt(summary))
        except Exception as e:
            self._audit_logger.log_insight_failed(kind.value, repr(e))
            return InsightResponse(
                kind=kind,
                status=InsightStatus.FALLBACK,
                text=FALLBACK_MESSAGE,
                period_label=summary.label,
            )
        finally:
            self._in_flight = False

        self._audit_logger.log_insight_completed(kind.value, summary.label, len(text))
        return InsightResponse(
            kind=kind,
            status=InsightStatus.OK,
            text=text,
            period_label=summary.label,
        )

    async def _generate(self, prompt: str) -> str:
        """
        Call the model once.

        Raises:
            InsightRequestError: On timeout or an unusable response
        """
        try:
            response = await asyncio.wait_for(
                self._model.generate_content_async(prompt),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as e:
            raise InsightRequestError(
                f"No response within {self._timeout:g} seconds"
            ) from e
        return extract_generated_text(response)
