"""
Tests for the insight agent.

The Gemini model is replaced by fakes; no network access.
"""

import asyncio
from datetime import date
from decimal import Decimal

import pytest

from expense_tracker.agents import (
    BUSY_MESSAGE,
    FALLBACK_MESSAGE,
    InsightAgent,
    InsightKind,
    InsightResponseError,
    InsightStatus,
    extract_generated_text,
)
from expense_tracker.aggregation import summarize_period
from expense_tracker.models.expense import ExpenseRecord

from tests.conftest import FakeModel, gemini_response


class SlowModel:
    """Model that only answers once released."""

    def __init__(self):
        self.release = None
        self.calls = 0

    async def generate_content_async(self, prompt: str):
        self.calls += 1
        if self.release is None:
            self.release = asyncio.Event()
        await self.release.wait()
        return gemini_response("Done.")


class NeverModel:
    """Model that never answers."""

    async def generate_content_async(self, prompt: str):
        await asyncio.sleep(3600)


@pytest.fixture
def summary():
    records = [
        ExpenseRecord(id="1", amount=Decimal("400"), category="Food", date=date(2024, 1, 3)),
        ExpenseRecord(id="2", amount=Decimal("100"), category="Travel", date=date(2024, 1, 4)),
        ExpenseRecord(id="3", amount=Decimal("300"), category="Bills", date=date(2024, 1, 5)),
        ExpenseRecord(id="4", amount=Decimal("200"), category="Shopping", date=date(2024, 1, 6)),
    ]
    return summarize_period(records, "month", date(2024, 1, 1))


@pytest.fixture
def empty_summary():
    return summarize_period([], "month", date(2024, 1, 1))


def _agent(model, timeout_seconds=5.0):
    return InsightAgent(model=model, currency_symbol="$", timeout_seconds=timeout_seconds)


class TestExtractGeneratedText:
    """Tests for reading text out of a Gemini response."""

    def test_joins_parts(self):
        """Test that all parts of the first candidate are joined."""
        assert extract_generated_text(gemini_response("Hello ", "world")) == "Hello world"

    def test_plain_dict_response(self):
        """Test the REST API shape."""
        response = {"candidates": [{"content": {"parts": [{"text": " Spend less. "}]}}]}
        assert extract_generated_text(response) == "Spend less."

    @pytest.mark.parametrize("response", [
        {},
        {"candidates": []},
        {"candidates": [{"content": {}}]},
        {"candidates": [{"content": {"parts": None}}]},
        None,
    ])
    def test_shape_mismatch(self, response):
        """Test that unexpected shapes raise a response error."""
        with pytest.raises(InsightResponseError):
            extract_generated_text(response)

    def test_empty_text(self):
        """Test that blank text is treated as a failure."""
        with pytest.raises(InsightResponseError):
            extract_generated_text(gemini_response("   "))


class TestPrompts:
    """Tests for prompt construction."""

    def test_analysis_prompt_has_every_category(self, summary):
        """Test that the analysis prompt lists the whole breakdown."""
        prompt = _agent(FakeModel()).build_analysis_prompt(summary)
        assert "Period: January 2024" in prompt
        assert "Total spent: $1,000.00" in prompt
        for category in ("Food", "Travel", "Bills", "Shopping"):
            assert f"- {category}:" in prompt
        assert "- Food: $400.00 (40%)" in prompt

    def test_tips_prompt_has_top_three(self, summary):
        """Test that the tips prompt only names the three largest categories."""
        prompt = _agent(FakeModel()).build_tips_prompt(summary)
        assert "- Food: $400.00" in prompt
        assert "- Bills: $300.00" in prompt
        assert "- Shopping: $200.00" in prompt
        assert "Travel" not in prompt
        assert prompt.index("Food") < prompt.index("Bills") < prompt.index("Shopping")


class TestRequests:
    """Tests for request outcomes."""

    def test_analysis_success(self, summary):
        """Test that generated text is returned as is."""
        model = FakeModel(text="Food dominates your spending.")
        response = asyncio.run(_agent(model).request_analysis(summary))

        assert response.status == InsightStatus.OK
        assert response.generated is True
        assert response.kind == InsightKind.ANALYSIS
        assert response.text == "Food dominates your spending."
        assert response.period_label == "January 2024"
        assert len(model.prompts) == 1

    def test_tips_success(self, summary):
        """Test the tips request."""
        response = asyncio.run(_agent(FakeModel(text="- Cook at home")).request_tips(summary))
        assert response.kind == InsightKind.TIPS
        assert response.text == "- Cook at home"

    def test_empty_period_sends_nothing(self, empty_summary):
        """Test that an empty period never reaches the model."""
        model = FakeModel()
        response = asyncio.run(_agent(model).request_analysis(empty_summary))

        assert response.status == InsightStatus.EMPTY
        assert "January 2024" in response.text
        assert model.prompts == []

    def test_shape_mismatch_falls_back(self, summary):
        """Test that an unexpected response shape gives the fallback text."""
        model = FakeModel(response={"candidates": []})
        response = asyncio.run(_agent(model).request_analysis(summary))

        assert response.status == InsightStatus.FALLBACK
        assert response.text == FALLBACK_MESSAGE

    def test_network_error_falls_back(self, summary):
        """Test that transport failures never propagate."""
        model = FakeModel(error=ConnectionError("offline"))
        response = asyncio.run(_agent(model).request_tips(summary))
        assert response.status == InsightStatus.FALLBACK

    def test_timeout_falls_back(self, summary):
        """Test that a request that never answers gives the fallback text."""
        agent = _agent(NeverModel(), timeout_seconds=0.05)
        response = asyncio.run(agent.request_analysis(summary))

        assert response.status == InsightStatus.FALLBACK
        assert agent.is_busy is False

    def test_second_request_while_busy(self, summary):
        """Test that only one request can be in flight."""
        model = SlowModel()
        agent = _agent(model)

        async def scenario():
            first = asyncio.ensure_future(agent.request_analysis(summary))
            while model.release is None:
                await asyncio.sleep(0)
            assert agent.is_busy is True
            second = await agent.request_tips(summary)
            model.release.set()
            return await first, second

        first, second = asyncio.run(scenario())

        assert second.status == InsightStatus.BUSY
        assert second.text == BUSY_MESSAGE
        assert first.status == InsightStatus.OK
        assert model.calls == 1
        assert agent.is_busy is False

    def test_agent_usable_after_failure(self, summary):
        """Test that a failure clears the busy flag."""
        agent = _agent(FakeModel(error=RuntimeError("boom")))
        asyncio.run(agent.request_analysis(summary))
        assert agent.is_busy is False
