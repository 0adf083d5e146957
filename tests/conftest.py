"""
Shared fixtures.

No test touches the network or the user's real data directory:
storage goes through in-memory slots or pytest's tmp_path, and the
Gemini model is replaced by fakes.
"""

from datetime import date
from decimal import Decimal
from types import SimpleNamespace
from typing import Optional

import pytest

from expense_tracker.config import AppSettings
from expense_tracker.ledger import LedgerStore
from expense_tracker.models.expense import ExpenseCategory, ExpenseRecord
from expense_tracker.services.storage import PersistenceError, StorageSlot
from expense_tracker.validation import ExpenseValidator


class InMemorySlot(StorageSlot):
    """Storage slot backed by a string; counts writes."""

    def __init__(self, payload: Optional[str] = None, key: str = "expenses"):
        self.payload = payload
        self.writes = 0
        self._key = key

    @property
    def key(self) -> str:
        return self._key

    def read(self) -> Optional[str]:
        return self.payload

    def write(self, payload: str) -> None:
        self.writes += 1
        self.payload = payload


class FailingSlot(InMemorySlot):
    """Storage slot whose reads and/or writes always fail."""

    def __init__(self, payload: Optional[str] = None, fail_reads: bool = False, fail_writes: bool = True):
        super().__init__(payload)
        self.fail_reads = fail_reads
        self.fail_writes = fail_writes

    def read(self) -> Optional[str]:
        if self.fail_reads:
            raise PersistenceError("disk unavailable")
        return super().read()

    def write(self, payload: str) -> None:
        if self.fail_writes:
            raise PersistenceError("disk full")
        super().write(payload)


class FakeModel:
    """Stand-in for genai.GenerativeModel returning a canned response."""

    def __init__(self, text: str = "You spend most on food.", response=None, error: Optional[Exception] = None):
        self.prompts: list[str] = []
        self._text = text
        self._response = response
        self._error = error

    async def generate_content_async(self, prompt: str):
        self.prompts.append(prompt)
        if self._error is not None:
            raise self._error
        if self._response is not None:
            return self._response
        return gemini_response(self._text)


def gemini_response(*texts: str):
    """Build an object shaped like a Gemini GenerateContentResponse."""
    parts = [SimpleNamespace(text=text) for text in texts]
    return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=parts))])


@pytest.fixture
def app_settings() -> AppSettings:
    return AppSettings(
        currency_symbol="₹",
        max_expense_amount=100000.0,
        future_date_tolerance_days=1,
    )


@pytest.fixture
def validator(app_settings) -> ExpenseValidator:
    return ExpenseValidator(app_settings)


@pytest.fixture
def slot() -> InMemorySlot:
    return InMemorySlot()


@pytest.fixture
def store(slot, validator) -> LedgerStore:
    ledger = LedgerStore(slot, validator=validator)
    ledger.load()
    return ledger


@pytest.fixture
def january_records() -> list[ExpenseRecord]:
    """Newest-first, as the ledger holds them."""
    return [
        ExpenseRecord(id="3", amount=Decimal("30"), category=ExpenseCategory.TRAVEL, date=date(2024, 2, 1)),
        ExpenseRecord(id="2", amount=Decimal("50"), category=ExpenseCategory.FOOD, date=date(2024, 1, 20)),
        ExpenseRecord(id="1", amount=Decimal("100"), category=ExpenseCategory.FOOD, date=date(2024, 1, 5)),
    ]
