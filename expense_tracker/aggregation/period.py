"""
Period Aggregation

DESIGN DECISION: Aggregation is DETERMINISTIC and PURE.
Every function here takes records in and returns values out; nothing is
cached and nothing is written. The presentation layer and the insight
prompts call these whenever they need a fresh number.

Period membership is decided by formatting both dates to the same
calendar key ("2024-01" for a month) and comparing the keys. Month
lengths and leap years are handled by the calendar, never by day-count
arithmetic.
"""

import datetime as dt
from collections.abc import Iterable, Iterator
from decimal import Decimal
from typing import Union

from expense_tracker.models.expense import (
    CategoryTotal,
    ExpenseCategory,
    ExpenseRecord,
    Granularity,
    PeriodSummary,
)


GranularityLike = Union[Granularity, str]
DateLike = Union[dt.date, dt.datetime]

TIPS_CATEGORY_LIMIT = 3


class UnknownGranularityError(ValueError):
    """Granularity is not one of day, month, year."""

    def __init__(self, value: object):
        self.value = value
        allowed = ", ".join(g.value for g in Granularity)
        super().__init__(f"Unknown granularity {value!r}. Allowed: {allowed}")


def resolve_granularity(value: GranularityLike) -> Granularity:
    """Accept a Granularity or its string value; fail fast on anything else."""
    if isinstance(value, Granularity):
        return value
    if isinstance(value, str):
        try:
            return Granularity(value.strip().lower())
        except ValueError:
            pass
    raise UnknownGranularityError(value)


def _calendar_date(value: DateLike) -> dt.date:
    # datetime is a subclass of date, so check it first
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    raise TypeError(f"Expected a date or datetime, got {type(value).__name__}")


def period_key(value: DateLike, granularity: GranularityLike) -> str:
    """Calendar key identifying the bucket a date falls in."""
    return _calendar_date(value).strftime(resolve_granularity(granularity).key_format)


def period_label(reference: DateLike, granularity: GranularityLike) -> str:
    """Human-readable name of the bucket, e.g. 'January 2024'."""
    day = _calendar_date(reference)
    granularity = resolve_granularity(granularity)
    if granularity == Granularity.DAY:
        return f"{day.day} {day.strftime('%B %Y')}"
    if granularity == Granularity.MONTH:
        return day.strftime("%B %Y")
    return day.strftime("%Y")


def records_in_period(
    records: Iterable[ExpenseRecord],
    granularity: GranularityLike,
    reference: DateLike,
) -> Iterator[ExpenseRecord]:
    """
    Records in the same calendar bucket as the reference, in ledger order.

    Granularity and reference are checked on the call, not on first
    iteration.
    """
    granularity = resolve_granularity(granularity)
    wanted = period_key(reference, granularity)
    return _matching_key(records, granularity.key_format, wanted)


def _matching_key(
    records: Iterable[ExpenseRecord],
    key_format: str,
    wanted: str,
) -> Iterator[ExpenseRecord]:
    for record in records:
        if record.date.strftime(key_format) == wanted:
            yield record


def total_for_period(
    records: Iterable[ExpenseRecord],
    granularity: GranularityLike,
    reference: DateLike,
) -> Decimal:
    """Sum of amounts in the reference's bucket. Empty input gives 0."""
    return sum(
        (record.amount for record in records_in_period(records, granularity, reference)),
        Decimal("0"),
    )


def breakdown_for_period(
    records: Iterable[ExpenseRecord],
    granularity: GranularityLike,
    reference: DateLike,
) -> list[CategoryTotal]:
    """
    Per-category sums in the reference's bucket.

    Categories without records are omitted. Order is first appearance
    within the filtered records; callers that need a ranking sort it.
    """
    totals: dict[ExpenseCategory, Decimal] = {}
    for record in records_in_period(records, granularity, reference):
        totals[record.category] = totals.get(record.category, Decimal("0")) + record.amount

    return [
        CategoryTotal(category=category, amount=amount)
        for category, amount in totals.items()
    ]


def top_categories(
    breakdown: Iterable[CategoryTotal],
    limit: int = TIPS_CATEGORY_LIMIT,
) -> list[CategoryTotal]:
    """Largest categories first; ties keep breakdown order."""
    if limit < 0:
        raise ValueError("limit must be non-negative")
    return sorted(breakdown, key=lambda item: item.amount, reverse=True)[:limit]


def summarize_period(
    records: Iterable[ExpenseRecord],
    granularity: GranularityLike,
    reference: DateLike,
) -> PeriodSummary:
    """Label, total and breakdown for one period in a single pass."""
    granularity = resolve_granularity(granularity)
    records = list(records)
    breakdown = breakdown_for_period(records, granularity, reference)
    return PeriodSummary(
        granularity=granularity,
        reference=_calendar_date(reference),
        label=period_label(reference, granularity),
        total=sum((item.amount for item in breakdown), Decimal("0")),
        breakdown=breakdown,
    )
