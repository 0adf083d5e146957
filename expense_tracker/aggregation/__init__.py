"""Period aggregation package."""

from expense_tracker.aggregation.period import (
    TIPS_CATEGORY_LIMIT,
    UnknownGranularityError,
    breakdown_for_period,
    period_key,
    period_label,
    records_in_period,
    resolve_granularity,
    summarize_period,
    top_categories,
    total_for_period,
)

__all__ = [
    "TIPS_CATEGORY_LIMIT",
    "UnknownGranularityError",
    "breakdown_for_period",
    "period_key",
    "period_label",
    "records_in_period",
    "resolve_granularity",
    "summarize_period",
    "top_categories",
    "total_for_period",
]
