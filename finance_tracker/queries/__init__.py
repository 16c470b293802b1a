"""Query construction package."""

from finance_tracker.queries.filters import (
    NEWEST_FIRST,
    created_between,
    describe_date_range,
    filter_transactions,
    matches_kind,
    matches_search,
    month_bounds,
    owned_by,
    transaction_query,
)

__all__ = [
    "NEWEST_FIRST",
    "created_between",
    "describe_date_range",
    "filter_transactions",
    "matches_kind",
    "matches_search",
    "month_bounds",
    "owned_by",
    "transaction_query",
]
