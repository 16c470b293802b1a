"""
Query Construction

DESIGN DECISION: Queries are DETERMINISTIC and built in one place.
Services never hand-assemble store predicates. This module turns
"owner X, account Y, between A and B" into store filters, and applies
the refinements a document store cannot express (kind and free-text
search) in Python afterwards.

Date bounds are inclusive. A bare date as the end bound covers the
whole day.
"""

from calendar import monthrange
from datetime import date, datetime, timezone
from typing import Iterable, Optional, Union

from finance_tracker.formatting import format_date
from finance_tracker.models.base import range_end, range_start
from finance_tracker.models.transaction import (
    Transaction,
    TransactionFilters,
    TransactionKind,
    TransactionType,
)
from finance_tracker.services.storage import FieldFilter, FilterOp, OrderBy


DateBound = Union[date, datetime, None]

NEWEST_FIRST = OrderBy(field="created_at", descending=True)


def owned_by(owner_id: str) -> FieldFilter:
    return FieldFilter(field="owner_id", value=owner_id)


def created_between(start: DateBound = None, end: DateBound = None) -> list[FieldFilter]:
    """Inclusive created_at range predicates."""
    filters = []
    lower = range_start(start)
    upper = range_end(end)
    if lower is not None:
        filters.append(FieldFilter(field="created_at", op=FilterOp.GTE, value=lower))
    if upper is not None:
        filters.append(FieldFilter(field="created_at", op=FilterOp.LTE, value=upper))
    return filters


def transaction_query(
    owner_id: Optional[str] = None,
    account_id: Optional[str] = None,
    start: DateBound = None,
    end: DateBound = None,
) -> list[FieldFilter]:
    """Store predicates for a transaction listing."""
    filters = []
    if owner_id is not None:
        filters.append(owned_by(owner_id))
    if account_id is not None:
        filters.append(FieldFilter(field="account_id", value=account_id))
    filters.extend(created_between(start, end))
    return filters


def matches_kind(transaction: Transaction, kind: TransactionKind) -> bool:
    """
    Kind filter as shown on the transactions page.

    POSITIVE and NEGATIVE exclude transfer legs; TRANSFER selects only them.
    """
    if kind == TransactionKind.ALL:
        return True
    if kind == TransactionKind.TRANSFER:
        return transaction.is_transfer
    if transaction.is_transfer:
        return False
    return transaction.type == TransactionType(kind.value)


def matches_search(transaction: Transaction, search_term: Optional[str]) -> bool:
    """Case-insensitive match over description, category and party name."""
    if not search_term or not search_term.strip():
        return True
    needle = search_term.strip().casefold()
    haystack = (transaction.description, transaction.category, transaction.party_name or "")
    return any(needle in field.casefold() for field in haystack)


def filter_transactions(
    transactions: Iterable[Transaction],
    filters: TransactionFilters,
) -> list[Transaction]:
    return [
        tx for tx in transactions
        if matches_kind(tx, filters.kind) and matches_search(tx, filters.search_term)
    ]


def month_bounds(reference: DateBound = None) -> tuple[datetime, datetime]:
    """First and last instant (UTC) of the month containing `reference`."""
    if reference is None:
        reference = datetime.now(timezone.utc)
    day = reference.date() if isinstance(reference, datetime) else reference
    last_day = monthrange(day.year, day.month)[1]
    return (
        range_start(day.replace(day=1)),
        range_end(day.replace(day=last_day)),
    )


def describe_date_range(start: DateBound = None, end: DateBound = None) -> str:
    """Human-readable label for a listing's date bounds."""
    if start is None and end is None:
        return "All time"
    if start is None:
        return f"Until {format_date(end)}"
    if end is None:
        return f"Since {format_date(start)}"
    return f"{format_date(start)} - {format_date(end)}"
