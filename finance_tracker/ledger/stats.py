"""
Stats Service

Pure read-side aggregation. Nothing here writes.

Per-account fetches fan out concurrently and are combined with sums,
so the order in which they finish does not matter. Transfers move money
between the owner's own accounts and are excluded from income, expense
and spending figures.
"""

import asyncio
from collections import defaultdict
from decimal import Decimal
from typing import Optional

from finance_tracker.errors import translate_errors
from finance_tracker.ledger.accounts import AccountService
from finance_tracker.ledger.transactions import TransactionService, require_owner
from finance_tracker.models.stats import DashboardSummary
from finance_tracker.models.transaction import Transaction, TransactionType
from finance_tracker.queries import month_bounds
from finance_tracker.queries.filters import DateBound


def sum_spending(transactions: list[Transaction]) -> dict[str, Decimal]:
    """Sum NEGATIVE, non-transfer amounts by category label."""
    totals: dict[str, Decimal] = defaultdict(lambda: Decimal("0"))
    for tx in transactions:
        if tx.type == TransactionType.NEGATIVE and not tx.is_transfer:
            totals[tx.category] += tx.amount
    return dict(totals)


class StatsService:

    def __init__(self, accounts: AccountService, transactions: TransactionService):
        self._accounts = accounts
        self._transactions = transactions

    async def _transactions_in_range(
        self,
        owner_id: str,
        account_ids: list[str],
        start: DateBound,
        end: DateBound,
    ) -> list[Transaction]:
        per_account = await asyncio.gather(*(
            self._transactions.list_by_account(owner_id, account_id, start, end)
            for account_id in account_ids
        ))
        return [tx for history in per_account for tx in history]

    @translate_errors("Failed to compute spending")
    async def spending_by_category(
        self,
        owner_id: str,
        start: DateBound = None,
        end: DateBound = None,
    ) -> dict[str, Decimal]:
        """Spending per category label across the owner's accounts in [start, end]."""
        require_owner(owner_id)
        accounts = await self._accounts.list_by_owner(owner_id)
        transactions = await self._transactions_in_range(
            owner_id,
            [account.id for account in accounts],
            start,
            end,
        )
        return sum_spending(transactions)

    @translate_errors("Failed to load dashboard")
    async def dashboard_summary(
        self,
        owner_id: str,
        reference: Optional[DateBound] = None,
    ) -> DashboardSummary:
        """
        Dashboard figures for the month containing `reference` (default: now).

        Balances are all-time; income, expenses and spending cover the month.
        """
        require_owner(owner_id)
        period_start, period_end = month_bounds(reference)

        accounts = await self._accounts.list_by_owner(owner_id)
        transactions = await self._transactions_in_range(
            owner_id,
            [account.id for account in accounts],
            period_start,
            period_end,
        )

        income = Decimal("0")
        expenses = Decimal("0")
        for tx in transactions:
            if tx.is_transfer:
                continue
            if tx.type == TransactionType.POSITIVE:
                income += tx.amount
            else:
                expenses += tx.amount

        return DashboardSummary(
            owner_id=owner_id,
            period_start=period_start,
            period_end=period_end,
            accounts=accounts,
            total_balance=sum((account.balance for account in accounts), Decimal("0")),
            income=income,
            expenses=expenses,
            spending_by_category=sum_spending(transactions),
        )
