"""
Ledger Services Package

The domain services: transactions and transfer chains, accounts with
derived balances, categories, statistics and the user boundary.
"""

from finance_tracker.ledger.accounts import AccountService, calculate_balance
from finance_tracker.ledger.categories import CategoryService
from finance_tracker.ledger.stats import StatsService, sum_spending
from finance_tracker.ledger.transactions import (
    CHAINS,
    LOCKED_TRANSFER_FIELDS,
    TRANSACTIONS,
    TransactionService,
    require_owner,
)
from finance_tracker.ledger.users import UserService

__all__ = [
    "AccountService",
    "CHAINS",
    "CategoryService",
    "LOCKED_TRANSFER_FIELDS",
    "StatsService",
    "TRANSACTIONS",
    "TransactionService",
    "UserService",
    "calculate_balance",
    "require_owner",
    "sum_spending",
]
