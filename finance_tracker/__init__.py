"""
Finance Tracker - Source Package

The core of a personal finance tracker: accounts, income/expense
transactions, categories and transfers between accounts, kept consistent
over a document store.

DESIGN PRINCIPLES:
1. Balances are derived from transactions, never stored
2. A transfer is one chain: two legs and one chain record
3. Accounts are archived, never deleted
4. Every write is auditable
5. Storage layer is swappable
"""

__version__ = "1.0.0"
__author__ = "Finance Tracker Team"
