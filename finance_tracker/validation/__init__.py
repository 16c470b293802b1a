"""Input validation package."""

from finance_tracker.validation.validator import TransactionValidator

__all__ = ["TransactionValidator"]
