"""Read-side aggregate models for the dashboard."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from finance_tracker.models.account import Account


class DashboardSummary(BaseModel):
    """
    Month-at-a-glance numbers for one owner.

    Income and expenses exclude transfer legs: moving money between
    your own accounts is neither.
    """

    owner_id: str
    period_start: datetime
    period_end: datetime
    accounts: list[Account] = Field(default_factory=list)
    total_balance: Decimal = Decimal("0")
    income: Decimal = Decimal("0")
    expenses: Decimal = Decimal("0")
    spending_by_category: dict[str, Decimal] = Field(default_factory=dict)

    @property
    def spending_progress(self) -> float:
        """Expenses as a percentage of income (0 when there is no income)."""
        if self.income <= 0:
            return 0.0
        return float(self.expenses / self.income * 100)
