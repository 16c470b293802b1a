"""
Shared fixtures for the Finance Tracker test-suite.

Every test gets a fresh in-memory store driven by a ticking clock, so
server timestamps are deterministic and strictly increasing.
"""

from datetime import datetime, timedelta, timezone

import pytest

from finance_tracker.orchestrator import FinanceTracker, create_app_components
from finance_tracker.services.storage import InMemoryDocumentStore


START_TIME = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


class TickingClock:
    """Returns a later UTC time on every call."""

    def __init__(self, start: datetime = START_TIME, step: timedelta = timedelta(seconds=1)):
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        value = self.current
        self.current += self.step
        return value


@pytest.fixture
def clock() -> TickingClock:
    return TickingClock()


@pytest.fixture
def store(clock) -> InMemoryDocumentStore:
    return InMemoryDocumentStore(clock=clock)


@pytest.fixture
def tracker(store) -> FinanceTracker:
    return create_app_components(store=store)


@pytest.fixture
def owner_id() -> str:
    return "user-alice"


@pytest.fixture
def other_owner_id() -> str:
    return "user-bob"


@pytest.fixture
def make_draft():
    """Factory for transaction drafts as plain dicts."""
    def _make(
        account_id: str,
        amount="10.00",
        type_="NEGATIVE",
        category="Food & Dining",
        description="Lunch",
        **extra,
    ) -> dict:
        return {
            "account_id": account_id,
            "amount": amount,
            "type": type_,
            "category": category,
            "description": description,
            **extra,
        }
    return _make


@pytest.fixture
async def checking_and_savings(tracker, owner_id):
    checking = await tracker.accounts.create(owner_id, {"name": "Checking", "color": "#000"})
    savings = await tracker.accounts.create(owner_id, {"name": "Savings", "color": "#111"})
    return checking, savings
