"""
Account Models for Finance Tracker

DESIGN DECISION: Accounts are never physically deleted. Deleting an
account archives it, so every historical transaction still points at a
real account and historical balances stay correct.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import ClassVar, Optional

from pydantic import BaseModel, ConfigDict, Field

from finance_tracker.models.base import StoredModel


class AccountState(str, Enum):
    """Lifecycle state of an account."""
    ACTIVE = "active"
    ARCHIVED = "archived"


class AccountCreate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = ""
    color: str = ""


class AccountUpdate(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: Optional[str] = None
    color: Optional[str] = None


class Account(StoredModel):
    """
    A bank account owned by one user.

    `balance` is derived from the account's transactions on every read
    and is never written to storage.
    """

    derived_fields: ClassVar[frozenset[str]] = frozenset({"balance"})

    id: str
    name: str
    color: str
    owner_id: str
    is_archived: bool = False
    created_at: datetime
    updated_at: datetime
    balance: Decimal = Field(
        default=Decimal("0"),
        description="Sum of signed transaction amounts (computed, not stored)"
    )

    @property
    def state(self) -> AccountState:
        return AccountState.ARCHIVED if self.is_archived else AccountState.ACTIVE
