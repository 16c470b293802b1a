"""
Transaction Models for Finance Tracker

A transaction is a positive amount plus a direction. Signed arithmetic
only happens when balances and totals are folded at read time.

A transfer is a chain: one NEGATIVE leg on the source account, one
POSITIVE leg on the destination account, both in the TRANSFER category,
both carrying the same chain id, and one ChainRecord listing them.
"""

from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from finance_tracker.models.base import StoredModel, ensure_utc


# Category label reserved for transfer legs
TRANSFER_CATEGORY = "TRANSFER"


# =============================================================================
# ENUMS
# =============================================================================

class TransactionType(str, Enum):
    """Direction of money relative to the account."""
    POSITIVE = "POSITIVE"  # money in
    NEGATIVE = "NEGATIVE"  # money out


class PaybackStatus(str, Enum):
    PENDING = "PENDING"
    PAID = "PAID"


class ChainStatus(str, Enum):
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class TransactionKind(str, Enum):
    """Filter values for transaction search."""
    ALL = "ALL"
    POSITIVE = "POSITIVE"
    NEGATIVE = "NEGATIVE"
    TRANSFER = "TRANSFER"


# =============================================================================
# PAYBACK
# =============================================================================

class PaybackRequest(BaseModel):
    """Payback requested when creating a transaction (someone owes this back)."""

    due_date: Optional[datetime] = None

    @field_validator('due_date')
    @classmethod
    def normalize_due_date(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)


class PaybackDetails(BaseModel):
    """Payback state stored on a transaction."""

    due_date: datetime
    status: PaybackStatus = PaybackStatus.PENDING
    completed_at: Optional[datetime] = None

    @field_validator('due_date', 'completed_at')
    @classmethod
    def normalize_dates(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)


# =============================================================================
# INPUT MODELS
# =============================================================================

class TransactionCreate(BaseModel):
    """
    Draft of a new transaction.

    Shape only. Business rules (positive amount, non-empty labels,
    payback due date) are enforced by TransactionValidator so that they
    surface as domain errors rather than pydantic errors.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    account_id: str = ""
    amount: Decimal
    type: Optional[TransactionType] = None
    category: str = ""
    description: str = ""
    party_name: Optional[str] = None
    requires_payback: bool = False
    payback_details: Optional[PaybackRequest] = None
    chain_id: Optional[str] = None
    transaction_date: Optional[datetime] = Field(
        default=None,
        description="Overrides the creation timestamp (back-dated entries)"
    )

    @field_validator('transaction_date')
    @classmethod
    def normalize_transaction_date(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)


class TransactionUpdate(BaseModel):
    """
    Partial update. Only fields explicitly set are applied.

    Setting payback_details to None clears it.
    """
    model_config = ConfigDict(str_strip_whitespace=True)

    amount: Optional[Decimal] = None
    type: Optional[TransactionType] = None
    category: Optional[str] = None
    description: Optional[str] = None
    party_name: Optional[str] = None
    requires_payback: Optional[bool] = None
    payback_details: Optional[PaybackDetails] = None


class TransactionFilters(BaseModel):
    """Search criteria across an owner's transactions."""

    account_id: Optional[str] = None
    # A bare date is kept as a date so the end bound covers the whole day
    start: Union[datetime, date, None] = None
    end: Union[datetime, date, None] = None
    kind: TransactionKind = TransactionKind.ALL
    search_term: Optional[str] = None


# =============================================================================
# STORED MODELS
# =============================================================================

class Transaction(StoredModel):
    """A materialized transaction document."""

    id: str
    account_id: str
    amount: Decimal
    type: TransactionType
    category: str
    description: str
    owner_id: str
    requires_payback: bool = False
    party_name: Optional[str] = None
    chain_id: Optional[str] = None
    payback_details: Optional[PaybackDetails] = None
    created_at: datetime
    updated_at: datetime

    @property
    def signed_amount(self) -> Decimal:
        """Contribution of this transaction to its account balance."""
        if self.type == TransactionType.POSITIVE:
            return self.amount
        return -self.amount

    @property
    def is_transfer(self) -> bool:
        return self.category == TRANSFER_CATEGORY


class ChainRecord(StoredModel):
    """
    The authority for which transactions belong to one transfer.

    Stored under document id == chain_id. Legs only hold a back-reference.
    """

    chain_id: str
    owner_id: str
    transaction_ids: list[str] = Field(default_factory=list)
    status: ChainStatus = ChainStatus.PENDING
    created_at: datetime

    def to_document(self) -> dict:
        return self.model_dump()

    @classmethod
    def from_document(cls, document_id: str, data: dict) -> "ChainRecord":
        return cls.model_validate({"chain_id": document_id, **data})
