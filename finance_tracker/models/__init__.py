"""
Data Models Package

This package contains all Pydantic models used in the Finance Tracker.
All data flowing through the system must conform to these schemas.
"""

from finance_tracker.models.account import (
    Account,
    AccountCreate,
    AccountState,
    AccountUpdate,
)
from finance_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)
from finance_tracker.models.category import (
    BUILT_IN_CATEGORIES,
    Category,
    CategoryCreate,
    CategoryType,
    CategoryUpdate,
)
from finance_tracker.models.stats import DashboardSummary
from finance_tracker.models.transaction import (
    TRANSFER_CATEGORY,
    ChainRecord,
    ChainStatus,
    PaybackDetails,
    PaybackRequest,
    PaybackStatus,
    Transaction,
    TransactionCreate,
    TransactionFilters,
    TransactionKind,
    TransactionType,
    TransactionUpdate,
)

__all__ = [
    # Account models
    "Account",
    "AccountCreate",
    "AccountState",
    "AccountUpdate",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
    # Category models
    "BUILT_IN_CATEGORIES",
    "Category",
    "CategoryCreate",
    "CategoryType",
    "CategoryUpdate",
    # Stats models
    "DashboardSummary",
    # Transaction models
    "TRANSFER_CATEGORY",
    "ChainRecord",
    "ChainStatus",
    "PaybackDetails",
    "PaybackRequest",
    "PaybackStatus",
    "Transaction",
    "TransactionCreate",
    "TransactionFilters",
    "TransactionKind",
    "TransactionType",
    "TransactionUpdate",
]
