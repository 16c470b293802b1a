"""
Audit Models for Finance Tracker

Every write to accounts, transactions, chains and categories is logged.
This provides:
1. Traceability of who changed what
2. Debugging information when a chain is left half-written
3. Ability to reconstruct history

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
Chain-related events use the chain id as correlation id, so one query
returns everything that happened to a transfer.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Optional
from uuid import uuid4

from pydantic import BaseModel, Field

from finance_tracker.formatting import format_currency
from finance_tracker.models.base import utc_now


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Accounts
    ACCOUNT_CREATED = "account_created"
    ACCOUNT_UPDATED = "account_updated"
    ACCOUNT_ARCHIVED = "account_archived"

    # Transactions
    TRANSACTION_CREATED = "transaction_created"
    TRANSACTION_UPDATED = "transaction_updated"
    TRANSACTION_DELETED = "transaction_deleted"
    PAYBACK_STATUS_UPDATED = "payback_status_updated"

    # Chains (transfers)
    CHAIN_CREATED = "chain_created"
    CHAIN_DELETED = "chain_deleted"
    CHAIN_FAILED = "chain_failed"
    CHAIN_ROLLED_BACK = "chain_rolled_back"

    # Categories
    CATEGORY_CREATED = "category_created"
    CATEGORY_UPDATED = "category_updated"
    CATEGORY_DELETED = "category_deleted"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """A single audit event."""

    # Identity
    event_id: str = Field(
        default_factory=lambda: str(uuid4()),
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = AuditSeverity.INFO

    # Context - what entity is this about, and whose is it?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'account', 'transaction', 'chain')"
    )
    entity_id: Optional[str] = None
    owner_id: Optional[str] = None

    # Correlation - for tracking related events
    correlation_id: Optional[str] = Field(
        default=None,
        description="Groups related events (the chain id for transfers)"
    )

    description: str = Field(..., max_length=500)
    details: dict[str, Any] = Field(default_factory=dict)

    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": self.event_id,
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "owner_id": self.owner_id,
            "correlation_id": self.correlation_id,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
        }

    def to_document(self) -> dict:
        """Fields for the auditLog collection (document id is event_id)."""
        return self.model_dump(mode="json", exclude={"event_id"})

    @classmethod
    def from_document(cls, document_id: str, data: dict) -> "AuditEvent":
        return cls.model_validate({**data, "event_id": document_id})


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.chain_created(chain_id, owner_id, ids, amount)
    """

    @staticmethod
    def account_created(account_id: str, owner_id: str, name: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_CREATED,
            entity_type="account",
            entity_id=account_id,
            owner_id=owner_id,
            description=f"Account created: {name}",
            details={"name": name},
        )

    @staticmethod
    def account_updated(account_id: str, owner_id: str, changes: dict) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_UPDATED,
            entity_type="account",
            entity_id=account_id,
            owner_id=owner_id,
            description=f"Account updated: {', '.join(sorted(changes)) or 'no changes'}",
            details={"changes": changes},
        )

    @staticmethod
    def account_archived(account_id: str, owner_id: str, name: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ACCOUNT_ARCHIVED,
            entity_type="account",
            entity_id=account_id,
            owner_id=owner_id,
            description=f"Account archived: {name}",
            details={"name": name},
        )

    @staticmethod
    def transaction_created(
        transaction_id: str,
        owner_id: str,
        account_id: str,
        amount: Decimal,
        direction: str,
        chain_id: Optional[str] = None,
        currency_code: str = "CAD",
    ) -> AuditEvent:
        sign = "+" if direction == "POSITIVE" else "-"
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_CREATED,
            entity_type="transaction",
            entity_id=transaction_id,
            owner_id=owner_id,
            correlation_id=chain_id,
            description=f"Transaction recorded: {sign}{format_currency(amount, currency_code)}",
            details={
                "account_id": account_id,
                "amount": str(amount),
                "type": direction,
            },
        )

    @staticmethod
    def transaction_updated(
        transaction_id: str,
        owner_id: str,
        fields: list[str],
        dropped: list[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_UPDATED,
            entity_type="transaction",
            entity_id=transaction_id,
            owner_id=owner_id,
            description=f"Transaction updated ({len(fields)} fields)",
            details={
                "fields": fields,
                "dropped_transfer_fields": dropped,
            },
        )

    @staticmethod
    def transaction_deleted(transaction_id: str, owner_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_DELETED,
            entity_type="transaction",
            entity_id=transaction_id,
            owner_id=owner_id,
            description="Transaction deleted",
        )

    @staticmethod
    def payback_status_updated(
        transaction_id: str,
        owner_id: str,
        status: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PAYBACK_STATUS_UPDATED,
            entity_type="transaction",
            entity_id=transaction_id,
            owner_id=owner_id,
            description=f"Payback marked {status.lower()}",
            details={"status": status},
        )

    @staticmethod
    def chain_created(
        chain_id: str,
        owner_id: str,
        transaction_ids: list[str],
        atomic: bool,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CHAIN_CREATED,
            entity_type="chain",
            entity_id=chain_id,
            owner_id=owner_id,
            correlation_id=chain_id,
            description=f"Transfer chain created with {len(transaction_ids)} legs",
            details={
                "transaction_ids": transaction_ids,
                "atomic": atomic,
            },
        )

    @staticmethod
    def chain_deleted(
        chain_id: str,
        owner_id: str,
        transaction_ids: list[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CHAIN_DELETED,
            entity_type="chain",
            entity_id=chain_id,
            owner_id=owner_id,
            correlation_id=chain_id,
            description=f"Transfer chain deleted ({len(transaction_ids)} legs)",
            details={"transaction_ids": transaction_ids},
        )

    @staticmethod
    def chain_failed(
        chain_id: str,
        owner_id: str,
        created_ids: list[str],
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CHAIN_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="chain",
            entity_id=chain_id,
            owner_id=owner_id,
            correlation_id=chain_id,
            description="Transfer chain creation failed",
            details={"created_transaction_ids": created_ids},
            error_message=error_message,
        )

    @staticmethod
    def chain_rolled_back(
        chain_id: str,
        owner_id: str,
        removed_ids: list[str],
        orphaned_ids: list[str],
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CHAIN_ROLLED_BACK,
            severity=AuditSeverity.WARNING if not orphaned_ids else AuditSeverity.ERROR,
            entity_type="chain",
            entity_id=chain_id,
            owner_id=owner_id,
            correlation_id=chain_id,
            description=(
                f"Rolled back {len(removed_ids)} legs"
                + (f", {len(orphaned_ids)} left orphaned" if orphaned_ids else "")
            ),
            details={
                "removed_transaction_ids": removed_ids,
                "orphaned_transaction_ids": orphaned_ids,
            },
        )

    @staticmethod
    def category_created(category_id: str, owner_id: str, name: str, category_type: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORY_CREATED,
            entity_type="category",
            entity_id=category_id,
            owner_id=owner_id,
            description=f"Category created: {name} ({category_type})",
            details={"name": name, "type": category_type},
        )

    @staticmethod
    def category_updated(category_id: str, owner_id: str, changes: dict) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORY_UPDATED,
            entity_type="category",
            entity_id=category_id,
            owner_id=owner_id,
            description="Category updated",
            details={"changes": changes},
        )

    @staticmethod
    def category_deleted(category_id: str, owner_id: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORY_DELETED,
            entity_type="category",
            entity_id=category_id,
            owner_id=owner_id,
            description="Category deleted",
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[str] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
