"""
Audit Logger

DESIGN DECISION: Every write to accounts, transactions, chains and
categories is logged. This provides:
1. Complete traceability
2. A record of half-written transfers and their rollback
3. Per-owner history of changes

The audit logger:
- Is async so services simply await it after each write
- Gracefully handles failures (a failed audit write never fails the operation)
- Supports correlation IDs to trace related events (the chain id for transfers)
"""

from decimal import Decimal
from typing import Optional
from uuid import uuid4

import structlog

from finance_tracker.models.audit import AuditEvent, AuditEventBuilder
from finance_tracker.services.storage import DocumentStoreInterface, FieldFilter, OrderBy


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


AUDIT_COLLECTION = "auditLog"


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The auditLog collection of a document store (when one is given)
    """

    def __init__(
        self,
        store: Optional[DocumentStoreInterface] = None,
        collection: str = AUDIT_COLLECTION,
        currency_code: str = "CAD",
    ):
        """
        Initialize audit logger.

        Args:
            store: Document store for persistence.
                   If None, only logs locally.
            collection: Collection audit events are appended to.
            currency_code: Currency used in human-readable descriptions.
        """
        self._store = store
        self._collection = collection
        self._currency_code = currency_code
        self._logger = structlog.get_logger(__name__)

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to the store if available.

        Returns True if the store write succeeded (or no store configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._store is not None:
            try:
                await self._store.create_document(
                    self._collection,
                    event.to_document(),
                    document_id=event.event_id,
                )
            except Exception as e:
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=event.event_id,
                )
                return False

        return True

    async def events_for_correlation(self, correlation_id: str) -> list[AuditEvent]:
        """All persisted events sharing a correlation id, oldest first."""
        if self._store is None:
            return []
        documents = await self._store.query_documents(
            self._collection,
            filters=[FieldFilter(field="correlation_id", value=correlation_id)],
            order_by=OrderBy(field="timestamp"),
        )
        return [AuditEvent.from_document(doc.id, doc.data) for doc in documents]

    async def log_account_created(self, account_id: str, owner_id: str, name: str) -> None:
        await self.log(AuditEventBuilder.account_created(account_id, owner_id, name))

    async def log_account_updated(self, account_id: str, owner_id: str, changes: dict) -> None:
        await self.log(AuditEventBuilder.account_updated(account_id, owner_id, changes))

    async def log_account_archived(self, account_id: str, owner_id: str, name: str) -> None:
        await self.log(AuditEventBuilder.account_archived(account_id, owner_id, name))

    async def log_transaction_created(
        self,
        transaction_id: str,
        owner_id: str,
        account_id: str,
        amount: Decimal,
        direction: str,
        chain_id: Optional[str] = None,
    ) -> None:
        """Log a recorded transaction."""
        event = AuditEventBuilder.transaction_created(
            transaction_id=transaction_id,
            owner_id=owner_id,
            account_id=account_id,
            amount=amount,
            direction=direction,
            chain_id=chain_id,
            currency_code=self._currency_code,
        )
        await self.log(event)

    async def log_transaction_updated(
        self,
        transaction_id: str,
        owner_id: str,
        fields: list[str],
        dropped: list[str],
    ) -> None:
        await self.log(AuditEventBuilder.transaction_updated(transaction_id, owner_id, fields, dropped))

    async def log_transaction_deleted(self, transaction_id: str, owner_id: str) -> None:
        await self.log(AuditEventBuilder.transaction_deleted(transaction_id, owner_id))

    async def log_payback_status_updated(self, transaction_id: str, owner_id: str, status: str) -> None:
        await self.log(AuditEventBuilder.payback_status_updated(transaction_id, owner_id, status))

    async def log_chain_created(
        self,
        chain_id: str,
        owner_id: str,
        transaction_ids: list[str],
        atomic: bool,
    ) -> None:
        await self.log(AuditEventBuilder.chain_created(chain_id, owner_id, transaction_ids, atomic))

    async def log_chain_deleted(self, chain_id: str, owner_id: str, transaction_ids: list[str]) -> None:
        await self.log(AuditEventBuilder.chain_deleted(chain_id, owner_id, transaction_ids))

    async def log_chain_failed(
        self,
        chain_id: str,
        owner_id: str,
        created_ids: list[str],
        error_message: str,
    ) -> None:
        """Log a chain whose legs could not all be written."""
        event = AuditEventBuilder.chain_failed(
            chain_id=chain_id,
            owner_id=owner_id,
            created_ids=created_ids,
            error_message=error_message,
        )
        await self.log(event)

    async def log_chain_rolled_back(
        self,
        chain_id: str,
        owner_id: str,
        removed_ids: list[str],
        orphaned_ids: list[str],
    ) -> None:
        await self.log(AuditEventBuilder.chain_rolled_back(chain_id, owner_id, removed_ids, orphaned_ids))

    async def log_category_created(
        self,
        category_id: str,
        owner_id: str,
        name: str,
        category_type: str,
    ) -> None:
        await self.log(AuditEventBuilder.category_created(category_id, owner_id, name, category_type))

    async def log_category_updated(self, category_id: str, owner_id: str, changes: dict) -> None:
        await self.log(AuditEventBuilder.category_updated(category_id, owner_id, changes))

    async def log_category_deleted(self, category_id: str, owner_id: str) -> None:
        await self.log(AuditEventBuilder.category_deleted(category_id, owner_id))

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[str] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> str:
    """
    Create a new correlation ID for tracking related events.

    Transfers use their chain id instead; this is for other multi-step
    actions that want their events grouped.
    """
    return uuid4().hex
