"""
Main Orchestrator for Finance Tracker

This module ties together all the components and defines the
end-to-end flows callers use:
1. Transfer (pick accounts → validate pair → build legs → create chain)
2. Component wiring (settings → store → services)

DESIGN DECISION: No process-wide singletons. create_app_components
builds one FinanceTracker from an explicit store handle, and every
service receives what it needs through its constructor. Tests build
their own tracker around an in-memory store.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional, Union

import structlog

from finance_tracker.audit import AuditLogger
from finance_tracker.config import Settings, get_settings
from finance_tracker.errors import InvalidInputError, translate_errors
from finance_tracker.ledger import (
    AccountService,
    CategoryService,
    StatsService,
    TransactionService,
    UserService,
    require_owner,
)
from finance_tracker.models.transaction import (
    TRANSFER_CATEGORY,
    ChainRecord,
    TransactionCreate,
    TransactionType,
)
from finance_tracker.services.auth import AuthProviderInterface, InMemoryAuthProvider
from finance_tracker.services.storage import (
    DocumentStoreInterface,
    GoogleSheetsClient,
    GoogleSheetsDocumentStore,
    InMemoryDocumentStore,
)
from finance_tracker.validation import TransactionValidator


logger = structlog.get_logger(__name__)


class TransferFlow:
    """
    Orchestrates a transfer between two of the owner's accounts.

    Flow:
    1. Check the pair (different accounts, amount > 0)
    2. Resolve both accounts among the owner's active accounts
    3. Build the debit leg and the credit leg
    4. Create the chain
    """

    def __init__(
        self,
        accounts: AccountService,
        transactions: TransactionService,
        validator: Optional[TransactionValidator] = None,
    ):
        self._accounts = accounts
        self._transactions = transactions
        self._validator = validator or TransactionValidator()

    @staticmethod
    def build_legs(
        from_account_id: str,
        from_name: str,
        to_account_id: str,
        to_name: str,
        amount: Decimal,
        description: str = "",
        transaction_date: Optional[datetime] = None,
    ) -> list[TransactionCreate]:
        """Debit leg first, credit leg second."""
        note = description.strip()
        suffix = f": {note}" if note else ""
        return [
            TransactionCreate(
                account_id=from_account_id,
                amount=amount,
                type=TransactionType.NEGATIVE,
                category=TRANSFER_CATEGORY,
                description=f"Transfer to {to_name}{suffix}",
                transaction_date=transaction_date,
            ),
            TransactionCreate(
                account_id=to_account_id,
                amount=amount,
                type=TransactionType.POSITIVE,
                category=TRANSFER_CATEGORY,
                description=f"Transfer from {from_name}{suffix}",
                transaction_date=transaction_date,
            ),
        ]

    @translate_errors("Failed to complete transfer")
    async def transfer(
        self,
        owner_id: str,
        from_account_id: str,
        to_account_id: str,
        amount: Union[Decimal, int, str],
        description: str = "",
        transaction_date: Optional[datetime] = None,
    ) -> ChainRecord:
        """
        Move `amount` from one account to another.

        Returns:
            The COMPLETED chain record referencing both legs
        """
        require_owner(owner_id)
        amount = self._validator.validate_transfer(from_account_id, to_account_id, amount)

        active = {account.id: account for account in await self._accounts.list_by_owner(owner_id)}
        source = active.get(from_account_id)
        destination = active.get(to_account_id)
        if source is None or destination is None:
            raise InvalidInputError("Invalid accounts selected")

        legs = self.build_legs(
            source.id,
            source.name,
            destination.id,
            destination.name,
            amount,
            description,
            transaction_date,
        )
        chain = await self._transactions.create_chain(owner_id, legs)

        logger.info(
            "transfer_completed",
            chain_id=chain.chain_id,
            from_account_id=source.id,
            to_account_id=destination.id,
        )
        return chain


@dataclass
class FinanceTracker:
    """Every service wired around one document store."""

    store: DocumentStoreInterface
    audit_logger: AuditLogger
    transactions: TransactionService
    accounts: AccountService
    categories: CategoryService
    stats: StatsService
    transfers: TransferFlow
    users: UserService


def create_store(settings: Optional[Settings] = None) -> DocumentStoreInterface:
    """Document store selected by STORAGE_BACKEND."""
    settings = settings or get_settings()
    if settings.storage.backend == "google_sheets":
        return GoogleSheetsDocumentStore(GoogleSheetsClient(settings.google_sheets))
    return InMemoryDocumentStore()


def create_app_components(
    settings: Optional[Settings] = None,
    store: Optional[DocumentStoreInterface] = None,
    auth_provider: Optional[AuthProviderInterface] = None,
) -> FinanceTracker:
    """
    Factory function to create all application components.

    Args:
        settings: Application settings. Loaded from the environment if omitted.
        store: Document store to use. Chosen from settings if omitted.
        auth_provider: Authentication backend. In-memory if omitted.

    Returns:
        A fully wired FinanceTracker
    """
    settings = settings or get_settings()
    app_settings = settings.app
    logging.getLogger("finance_tracker").setLevel(app_settings.log_level)

    store = store or create_store(settings)

    audit_logger = AuditLogger(
        store if app_settings.persist_audit_events else None,
        currency_code=app_settings.currency_code,
    )
    validator = TransactionValidator()

    transactions = TransactionService(store, validator, audit_logger)
    accounts = AccountService(store, transactions, validator, audit_logger)
    categories = CategoryService(store, validator, audit_logger)
    stats = StatsService(accounts, transactions)
    transfers = TransferFlow(accounts, transactions, validator)
    users = UserService(auth_provider or InMemoryAuthProvider())

    logger.info(
        "components_created",
        environment=app_settings.app_environment,
        store=type(store).__name__,
        atomic_batches=store.supports_atomic_batch,
    )

    return FinanceTracker(
        store=store,
        audit_logger=audit_logger,
        transactions=transactions,
        accounts=accounts,
        categories=categories,
        stats=stats,
        transfers=transfers,
        users=users,
    )
