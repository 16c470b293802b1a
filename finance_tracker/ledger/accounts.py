"""
Account Service

DESIGN DECISION: Balances are derived, never stored.
Every read folds the account's full transaction history:

    balance = sum(+amount if POSITIVE else -amount)

Transfer legs count like any other transaction. Accounts are never
physically deleted; "delete" archives, so historical transactions keep
pointing at a real account.

Duplicate names are checked case-sensitively among the owner's
non-archived accounts. The check is check-then-act; two concurrent
creates with the same name can both succeed.
"""

import asyncio
from decimal import Decimal
from typing import Any, Iterable, Optional, Union

import structlog
from pydantic import BaseModel

from finance_tracker.audit import AuditLogger
from finance_tracker.errors import (
    AccountExistsError,
    AccountNotFoundError,
    InvalidInputError,
    UnauthorizedError,
    translate_errors,
)
from finance_tracker.ledger.transactions import TransactionService, require_owner
from finance_tracker.models.account import Account, AccountCreate, AccountUpdate
from finance_tracker.models.transaction import Transaction
from finance_tracker.queries import owned_by
from finance_tracker.services.storage import SERVER_TIMESTAMP, DocumentStoreInterface, FieldFilter, OrderBy
from finance_tracker.validation import TransactionValidator


logger = structlog.get_logger(__name__)

ACCOUNTS = "accounts"


def calculate_balance(transactions: Iterable[Transaction]) -> Decimal:
    """Fold transactions into a balance."""
    return sum((tx.signed_amount for tx in transactions), Decimal("0"))


class AccountService:
    """Account CRUD, soft archive and on-read balances."""

    def __init__(
        self,
        store: DocumentStoreInterface,
        transactions: TransactionService,
        validator: Optional[TransactionValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._transactions = transactions
        self._validator = validator or TransactionValidator()
        self._audit_logger = audit_logger

    async def _active_accounts(self, owner_id: str) -> list[Account]:
        documents = await self._store.query_documents(
            ACCOUNTS,
            filters=[owned_by(owner_id), FieldFilter(field="is_archived", value=False)],
            order_by=OrderBy(field="created_at"),
        )
        return [Account.from_document(doc.id, doc.data) for doc in documents]

    async def _get_owned(self, account_id: str, owner_id: str) -> Account:
        require_owner(owner_id)
        if not account_id:
            raise InvalidInputError("Account is required")
        document = await self._store.get_document(ACCOUNTS, account_id)
        if document is None:
            raise AccountNotFoundError("Account not found")
        account = Account.from_document(document.id, document.data)
        if account.owner_id != owner_id:
            raise UnauthorizedError("You do not have access to this account")
        return account

    async def _with_balance(self, account: Account) -> Account:
        history = await self._transactions.list_by_account(account.owner_id, account.id)
        return account.model_copy(update={"balance": calculate_balance(history)})

    async def _ensure_unique_name(
        self,
        owner_id: str,
        name: str,
        exclude_id: Optional[str] = None,
    ) -> None:
        for account in await self._active_accounts(owner_id):
            if account.name == name and account.id != exclude_id:
                raise AccountExistsError("An account with this name already exists")

    @translate_errors("Failed to fetch accounts")
    async def list_by_owner(self, owner_id: str) -> list[Account]:
        """Non-archived accounts with balances, oldest first."""
        require_owner(owner_id)
        accounts = await self._active_accounts(owner_id)
        return list(await asyncio.gather(*(self._with_balance(a) for a in accounts)))

    @translate_errors("Failed to fetch account")
    async def get_by_id(self, account_id: str, owner_id: str) -> Account:
        """One account with its balance. Archived accounts still resolve."""
        account = await self._get_owned(account_id, owner_id)
        return await self._with_balance(account)

    @translate_errors("Failed to compute balance")
    async def compute_balance(self, account_id: str, owner_id: str) -> Decimal:
        account = await self._get_owned(account_id, owner_id)
        history = await self._transactions.list_by_account(owner_id, account.id)
        return calculate_balance(history)

    @translate_errors("Failed to create account")
    async def create(
        self,
        owner_id: str,
        data: Union[AccountCreate, dict[str, Any]],
    ) -> Account:
        """
        Create an account.

        Raises:
            InvalidInputError: name or color missing
            AccountExistsError: an active account already has this exact name
        """
        require_owner(owner_id)
        draft = self._validator.validate_account(data)
        await self._ensure_unique_name(owner_id, draft.name)

        account_id = await self._store.create_document(ACCOUNTS, {
            "name": draft.name,
            "color": draft.color,
            "owner_id": owner_id,
            "is_archived": False,
            "created_at": SERVER_TIMESTAMP,
            "updated_at": SERVER_TIMESTAMP,
        })
        document = await self._store.get_document(ACCOUNTS, account_id)
        account = Account.from_document(document.id, document.data)

        logger.info("account_created", account_id=account_id, owner_id=owner_id)
        if self._audit_logger:
            await self._audit_logger.log_account_created(account_id, owner_id, account.name)
        return account

    @translate_errors("Failed to update account")
    async def update(
        self,
        account_id: str,
        patch: Union[AccountUpdate, dict[str, Any]],
        owner_id: str,
    ) -> Account:
        """Rename or recolor an account."""
        account = await self._get_owned(account_id, owner_id)
        if account.is_archived:
            raise InvalidInputError("Archived accounts cannot be changed")

        if isinstance(patch, BaseModel):
            patch = patch.model_dump(exclude_unset=True)
        update = self._validator.validate_account_update(patch)
        changes = {field: getattr(update, field) for field in update.model_fields_set}

        if "name" in changes and changes["name"] != account.name:
            await self._ensure_unique_name(owner_id, changes["name"], exclude_id=account_id)

        if changes:
            await self._store.update_document(
                ACCOUNTS,
                account_id,
                {**changes, "updated_at": SERVER_TIMESTAMP},
            )
            if self._audit_logger:
                await self._audit_logger.log_account_updated(account_id, owner_id, changes)
        return await self.get_by_id(account_id, owner_id)

    @translate_errors("Failed to delete account")
    async def delete(self, account_id: str, owner_id: str) -> None:
        """Archive an account. Its transactions and their balance effect stay."""
        account = await self._get_owned(account_id, owner_id)
        if account.is_archived:
            return

        await self._store.update_document(
            ACCOUNTS,
            account_id,
            {"is_archived": True, "updated_at": SERVER_TIMESTAMP},
        )
        logger.info("account_archived", account_id=account_id, owner_id=owner_id)
        if self._audit_logger:
            await self._audit_logger.log_account_archived(account_id, owner_id, account.name)
