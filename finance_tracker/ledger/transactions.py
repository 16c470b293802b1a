"""
Transaction Service

Owns the single-transaction lifecycle and transfer chains.

DESIGN DECISION: Transfers are chains of ordinary transactions.
1. Every leg is validated before anything is written
2. When the store can commit a batch atomically, all legs and the chain
   record are written in one commit, so a transfer is all-or-nothing
3. Otherwise legs are written one at a time in order, then the chain
   record; any failure deletes the legs already written (compensating
   rollback) and the error propagates
4. Legs a failed rollback could not remove are reported by
   find_orphaned_transactions and removed by remove_orphaned_transactions

Transfer legs are locked: type, category and amount can never change
after creation. Patches touching them are narrowed, not rejected.
"""

import asyncio
from typing import Any, Optional, Sequence, Union

import structlog
from pydantic import BaseModel

from finance_tracker.audit import AuditLogger
from finance_tracker.errors import (
    ChainNotFoundError,
    InvalidInputError,
    TransactionNotFoundError,
    UnauthorizedError,
    translate_errors,
)
from finance_tracker.models.transaction import (
    ChainRecord,
    ChainStatus,
    PaybackDetails,
    PaybackStatus,
    TRANSFER_CATEGORY,
    Transaction,
    TransactionCreate,
    TransactionFilters,
    TransactionUpdate,
)
from finance_tracker.queries import NEWEST_FIRST, filter_transactions, owned_by, transaction_query
from finance_tracker.queries.filters import DateBound
from finance_tracker.services.storage import SERVER_TIMESTAMP, DocumentStoreInterface, FieldFilter
from finance_tracker.validation import TransactionValidator


logger = structlog.get_logger(__name__)

TRANSACTIONS = "transactions"
CHAINS = "chainedTransactions"

# Fields a transfer leg keeps for its whole life
LOCKED_TRANSFER_FIELDS = ("amount", "type", "category")


TransactionInput = Union[TransactionCreate, dict[str, Any]]
PatchInput = Union[TransactionUpdate, dict[str, Any]]


def require_owner(owner_id: Optional[str]) -> str:
    """Reject calls made without an authenticated user."""
    if not owner_id:
        raise UnauthorizedError("You must be signed in", http_status=401)
    return owner_id


class TransactionService:
    """Transaction CRUD, chain creation/deletion and query filtering."""

    def __init__(
        self,
        store: DocumentStoreInterface,
        validator: Optional[TransactionValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._store = store
        self._validator = validator or TransactionValidator()
        self._audit_logger = audit_logger

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _new_document(owner_id: str, draft: TransactionCreate) -> dict[str, Any]:
        """Fields of a new transaction document. Timestamps come from the store."""
        payback = None
        if draft.requires_payback:
            payback = PaybackDetails(due_date=draft.payback_details.due_date).model_dump()
        return {
            "account_id": draft.account_id,
            "amount": draft.amount,
            "type": draft.type,
            "category": draft.category,
            "description": draft.description,
            "owner_id": owner_id,
            "requires_payback": draft.requires_payback,
            "party_name": draft.party_name or None,
            "chain_id": draft.chain_id,
            "payback_details": payback,
            "created_at": draft.transaction_date or SERVER_TIMESTAMP,
            "updated_at": SERVER_TIMESTAMP,
        }

    async def _fetch(self, transaction_id: str) -> Optional[Transaction]:
        document = await self._store.get_document(TRANSACTIONS, transaction_id)
        if document is None:
            return None
        return Transaction.from_document(document.id, document.data)

    async def _get_owned(self, transaction_id: str, owner_id: str) -> Transaction:
        require_owner(owner_id)
        if not transaction_id:
            raise InvalidInputError("Transaction id is required")
        transaction = await self._fetch(transaction_id)
        if transaction is None:
            raise TransactionNotFoundError("Transaction not found")
        if transaction.owner_id != owner_id:
            raise UnauthorizedError("You do not have access to this transaction")
        return transaction

    async def _query(self, filters: Sequence[FieldFilter]) -> list[Transaction]:
        documents = await self._store.query_documents(
            TRANSACTIONS,
            filters=filters,
            order_by=NEWEST_FIRST,
        )
        return [Transaction.from_document(doc.id, doc.data) for doc in documents]

    async def _fetch_chain(self, chain_id: str) -> Optional[ChainRecord]:
        document = await self._store.get_document(CHAINS, chain_id)
        if document is None:
            return None
        return ChainRecord.from_document(document.id, document.data)

    # -------------------------------------------------------------------------
    # Single transactions
    # -------------------------------------------------------------------------

    @translate_errors("Failed to create transaction")
    async def create(self, owner_id: str, data: TransactionInput) -> Transaction:
        """
        Validate and persist one transaction.

        Chain legs are only written by create_chain, so a draft carrying a
        chain id or the TRANSFER category is refused here.

        Raises:
            InvalidAmountError: amount missing, non-numeric or not positive
            InvalidInputError: any other missing or inconsistent field
        """
        require_owner(owner_id)
        draft = self._validator.validate_transaction(data)
        if draft.chain_id or draft.category == TRANSFER_CATEGORY:
            raise InvalidInputError("Transfers must be created between two accounts")

        transaction_id = await self._store.create_document(
            TRANSACTIONS,
            self._new_document(owner_id, draft),
        )
        transaction = await self._fetch(transaction_id)

        if self._audit_logger:
            await self._audit_logger.log_transaction_created(
                transaction_id=transaction.id,
                owner_id=owner_id,
                account_id=transaction.account_id,
                amount=transaction.amount,
                direction=transaction.type.value,
                chain_id=transaction.chain_id,
            )
        return transaction

    @translate_errors("Failed to update transaction")
    async def update(
        self,
        transaction_id: str,
        patch: PatchInput,
        owner_id: str,
    ) -> Transaction:
        """
        Apply a partial update and return the updated transaction.

        On a transfer leg, amount/type/category are dropped from the patch
        and the remainder is applied.
        """
        existing = await self._get_owned(transaction_id, owner_id)

        if isinstance(patch, BaseModel):
            patch_data = patch.model_dump(exclude_unset=True)
        elif isinstance(patch, dict):
            patch_data = dict(patch)
        else:
            raise InvalidInputError("Invalid transaction data")

        dropped = []
        if existing.is_transfer:
            dropped = [field for field in LOCKED_TRANSFER_FIELDS if field in patch_data]
            for field in dropped:
                patch_data.pop(field)

        update = self._validator.validate_update(patch_data)
        changes = {field: getattr(update, field) for field in update.model_fields_set}

        requires_payback = changes.get("requires_payback", existing.requires_payback)
        if not requires_payback:
            if existing.payback_details is not None or "payback_details" in changes:
                changes["payback_details"] = None
        elif changes.get("payback_details", existing.payback_details) is None:
            raise InvalidInputError("Payback due date is required when payback is requested")
        if changes.get("payback_details") is not None:
            changes["payback_details"] = changes["payback_details"].model_dump()
        if "party_name" in changes:
            changes["party_name"] = changes["party_name"] or None

        await self._store.update_document(
            TRANSACTIONS,
            transaction_id,
            {**changes, "updated_at": SERVER_TIMESTAMP},
        )

        if dropped:
            logger.info(
                "transfer_fields_dropped",
                transaction_id=transaction_id,
                dropped=dropped,
            )
        if self._audit_logger:
            await self._audit_logger.log_transaction_updated(
                transaction_id=transaction_id,
                owner_id=owner_id,
                fields=sorted(changes),
                dropped=dropped,
            )
        return await self._fetch(transaction_id)

    @translate_errors("Failed to delete transaction")
    async def delete(self, transaction_id: str, owner_id: str) -> list[str]:
        """
        Delete a transaction. A chain member takes the whole chain with it.

        Returns:
            Ids of every transaction removed
        """
        transaction = await self._get_owned(transaction_id, owner_id)

        if transaction.chain_id is None:
            await self._store.delete_document(TRANSACTIONS, transaction.id)
            if self._audit_logger:
                await self._audit_logger.log_transaction_deleted(transaction.id, owner_id)
            return [transaction.id]

        chain_id = transaction.chain_id
        members = await self._query([
            owned_by(owner_id),
            FieldFilter(field="chain_id", value=chain_id),
        ])
        member_ids = [member.id for member in members]

        # Atomic where the store supports it, best-effort in order otherwise
        batch = self._store.batch()
        for member_id in member_ids:
            batch.delete(TRANSACTIONS, member_id)
        batch.delete(CHAINS, chain_id)
        await batch.commit()

        logger.info("chain_deleted", chain_id=chain_id, transaction_ids=member_ids)
        if self._audit_logger:
            await self._audit_logger.log_chain_deleted(chain_id, owner_id, member_ids)
        return member_ids

    @translate_errors("Failed to fetch transaction")
    async def get_by_id(self, transaction_id: str, owner_id: str) -> Transaction:
        return await self._get_owned(transaction_id, owner_id)

    @translate_errors("Failed to fetch transactions")
    async def list_by_account(
        self,
        owner_id: str,
        account_id: str,
        start: DateBound = None,
        end: DateBound = None,
    ) -> list[Transaction]:
        """
        Transactions of one account, newest first.

        Args:
            start: Inclusive lower bound on created_at
            end: Inclusive upper bound (a bare date covers the whole day)
        """
        require_owner(owner_id)
        if not account_id:
            raise InvalidInputError("Account is required")
        return await self._query(transaction_query(owner_id, account_id, start, end))

    @translate_errors("Failed to search transactions")
    async def search(
        self,
        owner_id: str,
        filters: Optional[TransactionFilters] = None,
    ) -> list[Transaction]:
        """Search all of an owner's transactions, newest first."""
        require_owner(owner_id)
        filters = filters or TransactionFilters()
        transactions = await self._query(transaction_query(
            owner_id,
            filters.account_id,
            filters.start,
            filters.end,
        ))
        return filter_transactions(transactions, filters)

    @translate_errors("Failed to update payback status")
    async def set_payback_status(
        self,
        transaction_id: str,
        owner_id: str,
        status: PaybackStatus,
    ) -> Transaction:
        """Mark a payback as paid (stamping completed_at) or back to pending."""
        transaction = await self._get_owned(transaction_id, owner_id)
        if not transaction.requires_payback or transaction.payback_details is None:
            raise InvalidInputError("This transaction has no payback to update")

        status = PaybackStatus(status)
        details = transaction.payback_details.model_dump()
        details["status"] = status
        # Stamped by the store clock like every other timestamp
        details["completed_at"] = SERVER_TIMESTAMP if status == PaybackStatus.PAID else None
        await self._store.update_document(
            TRANSACTIONS,
            transaction_id,
            {"payback_details": details, "updated_at": SERVER_TIMESTAMP},
        )

        if self._audit_logger:
            await self._audit_logger.log_payback_status_updated(transaction_id, owner_id, status.value)
        return await self._fetch(transaction_id)

    # -------------------------------------------------------------------------
    # Chains
    # -------------------------------------------------------------------------

    @translate_errors("Failed to create transfer")
    async def create_chain(
        self,
        owner_id: str,
        drafts: Sequence[TransactionInput],
    ) -> ChainRecord:
        """
        Create a chain of transactions sharing one fresh chain id.

        By convention leg 0 debits the source account and leg 1 credits
        the destination account.

        Returns:
            The chain record, status COMPLETED
        """
        require_owner(owner_id)
        if not drafts:
            raise InvalidInputError("A transfer needs at least one transaction")

        chain_id = self._store.new_document_id()
        legs = [
            self._validator.validate_transaction(self._attach_chain(draft, chain_id))
            for draft in drafts
        ]

        if self._store.supports_atomic_batch:
            transaction_ids = await self._commit_chain_atomically(owner_id, chain_id, legs)
        else:
            transaction_ids = await self._create_chain_sequentially(owner_id, chain_id, legs)

        logger.info(
            "chain_created",
            chain_id=chain_id,
            transaction_ids=transaction_ids,
            atomic=self._store.supports_atomic_batch,
        )
        if self._audit_logger:
            for transaction_id, leg in zip(transaction_ids, legs):
                await self._audit_logger.log_transaction_created(
                    transaction_id=transaction_id,
                    owner_id=owner_id,
                    account_id=leg.account_id,
                    amount=leg.amount,
                    direction=leg.type.value,
                    chain_id=chain_id,
                )
            await self._audit_logger.log_chain_created(
                chain_id,
                owner_id,
                transaction_ids,
                atomic=self._store.supports_atomic_batch,
            )
        return await self._fetch_chain(chain_id)

    @staticmethod
    def _attach_chain(draft: TransactionInput, chain_id: str) -> TransactionInput:
        if isinstance(draft, TransactionCreate):
            return draft.model_copy(update={"chain_id": chain_id})
        if isinstance(draft, dict):
            return {**draft, "chain_id": chain_id}
        raise InvalidInputError("Invalid transaction data")

    @staticmethod
    def _chain_document(owner_id: str, chain_id: str, transaction_ids: list[str]) -> dict[str, Any]:
        return {
            "chain_id": chain_id,
            "owner_id": owner_id,
            "transaction_ids": transaction_ids,
            "status": ChainStatus.COMPLETED,
            "created_at": SERVER_TIMESTAMP,
        }

    async def _commit_chain_atomically(
        self,
        owner_id: str,
        chain_id: str,
        legs: list[TransactionCreate],
    ) -> list[str]:
        batch = self._store.batch()
        transaction_ids = [
            batch.create(TRANSACTIONS, self._new_document(owner_id, leg))
            for leg in legs
        ]
        batch.create(
            CHAINS,
            self._chain_document(owner_id, chain_id, transaction_ids),
            document_id=chain_id,
        )
        await batch.commit()
        return transaction_ids

    async def _create_chain_sequentially(
        self,
        owner_id: str,
        chain_id: str,
        legs: list[TransactionCreate],
    ) -> list[str]:
        created: list[str] = []
        try:
            for leg in legs:
                created.append(await self._store.create_document(
                    TRANSACTIONS,
                    self._new_document(owner_id, leg),
                ))
            await self._store.create_document(
                CHAINS,
                self._chain_document(owner_id, chain_id, created),
                document_id=chain_id,
            )
        except Exception as e:
            logger.error(
                "chain_creation_failed",
                chain_id=chain_id,
                created_transaction_ids=created,
                error=str(e),
            )
            if self._audit_logger:
                await self._audit_logger.log_chain_failed(chain_id, owner_id, list(created), str(e))
            await self._roll_back_legs(chain_id, owner_id, created)
            raise
        return created

    async def _roll_back_legs(self, chain_id: str, owner_id: str, created: list[str]) -> None:
        """Delete legs of a failed chain. Legs that cannot be deleted are left as orphans."""
        removed: list[str] = []
        orphaned: list[str] = []
        for transaction_id in created:
            try:
                await self._store.delete_document(TRANSACTIONS, transaction_id)
                removed.append(transaction_id)
            except Exception as e:
                logger.error(
                    "chain_rollback_failed",
                    chain_id=chain_id,
                    transaction_id=transaction_id,
                    error=str(e),
                )
                orphaned.append(transaction_id)

        logger.warning("chain_rolled_back", chain_id=chain_id, removed=removed, orphaned=orphaned)
        if self._audit_logger:
            await self._audit_logger.log_chain_rolled_back(chain_id, owner_id, removed, orphaned)

    @translate_errors("Failed to fetch transfer")
    async def get_chain(self, chain_id: str, owner_id: str) -> ChainRecord:
        require_owner(owner_id)
        if not chain_id:
            raise InvalidInputError("Chain id is required")
        chain = await self._fetch_chain(chain_id)
        if chain is None:
            raise ChainNotFoundError("Transfer not found")
        if chain.owner_id != owner_id:
            raise UnauthorizedError("You do not have access to this transfer")
        return chain

    @translate_errors("Failed to fetch transfer transactions")
    async def list_by_chain(self, chain_id: str, owner_id: str) -> list[Transaction]:
        """Members of a chain, in chain order when the chain record exists."""
        require_owner(owner_id)
        if not chain_id:
            raise InvalidInputError("Chain id is required")

        members = await self._query([FieldFilter(field="chain_id", value=chain_id)])
        if not members:
            raise ChainNotFoundError("Transfer not found")
        if any(member.owner_id != owner_id for member in members):
            raise UnauthorizedError("You do not have access to this transfer")

        chain = await self._fetch_chain(chain_id)
        if chain is not None:
            position = {tid: index for index, tid in enumerate(chain.transaction_ids)}
            members.sort(key=lambda member: position.get(member.id, len(position)))
        return members

    @translate_errors("Failed to check transfers")
    async def find_orphaned_transactions(self, owner_id: str) -> list[Transaction]:
        """
        Transactions carrying a chain id that no chain record vouches for.

        Either the chain record is missing or it does not list the
        transaction.
        """
        require_owner(owner_id)
        chained = [tx for tx in await self._query([owned_by(owner_id)]) if tx.chain_id]
        chain_ids = sorted({tx.chain_id for tx in chained})
        records = await asyncio.gather(*(self._fetch_chain(chain_id) for chain_id in chain_ids))
        members_by_chain = {
            chain_id: set(record.transaction_ids) if record else set()
            for chain_id, record in zip(chain_ids, records)
        }
        return [tx for tx in chained if tx.id not in members_by_chain[tx.chain_id]]

    @translate_errors("Failed to clean up transfers")
    async def remove_orphaned_transactions(self, owner_id: str) -> list[str]:
        """Delete every orphaned chain leg of an owner. Returns the removed ids."""
        orphans = await self.find_orphaned_transactions(owner_id)
        for orphan in orphans:
            await self._store.delete_document(TRANSACTIONS, orphan.id)
            if self._audit_logger:
                await self._audit_logger.log_transaction_deleted(orphan.id, owner_id)
        if orphans:
            logger.warning(
                "orphaned_transactions_removed",
                owner_id=owner_id,
                transaction_ids=[orphan.id for orphan in orphans],
            )
        return [orphan.id for orphan in orphans]
