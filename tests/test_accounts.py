"""Tests for AccountService: duplicates, archival and derived balances."""

import pytest
from decimal import Decimal

from finance_tracker.errors import (
    AccountExistsError,
    AccountNotFoundError,
    ErrorCode,
    InvalidInputError,
    UnauthorizedError,
)
from finance_tracker.ledger.accounts import ACCOUNTS, calculate_balance


class TestCreateAccount:
    """Creating accounts and the duplicate-name rule."""

    async def test_create(self, tracker, owner_id):
        account = await tracker.accounts.create(owner_id, {"name": "  Checking ", "color": "#000"})
        assert account.name == "Checking"
        assert account.owner_id == owner_id
        assert account.is_archived is False
        assert account.balance == Decimal("0")

    async def test_balance_is_not_stored(self, tracker, store, owner_id):
        account = await tracker.accounts.create(owner_id, {"name": "Checking", "color": "#000"})
        document = await store.get_document(ACCOUNTS, account.id)
        assert "balance" not in document.data

    async def test_exact_duplicate_fails(self, tracker, owner_id):
        await tracker.accounts.create(owner_id, {"name": "Checking", "color": "#000"})
        with pytest.raises(AccountExistsError) as exc_info:
            await tracker.accounts.create(owner_id, {"name": "Checking", "color": "#fff"})
        assert exc_info.value.code == ErrorCode.ACCOUNT_EXISTS
        assert exc_info.value.http_status == 400

    async def test_duplicate_check_is_case_sensitive(self, tracker, owner_id):
        await tracker.accounts.create(owner_id, {"name": "Checking", "color": "#000"})
        other = await tracker.accounts.create(owner_id, {"name": "checking", "color": "#000"})
        assert other.name == "checking"

    async def test_same_name_allowed_after_archive(self, tracker, owner_id):
        original = await tracker.accounts.create(owner_id, {"name": "Checking", "color": "#000"})
        await tracker.accounts.delete(original.id, owner_id)
        replacement = await tracker.accounts.create(owner_id, {"name": "Checking", "color": "#000"})
        assert replacement.id != original.id

    async def test_same_name_for_different_owners(self, tracker, owner_id, other_owner_id):
        await tracker.accounts.create(owner_id, {"name": "Checking", "color": "#000"})
        await tracker.accounts.create(other_owner_id, {"name": "Checking", "color": "#000"})

    async def test_missing_name(self, tracker, owner_id):
        with pytest.raises(InvalidInputError):
            await tracker.accounts.create(owner_id, {"name": "", "color": "#000"})


class TestBalances:
    """Balances are folded from every transaction on each read."""

    async def test_balance_matches_signed_sum(self, tracker, owner_id, make_draft, checking_and_savings):
        checking, savings = checking_and_savings
        await tracker.transactions.create(owner_id, make_draft(checking.id, amount="1000", type_="POSITIVE", category="Salary"))
        await tracker.transactions.create(owner_id, make_draft(checking.id, amount="45.50"))
        await tracker.transactions.create(owner_id, make_draft(checking.id, amount="4.50"))
        await tracker.transfers.transfer(owner_id, checking.id, savings.id, "200")

        for account in await tracker.accounts.list_by_owner(owner_id):
            history = await tracker.transactions.list_by_account(owner_id, account.id)
            assert account.balance == calculate_balance(history)

        assert await tracker.accounts.compute_balance(checking.id, owner_id) == Decimal("750.00")
        assert await tracker.accounts.compute_balance(savings.id, owner_id) == Decimal("200")

    async def test_calculate_balance_of_nothing(self):
        assert calculate_balance([]) == Decimal("0")

    async def test_archive_keeps_history(self, tracker, owner_id, make_draft, checking_and_savings):
        checking, savings = checking_and_savings
        await tracker.transfers.transfer(owner_id, checking.id, savings.id, "30")

        await tracker.accounts.delete(savings.id, owner_id)

        listed = await tracker.accounts.list_by_owner(owner_id)
        assert [account.id for account in listed] == [checking.id]
        assert listed[0].balance == Decimal("-30")

        archived = await tracker.accounts.get_by_id(savings.id, owner_id)
        assert archived.is_archived is True
        assert archived.balance == Decimal("30")


class TestUpdateAndDelete:
    """Renames, recolors and archival permissions."""

    async def test_rename(self, tracker, owner_id, checking_and_savings):
        checking, _ = checking_and_savings
        renamed = await tracker.accounts.update(checking.id, {"name": "Everyday", "color": "#123"}, owner_id)
        assert renamed.name == "Everyday"
        assert renamed.color == "#123"

    async def test_rename_onto_existing_name(self, tracker, owner_id, checking_and_savings):
        checking, _ = checking_and_savings
        with pytest.raises(AccountExistsError):
            await tracker.accounts.update(checking.id, {"name": "Savings"}, owner_id)

    async def test_keeping_own_name_is_fine(self, tracker, owner_id, checking_and_savings):
        checking, _ = checking_and_savings
        updated = await tracker.accounts.update(checking.id, {"name": "Checking", "color": "#999"}, owner_id)
        assert updated.color == "#999"

    async def test_archived_accounts_cannot_change(self, tracker, owner_id, checking_and_savings):
        checking, _ = checking_and_savings
        await tracker.accounts.delete(checking.id, owner_id)
        with pytest.raises(InvalidInputError):
            await tracker.accounts.update(checking.id, {"color": "#999"}, owner_id)

    async def test_foreign_account(self, tracker, other_owner_id, checking_and_savings):
        checking, _ = checking_and_savings
        with pytest.raises(UnauthorizedError):
            await tracker.accounts.delete(checking.id, other_owner_id)
        with pytest.raises(UnauthorizedError):
            await tracker.accounts.get_by_id(checking.id, other_owner_id)

    async def test_missing_account(self, tracker, owner_id):
        with pytest.raises(AccountNotFoundError) as exc_info:
            await tracker.accounts.get_by_id("nope", owner_id)
        assert exc_info.value.http_status == 404

    async def test_list_requires_owner(self, tracker):
        with pytest.raises(UnauthorizedError):
            await tracker.accounts.list_by_owner("")
