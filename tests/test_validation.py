"""Tests for the input validator."""

import pytest
from datetime import datetime
from decimal import Decimal

from finance_tracker.errors import ErrorCode, InvalidAmountError, InvalidInputError
from finance_tracker.models.transaction import TransactionCreate, TransactionType
from finance_tracker.validation import TransactionValidator


@pytest.fixture
def validator() -> TransactionValidator:
    return TransactionValidator()


def _draft(**overrides) -> dict:
    draft = {
        "account_id": "acc-1",
        "amount": "12.34",
        "type": "NEGATIVE",
        "category": "Shopping",
        "description": "Socks",
    }
    draft.update(overrides)
    return draft


class TestTransactionValidation:
    """Stage 1 and stage 2 checks on transaction drafts."""

    def test_valid_draft_is_coerced(self, validator):
        draft = validator.validate_transaction(_draft())
        assert isinstance(draft, TransactionCreate)
        assert draft.amount == Decimal("12.34")
        assert draft.type == TransactionType.NEGATIVE

    @pytest.mark.parametrize("amount", ["0", "-5", "abc", None])
    def test_bad_amounts(self, validator, amount):
        with pytest.raises(InvalidAmountError) as exc_info:
            validator.validate_transaction(_draft(amount=amount))
        assert exc_info.value.code == ErrorCode.INVALID_AMOUNT
        assert exc_info.value.http_status == 400

    @pytest.mark.parametrize("field", ["account_id", "description", "category"])
    def test_required_text_fields(self, validator, field):
        with pytest.raises(InvalidInputError):
            validator.validate_transaction(_draft(**{field: "   "}))

    def test_missing_type(self, validator):
        draft = _draft()
        del draft["type"]
        with pytest.raises(InvalidInputError):
            validator.validate_transaction(draft)

    def test_unknown_type(self, validator):
        with pytest.raises(InvalidInputError):
            validator.validate_transaction(_draft(type="SIDEWAYS"))

    def test_payback_requires_due_date(self, validator):
        with pytest.raises(InvalidInputError):
            validator.validate_transaction(_draft(requires_payback=True))
        with pytest.raises(InvalidInputError):
            validator.validate_transaction(_draft(requires_payback=True, payback_details={}))

    def test_payback_with_due_date(self, validator):
        draft = validator.validate_transaction(
            _draft(requires_payback=True, payback_details={"due_date": datetime(2024, 4, 1)})
        )
        assert draft.payback_details.due_date.year == 2024

    def test_transfer_category_requires_chain(self, validator):
        with pytest.raises(InvalidInputError):
            validator.validate_transaction(_draft(category="TRANSFER"))
        assert validator.validate_transaction(_draft(category="TRANSFER", chain_id="c1")).chain_id == "c1"


class TestUpdateValidation:
    """Only the fields a patch sets are checked."""

    def test_empty_patch_is_valid(self, validator):
        assert validator.validate_update({}).model_fields_set == set()

    def test_non_positive_amount(self, validator):
        with pytest.raises(InvalidAmountError):
            validator.validate_update({"amount": "0"})

    def test_cannot_become_a_transfer(self, validator):
        with pytest.raises(InvalidInputError):
            validator.validate_update({"category": "TRANSFER"})

    def test_blank_description(self, validator):
        with pytest.raises(InvalidInputError):
            validator.validate_update({"description": ""})


class TestOtherValidation:
    """Accounts, categories and transfers."""

    def test_account_requires_name_and_color(self, validator):
        with pytest.raises(InvalidInputError):
            validator.validate_account({"name": "", "color": "#000"})
        with pytest.raises(InvalidInputError):
            validator.validate_account({"name": "Checking", "color": ""})

    def test_category_requires_type(self, validator):
        with pytest.raises(InvalidInputError):
            validator.validate_category({"name": "Pets", "icon": "paw"})

    def test_transfer_between_same_account(self, validator):
        with pytest.raises(InvalidInputError) as exc_info:
            validator.validate_transfer("acc-1", "acc-1", "10")
        assert "same account" in exc_info.value.message

    def test_transfer_amount_must_be_positive(self, validator):
        with pytest.raises(InvalidAmountError):
            validator.validate_transfer("acc-1", "acc-2", "0")

    def test_transfer_amount_is_parsed(self, validator):
        assert validator.validate_transfer("acc-1", "acc-2", "50.00") == Decimal("50.00")
