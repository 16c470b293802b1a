"""
Two-Stage Input Validation

DESIGN DECISION: Validation happens in two distinct stages:

STAGE 1 - SCHEMA VALIDATION:
- Type coercion via the pydantic input models
- Numeric amount parsing
- Enum membership for directions and category types
- Failures here become InvalidAmountError / InvalidInputError

STAGE 2 - BUSINESS RULES:
- Required labels are non-empty after trimming
- Amounts are strictly positive
- Payback requests carry a due date
- TRANSFER transactions carry a chain id
- Transfers move money between two different accounts

IMPORTANT: Validation NEVER silently fixes issues. The one deliberate
narrowing (dropping locked fields from a transfer-leg patch) belongs to
TransactionService, not here.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Union

from pydantic import BaseModel, ValidationError

from finance_tracker.errors import InvalidAmountError, InvalidInputError
from finance_tracker.models.account import AccountCreate, AccountUpdate
from finance_tracker.models.category import CategoryCreate, CategoryUpdate
from finance_tracker.models.transaction import (
    TRANSFER_CATEGORY,
    TransactionCreate,
    TransactionUpdate,
)


def _first_error_field(error: ValidationError) -> str:
    errors = error.errors()
    if not errors or not errors[0].get("loc"):
        return ""
    return str(errors[0]["loc"][0])


def _coerce(model: type[BaseModel], data: Union[BaseModel, dict[str, Any]], label: str):
    """
    Stage 1: turn raw input into the pydantic input model.

    Amount parsing failures are InvalidAmountError; anything else
    structural is InvalidInputError.
    """
    if isinstance(data, model):
        return data
    if isinstance(data, BaseModel):
        data = data.model_dump(exclude_unset=True)
    if not isinstance(data, dict):
        raise InvalidInputError(f"Invalid {label} data")

    try:
        return model.model_validate(data)
    except ValidationError as e:
        field = _first_error_field(e)
        if field == "amount":
            raise InvalidAmountError("Amount must be a positive number") from e
        if field:
            raise InvalidInputError(f"Invalid {label} field: {field}") from e
        raise InvalidInputError(f"Invalid {label} data") from e


def _require_text(value: Any, message: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise InvalidInputError(message)


def _require_positive(amount: Any) -> None:
    try:
        parsed = Decimal(str(amount))
    except (InvalidOperation, ValueError, TypeError):
        raise InvalidAmountError("Amount must be a positive number")
    if not parsed.is_finite() or parsed <= 0:
        raise InvalidAmountError("Amount must be a positive number")


class TransactionValidator:
    """
    Validates every write-side input before it reaches storage.

    Each method returns the coerced pydantic model so callers work with
    typed data from then on.
    """

    def validate_account(
        self,
        data: Union[AccountCreate, dict[str, Any]],
    ) -> AccountCreate:
        account = _coerce(AccountCreate, data, "account")
        _require_text(account.name, "Account name is required")
        _require_text(account.color, "Account color is required")
        return account

    def validate_account_update(
        self,
        patch: Union[AccountUpdate, dict[str, Any]],
    ) -> AccountUpdate:
        update = _coerce(AccountUpdate, patch, "account")
        fields = update.model_fields_set
        if "name" in fields:
            _require_text(update.name, "Account name cannot be empty")
        if "color" in fields:
            _require_text(update.color, "Account color cannot be empty")
        return update

    def validate_transaction(
        self,
        data: Union[TransactionCreate, dict[str, Any]],
    ) -> TransactionCreate:
        """
        Validate a transaction draft.

        Raises:
            InvalidAmountError: amount missing, non-numeric or not > 0
            InvalidInputError: any other missing or inconsistent field
        """
        if isinstance(data, dict) and data.get("amount") is None:
            raise InvalidAmountError("Amount must be a positive number")

        draft = _coerce(TransactionCreate, data, "transaction")

        _require_text(draft.account_id, "Account is required")
        _require_text(draft.description, "Description is required")
        _require_text(draft.category, "Category is required")
        _require_positive(draft.amount)

        if draft.type is None:
            raise InvalidInputError("Transaction type must be POSITIVE or NEGATIVE")

        if draft.requires_payback and (
            draft.payback_details is None or draft.payback_details.due_date is None
        ):
            raise InvalidInputError("Payback due date is required when payback is requested")

        if draft.category == TRANSFER_CATEGORY and not draft.chain_id:
            raise InvalidInputError("Transfer transactions must belong to a chain")

        return draft

    def validate_update(
        self,
        patch: Union[TransactionUpdate, dict[str, Any]],
    ) -> TransactionUpdate:
        """
        Validate the fields a patch actually sets.

        Locked-field stripping for transfer legs happens before this is
        called, so a TRANSFER category here means someone is trying to
        turn an ordinary transaction into a transfer leg.
        """
        update = _coerce(TransactionUpdate, patch, "transaction")
        fields = update.model_fields_set

        if "amount" in fields:
            if update.amount is None:
                raise InvalidAmountError("Amount must be a positive number")
            _require_positive(update.amount)
        if "type" in fields and update.type is None:
            raise InvalidInputError("Transaction type must be POSITIVE or NEGATIVE")
        if "description" in fields:
            _require_text(update.description, "Description cannot be empty")
        if "category" in fields:
            _require_text(update.category, "Category cannot be empty")
            if update.category == TRANSFER_CATEGORY:
                raise InvalidInputError("Only transfers may use the TRANSFER category")
        if "requires_payback" in fields and update.requires_payback is None:
            raise InvalidInputError("Payback flag must be true or false")
        if update.requires_payback and "payback_details" in fields and update.payback_details is None:
            raise InvalidInputError("Payback due date is required when payback is requested")

        return update

    def validate_category(
        self,
        data: Union[CategoryCreate, dict[str, Any]],
    ) -> CategoryCreate:
        category = _coerce(CategoryCreate, data, "category")
        _require_text(category.name, "Category name is required")
        _require_text(category.icon, "Category icon is required")
        if category.type is None:
            raise InvalidInputError("Category type is required")
        return category

    def validate_category_update(
        self,
        patch: Union[CategoryUpdate, dict[str, Any]],
    ) -> CategoryUpdate:
        update = _coerce(CategoryUpdate, patch, "category")
        fields = update.model_fields_set
        if "name" in fields:
            _require_text(update.name, "Category name cannot be empty")
        if "icon" in fields:
            _require_text(update.icon, "Category icon cannot be empty")
        if "type" in fields and update.type is None:
            raise InvalidInputError("Category type cannot be empty")
        return update

    def validate_transfer(
        self,
        from_account_id: str,
        to_account_id: str,
        amount: Any,
    ) -> Decimal:
        """Checks the transfer form applies before building legs. Returns the parsed amount."""
        _require_text(from_account_id, "Source account is required")
        _require_text(to_account_id, "Destination account is required")
        if from_account_id == to_account_id:
            raise InvalidInputError("Cannot transfer to the same account")
        try:
            _require_positive(amount)
        except InvalidAmountError:
            raise InvalidAmountError("Transfer amount must be greater than 0")
        return Decimal(str(amount))
