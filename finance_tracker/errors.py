"""
Domain Errors for Finance Tracker

Every failure a caller can see is an AppError carrying:
1. A human-readable message (shown to the user as-is)
2. A machine-readable ErrorCode
3. An HTTP-style status (400/401/403/404/500)

DESIGN DECISION: Domain errors (not found, unauthorized, duplicates,
bad input) are raised directly and pass through services untouched.
Anything else - storage failures, unexpected exceptions - is logged and
re-wrapped as a generic InvalidInputError with status 500.
"""

import functools
from enum import Enum
from typing import Optional

import structlog


logger = structlog.get_logger(__name__)


class ErrorCode(str, Enum):
    """Classified error kinds."""
    # Auth errors
    INVALID_CREDENTIALS = "INVALID_CREDENTIALS"
    EMAIL_ALREADY_EXISTS = "EMAIL_ALREADY_EXISTS"

    # Account errors
    ACCOUNT_EXISTS = "ACCOUNT_EXISTS"
    ACCOUNT_NOT_FOUND = "ACCOUNT_NOT_FOUND"

    # Transaction errors
    INVALID_AMOUNT = "INVALID_AMOUNT"
    TRANSACTION_NOT_FOUND = "TRANSACTION_NOT_FOUND"
    CHAIN_NOT_FOUND = "CHAIN_NOT_FOUND"

    # Category errors
    CATEGORY_EXISTS = "CATEGORY_EXISTS"
    CATEGORY_NOT_FOUND = "CATEGORY_NOT_FOUND"

    # General errors
    INVALID_INPUT = "INVALID_INPUT"
    UNAUTHORIZED = "UNAUTHORIZED"


class AppError(Exception):
    """Base exception for every error surfaced to callers."""

    default_code = ErrorCode.INVALID_INPUT
    default_status = 500

    def __init__(
        self,
        message: str,
        code: Optional[ErrorCode] = None,
        http_status: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.http_status = http_status or self.default_status

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}({self.message!r}, "
            f"code={self.code.value}, http_status={self.http_status})"
        )


class InvalidInputError(AppError):
    """Malformed or missing required field. Caller-fixable."""
    default_code = ErrorCode.INVALID_INPUT
    default_status = 400


class InvalidAmountError(InvalidInputError):
    """Non-positive or non-numeric amount."""
    default_code = ErrorCode.INVALID_AMOUNT


class NotFoundError(AppError):
    """Referenced entity does not exist."""
    default_code = ErrorCode.INVALID_INPUT
    default_status = 404


class AccountNotFoundError(NotFoundError):
    default_code = ErrorCode.ACCOUNT_NOT_FOUND


class TransactionNotFoundError(NotFoundError):
    default_code = ErrorCode.TRANSACTION_NOT_FOUND


class ChainNotFoundError(NotFoundError):
    default_code = ErrorCode.CHAIN_NOT_FOUND


class CategoryNotFoundError(NotFoundError):
    default_code = ErrorCode.CATEGORY_NOT_FOUND


class UnauthorizedError(AppError):
    """Caller does not own the resource (or is not signed in)."""
    default_code = ErrorCode.UNAUTHORIZED
    default_status = 403


class AlreadyExistsError(AppError):
    """Duplicate name."""
    default_code = ErrorCode.INVALID_INPUT
    default_status = 400


class AccountExistsError(AlreadyExistsError):
    default_code = ErrorCode.ACCOUNT_EXISTS


class CategoryExistsError(AlreadyExistsError):
    default_code = ErrorCode.CATEGORY_EXISTS


class InvalidCredentialsError(AppError):
    default_code = ErrorCode.INVALID_CREDENTIALS
    default_status = 401


class EmailAlreadyExistsError(AppError):
    default_code = ErrorCode.EMAIL_ALREADY_EXISTS
    default_status = 400


def translate_errors(message: str):
    """
    Decorate an async service method with the wrap-and-log policy.

    AppErrors propagate unchanged. Any other exception is logged with its
    traceback and replaced by InvalidInputError(message, http_status=500).
    """
    def decorator(func):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            try:
                return await func(*args, **kwargs)
            except AppError:
                raise
            except Exception as e:
                logger.error(
                    "service_call_failed",
                    operation=func.__qualname__,
                    error=str(e),
                    exc_info=True,
                )
                raise InvalidInputError(message, http_status=500) from e
        return wrapper
    return decorator
