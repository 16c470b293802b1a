"""Authentication services package."""

from finance_tracker.services.auth.interface import (
    PASSWORD_METHOD,
    AuthProviderError,
    AuthProviderInterface,
    AuthUser,
)
from finance_tracker.services.auth.memory import InMemoryAuthProvider

__all__ = [
    "PASSWORD_METHOD",
    "AuthProviderError",
    "AuthProviderInterface",
    "AuthUser",
    "InMemoryAuthProvider",
]
