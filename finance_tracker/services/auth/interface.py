"""
Abstract Authentication Provider Interface

The ledger only ever needs "the authenticated user id". Everything about
how a user proves who they are lives behind this interface, so a hosted
identity provider can be plugged in without touching the services.

Providers raise AuthProviderError with a provider-style code
(e.g. "auth/email-already-in-use"). UserService classifies those codes
into domain errors.
"""

from abc import ABC, abstractmethod
from typing import Optional

from pydantic import BaseModel, Field


PASSWORD_METHOD = "password"


class AuthUser(BaseModel):
    """An authenticated identity."""

    uid: str
    email: str
    display_name: Optional[str] = None
    providers: list[str] = Field(
        default_factory=list,
        description="Sign-in methods linked to this user (e.g. 'password', 'github.com')"
    )


class AuthProviderError(Exception):
    """Raw failure reported by an auth provider."""

    def __init__(self, code: str, message: str = "", email: Optional[str] = None):
        self.code = code
        self.email = email
        super().__init__(message or code)


class AuthProviderInterface(ABC):
    """Operations every authentication backend must offer."""

    @abstractmethod
    async def create_user(self, email: str, password: str) -> AuthUser:
        pass

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> AuthUser:
        pass

    @abstractmethod
    async def sign_in_with_provider(self, provider: str, email: str) -> AuthUser:
        """
        Sign in through an external identity provider.

        `email` is the identity asserted by the provider.

        Raises:
            AuthProviderError("auth/account-exists-with-different-credential")
            when the email is registered without this provider linked.
        """
        pass

    @abstractmethod
    async def link_provider(self, uid: str, provider: str) -> AuthUser:
        pass

    @abstractmethod
    async def sign_out(self, uid: str) -> None:
        pass

    @abstractmethod
    async def send_password_reset(self, email: str) -> None:
        pass

    @abstractmethod
    async def sign_in_methods(self, email: str) -> list[str]:
        pass
