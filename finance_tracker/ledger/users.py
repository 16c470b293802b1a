"""
User Service

Thin boundary over an AuthProviderInterface. The only thing the ledger
needs from it is the authenticated user id; this service exists to turn
raw provider failures into the domain error taxonomy.
"""

from typing import Optional

import structlog

from finance_tracker.errors import (
    EmailAlreadyExistsError,
    InvalidCredentialsError,
    InvalidInputError,
    UnauthorizedError,
)
from finance_tracker.services.auth import AuthProviderError, AuthProviderInterface, AuthUser


logger = structlog.get_logger(__name__)

DEFAULT_EXTERNAL_PROVIDER = "github.com"
DIFFERENT_CREDENTIAL = "auth/account-exists-with-different-credential"


class UserService:

    def __init__(
        self,
        provider: AuthProviderInterface,
        external_provider: str = DEFAULT_EXTERNAL_PROVIDER,
    ):
        self._provider = provider
        self._external_provider = external_provider

    async def sign_up(self, email: str, password: str) -> AuthUser:
        try:
            return await self._provider.create_user(email, password)
        except AuthProviderError as e:
            logger.warning("sign_up_failed", code=e.code)
            if e.code == "auth/email-already-in-use":
                raise EmailAlreadyExistsError("Email already exists") from e
            raise InvalidInputError("Failed to create account") from e

    async def sign_in(self, email: str, password: str) -> AuthUser:
        try:
            return await self._provider.sign_in(email, password)
        except AuthProviderError as e:
            logger.warning("sign_in_failed", code=e.code)
            raise InvalidCredentialsError("Invalid email or password") from e

    async def sign_in_with_provider(self, email: str) -> AuthUser:
        """
        Sign in through the external identity provider.

        When the provider reports the email is registered with a different
        credential, the sign-in is retried once if the external provider is
        already among the email's sign-in methods.
        """
        try:
            return await self._provider.sign_in_with_provider(self._external_provider, email)
        except AuthProviderError as e:
            if e.code != DIFFERENT_CREDENTIAL:
                logger.warning("external_sign_in_failed", code=e.code)
                raise InvalidCredentialsError(
                    f"Failed to sign in with {self._external_provider}"
                ) from e
            conflict = e

        methods = await self._methods_or_empty(conflict.email or email)
        if self._external_provider in methods:
            try:
                return await self._provider.sign_in_with_provider(self._external_provider, email)
            except AuthProviderError as e:
                logger.warning("external_sign_in_retry_failed", code=e.code)
                raise InvalidCredentialsError(
                    f"Failed to sign in with {self._external_provider}"
                ) from e

        raise InvalidCredentialsError(
            "This email is already associated with a different sign-in method. "
            "Please use your original sign-in method."
        ) from conflict

    async def _methods_or_empty(self, email: str) -> list[str]:
        try:
            return await self._provider.sign_in_methods(email)
        except AuthProviderError as e:
            logger.warning("sign_in_methods_failed", code=e.code)
            return []

    async def link_provider(self, uid: str) -> AuthUser:
        try:
            return await self._provider.link_provider(uid, self._external_provider)
        except AuthProviderError as e:
            raise InvalidCredentialsError(
                f"Failed to link {self._external_provider} account"
            ) from e

    async def sign_out(self, uid: str) -> None:
        try:
            await self._provider.sign_out(uid)
        except AuthProviderError as e:
            raise UnauthorizedError("Failed to sign out", http_status=401) from e

    async def reset_password(self, email: str) -> None:
        try:
            await self._provider.send_password_reset(email)
        except AuthProviderError as e:
            raise InvalidInputError("Failed to send reset email") from e

    async def get_sign_in_methods(self, email: str) -> list[str]:
        try:
            return await self._provider.sign_in_methods(email)
        except AuthProviderError as e:
            raise InvalidInputError("Failed to fetch sign-in methods") from e

    @staticmethod
    def current_user_id(user: Optional[AuthUser]) -> str:
        """The id services are called with. Raises when nobody is signed in."""
        if user is None or not user.uid:
            raise UnauthorizedError("You must be signed in", http_status=401)
        return user.uid
