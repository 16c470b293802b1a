"""
In-Memory Authentication Provider

A self-contained provider for tests and local runs. Passwords are stored
as bcrypt hashes; password reset "emails" are appended to an outbox
instead of being sent.
"""

from uuid import uuid4

import bcrypt
import structlog

from finance_tracker.services.auth.interface import (
    PASSWORD_METHOD,
    AuthProviderError,
    AuthProviderInterface,
    AuthUser,
)


logger = structlog.get_logger(__name__)

MIN_PASSWORD_LENGTH = 6


class InMemoryAuthProvider(AuthProviderInterface):

    def __init__(self):
        self._users: dict[str, AuthUser] = {}          # uid -> user
        self._uids_by_email: dict[str, str] = {}       # normalized email -> uid
        self._password_hashes: dict[str, bytes] = {}   # uid -> bcrypt hash
        self._signed_in: set[str] = set()
        self.password_reset_outbox: list[str] = []

    @staticmethod
    def _normalize(email: str) -> str:
        return email.strip().lower()

    def _user_for_email(self, email: str) -> AuthUser | None:
        uid = self._uids_by_email.get(self._normalize(email))
        return self._users.get(uid) if uid else None

    def is_signed_in(self, uid: str) -> bool:
        return uid in self._signed_in

    async def create_user(self, email: str, password: str) -> AuthUser:
        if "@" not in email or email.strip().startswith("@"):
            raise AuthProviderError("auth/invalid-email", email=email)
        if len(password) < MIN_PASSWORD_LENGTH:
            raise AuthProviderError("auth/weak-password", email=email)
        if self._user_for_email(email) is not None:
            raise AuthProviderError("auth/email-already-in-use", email=email)

        user = AuthUser(uid=uuid4().hex, email=email.strip(), providers=[PASSWORD_METHOD])
        self._users[user.uid] = user
        self._uids_by_email[self._normalize(email)] = user.uid
        self._password_hashes[user.uid] = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt())
        self._signed_in.add(user.uid)
        return user.model_copy()

    async def sign_in(self, email: str, password: str) -> AuthUser:
        user = self._user_for_email(email)
        if user is None:
            raise AuthProviderError("auth/user-not-found", email=email)
        password_hash = self._password_hashes.get(user.uid)
        if password_hash is None or not bcrypt.checkpw(password.encode("utf-8"), password_hash):
            raise AuthProviderError("auth/wrong-password", email=email)
        self._signed_in.add(user.uid)
        return user.model_copy()

    async def sign_in_with_provider(self, provider: str, email: str) -> AuthUser:
        user = self._user_for_email(email)
        if user is None:
            user = AuthUser(uid=uuid4().hex, email=email.strip(), providers=[provider])
            self._users[user.uid] = user
            self._uids_by_email[self._normalize(email)] = user.uid
        elif provider not in user.providers:
            raise AuthProviderError(
                "auth/account-exists-with-different-credential",
                email=email,
            )
        self._signed_in.add(user.uid)
        return user.model_copy()

    async def link_provider(self, uid: str, provider: str) -> AuthUser:
        user = self._users.get(uid)
        if user is None:
            raise AuthProviderError("auth/user-not-found")
        if uid not in self._signed_in:
            raise AuthProviderError("auth/requires-recent-login", email=user.email)
        if provider in user.providers:
            raise AuthProviderError("auth/provider-already-linked", email=user.email)
        user.providers.append(provider)
        return user.model_copy()

    async def sign_out(self, uid: str) -> None:
        if uid not in self._signed_in:
            raise AuthProviderError("auth/no-current-user")
        self._signed_in.discard(uid)

    async def send_password_reset(self, email: str) -> None:
        if self._user_for_email(email) is None:
            raise AuthProviderError("auth/user-not-found", email=email)
        self.password_reset_outbox.append(email.strip())
        logger.info("password_reset_queued", email=email.strip())

    async def sign_in_methods(self, email: str) -> list[str]:
        if "@" not in email:
            raise AuthProviderError("auth/invalid-email", email=email)
        user = self._user_for_email(email)
        return list(user.providers) if user else []
