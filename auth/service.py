"""
Auth service — signup and login on top of the credential store,
password hasher and token signer.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from auth.exceptions import DuplicateUsername, InvalidCredentials, ValidationError
from auth.jwt import TokenSigner
from auth.password import DEFAULT_ROUNDS, MAX_PASSWORD_BYTES, hash_password, verify_password
from auth.store import UserRecord, UserStore
from config.settings import Settings

logger = logging.getLogger(__name__)

MAX_USERNAME_LENGTH = 64


@dataclass(frozen=True)
class LoginResult:
    token: str
    user_id: str
    username: str
    expires_in: int


class AuthService:
    def __init__(
        self,
        store: UserStore,
        signer: TokenSigner,
        *,
        min_password_length: int = 6,
        bcrypt_rounds: int = DEFAULT_ROUNDS,
    ) -> None:
        self.store = store
        self.signer = signer
        self.min_password_length = min_password_length
        self.bcrypt_rounds = bcrypt_rounds
        self._unknown_user_hash: Optional[str] = None

    @classmethod
    def from_settings(
        cls, store: UserStore, signer: TokenSigner, settings: Settings
    ) -> "AuthService":
        return cls(
            store,
            signer,
            min_password_length=settings.min_password_length,
            bcrypt_rounds=settings.bcrypt_rounds,
        )

    async def prepare(self) -> None:
        """
        Hash the stand-in password checked on unknown-user logins.

        Runs once, in a worker thread. Startup calls it so no login request
        pays for the extra hash.
        """
        if self._unknown_user_hash is None:
            self._unknown_user_hash = await asyncio.to_thread(
                hash_password, "unknown-user", self.bcrypt_rounds
            )

    @staticmethod
    def _require_credentials(username: Optional[str], password: Optional[str]) -> str:
        if not username or not username.strip() or not password:
            raise ValidationError("Username and password are required")
        return username.strip()

    async def signup(self, username: Optional[str], password: Optional[str]) -> UserRecord:
        """
        Register a new user.

        1. Both fields present, password long enough and within bcrypt's limit.
        2. Username not already taken.
        3. Hash off the event loop, then insert. The store's unique
           constraint still decides if two signups race past step 2.
        """
        username = self._require_credentials(username, password)
        if len(username) > MAX_USERNAME_LENGTH:
            raise ValidationError(
                f"Username must be at most {MAX_USERNAME_LENGTH} characters long"
            )
        if len(password) < self.min_password_length:
            raise ValidationError(
                f"Password must be at least {self.min_password_length} characters long"
            )
        if len(password.encode()) > MAX_PASSWORD_BYTES:
            raise ValidationError(
                f"Password must be at most {MAX_PASSWORD_BYTES} bytes long"
            )

        if await self.store.find_by_username(username) is not None:
            raise DuplicateUsername()

        password_hash = await asyncio.to_thread(hash_password, password, self.bcrypt_rounds)
        user = await self.store.create(username, password_hash)
        logger.info("New user created: %s (%s)", user.username, user.user_id)
        return user

    async def login(self, username: Optional[str], password: Optional[str]) -> LoginResult:
        """Check credentials and issue a session token."""
        username = self._require_credentials(username, password)

        user = await self.store.find_by_username(username)
        if user is None:
            # one bcrypt check, as for a wrong password
            await self.prepare()
            await asyncio.to_thread(verify_password, password, self._unknown_user_hash)
            logger.info("Login failed for %s", username)
            raise InvalidCredentials()

        if not await asyncio.to_thread(verify_password, password, user.password_hash):
            logger.info("Login failed for %s", username)
            raise InvalidCredentials()

        token = self.signer.issue(user.user_id, user.username)
        logger.info("User logged in: %s (%s)", user.username, user.user_id)
        return LoginResult(
            token=token,
            user_id=user.user_id,
            username=user.username,
            expires_in=self.signer.ttl_seconds,
        )
