"""
Credential store — username → password-hash records.

``UserStore`` is the contract the auth service depends on. Two backends:

  • ``SQLAlchemyUserStore``: async SQLAlchemy over the configured
    ``DATABASE_URL``; uniqueness comes from the table's unique constraint.
  • ``InMemoryUserStore``: process-local dict for development
    (``DATABASE_URL=memory://``) and tests.

Every call is bounded by a timeout. Driver, connectivity and timeout errors
surface as ``StoreUnavailable``; nothing is retried here.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from auth.exceptions import DuplicateUsername, StoreUnavailable
from config.settings import Settings
from database.models import User
from database.session import build_engine, build_session_factory, init_models, ping

logger = logging.getLogger(__name__)

MEMORY_URL = "memory://"


@dataclass(frozen=True)
class UserRecord:
    user_id: str
    username: str
    password_hash: str = field(repr=False)
    created_at: datetime


class UserStore(ABC):
    """Abstract credential store."""

    @property
    def configured(self) -> bool:
        """False when there is no backing store at all."""
        return True

    @abstractmethod
    async def find_by_username(self, username: str) -> Optional[UserRecord]:
        ...

    @abstractmethod
    async def create(self, username: str, password_hash: str) -> UserRecord:
        """Insert a user; raises ``DuplicateUsername`` if the name is taken."""
        ...

    @abstractmethod
    async def ping(self) -> bool:
        """True if the store answered a trivial request just now."""
        ...

    async def start(self) -> None:
        """Prepare the backend (schema, connections). Optional."""

    async def close(self) -> None:
        """Release held resources. Optional."""


class InMemoryUserStore(UserStore):
    def __init__(self) -> None:
        self._users: Dict[str, UserRecord] = {}
        self._lock = asyncio.Lock()

    async def find_by_username(self, username: str) -> Optional[UserRecord]:
        return self._users.get(username)

    async def create(self, username: str, password_hash: str) -> UserRecord:
        async with self._lock:
            if username in self._users:
                raise DuplicateUsername()
            record = UserRecord(
                user_id=str(uuid.uuid4()),
                username=username,
                password_hash=password_hash,
                created_at=datetime.now(timezone.utc),
            )
            self._users[username] = record
            return record

    async def ping(self) -> bool:
        return True

    def __len__(self) -> int:
        return len(self._users)


class UnconfiguredUserStore(UserStore):
    """Stand-in used when ``DATABASE_URL`` is unset: every call is unavailable."""

    @property
    def configured(self) -> bool:
        return False

    async def find_by_username(self, username: str) -> Optional[UserRecord]:
        raise StoreUnavailable()

    async def create(self, username: str, password_hash: str) -> UserRecord:
        raise StoreUnavailable()

    async def ping(self) -> bool:
        return False


def _to_record(user: User) -> UserRecord:
    return UserRecord(
        user_id=str(user.user_id),
        username=user.username,
        password_hash=user.password_hash,
        created_at=user.created_at,
    )


class SQLAlchemyUserStore(UserStore):
    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        engine: Optional[AsyncEngine] = None,
        timeout_seconds: float = 10.0,
        connect_retries: int = 3,
        retry_delay_seconds: float = 5.0,
    ) -> None:
        self._session_factory = session_factory
        self._engine = engine
        self._timeout = timeout_seconds
        self._connect_retries = connect_retries
        self._retry_delay = retry_delay_seconds
        self._init_task: Optional[asyncio.Task] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "SQLAlchemyUserStore":
        engine = build_engine(settings)
        return cls(
            build_session_factory(engine),
            engine=engine,
            timeout_seconds=settings.store_timeout_seconds,
            connect_retries=settings.db_connect_retries,
            retry_delay_seconds=settings.db_retry_delay_seconds,
        )

    async def _bounded(self, coro, action: str):
        try:
            return await asyncio.wait_for(coro, timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.error("Credential store timed out during %s", action)
            raise StoreUnavailable()
        except (SQLAlchemyError, OSError) as exc:
            logger.error("Credential store error during %s: %s", action, exc)
            raise StoreUnavailable() from exc

    async def _find(self, username: str) -> Optional[UserRecord]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(User).where(User.username == username)
            )
            user = result.scalar_one_or_none()
            return _to_record(user) if user is not None else None

    async def _insert(self, username: str, password_hash: str) -> UserRecord:
        async with self._session_factory() as session:
            user = User(
                user_id=uuid.uuid4(),
                username=username,
                password_hash=password_hash,
                created_at=datetime.now(timezone.utc),
            )
            session.add(user)
            try:
                await session.commit()
            except IntegrityError:
                await session.rollback()
                raise DuplicateUsername()
            return _to_record(user)

    async def find_by_username(self, username: str) -> Optional[UserRecord]:
        return await self._bounded(self._find(username), "lookup")

    async def create(self, username: str, password_hash: str) -> UserRecord:
        return await self._bounded(self._insert(username, password_hash), "insert")

    async def ping(self) -> bool:
        if self._engine is None:
            return False
        try:
            await asyncio.wait_for(ping(self._engine), timeout=self._timeout)
            return True
        except (asyncio.TimeoutError, SQLAlchemyError, OSError) as exc:
            logger.warning("Database health check failed: %s", exc)
            return False

    async def start(self) -> None:
        """Kick off schema creation in the background; startup never waits on it."""
        if self._engine is None or self._init_task is not None:
            return
        self._init_task = asyncio.create_task(
            init_models(self._engine, self._connect_retries, self._retry_delay)
        )

    async def close(self) -> None:
        if self._init_task is not None:
            if not self._init_task.done():
                self._init_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._init_task
            self._init_task = None
        if self._engine is not None:
            await self._engine.dispose()


def build_user_store(settings: Settings) -> UserStore:
    """Pick the store backend from ``DATABASE_URL``."""
    if not settings.database_url:
        logger.warning(
            "DATABASE_URL is not set; running without a database, "
            "signup and login will report the store as unavailable",
        )
        return UnconfiguredUserStore()
    if settings.database_url == MEMORY_URL:
        logger.info("Using in-memory credential store (data is lost on restart)")
        return InMemoryUserStore()
    return SQLAlchemyUserStore.from_settings(settings)
