"""
Async SQLAlchemy connection handle.

``StoreConnection`` owns the engine and session factory.  It is created
once by the app factory and injected into each request, so connection
state lives on an explicit object rather than in module globals.

Uses ``asyncpg`` as the PostgreSQL driver for non-blocking I/O.
Connection-level failures get exactly one reconnect-and-retry (see
``run``); every other error propagates unchanged.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, TypeVar

from sqlalchemy import exc as sa_exc
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from src.config import Settings
from src.domain.exceptions import StoreUnavailable

logger = logging.getLogger(__name__)

T = TypeVar("T")

CONNECTION_ERRORS = (
    sa_exc.OperationalError,
    sa_exc.InterfaceError,
    sa_exc.DisconnectionError,
    sa_exc.TimeoutError,  # pool checkout timeout
    OSError,
)


class Base(DeclarativeBase):
    """Shared declarative base for all ORM models."""


class StoreConnection:
    def __init__(self, url: str, *, retry_writes: bool = True, **engine_options: Any):
        self.url = url
        self.retry_writes = retry_writes
        self.engine_options = engine_options
        self._engine: Optional[AsyncEngine] = None
        self._session_factory: Optional[async_sessionmaker[AsyncSession]] = None
        self._verified = False

    @classmethod
    def from_settings(cls, cfg: Settings) -> StoreConnection:
        return cls(
            cfg.database_url,
            retry_writes=cfg.db_retry_writes,
            pool_size=cfg.db_pool_size,
            max_overflow=cfg.db_max_overflow,
            pool_timeout=cfg.db_pool_timeout_seconds,
            pool_pre_ping=True,
            connect_args={"timeout": cfg.db_connect_timeout_seconds},
        )

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            self._engine = create_async_engine(
                self.url, echo=False, **self.engine_options
            )
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        if self._session_factory is None:
            self._session_factory = async_sessionmaker(
                self.engine,
                class_=AsyncSession,
                expire_on_commit=False,
            )
        return self._session_factory

    # ── Lifecycle ─────────────────────────────────────────────────

    async def connect(self) -> None:
        """Verify connectivity.  No-op once a connection has succeeded."""
        if self._verified:
            return
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        self._verified = True
        logger.info("Database connected: %s", self.engine.url.host or self.engine.url.database)

    async def reconnect(self) -> None:
        """Drop pooled connections and verify connectivity again."""
        if self._engine is not None:
            await self._engine.dispose()
        self._verified = False
        await self.connect()

    async def ping(self) -> bool:
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (sa_exc.SQLAlchemyError, OSError) as exc:
            logger.warning("Database ping failed: %s", exc)
            return False
        return True

    async def close(self) -> None:
        if self._engine is not None:
            await self._engine.dispose()
        self._engine = None
        self._session_factory = None
        self._verified = False

    # ── Units of work ─────────────────────────────────────────────

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Yield a session; commit on success, rollback on error."""
        async with self.session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def _run_once(self, work: Callable[[AsyncSession], Awaitable[T]]) -> T:
        async with self.session() as session:
            return await work(session)

    async def run(self, work: Callable[[AsyncSession], Awaitable[T]]) -> T:
        """Run *work* in its own transaction.

        On a connection-level error the pool is rebuilt and *work* runs once
        more in a fresh transaction.  A second failure (or any failure when
        ``retry_writes`` is off) raises ``StoreUnavailable``.
        """
        try:
            return await self._run_once(work)
        except CONNECTION_ERRORS as exc:
            if not self.retry_writes:
                raise StoreUnavailable() from exc
            logger.warning("Database error, reconnecting and retrying: %s", exc)

        try:
            await self.reconnect()
            result = await self._run_once(work)
        except CONNECTION_ERRORS as exc:
            logger.error("Database retry failed: %s", exc)
            raise StoreUnavailable() from exc
        logger.info("Database operation succeeded after retry")
        return result
