# filmapi/db/session.py
from __future__ import annotations

"""
FilmAPI · Database service

- One explicitly owned `Database` object per application (created in the
  FastAPI lifespan, stored on `app.state.db`); no module-level engine.
- `start()` / `stop()` own the async engine lifecycle.
- `transaction()` yields an `AsyncSession` inside `session.begin()`; any
  exception (cancellation included) rolls the transaction back.
- `run(work)` executes one unit of work under the configured timeout and
  converts storage and connection errors, timeouts and cancellation into
  `StorageFailureError`. Typed outcomes (`AppException`) pass through.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Awaitable, Callable, Optional, TypeVar

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from filmapi.core.config import Settings, settings as default_settings
from filmapi.core.exceptions import AppException, StorageFailureError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Database:
    """Owned async engine + session factory with an explicit lifecycle."""

    def __init__(
        self,
        url: Optional[str] = None,
        *,
        settings: Optional[Settings] = None,
        timeout: Optional[float] = None,
        use_null_pool: bool = False,
        connect_args: Optional[dict] = None,
    ) -> None:
        cfg = settings or default_settings
        self._settings = cfg
        self.url: str = url or cfg.ASYNC_DATABASE_URL
        self.timeout: float = timeout if timeout is not None else cfg.DB_QUERY_TIMEOUT_SECONDS
        self._use_null_pool = use_null_pool
        self._connect_args = connect_args or {}
        self._engine: Optional[AsyncEngine] = None
        self._session_maker: Optional[async_sessionmaker[AsyncSession]] = None

    # ── Lifecycle ───────────────────────────────────────────────────────────
    async def start(self) -> None:
        """Create the engine and session factory (idempotent)."""
        if self._engine is not None:
            return
        kwargs: dict = {
            "echo": self._settings.DB_ECHO,
            "pool_pre_ping": True,
            "connect_args": self._connect_args,
        }
        if self._use_null_pool:
            kwargs["poolclass"] = NullPool
        else:
            kwargs.update(
                pool_size=self._settings.DB_POOL_SIZE,
                max_overflow=self._settings.DB_MAX_OVERFLOW,
                pool_timeout=self._settings.DB_POOL_TIMEOUT,
                pool_recycle=self._settings.DB_POOL_RECYCLE,
            )
        self._engine = create_async_engine(self.url, **kwargs)
        self._session_maker = async_sessionmaker(
            bind=self._engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )
        logger.info("Database engine started")

    async def stop(self) -> None:
        """Dispose the engine; safe to call when never started."""
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        self._session_maker = None
        logger.info("Database engine disposed")

    @property
    def started(self) -> bool:
        return self._engine is not None

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("Database.start() has not been called")
        return self._engine

    # ── Units of work ───────────────────────────────────────────────────────
    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[AsyncSession, None]:
        """Open a session and a transaction; commit on success, roll back otherwise."""
        if self._session_maker is None:
            raise RuntimeError("Database.start() has not been called")
        async with self._session_maker() as session:
            async with session.begin():
                yield session

    async def run(self, work: Callable[[AsyncSession], Awaitable[T]], *, timeout: Optional[float] = None) -> T:
        """
        Run `work(session)` as one transaction bounded by `timeout` seconds.

        Timeouts and cancellation abort the transaction (rollback) and are
        reported exactly like any other storage error.
        """

        async def _unit() -> T:
            async with self.transaction() as session:
                return await work(session)

        limit = self.timeout if timeout is None else timeout
        try:
            return await asyncio.wait_for(_unit(), timeout=limit)
        except AppException:
            raise
        except asyncio.TimeoutError as exc:
            logger.error("Unit of work exceeded %.2fs; rolled back", limit)
            raise StorageFailureError() from exc
        except asyncio.CancelledError as exc:
            logger.warning("Unit of work cancelled; rolled back")
            task = asyncio.current_task()
            if task is not None and task.cancelling():
                # The caller itself is being cancelled; let it unwind.
                raise
            raise StorageFailureError() from exc
        except (SQLAlchemyError, OSError) as exc:
            # asyncpg connect failures (refused, DNS, reset) arrive as bare OSError
            logger.exception("Storage error: %s", exc.__class__.__name__)
            raise StorageFailureError() from exc

    async def healthcheck(self) -> bool:
        """Quick SELECT 1 to verify DB connectivity (used by /readyz)."""
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception:
            logger.exception("DB healthcheck failed")
            return False


__all__ = ["Database"]
