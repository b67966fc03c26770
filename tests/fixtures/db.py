# tests/fixtures/db.py
"""
DB fixtures for integration tests (async, PostgreSQL):
- Per-run (per-worker) isolated SCHEMA, never touching `public`
- UTC timezone for consistent timestamp behavior
- NullPool (no lingering connections between tests)
- Tables truncated after every test
- Skipped when the test database is unreachable
"""

import os
import secrets
from typing import AsyncGenerator

import pytest
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool

from filmapi.db import base
from filmapi.db.session import Database
from tests.test_settings import settings

BASE_URL = settings.TEST_DATABASE_URL
WORKER = os.getenv("PYTEST_XDIST_WORKER", "gw0")  # supports pytest -n auto
SCHEMA = f"test_{WORKER}_{secrets.token_hex(3)}"

CONNECT_ARGS = {
    "server_settings": {
        "search_path": SCHEMA,
        "TimeZone": "UTC",
        "statement_timeout": "30000",
        "lock_timeout": "3000",
    }
}


@pytest.fixture(scope="session")
async def pg_engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create the run's schema and tables; skip the requesting tests if PostgreSQL is down."""
    engine = create_async_engine(BASE_URL, poolclass=NullPool, connect_args=CONNECT_ARGS)
    try:
        async with engine.begin() as conn:
            await conn.exec_driver_sql(f'CREATE SCHEMA IF NOT EXISTS "{SCHEMA}"')
            await conn.exec_driver_sql(f'SET search_path TO "{SCHEMA}"')
            await conn.run_sync(base.Base.metadata.create_all)
    except (OSError, SQLAlchemyError) as exc:
        await engine.dispose()
        pytest.skip(f"PostgreSQL test database unreachable ({exc.__class__.__name__})")

    yield engine

    async with engine.begin() as conn:
        await conn.exec_driver_sql(f'DROP SCHEMA IF EXISTS "{SCHEMA}" CASCADE')
    await engine.dispose()


@pytest.fixture()
async def pg_database(pg_engine: AsyncEngine) -> AsyncGenerator[Database, None]:
    """A started `Database` bound to the run's schema; tables are emptied afterwards."""
    database = Database(BASE_URL, use_null_pool=True, connect_args=CONNECT_ARGS)
    await database.start()
    try:
        yield database
    finally:
        await database.stop()
        idents = ", ".join(f'"{name}"' for name in base.Base.metadata.tables)
        async with pg_engine.begin() as conn:
            await conn.execute(text(f"TRUNCATE TABLE {idents} RESTART IDENTITY CASCADE"))


__all__ = ["pg_engine", "pg_database", "BASE_URL", "SCHEMA", "CONNECT_ARGS"]
