import asyncio
import os
import sys
from logging.config import fileConfig

from alembic import context
from sqlalchemy import pool
from sqlalchemy.ext.asyncio import create_async_engine

# ───────────────────────────────────────────────
# 📁 Ensure filmapi is importable
# ───────────────────────────────────────────────
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from filmapi.db.base import Base  # registers every model on Base.metadata
from filmapi.core.config import settings

config = context.config

# USE_TEST_DB=1 migrates the `<db>_test` database instead
DATABASE_URL = (
    settings.TEST_DATABASE_URL
    if os.getenv("USE_TEST_DB") == "1"
    else settings.ASYNC_DATABASE_URL
)

if config.config_ini_section:
    config.set_main_option("sqlalchemy.url", DATABASE_URL)

if config.config_file_name:
    fileConfig(config.config_file_name)

target_metadata = Base.metadata


# ───────────────────────────────────────────────
# 📴 Offline: emit SQL
# ───────────────────────────────────────────────
def run_migrations_offline() -> None:
    context.configure(
        url=DATABASE_URL,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
        compare_type=True,
    )
    with context.begin_transaction():
        context.run_migrations()


# ───────────────────────────────────────────────
# 🌐 Online: async engine, sync migration body
# ───────────────────────────────────────────────
def do_run_migrations(connection) -> None:
    context.configure(connection=connection, target_metadata=target_metadata, compare_type=True)
    with context.begin_transaction():
        context.run_migrations()


async def run_migrations_online() -> None:
    engine = create_async_engine(DATABASE_URL, poolclass=pool.NullPool)
    async with engine.connect() as connection:
        await connection.run_sync(do_run_migrations)
    await engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    asyncio.run(run_migrations_online())
