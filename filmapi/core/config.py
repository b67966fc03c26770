from __future__ import annotations

"""
# FilmAPI · Centralized Configuration (Pydantic v2)

Single `settings` object with strongly-typed, environment-driven config.

## Goals
- Safe defaults for local/dev; explicit where prod needs secrets.
- Postgres DSNs derived from parts (sync, asyncpg and `_test` variants).
- Bounded per-unit-of-work database timeout.

## Usage
    from filmapi.core.config import settings
"""

import logging
from typing import Literal

from dotenv import load_dotenv
from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

log = logging.getLogger(__name__)
load_dotenv()  # harmless in prod; convenient in dev


# ─────────────────────────────────────────────────────────────
# Settings
# ─────────────────────────────────────────────────────────────
class Settings(BaseSettings):
    """
    Global application settings sourced from environment.

    Database:
        - Pool knobs mirror SQLAlchemy's `create_async_engine` arguments.
        - `DB_QUERY_TIMEOUT_SECONDS` bounds every Get/Insert/Update/Delete/GetAll.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",  # don't crash on unknown keys
    )

    # ── App meta ──────────────────────────────────────────────
    PROJECT_NAME: str = "FilmAPI"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"
    ENV: Literal["development", "staging", "production"] = "development"
    ENABLE_DOCS: bool = True

    # ── Database (PostgreSQL) ─────────────────────────────────
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: SecretStr = SecretStr("postgres")
    POSTGRES_DB: str = "filmapi"

    DB_POOL_SIZE: int = Field(10, ge=1, le=100)
    DB_MAX_OVERFLOW: int = Field(20, ge=0, le=200)
    DB_POOL_TIMEOUT: int = Field(30, ge=1, le=300)
    DB_POOL_RECYCLE: int = Field(1800, ge=60)
    DB_ECHO: bool = False
    DB_QUERY_TIMEOUT_SECONDS: float = Field(3.0, ge=0.1, le=60.0)

    # ── Pagination ────────────────────────────────────────────
    DEFAULT_PAGE_SIZE: int = Field(20, ge=1, le=100)

    # ── Derived / convenience properties ─────────────────────
    @property
    def is_production(self) -> bool:
        return self.ENV.lower() == "production"

    @property
    def is_development(self) -> bool:
        return self.ENV.lower() == "development"

    # Database DSNs (stringified for simplicity)
    @property
    def DATABASE_URL(self) -> str:
        """Sync DSN."""
        return (
            f"postgresql://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD.get_secret_value()}"
            f"@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def ASYNC_DATABASE_URL(self) -> str:
        """Async SQLAlchemy DSN."""
        return self.DATABASE_URL.replace("postgresql://", "postgresql+asyncpg://", 1)

    @property
    def TEST_DATABASE_URL(self) -> str:
        """Async test DSN (suffix `_test`)."""
        db_name = self.POSTGRES_DB
        if not db_name.endswith("_test"):
            db_name += "_test"
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD.get_secret_value()}"
            f"@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{db_name}"
        )


# Singleton instance
settings = Settings()
