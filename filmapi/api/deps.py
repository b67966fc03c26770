from __future__ import annotations

"""
Request dependencies shared by the v1 routers.

The `Database` service lives on `app.state.db` (owned by the lifespan in
`filmapi.main`); repositories are cheap wrappers built per request. Tests
swap them out with `app.dependency_overrides`.
"""

from fastapi import Depends, Header, Request

from filmapi.db.session import Database
from filmapi.repositories.films import FilmRepositoryProtocol, SQLFilmRepository
from filmapi.repositories.watchlist import SQLWatchlistRepository, WatchlistRepositoryProtocol


def get_db(request: Request) -> Database:
    db = getattr(request.app.state, "db", None)
    if db is None:
        raise RuntimeError("Database service is not attached to app.state")
    return db


def get_film_repository(db: Database = Depends(get_db)) -> FilmRepositoryProtocol:
    return SQLFilmRepository(db)


def get_watchlist_repository(db: Database = Depends(get_db)) -> WatchlistRepositoryProtocol:
    return SQLWatchlistRepository(db)


def get_current_user_id(
    x_user_id: int = Header(..., alias="X-User-ID", gt=0, description="Authenticated user id (set by the gateway)"),
) -> int:
    """User id established by the upstream authentication layer."""
    return x_user_id


def csv_list(value: str | None) -> list[str]:
    """Split a comma-separated query value, dropping blanks."""
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


__all__ = [
    "get_db",
    "get_film_repository",
    "get_watchlist_repository",
    "get_current_user_id",
    "csv_list",
]
