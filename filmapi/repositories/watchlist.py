from __future__ import annotations

"""Watchlist repository.

Entries are always scoped to their owning user: another user's entry reads as
missing, and an update aimed at it fails the conditional update like any
stale write. Reads embed the bookmarked film (with its name arrays) through a
join on `films`.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from itertools import count
from typing import Callable, Dict, List, Optional, Tuple

from sqlalchemy import delete, exists, func, insert, select, text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

from filmapi.core.exceptions import DuplicateEntryError, NotFoundError, StorageFailureError
from filmapi.db.models import WATCHLIST_UNIQUE_CONSTRAINT, Film, WatchlistEntry
from filmapi.db.session import Database
from filmapi.repositories.concurrency import conditional_update, next_version
from filmapi.repositories.films import MemoryFilmRepository
from filmapi.repositories.query import build_metadata, build_order_clause, build_page, parse_sort
from filmapi.repositories.references import REFERENCE_KINDS, ReferenceResolver
from filmapi.schemas.films import FilmOut
from filmapi.schemas.filters import Filters, Metadata
from filmapi.schemas.watchlist import (
    WATCHLIST_SORT_COLUMNS,
    WatchlistCreate,
    WatchlistOut,
    apply_watch_state,
)

logger = logging.getLogger(__name__)

watchlist_table = WatchlistEntry.__table__
films_table = Film.__table__

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _duplicate(entry: WatchlistCreate) -> DuplicateEntryError:
    return DuplicateEntryError(
        message=f"film {entry.film_id} is already on the watchlist",
        constraint=WATCHLIST_UNIQUE_CONSTRAINT,
    )


def violated_constraint(exc: IntegrityError) -> Optional[str]:
    """Name of the constraint behind an `IntegrityError`, when the driver reports it."""
    orig = getattr(exc, "orig", None)
    for candidate in (orig, getattr(orig, "__cause__", None)):
        name = getattr(candidate, "constraint_name", None)
        if name:
            return name
    if orig is not None and WATCHLIST_UNIQUE_CONSTRAINT in str(orig):
        return WATCHLIST_UNIQUE_CONSTRAINT
    return None


class WatchlistRepositoryProtocol:
    async def get(self, user_id: int, entry_id: int) -> WatchlistOut:
        raise NotImplementedError

    async def insert(self, user_id: int, entry: WatchlistCreate) -> WatchlistOut:
        raise NotImplementedError

    async def update(self, user_id: int, entry: WatchlistOut) -> WatchlistOut:
        raise NotImplementedError

    async def delete(self, user_id: int, entry_id: int) -> None:
        raise NotImplementedError

    async def exists(self, user_id: int, film_id: int) -> bool:
        raise NotImplementedError

    async def get_all(
        self,
        user_id: int,
        filters: Filters,
        *,
        watched: Optional[bool] = None,
        priority: Optional[int] = None,
    ) -> Tuple[List[WatchlistOut], Metadata]:
        raise NotImplementedError


def _row_to_entry(row) -> WatchlistOut:
    film = FilmOut(
        id=row.film_id,
        title=row.film_title,
        year=row.film_year,
        runtime=row.film_runtime,
        rating=row.film_rating,
        description=row.film_description,
        image=row.film_image,
        version=row.film_version,
        genres=list(row.genres or []),
        actors=list(row.actors or []),
        directors=list(row.directors or []),
    )
    return WatchlistOut(
        id=row.id,
        user_id=row.user_id,
        film_id=row.film_id,
        film=film,
        added_at=row.added_at,
        notes=row.notes,
        priority=row.priority,
        watched=row.watched,
        watched_at=row.watched_at,
        rating=row.rating,
        version=row.version,
    )


# ─────────────────────────────────────────────────────────────────────────────
# 🐘 PostgreSQL
# ─────────────────────────────────────────────────────────────────────────────
class SQLWatchlistRepository(WatchlistRepositoryProtocol):
    def __init__(self, db: Database, *, clock: Clock = utcnow) -> None:
        self.db = db
        self.clock = clock
        self._resolvers = {name: ReferenceResolver(kind) for name, kind in REFERENCE_KINDS.items()}

    def entry_select(self) -> Select:
        w, f = watchlist_table, films_table
        return select(
            w.c.id,
            w.c.user_id,
            w.c.film_id,
            w.c.added_at,
            w.c.notes,
            w.c.priority,
            w.c.watched,
            w.c.watched_at,
            w.c.rating,
            w.c.version,
            f.c.title.label("film_title"),
            f.c.year.label("film_year"),
            f.c.runtime.label("film_runtime"),
            f.c.rating.label("film_rating"),
            f.c.description.label("film_description"),
            f.c.image.label("film_image"),
            f.c.version.label("film_version"),
            *(r.names_subquery(f.c.id).label(name) for name, r in self._resolvers.items()),
        ).select_from(w.join(f, f.c.id == w.c.film_id))

    def list_statement(
        self,
        user_id: int,
        filters: Filters,
        *,
        watched: Optional[bool] = None,
        priority: Optional[int] = None,
    ) -> Select:
        w = watchlist_table
        stmt = (
            self.entry_select()
            .add_columns(func.count().over().label("total"))
            .where(w.c.user_id == user_id)
        )
        if watched is not None:
            stmt = stmt.where(w.c.watched == watched)
        if priority is not None:
            stmt = stmt.where(w.c.priority == priority)
        order = build_order_clause(filters.sort, filters.sort_safelist, WATCHLIST_SORT_COLUMNS)
        if order:
            stmt = stmt.order_by(text(order))
        limit, offset = build_page(filters.page, filters.page_size)
        return stmt.order_by(w.c.added_at.desc(), w.c.id.desc()).limit(limit).offset(offset)

    async def get(self, user_id: int, entry_id: int) -> WatchlistOut:
        if entry_id < 1:
            raise NotFoundError(resource="watchlist entry", identifier=entry_id)
        w = watchlist_table
        stmt = self.entry_select().where(w.c.id == entry_id, w.c.user_id == user_id)

        async def work(session: AsyncSession) -> WatchlistOut:
            row = (await session.execute(stmt)).first()
            if row is None:
                raise NotFoundError(resource="watchlist entry", identifier=entry_id)
            return _row_to_entry(row)

        return await self.db.run(work)

    async def insert(self, user_id: int, entry: WatchlistCreate) -> WatchlistOut:
        watched, watched_at, rating = apply_watch_state(
            watched=entry.watched, watched_at=None, rating=entry.rating, now=self.clock()
        )
        w = watchlist_table
        stmt = (
            insert(w)
            .values(
                user_id=user_id,
                film_id=entry.film_id,
                notes=entry.notes,
                priority=entry.priority,
                watched=watched,
                watched_at=watched_at,
                rating=rating,
            )
            .returning(w.c.id)
        )

        async def work(session: AsyncSession) -> WatchlistOut:
            try:
                new_id = (await session.execute(stmt)).scalar_one()
            except IntegrityError as exc:
                if violated_constraint(exc) == WATCHLIST_UNIQUE_CONSTRAINT:
                    logger.warning("Duplicate watchlist entry user=%s film=%s", user_id, entry.film_id)
                    raise _duplicate(entry) from exc
                raise
            row = (await session.execute(self.entry_select().where(w.c.id == new_id))).one()
            return _row_to_entry(row)

        return await self.db.run(work)

    async def update(self, user_id: int, entry: WatchlistOut) -> WatchlistOut:
        watched, watched_at, rating = apply_watch_state(
            watched=entry.watched, watched_at=entry.watched_at, rating=entry.rating, now=self.clock()
        )
        values = {
            "notes": entry.notes,
            "priority": entry.priority,
            "watched": watched,
            "watched_at": watched_at,
            "rating": rating,
        }

        async def work(session: AsyncSession) -> WatchlistOut:
            new_version = await conditional_update(
                session,
                watchlist_table,
                entry.id,
                entry.version,
                values,
                watchlist_table.c.user_id == user_id,
                resource="watchlist entry",
            )
            return entry.model_copy(update={**values, "version": new_version})

        return await self.db.run(work)

    async def delete(self, user_id: int, entry_id: int) -> None:
        if entry_id < 1:
            raise NotFoundError(resource="watchlist entry", identifier=entry_id)
        w = watchlist_table

        async def work(session: AsyncSession) -> None:
            result = await session.execute(delete(w).where(w.c.id == entry_id, w.c.user_id == user_id))
            if result.rowcount == 0:
                raise NotFoundError(resource="watchlist entry", identifier=entry_id)

        await self.db.run(work)

    async def exists(self, user_id: int, film_id: int) -> bool:
        w = watchlist_table
        stmt = select(exists().where(w.c.user_id == user_id, w.c.film_id == film_id))

        async def work(session: AsyncSession) -> bool:
            return bool((await session.execute(stmt)).scalar())

        return await self.db.run(work)

    async def get_all(
        self,
        user_id: int,
        filters: Filters,
        *,
        watched: Optional[bool] = None,
        priority: Optional[int] = None,
    ) -> Tuple[List[WatchlistOut], Metadata]:
        stmt = self.list_statement(user_id, filters, watched=watched, priority=priority)

        async def work(session: AsyncSession):
            return (await session.execute(stmt)).all()

        rows = await self.db.run(work)
        total = rows[0].total if rows else 0
        return [_row_to_entry(r) for r in rows], build_metadata(total, filters.page, filters.page_size)


# ─────────────────────────────────────────────────────────────────────────────
# 🧪 In-memory
# ─────────────────────────────────────────────────────────────────────────────
@dataclass
class _MemoryEntry:
    id: int
    user_id: int
    film_id: int
    added_at: datetime
    notes: str
    priority: int
    watched: bool
    watched_at: Optional[datetime]
    rating: Optional[int]
    version: int = 1


def _nulls_last(value):
    return (value is None, value)


class MemoryWatchlistRepository(WatchlistRepositoryProtocol):
    """
    Dict-backed watchlist over a `MemoryFilmRepository`.

    Entries whose film has been deleted are dropped on the next access,
    mirroring the `ON DELETE CASCADE` foreign key.
    """

    def __init__(self, films: MemoryFilmRepository, *, clock: Clock = utcnow) -> None:
        self.films = films
        self.clock = clock
        self._entries: Dict[int, _MemoryEntry] = {}
        self._seq = count(1)

    def _cascade(self) -> None:
        for entry_id in [i for i, e in self._entries.items() if e.film_id not in self.films]:
            del self._entries[entry_id]

    def _owned(self, user_id: int, entry_id: int) -> Optional[_MemoryEntry]:
        self._cascade()
        e = self._entries.get(entry_id)
        return e if e is not None and e.user_id == user_id else None

    async def _view(self, e: _MemoryEntry) -> WatchlistOut:
        return WatchlistOut(
            id=e.id,
            user_id=e.user_id,
            film_id=e.film_id,
            film=await self.films.get(e.film_id),
            added_at=e.added_at,
            notes=e.notes,
            priority=e.priority,
            watched=e.watched,
            watched_at=e.watched_at,
            rating=e.rating,
            version=e.version,
        )

    async def get(self, user_id: int, entry_id: int) -> WatchlistOut:
        e = self._owned(user_id, entry_id)
        if e is None:
            raise NotFoundError(resource="watchlist entry", identifier=entry_id)
        return await self._view(e)

    async def insert(self, user_id: int, entry: WatchlistCreate) -> WatchlistOut:
        self._cascade()
        if entry.film_id not in self.films:
            logger.error("Watchlist insert references missing film %s", entry.film_id)
            raise StorageFailureError()
        if any(e.user_id == user_id and e.film_id == entry.film_id for e in self._entries.values()):
            raise _duplicate(entry)
        now = self.clock()
        watched, watched_at, rating = apply_watch_state(
            watched=entry.watched, watched_at=None, rating=entry.rating, now=now
        )
        e = _MemoryEntry(
            id=next(self._seq),
            user_id=user_id,
            film_id=entry.film_id,
            added_at=now,
            notes=entry.notes,
            priority=entry.priority,
            watched=watched,
            watched_at=watched_at,
            rating=rating,
        )
        self._entries[e.id] = e
        return await self._view(e)

    async def update(self, user_id: int, entry: WatchlistOut) -> WatchlistOut:
        current = self._owned(user_id, entry.id)
        new_version = next_version(
            current.version if current else None, entry.version, resource="watchlist entry", ident=entry.id
        )
        current.watched, current.watched_at, current.rating = apply_watch_state(
            watched=entry.watched, watched_at=entry.watched_at, rating=entry.rating, now=self.clock()
        )
        current.notes = entry.notes
        current.priority = entry.priority
        current.version = new_version
        return await self._view(current)

    async def delete(self, user_id: int, entry_id: int) -> None:
        if self._owned(user_id, entry_id) is None:
            raise NotFoundError(resource="watchlist entry", identifier=entry_id)
        del self._entries[entry_id]

    async def exists(self, user_id: int, film_id: int) -> bool:
        self._cascade()
        return any(e.user_id == user_id and e.film_id == film_id for e in self._entries.values())

    async def get_all(
        self,
        user_id: int,
        filters: Filters,
        *,
        watched: Optional[bool] = None,
        priority: Optional[int] = None,
    ) -> Tuple[List[WatchlistOut], Metadata]:
        keys = parse_sort(filters.sort, filters.sort_safelist, WATCHLIST_SORT_COLUMNS)
        self._cascade()

        items = [e for e in self._entries.values() if e.user_id == user_id]
        if watched is not None:
            items = [e for e in items if e.watched == watched]
        if priority is not None:
            items = [e for e in items if e.priority == priority]

        items.sort(key=lambda e: (e.added_at, e.id), reverse=True)
        for key in reversed(keys):
            items.sort(key=lambda e, c=key.column: _nulls_last(getattr(e, c)), reverse=key.descending)

        limit, offset = build_page(filters.page, filters.page_size)
        page = items[offset : offset + limit]
        total = len(items) if page else 0
        return [await self._view(e) for e in page], build_metadata(total, filters.page, filters.page_size)


__all__ = [
    "WatchlistRepositoryProtocol",
    "SQLWatchlistRepository",
    "MemoryWatchlistRepository",
    "violated_constraint",
    "utcnow",
]
