from __future__ import annotations

"""Film repository.

Every operation is one transaction run through `Database.run`, so a failed
step (including a timeout) never leaves a partial film behind. Related names
are resolved and linked by `ReferenceResolver`; the film row itself is
versioned through the conditional update in `concurrency`.

`MemoryFilmRepository` implements the same contract over dicts for tests and
local runs without PostgreSQL.
"""

import logging
import re
from dataclasses import dataclass
from itertools import count
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy import delete, func, insert, literal_column, select, text
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Select

from filmapi.core.exceptions import NotFoundError
from filmapi.db.models import Film
from filmapi.db.session import Database
from filmapi.repositories.concurrency import conditional_update, next_version
from filmapi.repositories.query import build_metadata, build_order_clause, build_page, parse_sort
from filmapi.repositories.references import (
    REFERENCE_KINDS,
    MemoryReferenceStore,
    ReferenceResolver,
)
from filmapi.schemas.films import FILM_SORT_COLUMNS, FilmCreate, FilmOut
from filmapi.schemas.filters import Filters, Metadata

logger = logging.getLogger(__name__)

films_table = Film.__table__

_BASE_FIELDS = ("title", "year", "runtime", "rating", "description", "image")


class FilmRepositoryProtocol:
    async def get(self, film_id: int) -> FilmOut:
        raise NotImplementedError

    async def insert(self, film: FilmCreate) -> FilmOut:
        raise NotImplementedError

    async def update(self, film: FilmOut) -> FilmOut:
        """Persist `film` if `film.version` is still current; returns the bumped film."""
        raise NotImplementedError

    async def delete(self, film_id: int) -> None:
        raise NotImplementedError

    async def get_all(
        self,
        filters: Filters,
        *,
        title: str = "",
        genres: Sequence[str] = (),
        actors: Sequence[str] = (),
        directors: Sequence[str] = (),
    ) -> Tuple[List[FilmOut], Metadata]:
        raise NotImplementedError


def title_matches(column, title: str):
    """Case-insensitive all-words match backed by the `simple` tsvector GIN index."""
    return func.to_tsvector(literal_column("'simple'"), column).bool_op("@@")(
        func.plainto_tsquery(literal_column("'simple'"), title)
    )


def _row_to_film(row) -> FilmOut:
    return FilmOut(
        id=row.id,
        title=row.title,
        year=row.year,
        runtime=row.runtime,
        rating=row.rating,
        description=row.description,
        image=row.image,
        version=row.version,
        genres=list(row.genres or []),
        actors=list(row.actors or []),
        directors=list(row.directors or []),
    )


# ─────────────────────────────────────────────────────────────────────────────
# 🐘 PostgreSQL
# ─────────────────────────────────────────────────────────────────────────────
class SQLFilmRepository(FilmRepositoryProtocol):
    def __init__(self, db: Database) -> None:
        self.db = db
        self.resolvers: Dict[str, ReferenceResolver] = {
            name: ReferenceResolver(kind) for name, kind in REFERENCE_KINDS.items()
        }

    # ── Statements ─────────────────────────────────────────────────────────
    def film_select(self) -> Select:
        """Film columns plus one correlated name array per reference kind."""
        t = films_table
        return select(
            t.c.id,
            t.c.title,
            t.c.year,
            t.c.runtime,
            t.c.rating,
            t.c.description,
            t.c.image,
            t.c.version,
            *(r.names_subquery(t.c.id).label(name) for name, r in self.resolvers.items()),
        )

    def get_statement(self, film_id: int) -> Select:
        return self.film_select().where(films_table.c.id == film_id)

    def list_statement(
        self,
        filters: Filters,
        *,
        title: str = "",
        genres: Sequence[str] = (),
        actors: Sequence[str] = (),
        directors: Sequence[str] = (),
    ) -> Select:
        t = films_table
        stmt = self.film_select().add_columns(func.count().over().label("total"))
        if title:
            stmt = stmt.where(title_matches(t.c.title, title))
        for name, names in (("genres", genres), ("actors", actors), ("directors", directors)):
            if names:
                stmt = stmt.where(self.resolvers[name].any_name_exists(t.c.id, names))
        order = build_order_clause(filters.sort, filters.sort_safelist, FILM_SORT_COLUMNS)
        if order:
            stmt = stmt.order_by(text(order))
        limit, offset = build_page(filters.page, filters.page_size)
        return stmt.order_by(t.c.id.asc()).limit(limit).offset(offset)

    # ── Operations ─────────────────────────────────────────────────────────
    async def get(self, film_id: int) -> FilmOut:
        if film_id < 1:
            raise NotFoundError(resource="film", identifier=film_id)

        async def work(session: AsyncSession) -> FilmOut:
            row = (await session.execute(self.get_statement(film_id))).first()
            if row is None:
                raise NotFoundError(resource="film", identifier=film_id)
            return _row_to_film(row)

        return await self.db.run(work)

    async def insert(self, film: FilmCreate) -> FilmOut:
        async def work(session: AsyncSession) -> FilmOut:
            stmt = (
                insert(films_table)
                .values(**film.model_dump(include=set(_BASE_FIELDS)))
                .returning(films_table.c.id, films_table.c.version)
            )
            row = (await session.execute(stmt)).one()
            names = {}
            for name, resolver in self.resolvers.items():
                resolved = await resolver.link_many(session, row.id, getattr(film, name))
                names[name] = sorted(n for _, n in resolved)
            logger.info("Inserted film id=%s", row.id)
            return FilmOut(
                id=row.id,
                version=row.version,
                **film.model_dump(include=set(_BASE_FIELDS)),
                **names,
            )

        return await self.db.run(work)

    async def update(self, film: FilmOut) -> FilmOut:
        async def work(session: AsyncSession) -> FilmOut:
            new_version = await conditional_update(
                session,
                films_table,
                film.id,
                film.version,
                film.model_dump(include=set(_BASE_FIELDS)),
                resource="film",
            )
            names = {}
            for name, resolver in self.resolvers.items():
                resolved = await resolver.reconcile(session, film.id, getattr(film, name))
                names[name] = sorted(n for _, n in resolved)
            return film.model_copy(update={"version": new_version, **names})

        return await self.db.run(work)

    async def delete(self, film_id: int) -> None:
        if film_id < 1:
            raise NotFoundError(resource="film", identifier=film_id)

        async def work(session: AsyncSession) -> None:
            result = await session.execute(delete(films_table).where(films_table.c.id == film_id))
            if result.rowcount == 0:
                raise NotFoundError(resource="film", identifier=film_id)
            logger.info("Deleted film id=%s", film_id)

        await self.db.run(work)

    async def get_all(
        self,
        filters: Filters,
        *,
        title: str = "",
        genres: Sequence[str] = (),
        actors: Sequence[str] = (),
        directors: Sequence[str] = (),
    ) -> Tuple[List[FilmOut], Metadata]:
        stmt = self.list_statement(filters, title=title, genres=genres, actors=actors, directors=directors)

        async def work(session: AsyncSession):
            return (await session.execute(stmt)).all()

        rows = await self.db.run(work)
        total = rows[0].total if rows else 0
        return [_row_to_film(r) for r in rows], build_metadata(total, filters.page, filters.page_size)


# ─────────────────────────────────────────────────────────────────────────────
# 🧪 In-memory
# ─────────────────────────────────────────────────────────────────────────────
_WORD_RE = re.compile(r"\w+")


def _words(value: str) -> set:
    return set(_WORD_RE.findall(value.lower()))


@dataclass
class _MemoryFilm:
    id: int
    title: str
    year: int
    runtime: int
    rating: float
    description: str
    image: str
    version: int = 1


class MemoryFilmRepository(FilmRepositoryProtocol):
    """
    Dict-backed film store.

    Shares the filter builder with the SQL repository, so sort validation,
    ordering and metadata behave identically.
    """

    def __init__(self, refs: Optional[MemoryReferenceStore] = None) -> None:
        self.refs = refs or MemoryReferenceStore()
        self._films: Dict[int, _MemoryFilm] = {}
        self._seq = count(1)

    def __contains__(self, film_id: int) -> bool:
        return film_id in self._films

    def _view(self, f: _MemoryFilm) -> FilmOut:
        return FilmOut(
            id=f.id,
            title=f.title,
            year=f.year,
            runtime=f.runtime,
            rating=f.rating,
            description=f.description,
            image=f.image,
            version=f.version,
            **{name: self.refs.names_for(name, f.id) for name in REFERENCE_KINDS},
        )

    async def get(self, film_id: int) -> FilmOut:
        f = self._films.get(film_id)
        if f is None:
            raise NotFoundError(resource="film", identifier=film_id)
        return self._view(f)

    async def insert(self, film: FilmCreate) -> FilmOut:
        f = _MemoryFilm(id=next(self._seq), **film.model_dump(include=set(_BASE_FIELDS)))
        self._films[f.id] = f
        for name in REFERENCE_KINDS:
            await self.refs.link_many(name, f.id, getattr(film, name))
        return self._view(f)

    async def update(self, film: FilmOut) -> FilmOut:
        current = self._films.get(film.id)
        new_version = next_version(
            current.version if current else None, film.version, resource="film", ident=film.id
        )
        for field in _BASE_FIELDS:
            setattr(current, field, getattr(film, field))
        current.version = new_version
        for name in REFERENCE_KINDS:
            await self.refs.reconcile(name, film.id, getattr(film, name))
        return self._view(current)

    async def delete(self, film_id: int) -> None:
        if self._films.pop(film_id, None) is None:
            raise NotFoundError(resource="film", identifier=film_id)
        self.refs.drop_film(film_id)

    async def get_all(
        self,
        filters: Filters,
        *,
        title: str = "",
        genres: Sequence[str] = (),
        actors: Sequence[str] = (),
        directors: Sequence[str] = (),
    ) -> Tuple[List[FilmOut], Metadata]:
        keys = parse_sort(filters.sort, filters.sort_safelist, FILM_SORT_COLUMNS)

        wanted = _words(title)
        items = [self._view(f) for f in sorted(self._films.values(), key=lambda f: f.id)]
        if wanted:
            items = [i for i in items if wanted <= _words(i.title)]
        for name, names in (("genres", genres), ("actors", actors), ("directors", directors)):
            if names:
                items = [i for i in items if set(getattr(i, name)) & set(names)]

        for key in reversed(keys):
            items.sort(key=lambda i, c=key.column: getattr(i, c), reverse=key.descending)

        limit, offset = build_page(filters.page, filters.page_size)
        page = items[offset : offset + limit]
        total = len(items) if page else 0
        return page, build_metadata(total, filters.page, filters.page_size)


__all__ = [
    "FilmRepositoryProtocol",
    "SQLFilmRepository",
    "MemoryFilmRepository",
    "title_matches",
]
