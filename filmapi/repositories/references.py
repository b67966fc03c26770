from __future__ import annotations

"""Reference-entity resolver (genres, actors, directors).

Turns names into stable ids without ever creating a second row for the same
name, and links them to a film idempotently. All statements run inside the
caller's transaction; rollback is the repository's job.

Single name (`resolve`), one round trip in the common case::

    WITH new_row AS (
        INSERT INTO genres (name) VALUES (:name)
        ON CONFLICT (name) DO NOTHING
        RETURNING id, name
    )
    SELECT id, name FROM new_row
    UNION ALL
    SELECT id, name FROM genres WHERE name = :name
    LIMIT 1

Whole collection (`link_many`), one statement per entity kind::

    WITH resolved AS (
        INSERT INTO genres (name) VALUES (:n0), (:n1), ...
        ON CONFLICT (name) DO UPDATE SET name = excluded.name
        RETURNING id, name
    ), linked AS (
        INSERT INTO film_genres (film_id, genre_id)
        SELECT :film_id, id FROM resolved
        ON CONFLICT DO NOTHING
        RETURNING film_id
    )
    SELECT id, name FROM resolved

The batch form uses a no-op `DO UPDATE` so that `RETURNING` yields a row for
every name, existing or new; the row lock it takes makes concurrent writers of
the same new name converge on one row. Names are always upserted in sorted
order, so two writers locking overlapping sets lock them in the same order
and never deadlock.
"""

import logging
from dataclasses import dataclass, field
from itertools import count
from typing import Dict, Iterable, List, Sequence, Set, Tuple, Type

from sqlalchemy import BigInteger, delete, func, literal, literal_column, select
from sqlalchemy.dialects.postgresql import aggregate_order_by, insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import Delete, Insert, Select

from filmapi.core.exceptions import StorageFailureError
from filmapi.db.base_class import Base
from filmapi.db.models import Actor, Director, FilmActor, FilmDirector, FilmGenre, Genre

logger = logging.getLogger(__name__)

Resolved = Tuple[int, str]


def unique_names(names: Iterable[str]) -> List[str]:
    """Drop repeated names, keeping first-seen order."""
    seen: Set[str] = set()
    out: List[str] = []
    for name in names:
        if name not in seen:
            seen.add(name)
            out.append(name)
    return out


@dataclass(frozen=True)
class ReferenceKind:
    """Where one kind of reference data lives."""

    name: str
    entity: Type[Base]
    junction: Type[Base]
    fk: str

    @property
    def entity_table(self):
        return self.entity.__table__

    @property
    def junction_table(self):
        return self.junction.__table__

    @property
    def fk_column(self):
        return self.junction_table.c[self.fk]


GENRES = ReferenceKind("genres", Genre, FilmGenre, "genre_id")
ACTORS = ReferenceKind("actors", Actor, FilmActor, "actor_id")
DIRECTORS = ReferenceKind("directors", Director, FilmDirector, "director_id")

REFERENCE_KINDS: Dict[str, ReferenceKind] = {k.name: k for k in (GENRES, ACTORS, DIRECTORS)}


class ReferenceResolver:
    """Resolve/link operations for one `ReferenceKind` over an `AsyncSession`."""

    def __init__(self, kind: ReferenceKind) -> None:
        self.kind = kind

    # ── Statements ─────────────────────────────────────────────────────────
    def resolve_statement(self, name: str) -> Select:
        t = self.kind.entity_table
        new_row = (
            pg_insert(t)
            .values(name=name)
            .on_conflict_do_nothing(index_elements=[t.c.name])
            .returning(t.c.id, t.c.name)
            .cte("new_row")
        )
        return (
            select(new_row.c.id, new_row.c.name)
            .union_all(select(t.c.id, t.c.name).where(t.c.name == name))
            .limit(1)
        )

    def link_statement(self, film_id: int, entity_id: int) -> Insert:
        j = self.kind.junction_table
        return (
            pg_insert(j)
            .values({"film_id": film_id, self.kind.fk: entity_id})
            .on_conflict_do_nothing()
        )

    def upsert_statement(self, names: Sequence[str]) -> Insert:
        """Batch upsert; rows are written (and row-locked) in sorted name order."""
        t = self.kind.entity_table
        upsert = pg_insert(t).values([{"name": n} for n in sorted(set(names))])
        return upsert.on_conflict_do_update(
            index_elements=[t.c.name], set_={"name": upsert.excluded.name}
        ).returning(t.c.id, t.c.name)

    def link_many_statement(self, film_id: int, names: Sequence[str]) -> Select:
        j = self.kind.junction_table
        resolved = self.upsert_statement(names).cte("resolved")
        linked = (
            pg_insert(j)
            .from_select(
                ["film_id", self.kind.fk],
                select(literal(film_id, BigInteger), resolved.c.id),
            )
            .on_conflict_do_nothing()
            .returning(j.c.film_id)
            .cte("linked")
        )
        return select(resolved.c.id, resolved.c.name).add_cte(linked)

    def unlink_stale_statement(self, film_id: int, keep_ids: Sequence[int]) -> Delete:
        j = self.kind.junction_table
        stmt = delete(j).where(j.c.film_id == film_id)
        if keep_ids:
            stmt = stmt.where(self.kind.fk_column.not_in(list(keep_ids)))
        return stmt

    def names_subquery(self, film_id_column):
        """Correlated `array_agg(name ORDER BY name)` for one film row."""
        t = self.kind.entity_table
        j = self.kind.junction_table
        return (
            select(func.array_agg(aggregate_order_by(t.c.name, t.c.name)))
            .select_from(j.join(t, t.c.id == self.kind.fk_column))
            .where(j.c.film_id == film_id_column)
            .scalar_subquery()
        )

    def any_name_exists(self, film_id_column, names: Sequence[str]):
        """`EXISTS` predicate: the film is linked to at least one of `names`."""
        t = self.kind.entity_table
        j = self.kind.junction_table
        return (
            select(literal_column("1"))
            .select_from(j.join(t, t.c.id == self.kind.fk_column))
            .where(j.c.film_id == film_id_column, t.c.name.in_(list(names)))
            .exists()
        )

    # ── Operations ─────────────────────────────────────────────────────────
    async def resolve(self, session: AsyncSession, name: str) -> Resolved:
        row = (await session.execute(self.resolve_statement(name))).first()
        if row is None:
            # A concurrent writer committed the row after this statement's snapshot.
            t = self.kind.entity_table
            row = (await session.execute(select(t.c.id, t.c.name).where(t.c.name == name))).first()
        if row is None:
            logger.error("Could not resolve %s name %r", self.kind.name, name)
            raise StorageFailureError()
        return int(row.id), row.name

    async def link(self, session: AsyncSession, film_id: int, entity_id: int) -> None:
        await session.execute(self.link_statement(film_id, entity_id))

    async def resolve_many(self, session: AsyncSession, names: Iterable[str]) -> List[Resolved]:
        """Resolve several names in one statement, without linking."""
        wanted = unique_names(names)
        if not wanted:
            return []
        rows = (await session.execute(self.upsert_statement(wanted))).all()
        return [(int(r.id), r.name) for r in rows]

    async def link_many(self, session: AsyncSession, film_id: int, names: Iterable[str]) -> List[Resolved]:
        """Resolve and link a whole collection in one statement."""
        wanted = unique_names(names)
        if not wanted:
            return []
        rows = (await session.execute(self.link_many_statement(film_id, wanted))).all()
        logger.debug("Linked %d %s to film %s", len(rows), self.kind.name, film_id)
        return [(int(r.id), r.name) for r in rows]

    async def reconcile(self, session: AsyncSession, film_id: int, names: Iterable[str]) -> List[Resolved]:
        """Make the film's links for this kind exactly `names`."""
        resolved = await self.link_many(session, film_id, names)
        await session.execute(self.unlink_stale_statement(film_id, [rid for rid, _ in resolved]))
        return resolved


# ─────────────────────────────────────────────────────────────────────────────
# 🧪 In-memory store (same contract, no database)
# ─────────────────────────────────────────────────────────────────────────────
@dataclass
class _MemoryKind:
    ids: Dict[str, int] = field(default_factory=dict)
    links: Dict[int, Set[int]] = field(default_factory=dict)
    seq: "count[int]" = field(default_factory=lambda: count(1))


class MemoryReferenceStore:
    """
    Reference rows and junctions for all kinds, held in dicts.

    Each operation completes without yielding to the event loop, so concurrent
    tasks resolving the same name still observe a single row.
    """

    def __init__(self) -> None:
        self._kinds: Dict[str, _MemoryKind] = {name: _MemoryKind() for name in REFERENCE_KINDS}

    def _kind(self, kind: str) -> _MemoryKind:
        try:
            return self._kinds[kind]
        except KeyError:
            raise ValueError(f"unknown reference kind: {kind!r}") from None

    def row_count(self, kind: str) -> int:
        return len(self._kind(kind).ids)

    async def resolve(self, kind: str, name: str) -> Resolved:
        k = self._kind(kind)
        if name not in k.ids:
            k.ids[name] = next(k.seq)
        return k.ids[name], name

    async def link(self, kind: str, film_id: int, entity_id: int) -> None:
        self._kind(kind).links.setdefault(film_id, set()).add(entity_id)

    async def resolve_many(self, kind: str, names: Iterable[str]) -> List[Resolved]:
        return [await self.resolve(kind, n) for n in unique_names(names)]

    async def link_many(self, kind: str, film_id: int, names: Iterable[str]) -> List[Resolved]:
        resolved = await self.resolve_many(kind, names)
        for entity_id, _ in resolved:
            await self.link(kind, film_id, entity_id)
        return resolved

    async def reconcile(self, kind: str, film_id: int, names: Iterable[str]) -> List[Resolved]:
        resolved = await self.link_many(kind, film_id, names)
        self._kind(kind).links[film_id] = {rid for rid, _ in resolved}
        return resolved

    def linked_ids(self, kind: str, film_id: int) -> Set[int]:
        return set(self._kind(kind).links.get(film_id, set()))

    def names_for(self, kind: str, film_id: int) -> List[str]:
        k = self._kind(kind)
        by_id = {v: n for n, v in k.ids.items()}
        return sorted(by_id[i] for i in k.links.get(film_id, set()))

    def drop_film(self, film_id: int) -> None:
        for k in self._kinds.values():
            k.links.pop(film_id, None)


__all__ = [
    "ReferenceKind",
    "ReferenceResolver",
    "MemoryReferenceStore",
    "REFERENCE_KINDS",
    "GENRES",
    "ACTORS",
    "DIRECTORS",
    "unique_names",
]
