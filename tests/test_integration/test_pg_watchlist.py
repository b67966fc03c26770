# tests/test_integration/test_pg_watchlist.py

import pytest

from filmapi.core.exceptions import DuplicateEntryError, EditConflictError, NotFoundError
from filmapi.repositories.films import SQLFilmRepository
from filmapi.repositories.watchlist import SQLWatchlistRepository
from filmapi.schemas.films import FilmCreate
from filmapi.schemas.filters import Filters
from filmapi.schemas.watchlist import WATCHLIST_SORT_SAFELIST, WatchlistCreate, WatchlistUpdate

pytestmark = [pytest.mark.anyio, pytest.mark.integration]

USER = 501


@pytest.fixture()
async def film(pg_database):
    return await SQLFilmRepository(pg_database).insert(
        FilmCreate(
            title="Tokyo Story",
            year=1953,
            runtime="136 mins",
            genres=["drama"],
            directors=["Yasujiro Ozu"],
            image="https://img.example.com/tokyo.jpg",
        )
    )


@pytest.fixture()
def repo(pg_database, clock):
    return SQLWatchlistRepository(pg_database, clock=clock)


async def test_insert_embeds_film_and_stamps_watched_at(repo, film, clock):
    entry = await repo.insert(USER, WatchlistCreate(film_id=film.id, rating=8))
    assert (entry.watched, entry.watched_at, entry.rating) == (True, clock.now, 8)
    assert entry.film.title == "Tokyo Story"
    assert entry.film.directors == ["Yasujiro Ozu"]
    assert await repo.exists(USER, film.id)


async def test_second_insert_is_a_duplicate(repo, film):
    await repo.insert(USER, WatchlistCreate(film_id=film.id))
    with pytest.raises(DuplicateEntryError) as ei:
        await repo.insert(USER, WatchlistCreate(film_id=film.id))
    assert ei.value.constraint == "watchlist_user_film_unique"
    # another user may bookmark the same film
    await repo.insert(USER + 1, WatchlistCreate(film_id=film.id))


async def test_update_and_conflict(repo, film, clock):
    entry = await repo.insert(USER, WatchlistCreate(film_id=film.id))
    clock.advance(minutes=30)
    updated = await repo.update(USER, WatchlistUpdate(rating=9).merged_into(entry, now=clock.now))
    assert (updated.version, updated.watched, updated.watched_at) == (2, True, clock.now)
    with pytest.raises(EditConflictError):
        await repo.update(USER, WatchlistUpdate(notes="late").merged_into(entry, now=clock.now))


async def test_entries_are_scoped_to_user(repo, film):
    entry = await repo.insert(USER, WatchlistCreate(film_id=film.id))
    with pytest.raises(NotFoundError):
        await repo.get(USER + 1, entry.id)
    with pytest.raises(NotFoundError):
        await repo.delete(USER + 1, entry.id)
    await repo.delete(USER, entry.id)
    assert not await repo.exists(USER, film.id)


async def test_deleting_the_film_cascades(pg_database, repo, film):
    entry = await repo.insert(USER, WatchlistCreate(film_id=film.id))
    await SQLFilmRepository(pg_database).delete(film.id)
    with pytest.raises(NotFoundError):
        await repo.get(USER, entry.id)


async def test_get_all_filters_and_orders(pg_database, repo, film):
    other = await SQLFilmRepository(pg_database).insert(
        FilmCreate(title="Late Spring", year=1949, runtime="108 mins", genres=["drama"], image="https://img.example.com/ls.jpg")
    )
    await repo.insert(USER, WatchlistCreate(film_id=film.id, priority=3))
    await repo.insert(USER, WatchlistCreate(film_id=other.id, priority=8, watched=True))

    entries, meta = await repo.get_all(USER, Filters(sort_safelist=WATCHLIST_SORT_SAFELIST))
    assert [e.film.title for e in entries] == ["Late Spring", "Tokyo Story"]
    assert meta.total_records == 2

    entries, _ = await repo.get_all(USER, Filters(sort=["priority"], sort_safelist=WATCHLIST_SORT_SAFELIST))
    assert [e.priority for e in entries] == [3, 8]

    entries, meta = await repo.get_all(USER, Filters(sort_safelist=WATCHLIST_SORT_SAFELIST), watched=True)
    assert [e.film_id for e in entries] == [other.id]
    assert meta.total_records == 1
