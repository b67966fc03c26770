# tests/test_repositories/test_memory_watchlist.py

import pytest

from filmapi.core.exceptions import (
    DuplicateEntryError,
    EditConflictError,
    NotFoundError,
    StorageFailureError,
)
from filmapi.db.models import WATCHLIST_UNIQUE_CONSTRAINT
from filmapi.schemas.films import FilmCreate
from filmapi.schemas.filters import Filters
from filmapi.schemas.watchlist import WATCHLIST_SORT_SAFELIST, WatchlistCreate, WatchlistUpdate
from tests.fixtures.clock import EPOCH

pytestmark = pytest.mark.anyio

USER = 10
OTHER = 11


async def _film(film_repo, title="Stalker"):
    return await film_repo.insert(
        FilmCreate(title=title, year=1979, runtime=162, genres=["drama"], image="https://i.example.com/s.jpg")
    )


def filters(**kw) -> Filters:
    kw.setdefault("sort_safelist", WATCHLIST_SORT_SAFELIST)
    return Filters(**kw)


async def test_insert_embeds_film_and_defaults(film_repo, watchlist_repo):
    film = await _film(film_repo)
    entry = await watchlist_repo.insert(USER, WatchlistCreate(film_id=film.id))
    assert entry.film.title == "Stalker"
    assert (entry.priority, entry.watched, entry.rating, entry.version) == (5, False, None, 1)
    assert entry.added_at == EPOCH


async def test_same_user_and_film_twice_is_duplicate(film_repo, watchlist_repo):
    film = await _film(film_repo)
    await watchlist_repo.insert(USER, WatchlistCreate(film_id=film.id))
    with pytest.raises(DuplicateEntryError) as ei:
        await watchlist_repo.insert(USER, WatchlistCreate(film_id=film.id, notes="again"))
    assert ei.value.constraint == WATCHLIST_UNIQUE_CONSTRAINT
    # another user may bookmark the same film
    await watchlist_repo.insert(OTHER, WatchlistCreate(film_id=film.id))


async def test_insert_for_missing_film_is_storage_failure(watchlist_repo):
    with pytest.raises(StorageFailureError):
        await watchlist_repo.insert(USER, WatchlistCreate(film_id=404))


async def test_rating_on_create_marks_watched_and_stamps(film_repo, watchlist_repo, clock):
    film = await _film(film_repo)
    entry = await watchlist_repo.insert(USER, WatchlistCreate(film_id=film.id, rating=9))
    assert (entry.watched, entry.watched_at, entry.rating) == (True, clock(), 9)


async def test_unwatch_clears_stamp_and_rating(film_repo, watchlist_repo, clock):
    film = await _film(film_repo)
    entry = await watchlist_repo.insert(USER, WatchlistCreate(film_id=film.id, rating=7))
    patched = WatchlistUpdate(watched=False).merged_into(entry, now=clock())
    updated = await watchlist_repo.update(USER, patched)
    assert (updated.watched, updated.watched_at, updated.rating, updated.version) == (False, None, None, 2)


async def test_rating_on_unwatched_entry_sets_watched(film_repo, watchlist_repo, clock):
    film = await _film(film_repo)
    entry = await watchlist_repo.insert(USER, WatchlistCreate(film_id=film.id))
    later = clock.advance(days=1)
    updated = await watchlist_repo.update(USER, WatchlistUpdate(rating=6).merged_into(entry, now=later))
    assert (updated.watched, updated.watched_at, updated.rating) == (True, later, 6)


async def test_stale_update_conflicts(film_repo, watchlist_repo):
    film = await _film(film_repo)
    entry = await watchlist_repo.insert(USER, WatchlistCreate(film_id=film.id))
    await watchlist_repo.update(USER, entry.model_copy(update={"notes": "first"}))
    with pytest.raises(EditConflictError):
        await watchlist_repo.update(USER, entry.model_copy(update={"notes": "second"}))


async def test_other_users_entry_is_invisible(film_repo, watchlist_repo):
    film = await _film(film_repo)
    entry = await watchlist_repo.insert(USER, WatchlistCreate(film_id=film.id))
    with pytest.raises(NotFoundError):
        await watchlist_repo.get(OTHER, entry.id)
    with pytest.raises(NotFoundError):
        await watchlist_repo.delete(OTHER, entry.id)
    with pytest.raises(EditConflictError):
        await watchlist_repo.update(OTHER, entry)


async def test_exists_and_delete(film_repo, watchlist_repo):
    film = await _film(film_repo)
    entry = await watchlist_repo.insert(USER, WatchlistCreate(film_id=film.id))
    assert await watchlist_repo.exists(USER, film.id)
    assert not await watchlist_repo.exists(OTHER, film.id)
    await watchlist_repo.delete(USER, entry.id)
    assert not await watchlist_repo.exists(USER, film.id)
    with pytest.raises(NotFoundError):
        await watchlist_repo.delete(USER, entry.id)


async def test_deleting_the_film_cascades(film_repo, watchlist_repo):
    film = await _film(film_repo)
    entry = await watchlist_repo.insert(USER, WatchlistCreate(film_id=film.id))
    await film_repo.delete(film.id)
    with pytest.raises(NotFoundError):
        await watchlist_repo.get(USER, entry.id)


async def test_get_all_filters_sorts_and_paginates(film_repo, watchlist_repo, clock):
    ids = []
    for i, title in enumerate(["A", "B", "C", "D"]):
        film = await _film(film_repo, title)
        clock.advance(minutes=1)
        entry = await watchlist_repo.insert(
            USER, WatchlistCreate(film_id=film.id, priority=i + 1, rating=(i + 5) if i % 2 else None)
        )
        ids.append(entry.id)
    other_film = await _film(film_repo, "E")
    await watchlist_repo.insert(OTHER, WatchlistCreate(film_id=other_film.id))

    entries, meta = await watchlist_repo.get_all(USER, filters())
    assert [e.id for e in entries] == list(reversed(ids))  # newest first
    assert meta.total_records == 4

    entries, _ = await watchlist_repo.get_all(USER, filters(), watched=True)
    assert [e.film.title for e in entries] == ["D", "B"]

    entries, _ = await watchlist_repo.get_all(USER, filters(), priority=3)
    assert [e.film.title for e in entries] == ["C"]

    entries, _ = await watchlist_repo.get_all(USER, filters(sort=["-rating"]))
    # NULL ratings sort first on DESC, like PostgreSQL
    assert [e.rating for e in entries] == [None, None, 8, 6]

    entries, meta = await watchlist_repo.get_all(USER, filters(sort=["priority"], page=2, page_size=3))
    assert [e.priority for e in entries] == [4]
    assert (meta.current_page, meta.last_page) == (2, 2)
