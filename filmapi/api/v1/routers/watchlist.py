# filmapi/api/v1/routers/watchlist.py
# ╔══════════════════════════════════════════════════════════════════════════╗
# ║ 📌 FilmAPI · Watchlist (scoped to the `X-User-ID` caller)                ║
# ║                                                                          ║
# ║  - GET    /watchlist             → Caller's entries (filter/sort/page)   ║
# ║  - POST   /watchlist             → Bookmark a film                       ║
# ║  - GET    /watchlist/{entry_id}  → Entry detail with embedded film       ║
# ║  - PATCH  /watchlist/{entry_id}  → Notes / priority / watch state        ║
# ║  - DELETE /watchlist/{entry_id}  → Remove                                ║
# ╚══════════════════════════════════════════════════════════════════════════╝

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, Response, status

from filmapi.api.deps import csv_list, get_current_user_id, get_film_repository, get_watchlist_repository
from filmapi.core.config import settings
from filmapi.repositories.films import FilmRepositoryProtocol
from filmapi.repositories.watchlist import WatchlistRepositoryProtocol
from filmapi.schemas.filters import MAX_PAGE, MAX_PAGE_SIZE, Filters
from filmapi.schemas.watchlist import (
    WATCHLIST_SORT_SAFELIST,
    WatchlistCreate,
    WatchlistList,
    WatchlistOut,
    WatchlistUpdate,
)

log = logging.getLogger(__name__)

router = APIRouter(prefix="/watchlist", tags=["Watchlist"])


@router.get("", response_model=WatchlistList, summary="List the caller's watchlist")
async def list_watchlist(
    response: Response,
    watched: Optional[bool] = Query(None),
    priority: Optional[int] = Query(None, ge=1, le=10),
    page: int = Query(1, ge=1, le=MAX_PAGE),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    sort: Optional[str] = Query(None, description="CSV of " + ", ".join(WATCHLIST_SORT_SAFELIST)),
    user_id: int = Depends(get_current_user_id),
    repo: WatchlistRepositoryProtocol = Depends(get_watchlist_repository),
):
    filters = Filters(page=page, page_size=page_size, sort=csv_list(sort), sort_safelist=WATCHLIST_SORT_SAFELIST)
    entries, metadata = await repo.get_all(user_id, filters, watched=watched, priority=priority)
    response.headers["X-Total-Count"] = str(metadata.total_records)
    return WatchlistList(watchlist=entries, metadata=metadata)


@router.post("", response_model=WatchlistOut, status_code=status.HTTP_201_CREATED, summary="Add a film")
async def add_to_watchlist(
    payload: WatchlistCreate,
    response: Response,
    user_id: int = Depends(get_current_user_id),
    films: FilmRepositoryProtocol = Depends(get_film_repository),
    repo: WatchlistRepositoryProtocol = Depends(get_watchlist_repository),
):
    # 404 for an unknown film rather than a foreign-key failure
    await films.get(payload.film_id)
    entry = await repo.insert(user_id, payload)
    log.info("User %s bookmarked film %s", user_id, payload.film_id)
    response.headers["Location"] = f"{settings.API_V1_STR}/watchlist/{entry.id}"
    return entry


@router.get("/{entry_id}", response_model=WatchlistOut, summary="Get a watchlist entry")
async def get_watchlist_entry(
    entry_id: int = Path(...),
    user_id: int = Depends(get_current_user_id),
    repo: WatchlistRepositoryProtocol = Depends(get_watchlist_repository),
):
    return await repo.get(user_id, entry_id)


@router.patch("/{entry_id}", response_model=WatchlistOut, summary="Update a watchlist entry")
async def update_watchlist_entry(
    payload: WatchlistUpdate,
    entry_id: int = Path(...),
    user_id: int = Depends(get_current_user_id),
    repo: WatchlistRepositoryProtocol = Depends(get_watchlist_repository),
):
    current = await repo.get(user_id, entry_id)
    # watched_at for a newly watched entry is stamped by the repository clock
    merged = payload.merged_into(current)
    return await repo.update(user_id, merged)


@router.delete("/{entry_id}", summary="Remove a watchlist entry")
async def delete_watchlist_entry(
    entry_id: int = Path(...),
    user_id: int = Depends(get_current_user_id),
    repo: WatchlistRepositoryProtocol = Depends(get_watchlist_repository),
):
    await repo.delete(user_id, entry_id)
    return {"message": "watchlist entry successfully deleted"}


__all__ = ["router"]
