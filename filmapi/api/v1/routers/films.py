# filmapi/api/v1/routers/films.py
# ╔══════════════════════════════════════════════════════════════════════════╗
# ║ 🎬 FilmAPI · Films                                                       ║
# ║                                                                          ║
# ║  - GET    /films            → Filtered, sorted, paginated list           ║
# ║  - POST   /films            → Create a film                              ║
# ║  - GET    /films/{film_id}  → Film detail                                ║
# ║  - PATCH  /films/{film_id}  → Partial update (optimistic concurrency)    ║
# ║  - DELETE /films/{film_id}  → Delete                                     ║
# ╚══════════════════════════════════════════════════════════════════════════╝

from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, Path, Query, Response, status
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError

from filmapi.api.deps import csv_list, get_film_repository
from filmapi.core.config import settings
from filmapi.core.exceptions import EditConflictError
from filmapi.repositories.films import FilmRepositoryProtocol
from filmapi.schemas.films import FILM_SORT_SAFELIST, FilmCreate, FilmList, FilmOut, FilmUpdate
from filmapi.schemas.filters import MAX_PAGE, MAX_PAGE_SIZE, Filters

log = logging.getLogger(__name__)

router = APIRouter(prefix="/films", tags=["Films"])


@router.get("", response_model=FilmList, summary="List films")
async def list_films(
    response: Response,
    title: str = Query("", max_length=500, description="All words must appear in the title"),
    genres: Optional[str] = Query(None, description="CSV; film has at least one of them"),
    actors: Optional[str] = Query(None, description="CSV; film has at least one of them"),
    directors: Optional[str] = Query(None, description="CSV; film has at least one of them"),
    page: int = Query(1, ge=1, le=MAX_PAGE),
    page_size: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    sort: Optional[str] = Query(None, description="CSV of " + ", ".join(FILM_SORT_SAFELIST)),
    repo: FilmRepositoryProtocol = Depends(get_film_repository),
):
    filters = Filters(page=page, page_size=page_size, sort=csv_list(sort), sort_safelist=FILM_SORT_SAFELIST)
    films, metadata = await repo.get_all(
        filters,
        title=title.strip(),
        genres=csv_list(genres),
        actors=csv_list(actors),
        directors=csv_list(directors),
    )
    response.headers["X-Total-Count"] = str(metadata.total_records)
    return FilmList(films=films, metadata=metadata)


@router.post("", response_model=FilmOut, status_code=status.HTTP_201_CREATED, summary="Create a film")
async def create_film(
    payload: FilmCreate,
    response: Response,
    repo: FilmRepositoryProtocol = Depends(get_film_repository),
):
    film = await repo.insert(payload)
    response.headers["Location"] = f"{settings.API_V1_STR}/films/{film.id}"
    return film


@router.get("/{film_id}", response_model=FilmOut, summary="Get a film")
async def get_film(
    film_id: int = Path(..., description="Film id"),
    repo: FilmRepositoryProtocol = Depends(get_film_repository),
):
    return await repo.get(film_id)


@router.patch("/{film_id}", response_model=FilmOut, summary="Partially update a film")
async def update_film(
    payload: FilmUpdate,
    film_id: int = Path(...),
    expected_version: Optional[int] = Header(None, alias="X-Expected-Version"),
    repo: FilmRepositoryProtocol = Depends(get_film_repository),
):
    """
    Read, merge, write.

    The write is conditional on the version that was read; when
    `X-Expected-Version` is sent it must also match, so clients can detect a
    lost update across their own read-modify-write cycle.
    """
    current = await repo.get(film_id)
    if expected_version is not None and expected_version != current.version:
        raise EditConflictError(resource="film", identifier=film_id)
    try:
        merged = payload.merged_into(current)
    except ValidationError as exc:
        raise RequestValidationError(exc.errors(include_url=False, include_context=False)) from exc
    return await repo.update(merged)


@router.delete("/{film_id}", summary="Delete a film")
async def delete_film(
    film_id: int = Path(...),
    repo: FilmRepositoryProtocol = Depends(get_film_repository),
):
    await repo.delete(film_id)
    return {"message": "film successfully deleted"}


__all__ = ["router"]
