"""
🧭 FilmAPI • API v1 Router Aggregator
=====================================

Exports the combined `router` and each sub-router.

Quick usage
-----------
    from filmapi.api.v1.routers import router as v1_router
    app.include_router(v1_router, prefix="/api/v1")
"""

from fastapi import APIRouter

from .films import router as films_router
from .watchlist import router as watchlist_router


def build_v1_router() -> APIRouter:
    """Compose films (`/films`) and watchlist (`/watchlist`) into one router."""
    r = APIRouter()
    r.include_router(films_router)
    r.include_router(watchlist_router)
    return r


router = build_v1_router()


__all__ = [
    "router",
    "build_v1_router",
    "films_router",
    "watchlist_router",
]
