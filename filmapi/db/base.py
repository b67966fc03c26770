# filmapi/db/base.py
"""
FilmAPI · SQLAlchemy Base registry
==================================

Import all ORM models so their tables are registered on `Base.metadata`.
This is used by Alembic autogeneration and the test schema bootstrap.

Tip: Keep this file import-only; no runtime logic.
"""

from filmapi.db.base_class import Base

# ───────────────────────────────────────────────────────────────
# Catalog: Films, reference data, junctions
# ───────────────────────────────────────────────────────────────
from filmapi.db.models.film import Film
from filmapi.db.models.reference import Genre, Actor, Director
from filmapi.db.models.film_links import FilmGenre, FilmActor, FilmDirector

# ───────────────────────────────────────────────────────────────
# Engagement: Watchlist
# ───────────────────────────────────────────────────────────────
from filmapi.db.models.watchlist import WatchlistEntry

__all__ = [
    "Base",
    "Film",
    "Genre",
    "Actor",
    "Director",
    "FilmGenre",
    "FilmActor",
    "FilmDirector",
    "WatchlistEntry",
]
