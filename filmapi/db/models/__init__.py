# filmapi/db/models/__init__.py
"""
FilmAPI · ORM model registry
============================

Catalog aggregates (Film, Watchlist entry), the shared reference tables and
the junction tables that link them.
"""

from .film import Film
from .reference import Genre, Actor, Director
from .film_links import FilmGenre, FilmActor, FilmDirector
from .watchlist import WatchlistEntry, WATCHLIST_UNIQUE_CONSTRAINT

__all__ = [
    "Film",
    "Genre",
    "Actor",
    "Director",
    "FilmGenre",
    "FilmActor",
    "FilmDirector",
    "WatchlistEntry",
    "WATCHLIST_UNIQUE_CONSTRAINT",
]
