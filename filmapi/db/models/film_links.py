from __future__ import annotations

"""
🔗 FilmAPI · Film ⇄ reference junction tables
=============================================

Unordered (film, entity) pairs. The composite primary key makes linking
idempotent: the resolver inserts with `ON CONFLICT DO NOTHING`.

• film FK → `ON DELETE CASCADE` (deleting a film drops its links)
• entity FK → `ON DELETE RESTRICT` (reference data is never deleted)
"""

from sqlalchemy import BigInteger, Column, ForeignKey

from filmapi.db.base_class import Base


class FilmGenre(Base):
    """Association row connecting a :class:`Film` to a :class:`Genre`."""

    __tablename__ = "film_genres"

    film_id = Column(BigInteger, ForeignKey("films.id", ondelete="CASCADE"), primary_key=True)
    genre_id = Column(BigInteger, ForeignKey("genres.id", ondelete="RESTRICT"), primary_key=True, index=True)


class FilmActor(Base):
    """Association row connecting a :class:`Film` to an :class:`Actor`."""

    __tablename__ = "film_actors"

    film_id = Column(BigInteger, ForeignKey("films.id", ondelete="CASCADE"), primary_key=True)
    actor_id = Column(BigInteger, ForeignKey("actors.id", ondelete="RESTRICT"), primary_key=True, index=True)


class FilmDirector(Base):
    """Association row connecting a :class:`Film` to a :class:`Director`."""

    __tablename__ = "film_directors"

    film_id = Column(BigInteger, ForeignKey("films.id", ondelete="CASCADE"), primary_key=True)
    director_id = Column(BigInteger, ForeignKey("directors.id", ondelete="RESTRICT"), primary_key=True, index=True)


__all__ = ["FilmGenre", "FilmActor", "FilmDirector"]
