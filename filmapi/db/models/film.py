from __future__ import annotations

"""
🎬 FilmAPI · Film (catalog aggregate root)
==========================================

The versioned base row of the Film aggregate. Related genres, actors and
directors live in shared reference tables and are attached through the
`film_genres` / `film_actors` / `film_directors` junction tables (see
`filmapi.db.models.film_links`).

Conventions
-----------
• `version` starts at 1 and only moves through the conditional update.
• Title search uses a `simple` text-search configuration; the GIN index
  below matches the predicate built by the film repository.
• Deleting a film cascades to its junction rows (never to reference rows).
"""

from sqlalchemy import REAL, CheckConstraint, Column, Index, Integer, Text, func, literal_column, text

from filmapi.db.base_class import Base, PKMixin, VersionMixin


class Film(PKMixin, VersionMixin, Base):
    __tablename__ = "films"

    # ───────────────── Descriptive fields ─────────────────
    title = Column(Text, nullable=False)
    year = Column(Integer, nullable=False)
    runtime = Column(Integer, nullable=False, doc="Minutes (> 0).")
    rating = Column(REAL, nullable=False, server_default=text("0"))
    description = Column(Text, nullable=False, server_default=text("''"))
    image = Column(Text, nullable=False, server_default=text("''"), doc="Poster URL.")

    __mapper_args__ = {"eager_defaults": True}

    __table_args__ = (
        CheckConstraint("runtime > 0", name="runtime_positive"),
        CheckConstraint("char_length(title) <= 500", name="title_len"),
        CheckConstraint("version >= 1", name="version_positive"),
        Index("ix_films_title_tsv", func.to_tsvector(literal_column("'simple'"), title), postgresql_using="gin"),
    )
