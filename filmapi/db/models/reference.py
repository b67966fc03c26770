from __future__ import annotations

"""
🏷️ FilmAPI · Reference entities (Genre, Actor, Director)
========================================================

Append-only, shared lookup rows keyed by an exact, case-sensitive `name`.

Invariants
----------
• At most one row per distinct name (`UNIQUE (name)`); the resolver relies on
  this constraint as its `ON CONFLICT` arbiter.
• A name maps to exactly one id for the lifetime of the system: there is no
  rename or delete path, and junction FKs use `ON DELETE RESTRICT`.
"""

from sqlalchemy import CheckConstraint, Text
from sqlalchemy.orm import Mapped, declared_attr, mapped_column

from filmapi.db.base_class import Base, PKMixin


class _NamedReference(PKMixin):
    """Shared shape of every reference table."""

    name: Mapped[str] = mapped_column(Text, nullable=False, unique=True)

    @declared_attr.directive
    def __table_args__(cls):
        return (CheckConstraint("length(btrim(name)) > 0", name="name_not_blank"),)


class Genre(_NamedReference, Base):
    __tablename__ = "genres"


class Actor(_NamedReference, Base):
    __tablename__ = "actors"


class Director(_NamedReference, Base):
    __tablename__ = "directors"


__all__ = ["Genre", "Actor", "Director"]
