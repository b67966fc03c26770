from __future__ import annotations

"""
# FilmAPI · SQLAlchemy Base & Mixins

SQLAlchemy 2.0 declarative **Base** with:
- Global **naming conventions** (Alembic-friendly)
- Automatic **snake_case `__tablename__`**
- Helpful `__repr__` for debugging/observability
- Common mixins:
  - `PKMixin`: BIGINT identity primary key
  - `VersionMixin`: optimistic-concurrency `version` stamp

Usage:
    from filmapi.db.base_class import Base, PKMixin, VersionMixin

    class Film(PKMixin, VersionMixin, Base):
        title: Mapped[str] = mapped_column(Text)

Notes:
- `version` is only ever written through the conditional-update helper in
  `filmapi.repositories.concurrency`; the ORM's own `version_id_col` is not
  used because the core writes through Core statements.
"""

import re

from sqlalchemy import BigInteger, Identity, Integer, MetaData, text
from sqlalchemy.orm import DeclarativeBase, Mapped, declared_attr, mapped_column

# ──────────────────────────────────────────────────────────────────────────────
# 🏷️ Naming conventions (stable constraint names for Alembic)
# ──────────────────────────────────────────────────────────────────────────────

NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


def _to_snake(name: str) -> str:
    """Convert `CamelCase` / `PascalCase` to `snake_case` for table names."""
    s1 = re.sub("(.)([A-Z][a-z]+)", r"\1_\2", name)
    return re.sub("([a-z0-9])([A-Z])", r"\1_\2", s1).lower()


# ──────────────────────────────────────────────────────────────────────────────
# 🧱 Declarative Base
# ──────────────────────────────────────────────────────────────────────────────

class Base(DeclarativeBase):
    """Global declarative base for FilmAPI models."""
    metadata = MetaData(naming_convention=NAMING_CONVENTION)

    @declared_attr.directive
    def __tablename__(cls) -> str:  # type: ignore[override]
        return _to_snake(cls.__name__)

    def __repr__(self) -> str:  # pragma: no cover (repr convenience)
        attrs: list[str] = []
        for key in ("id", "name", "title", "film_id", "user_id", "version"):
            if key in self.__dict__:
                attrs.append(f"{key}={self.__dict__[key]!r}")
        return f"{self.__class__.__name__}({', '.join(attrs)})"


# ──────────────────────────────────────────────────────────────────────────────
# 🧩 Common mixins
# ──────────────────────────────────────────────────────────────────────────────

class PKMixin:
    """Surrogate BIGINT identity primary key."""
    id: Mapped[int] = mapped_column(BigInteger, Identity(always=False), primary_key=True)


class VersionMixin:
    """
    Optimistic-concurrency stamp.
    - starts at 1 on insert (server default)
    - incremented by exactly one per successful conditional update
    """
    version: Mapped[int] = mapped_column(Integer, nullable=False, server_default=text("1"))


__all__ = [
    "Base",
    "PKMixin",
    "VersionMixin",
    "NAMING_CONVENTION",
]
