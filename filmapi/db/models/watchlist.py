from __future__ import annotations

"""
🎬 FilmAPI · Watchlist entry (user ↔ film bookmark)
===================================================

One row per (user, film) pair with the viewer's notes, priority and watch
state. Versioned like `Film`.

Constraints
-----------
• **Named unique constraint** `watchlist_user_film_unique`: the repository
  maps violations of exactly this constraint to `DuplicateEntryError`.
• **Check constraints** mirror the watch-state rules: no row may
  carry `rating` or `watched_at` unless `watched` is true.
• `added_at` is DB-driven and never rewritten after insert.
"""

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Text,
    UniqueConstraint,
    func,
    text,
)

from filmapi.db.base_class import Base, PKMixin, VersionMixin

WATCHLIST_UNIQUE_CONSTRAINT = "watchlist_user_film_unique"


class WatchlistEntry(PKMixin, VersionMixin, Base):
    __tablename__ = "watchlist"

    # ── Ownership ───────────────────────────────────────────────────────────
    user_id = Column(BigInteger, nullable=False, doc="Owner (authenticated upstream).")
    film_id = Column(
        BigInteger,
        ForeignKey("films.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        doc="Bookmarked film; weak reference, not owned.",
    )

    # ── State ───────────────────────────────────────────────────────────────
    added_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    notes = Column(Text, nullable=False, server_default=text("''"))
    priority = Column(Integer, nullable=False, server_default=text("5"))
    watched = Column(Boolean, nullable=False, server_default=text("false"))
    watched_at = Column(DateTime(timezone=True), nullable=True)
    rating = Column(Integer, nullable=True)

    __mapper_args__ = {"eager_defaults": True}

    __table_args__ = (
        UniqueConstraint("user_id", "film_id", name=WATCHLIST_UNIQUE_CONSTRAINT),
        CheckConstraint("priority BETWEEN 1 AND 10", name="priority_range"),
        CheckConstraint("rating IS NULL OR rating BETWEEN 1 AND 10", name="rating_range"),
        CheckConstraint("char_length(notes) <= 1000", name="notes_len"),
        CheckConstraint("rating IS NULL OR watched", name="rating_requires_watched"),
        CheckConstraint("watched = (watched_at IS NOT NULL)", name="watched_at_iff_watched"),
        Index("ix_watchlist_user_added", "user_id", "added_at"),
    )


__all__ = ["WatchlistEntry", "WATCHLIST_UNIQUE_CONSTRAINT"]
