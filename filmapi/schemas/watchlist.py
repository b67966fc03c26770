from __future__ import annotations

"""
Watchlist payloads, views and the watch-state rules.

State rules
-----------
- `watched=False` ⇒ `watched_at is None` and `rating is None`
- `rating is not None` ⇒ `watched=True` (a rating implies the film was seen)
- `watched=True` without `watched_at` ⇒ stamped with the caller's clock
"""

from datetime import datetime
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field, model_validator

from filmapi.schemas.films import FilmOut
from filmapi.schemas.filters import Metadata

DEFAULT_PRIORITY = 5

WATCHLIST_SORT_SAFELIST: List[str] = [
    "id", "added_at", "priority", "rating",
    "-id", "-added_at", "-priority", "-rating",
]
WATCHLIST_SORT_COLUMNS = {
    "id": "watchlist.id",
    "added_at": "watchlist.added_at",
    "priority": "watchlist.priority",
    "rating": "watchlist.rating",
}


def apply_watch_state(
    *,
    watched: bool,
    watched_at: Optional[datetime],
    rating: Optional[int],
    now: Optional[datetime],
) -> Tuple[bool, Optional[datetime], Optional[int]]:
    """
    Normalize (watched, watched_at, rating) so the row invariants hold.

    With `now=None` a newly watched entry keeps `watched_at=None`; the
    repository stamps it with its own clock when it writes.
    """
    if not watched:
        return False, None, None
    return True, watched_at or now, rating


class WatchlistCreate(BaseModel):
    film_id: int = Field(..., gt=0)
    notes: str = Field("", max_length=1000)
    priority: int = Field(0, ge=0, le=10, description="1..10; 0/unset means the default (5)")
    watched: bool = False
    rating: Optional[int] = Field(None, ge=1, le=10)

    @model_validator(mode="after")
    def _defaults(self) -> "WatchlistCreate":
        if self.priority == 0:
            self.priority = DEFAULT_PRIORITY
        if self.rating is not None:
            self.watched = True
        return self


class WatchlistOut(BaseModel):
    id: int
    user_id: int
    film_id: int
    film: Optional[FilmOut] = None
    added_at: datetime
    notes: str = ""
    priority: int = DEFAULT_PRIORITY
    watched: bool = False
    watched_at: Optional[datetime] = None
    rating: Optional[int] = None
    version: int = 1


class WatchlistUpdate(BaseModel):
    notes: Optional[str] = Field(None, max_length=1000)
    priority: Optional[int] = Field(None, ge=1, le=10)
    watched: Optional[bool] = None
    rating: Optional[int] = Field(None, ge=1, le=10)

    def merged_into(self, entry: WatchlistOut, *, now: Optional[datetime] = None) -> WatchlistOut:
        """
        Apply the patch to `entry`, keeping its id and (expected) version.

        An explicit `watched=False` wins over a rating in the same patch.
        """
        changes = self.model_dump(exclude_unset=True)
        watched = entry.watched if changes.get("watched") is None else changes["watched"]
        rating = changes["rating"] if "rating" in changes else entry.rating
        if changes.get("rating") is not None and changes.get("watched") is None:
            watched = True
        watched, watched_at, rating = apply_watch_state(
            watched=watched, watched_at=entry.watched_at, rating=rating, now=now
        )
        return entry.model_copy(
            update={
                "notes": entry.notes if changes.get("notes") is None else changes["notes"],
                "priority": entry.priority if changes.get("priority") is None else changes["priority"],
                "watched": watched,
                "watched_at": watched_at,
                "rating": rating,
            }
        )


class WatchlistList(BaseModel):
    watchlist: List[WatchlistOut]
    metadata: Metadata


__all__ = [
    "DEFAULT_PRIORITY",
    "WATCHLIST_SORT_SAFELIST",
    "WATCHLIST_SORT_COLUMNS",
    "apply_watch_state",
    "WatchlistCreate",
    "WatchlistOut",
    "WatchlistUpdate",
    "WatchlistList",
]
