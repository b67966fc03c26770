from __future__ import annotations

"""
Film payloads and views.

- `Runtime` is stored as integer minutes and travels over JSON as `"<n> mins"`.
- `FilmCreate` carries every field rule; `FilmUpdate` is a partial patch that
  is merged into the current `FilmOut` and re-validated as a whole.
"""

import re
from datetime import datetime, timezone
from typing import Annotated, Any, List, Optional

from pydantic import (
    BaseModel,
    BeforeValidator,
    Field,
    PlainSerializer,
    field_validator,
)

from filmapi.schemas.filters import Metadata

IMAGE_URL_RE = re.compile(
    r"^https?://([\da-z\.-]+\.[a-z\.]{2,6})([\/\w \.-]*)*\.(jpg|jpeg|png|gif|bmp|svg|webp)(\?.*)?$"
)

FILM_SORT_SAFELIST: List[str] = [
    "id", "title", "year", "runtime", "rating",
    "-id", "-title", "-year", "-runtime", "-rating",
]
FILM_SORT_COLUMNS = {
    "id": "films.id",
    "title": "films.title",
    "year": "films.year",
    "runtime": "films.runtime",
    "rating": "films.rating",
}


# ─────────────────────────────────────────────────────────────────────────────
# ⏱️ Runtime ("<n> mins")
# ─────────────────────────────────────────────────────────────────────────────
def parse_runtime(value: Any) -> int:
    """Accept integer minutes or the `"<n> mins"` wire form."""
    if isinstance(value, bool):
        raise ValueError("invalid format for runtime")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        parts = value.split(" ")
        if len(parts) != 2 or parts[1] != "mins":
            raise ValueError("invalid format for runtime")
        try:
            return int(parts[0])
        except ValueError:
            raise ValueError("invalid format for runtime") from None
    raise ValueError("invalid format for runtime")


def format_runtime(value: int) -> str:
    return f"{value} mins" if value else ""


Runtime = Annotated[
    int,
    BeforeValidator(parse_runtime),
    PlainSerializer(format_runtime, return_type=str, when_used="json"),
]


# ─────────────────────────────────────────────────────────────────────────────
# 🎬 Film fields + rules
# ─────────────────────────────────────────────────────────────────────────────
class FilmCreate(BaseModel):
    """Create payload; also the validator for a merged update."""

    title: str = Field(..., min_length=1)
    year: int
    runtime: Runtime
    rating: float = 0.0
    description: str = ""
    image: str
    genres: List[str] = Field(..., min_length=1, max_length=5)
    directors: List[str] = Field(default_factory=list)
    actors: List[str] = Field(default_factory=list)

    @field_validator("title")
    @classmethod
    def _title_bytes(cls, v: str) -> str:
        if len(v.encode("utf-8")) > 500:
            raise ValueError("must not be more than 500 bytes long")
        return v

    @field_validator("year")
    @classmethod
    def _year_range(cls, v: int) -> int:
        if v < 1888:
            raise ValueError("must be greater than 1888")
        if v > datetime.now(timezone.utc).year:
            raise ValueError("must not be in the future")
        return v

    @field_validator("runtime")
    @classmethod
    def _runtime_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be a positive integer")
        return v

    @field_validator("genres")
    @classmethod
    def _genres_unique(cls, v: List[str]) -> List[str]:
        if len(set(v)) != len(v):
            raise ValueError("must not contain duplicate values")
        return v

    @field_validator("genres", "directors", "actors")
    @classmethod
    def _names_not_blank(cls, v: List[str]) -> List[str]:
        if any(not name.strip() for name in v):
            raise ValueError("names must not be blank")
        return v

    @field_validator("image")
    @classmethod
    def _image_url(cls, v: str) -> str:
        if not IMAGE_URL_RE.match(v):
            raise ValueError("Must be an URL")
        return v


class FilmOut(BaseModel):
    """Persisted Film aggregate as returned by the repositories."""

    id: int
    title: str
    year: int
    runtime: Runtime
    genres: List[str] = Field(default_factory=list)
    directors: List[str] = Field(default_factory=list)
    actors: List[str] = Field(default_factory=list)
    rating: float = 0.0
    description: str = ""
    image: str = ""
    version: int = 1


class FilmUpdate(BaseModel):
    """Partial update: only supplied fields change."""

    title: Optional[str] = None
    year: Optional[int] = None
    runtime: Optional[Runtime] = None
    genres: Optional[List[str]] = None
    directors: Optional[List[str]] = None
    actors: Optional[List[str]] = None
    rating: Optional[float] = None
    description: Optional[str] = None
    image: Optional[str] = None

    def merged_into(self, film: FilmOut) -> FilmOut:
        """
        Apply the patch to `film`, keeping its id and (expected) version.

        Raises `pydantic.ValidationError` when the merged film breaks a rule.
        """
        data = film.model_dump(exclude={"id", "version"})
        data.update({k: v for k, v in self.model_dump(exclude_unset=True).items() if v is not None})
        checked = FilmCreate.model_validate(data)
        return FilmOut(id=film.id, version=film.version, **checked.model_dump())


class FilmList(BaseModel):
    films: List[FilmOut]
    metadata: Metadata


__all__ = [
    "Runtime",
    "parse_runtime",
    "format_runtime",
    "FilmCreate",
    "FilmOut",
    "FilmUpdate",
    "FilmList",
    "FILM_SORT_SAFELIST",
    "FILM_SORT_COLUMNS",
]
