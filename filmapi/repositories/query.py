from __future__ import annotations

"""Query filter builder.

Turns request-supplied sort tokens and page numbers into the fragments a
repository embeds in its statement:

    >>> build_order_clause(["id", "-title"], ["id", "title", "-id", "-title"])
    'id ASC,title DESC'
    >>> build_page(3, 20)
    (20, 40)

Only identifiers produced by the safelist lookup are ever concatenated into
SQL text; every value travels as a bound parameter. Nothing here executes a
query.
"""

import logging
import re
from typing import Dict, Iterable, List, Mapping, NamedTuple, Optional, Sequence, Tuple

from filmapi.core.exceptions import InvalidSortError
from filmapi.schemas.filters import Metadata

logger = logging.getLogger(__name__)

_IDENTIFIER_RE = re.compile(r"^[a-z_][a-z0-9_]*(\.[a-z_][a-z0-9_]*)?$")


class SortKey(NamedTuple):
    column: str
    direction: str  # "ASC" | "DESC"

    @property
    def descending(self) -> bool:
        return self.direction == "DESC"


def _sort_lookup(safelist: Iterable[str]) -> Dict[str, SortKey]:
    """Map every safelisted token to its fixed (column, direction) pair."""
    lookup: Dict[str, SortKey] = {}
    for token in safelist:
        column = token[1:] if token.startswith("-") else token
        if not _IDENTIFIER_RE.match(column):
            raise ValueError(f"safelist entry is not a plain identifier: {token!r}")
        lookup[token] = SortKey(column, "DESC" if token.startswith("-") else "ASC")
    return lookup


def parse_sort(
    tokens: Sequence[str],
    safelist: Iterable[str],
    columns: Optional[Mapping[str, str]] = None,
) -> List[SortKey]:
    """
    Resolve `tokens` through the safelist, preserving caller order.

    Raises `InvalidSortError` naming the first token that is not safelisted
    (verbatim membership, `-` prefix included) or, when `columns` is given,
    whose column has no entry there.
    """
    lookup = _sort_lookup(safelist)
    keys: List[SortKey] = []
    for token in tokens:
        key = lookup.get(token)
        if key is None or (columns is not None and key.column not in columns):
            logger.warning("Rejected sort token %r", token)
            raise InvalidSortError(token)
        keys.append(key)
    return keys


def build_order_clause(
    tokens: Sequence[str],
    safelist: Iterable[str],
    columns: Optional[Mapping[str, str]] = None,
) -> str:
    """
    Build an ORDER BY fragment such as `"id ASC,title DESC"`.

    `columns` optionally qualifies each safelisted column name (e.g.
    `{"id": "films.id"}`); those mapped names are fixed by the caller's code.
    An empty token list yields an empty string.
    """
    parts: List[str] = []
    for key in parse_sort(tokens, safelist, columns):
        column = columns[key.column] if columns is not None else key.column
        parts.append(f"{column} {key.direction}")
    return ",".join(parts)


def build_page(page: int, page_size: int) -> Tuple[int, int]:
    """Return `(limit, offset)`; bounds are validated upstream."""
    return page_size, (page - 1) * page_size


def build_metadata(total_records: int, page: int, page_size: int) -> Metadata:
    if total_records == 0:
        return Metadata()
    return Metadata(
        current_page=page,
        page_size=page_size,
        first_page=1,
        last_page=(total_records + page_size - 1) // page_size,
        total_records=total_records,
    )


__all__ = [
    "SortKey",
    "parse_sort",
    "build_order_clause",
    "build_page",
    "build_metadata",
]
