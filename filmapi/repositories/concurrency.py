from __future__ import annotations

"""Optimistic concurrency control.

Every versioned aggregate row carries an integer `version`. A write succeeds
only against the version the writer read, and bumps it by one in the same
statement:

    UPDATE films SET ..., version = version + 1
    WHERE id = :id AND version = :expected
    RETURNING version

Zero matched rows means the row changed (or vanished) since it was read; the
caller gets `EditConflictError` in both cases and decides whether to re-read
and retry. Nothing here retries.
"""

import logging
from typing import Any, Mapping, Optional

from sqlalchemy import Table, Update, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from filmapi.core.exceptions import EditConflictError

logger = logging.getLogger(__name__)


def build_conditional_update(
    table: Table,
    ident: int,
    expected_version: int,
    values: Mapping[str, Any],
    *criteria: ColumnElement[bool],
) -> Update:
    """Compare-and-swap UPDATE returning the post-increment version."""
    if "version" in values:
        raise ValueError("version is managed by the conditional update")
    return (
        update(table)
        .where(table.c.id == ident, table.c.version == expected_version, *criteria)
        .values(**values, version=table.c.version + 1)
        .returning(table.c.version)
    )


async def conditional_update(
    session: AsyncSession,
    table: Table,
    ident: int,
    expected_version: int,
    values: Mapping[str, Any],
    *criteria: ColumnElement[bool],
    resource: str = "record",
) -> int:
    """Run the compare-and-swap inside the caller's transaction; return the new version."""
    stmt = build_conditional_update(table, ident, expected_version, values, *criteria)
    new_version = (await session.execute(stmt)).scalar_one_or_none()
    if new_version is None:
        logger.warning("Edit conflict on %s id=%s expected_version=%s", resource, ident, expected_version)
        raise EditConflictError(resource=resource, identifier=ident)
    return new_version


def next_version(
    current_version: Optional[int],
    expected_version: int,
    *,
    resource: str = "record",
    ident: Any = None,
) -> int:
    """
    In-memory counterpart of the conditional update.

    `current_version` is None when the row no longer exists; that is reported
    exactly like a version mismatch.
    """
    if current_version is None or current_version != expected_version:
        logger.warning("Edit conflict on %s id=%s expected_version=%s", resource, ident, expected_version)
        raise EditConflictError(resource=resource, identifier=ident)
    return current_version + 1


__all__ = ["build_conditional_update", "conditional_update", "next_version"]
