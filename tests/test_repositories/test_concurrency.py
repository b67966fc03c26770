# tests/test_repositories/test_concurrency.py

import pytest

from filmapi.core.exceptions import EditConflictError
from filmapi.db.models import Film, WatchlistEntry
from filmapi.repositories.concurrency import build_conditional_update, next_version
from tests.utils.sql import compile_pg, pg_sql as _sql


def test_conditional_update_is_a_single_compare_and_swap():
    stmt = build_conditional_update(Film.__table__, 5, 3, {"title": "Alien"})
    sql = _sql(stmt)
    assert sql.startswith("UPDATE films SET")
    assert "version=(films.version + %(version_1)s)" in sql
    assert "WHERE films.id = %(id_1)s AND films.version = %(version_2)s" in sql
    assert sql.endswith("RETURNING films.version")
    params = compile_pg(stmt).params
    assert params["title"] == "Alien"
    assert params["id_1"] == 5
    assert params["version_2"] == 3


def test_conditional_update_accepts_extra_criteria():
    w = WatchlistEntry.__table__
    sql = _sql(build_conditional_update(w, 1, 1, {"notes": "n"}, w.c.user_id == 9))
    assert "watchlist.user_id = %(user_id_1)s" in sql


def test_version_cannot_be_written_directly():
    with pytest.raises(ValueError):
        build_conditional_update(Film.__table__, 1, 1, {"version": 10})


def test_next_version_bumps_by_one():
    assert next_version(4, 4) == 5


@pytest.mark.parametrize("current", [5, None])
def test_stale_or_missing_row_is_a_conflict(current):
    with pytest.raises(EditConflictError) as ei:
        next_version(current, 4, resource="film", ident=1)
    assert ei.value.status_code == 409
