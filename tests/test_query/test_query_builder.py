# tests/test_query/test_query_builder.py

import pytest

from filmapi.core.exceptions import InvalidSortError
from filmapi.repositories.query import (
    SortKey,
    build_metadata,
    build_order_clause,
    build_page,
    parse_sort,
)
from filmapi.schemas.films import FILM_SORT_COLUMNS, FILM_SORT_SAFELIST
from filmapi.schemas.filters import Metadata

SAFELIST = ["id", "title", "-id", "-title"]


def test_order_clause_keeps_caller_order_and_joins_with_commas():
    assert build_order_clause(["id", "-title"], SAFELIST) == "id ASC,title DESC"
    assert build_order_clause(["-title", "id"], SAFELIST) == "title DESC,id ASC"


def test_order_clause_empty_tokens_is_empty_fragment():
    assert build_order_clause([], SAFELIST) == ""


def test_order_clause_qualifies_columns_through_mapping():
    clause = build_order_clause(["-year", "title"], FILM_SORT_SAFELIST, FILM_SORT_COLUMNS)
    assert clause == "films.year DESC,films.title ASC"


def test_unknown_token_is_reported_by_name():
    with pytest.raises(InvalidSortError) as ei:
        build_order_clause(["bogus"], SAFELIST)
    assert ei.value.token == "bogus"
    assert ei.value.status_code == 422
    assert ei.value.details == {"sort": "bogus"}


def test_first_offending_token_wins():
    with pytest.raises(InvalidSortError) as ei:
        build_order_clause(["id", "-year", "nope"], SAFELIST)
    assert ei.value.token == "-year"


def test_prefix_is_part_of_membership():
    # "-rating" is not accepted just because "rating" is
    with pytest.raises(InvalidSortError):
        build_order_clause(["-rating"], ["rating"])


def test_injection_attempt_is_rejected_not_concatenated():
    with pytest.raises(InvalidSortError):
        build_order_clause(["id; DROP TABLE films"], SAFELIST)


def test_safelisted_column_missing_from_mapping_is_invalid():
    with pytest.raises(InvalidSortError) as ei:
        build_order_clause(["-genre"], ["-genre"], FILM_SORT_COLUMNS)
    assert ei.value.token == "-genre"


def test_safelist_entries_must_be_plain_identifiers():
    with pytest.raises(ValueError):
        parse_sort(["id"], ["id", "title desc"])


def test_parse_sort_returns_fixed_pairs():
    assert parse_sort(["-rating", "id"], FILM_SORT_SAFELIST) == [
        SortKey("rating", "DESC"),
        SortKey("id", "ASC"),
    ]
    assert SortKey("rating", "DESC").descending


@pytest.mark.parametrize(
    "page,size,expected",
    [(1, 20, (20, 0)), (3, 20, (20, 40)), (10_000_000, 100, (100, 999_999_900))],
)
def test_build_page(page, size, expected):
    assert build_page(page, size) == expected


def test_metadata_is_zero_when_nothing_matched():
    assert build_metadata(0, 1, 20) == Metadata()
    assert build_metadata(0, 7, 50).model_dump() == {
        "current_page": 0,
        "page_size": 0,
        "first_page": 0,
        "last_page": 0,
        "total_records": 0,
    }


def test_metadata_rounds_last_page_up():
    assert build_metadata(45, 2, 20) == Metadata(
        current_page=2, page_size=20, first_page=1, last_page=3, total_records=45
    )
    assert build_metadata(40, 1, 20).last_page == 2
    assert build_metadata(1, 1, 100).last_page == 1


def test_parse_sort_checks_the_column_mapping_once():
    with pytest.raises(InvalidSortError) as ei:
        parse_sort(["id", "-genre"], ["id", "-genre"], FILM_SORT_COLUMNS)
    assert ei.value.token == "-genre"
    # keys keep the bare column; only build_order_clause qualifies it
    assert parse_sort(["-year"], FILM_SORT_SAFELIST, FILM_SORT_COLUMNS) == [SortKey("year", "DESC")]
