"""Filter Translator tests — pure tests for directive parsing and pagination.

Tests cover:
    - Control directives split from predicate keys; operators pass through
    - $limit/$skip absolute-integer parsing and rejection of garbage
    - $sort direction coercion
    - $select normalization
    - Pagination default/max rewriting of the limit
    - Per-call pagination override resolution
    - Store projection always includes the id field
"""

import pytest

from crudstore.core.domain_types import ControlDirective
from crudstore.core.errors import InvalidQueryError
from crudstore.core.filter_query import (
    apply_page_limit, convert_sort, parse_count, parse_select,
    resolve_pagination, split_filter, to_store_projection, translate_filter,
)
from crudstore.core.service_options import PaginationPolicy


# --- split / translate --------------------------------------------------------

def test_split_separates_directives_from_predicate():
    controls, predicate = split_filter(
        {"$limit": 5, "name": "Ann", "$or": [{"a": 1}], "$select": ["name"]},
    )
    assert controls == {ControlDirective.LIMIT: 5, ControlDirective.SELECT: ["name"]}
    assert predicate == {"name": "Ann", "$or": [{"a": 1}]}


def test_translate_empty_query():
    result = translate_filter(None)
    assert result.predicate == {}
    assert result.sort is None
    assert result.limit is None
    assert result.skip is None
    assert result.projection is None
    assert not result.count_only


def test_translate_full_query():
    result = translate_filter({
        "age": {"$gt": 3}, "$sort": {"age": "-1"}, "$limit": "10",
        "$skip": -2, "$select": "name",
    })
    assert result.predicate == {"age": {"$gt": 3}}
    assert result.sort == {"age": -1}
    assert result.limit == 10
    assert result.skip == 2
    assert result.projection == ("name",)


def test_zero_limit_is_count_only():
    assert translate_filter({"$limit": 0}).count_only


def test_translate_does_not_mutate_input():
    query = {"$limit": 3, "a": 1}
    translate_filter(query, PaginationPolicy(default=10))
    assert query == {"$limit": 3, "a": 1}


# --- $limit / $skip -----------------------------------------------------------

@pytest.mark.parametrize("value,expected", [
    (None, None), (0, 0), (7, 7), (-7, 7), ("12", 12), (" -3 ", 3), (4.0, 4),
])
def test_parse_count_accepts_numbers(value, expected):
    assert parse_count(ControlDirective.LIMIT, value) == expected


@pytest.mark.parametrize("value", [True, "ten", 2.5, [1], {"n": 1}])
def test_parse_count_rejects_garbage(value):
    with pytest.raises(InvalidQueryError) as exc:
        parse_count(ControlDirective.SKIP, value)
    assert exc.value.directive == "$skip"


# --- $sort --------------------------------------------------------------------

def test_convert_sort_coerces_directions():
    assert convert_sort({"a": 1, "b": "-1", "c": -1.0}) == {"a": 1, "b": -1, "c": -1}


def test_convert_sort_keeps_key_order():
    assert list(convert_sort({"z": 1, "a": -1})) == ["z", "a"]


@pytest.mark.parametrize("value", ["name", {"a": 2}, {"a": "up"}, {"a": True}])
def test_convert_sort_rejects_invalid(value):
    with pytest.raises(InvalidQueryError):
        convert_sort(value)


# --- $select ------------------------------------------------------------------

def test_parse_select_variants():
    assert parse_select(None) is None
    assert parse_select("a") == ("a",)
    assert parse_select(["a", "b"]) == ("a", "b")


def test_parse_select_rejects_non_strings():
    with pytest.raises(InvalidQueryError):
        parse_select(["a", 1])


def test_store_projection_includes_id_field():
    assert to_store_projection(("name",), "uuid") == {"name": 1, "uuid": 1}
    assert to_store_projection(None, "uuid") is None


# --- pagination ---------------------------------------------------------------

def test_page_limit_untouched_without_policy():
    assert apply_page_limit(50, PaginationPolicy()) == 50
    assert apply_page_limit(None, PaginationPolicy()) is None


def test_page_limit_max_alone_clips_nothing():
    assert apply_page_limit(50, PaginationPolicy(max=10)) == 50


def test_page_limit_defaults_and_clips():
    policy = PaginationPolicy(default=5, max=20)
    assert apply_page_limit(None, policy) == 5
    assert apply_page_limit(8, policy) == 8
    assert apply_page_limit(100, policy) == 20
    assert apply_page_limit(0, policy) == 0


def test_page_limit_default_without_max():
    assert apply_page_limit(100, PaginationPolicy(default=5)) == 100


def test_page_limit_zero_max_means_unbounded():
    policy = PaginationPolicy(default=5, max=0)
    assert apply_page_limit(None, policy) == 5
    assert apply_page_limit(500, policy) == 500


def test_translate_applies_pagination_policy():
    result = translate_filter({"$limit": 500}, PaginationPolicy(default=10, max=100))
    assert result.limit == 100


def test_resolve_pagination_override():
    configured = PaginationPolicy(default=10)
    assert resolve_pagination(configured) is configured
    assert resolve_pagination(configured, True) is configured
    assert not resolve_pagination(configured, False).active
    assert resolve_pagination(configured, {"default": 3}).default == 3
    explicit = PaginationPolicy(default=7)
    assert resolve_pagination(configured, explicit) is explicit


@pytest.mark.parametrize("override", ["yes", 5, {"default": -1}])
def test_resolve_pagination_rejects_invalid(override):
    with pytest.raises(InvalidQueryError):
        resolve_pagination(PaginationPolicy(), override)
