"""Filter Translator — splits a declarative filter into store predicate + control directives.

Invariants:
    - All functions are PURE: no IO, no async, no store access
    - A key is a control directive iff it is one of $sort, $limit, $skip, $select;
      every other key (including comparison operators) passes through untouched
    - limit == 0 is count-only mode, distinct from "no limit" (None)
    - Malformed directive values raise InvalidQueryError, never silently dropped

Design Decisions:
    - Pagination policy is injected by the caller, not read from globals
    - $limit/$skip take the absolute value of numeric input so query-string
      values ("10", "-10") behave the same as ints
"""

from dataclasses import dataclass
from typing import Any, Mapping

from pydantic import ValidationError

from crudstore.core.domain_types import (
    CONTROL_DIRECTIVES, ControlDirective, Query, SortSpec,
)
from crudstore.core.errors import InvalidQueryError
from crudstore.core.service_options import PaginationPolicy


@dataclass(frozen=True)
class TranslatedFilter:
    """Result of translate_filter — predicate for the store, directives for the cursor."""
    predicate: Query
    sort: SortSpec | None = None
    limit: int | None = None
    skip: int | None = None
    projection: tuple[str, ...] | None = None

    @property
    def count_only(self) -> bool:
        return self.limit == 0


# === Public API ===============================================================

def translate_filter(
    query: Mapping[str, Any] | None, paginate: PaginationPolicy | None = None,
) -> TranslatedFilter:
    """Parse a filter into predicate + sort/limit/skip/projection.

    When `paginate` is active the limit is defaulted and clipped to its max.
    """
    controls, predicate = split_filter(query or {})
    limit = parse_count(ControlDirective.LIMIT, controls.get(ControlDirective.LIMIT))
    return TranslatedFilter(
        predicate=predicate,
        sort=convert_sort(controls.get(ControlDirective.SORT)),
        limit=apply_page_limit(limit, paginate or PaginationPolicy()),
        skip=parse_count(ControlDirective.SKIP, controls.get(ControlDirective.SKIP)),
        projection=parse_select(controls.get(ControlDirective.SELECT)),
    )


def split_filter(query: Mapping[str, Any]) -> tuple[dict, Query]:
    """Partition filter keys into (control directives, predicate)."""
    controls: dict = {}
    predicate: Query = {}
    for key, value in query.items():
        if key in CONTROL_DIRECTIVES:
            controls[ControlDirective(key)] = value
        else:
            predicate[key] = value
    return controls, predicate


def resolve_pagination(
    configured: PaginationPolicy, override: Any = None,
) -> PaginationPolicy:
    """Per-call pagination: None/True keeps the configured policy, False disables it."""
    if override is None or override is True:
        return configured
    if override is False:
        return PaginationPolicy()
    if isinstance(override, PaginationPolicy):
        return override
    if isinstance(override, Mapping):
        try:
            return PaginationPolicy.model_validate(dict(override))
        except ValidationError as e:
            raise InvalidQueryError("paginate", override) from e
    raise InvalidQueryError("paginate", override)


def to_store_projection(
    fields: tuple[str, ...] | None, id_field: str,
) -> dict[str, int] | None:
    """$select list → store projection; the id field is always included."""
    if fields is None:
        return None
    projection = {name: 1 for name in fields}
    projection[id_field] = 1
    return projection


# === Directive Parsing ========================================================

def parse_count(directive: ControlDirective, value: Any) -> int | None:
    """Parse $limit/$skip. None means 'not given'."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise InvalidQueryError(directive.value, value)
    if isinstance(value, int):
        return abs(value)
    if isinstance(value, float) and value.is_integer():
        return abs(int(value))
    if isinstance(value, str):
        try:
            return abs(int(value.strip()))
        except ValueError:
            raise InvalidQueryError(directive.value, value) from None
    raise InvalidQueryError(directive.value, value)


def convert_sort(value: Any) -> SortSpec | None:
    """Normalize $sort to {field: 1 | -1}."""
    if value is None:
        return None
    if not isinstance(value, Mapping):
        raise InvalidQueryError(ControlDirective.SORT.value, value)
    sort: SortSpec = {}
    for field, direction in value.items():
        if isinstance(direction, bool):
            raise InvalidQueryError(ControlDirective.SORT.value, value)
        try:
            parsed = int(direction)
        except (TypeError, ValueError):
            raise InvalidQueryError(ControlDirective.SORT.value, value) from None
        if parsed not in (1, -1):
            raise InvalidQueryError(ControlDirective.SORT.value, value)
        sort[field] = parsed
    return sort


def parse_select(value: Any) -> tuple[str, ...] | None:
    """Normalize $select to a tuple of field names."""
    if value is None:
        return None
    if isinstance(value, str):
        return (value,)
    if isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value):
        return tuple(value)
    raise InvalidQueryError(ControlDirective.SELECT.value, value)


def apply_page_limit(limit: int | None, policy: PaginationPolicy) -> int | None:
    """Default an absent limit and clip an oversized one when pagination is active.

    A max of 0 (or None) means no upper bound.
    """
    if not policy.active:
        return limit
    lower = limit if limit is not None else policy.default
    if not policy.max:
        return lower
    return min(lower, policy.max)
