"""Query Matching — predicate evaluation, ordering and update operators over plain dicts.

Invariants:
    - All functions are pure (no IO, no async, no DB)
    - apply_update returns a NEW document; the stored copy is never mutated
    - "_id" survives every update, including whole-document replacement
    - sort_key gives a total order across mixed types, so sorting never raises

Design Decisions:
    - Mongo-style operator vocabulary ($gt, $in, $set, ...): the service's
      patch escape hatch passes these through verbatim
    - Dotted paths address nested fields ("address.city")
    - Equality against an array field matches when any element is equal
"""

import copy
import re
from typing import Any, Mapping

from crudstore.core.domain_types import DEFAULT_ID_FIELD, OPERATOR_PREFIX, Query, Record

_MISSING = object()

COMPARATORS = frozenset({
    "$eq", "$ne", "$gt", "$gte", "$lt", "$lte",
    "$in", "$nin", "$exists", "$regex", "$size",
})
LOGICAL = frozenset({"$and", "$or", "$not"})
UPDATE_OPERATORS = frozenset({"$set", "$unset", "$inc", "$push", "$addToSet", "$pull"})


class QueryError(ValueError):
    """Unsupported or malformed query/update operator."""


# === Paths ====================================================================

def deep_get(doc: Mapping[str, Any], dotted_key: str, default: Any = None) -> Any:
    cur: Any = doc
    for part in dotted_key.split("."):
        if isinstance(cur, Mapping) and part in cur:
            cur = cur[part]
        else:
            return default
    return cur


def deep_set(doc: dict, dotted_key: str, value: Any) -> None:
    parts = dotted_key.split(".")
    cur = doc
    for part in parts[:-1]:
        if not isinstance(cur.get(part), dict):
            cur[part] = {}
        cur = cur[part]
    cur[parts[-1]] = value


def deep_unset(doc: dict, dotted_key: str) -> None:
    parts = dotted_key.split(".")
    cur = doc
    for part in parts[:-1]:
        if not isinstance(cur.get(part), dict):
            return
        cur = cur[part]
    cur.pop(parts[-1], None)


# === Matching =================================================================

def match_query(doc: Mapping[str, Any], query: Query) -> bool:
    """True when `doc` satisfies every clause of `query`."""
    if not isinstance(query, Mapping):
        raise QueryError("Query must be a mapping")
    for key, cond in query.items():
        if key in LOGICAL:
            if not _eval_logical(doc, key, cond):
                return False
        elif key.startswith(OPERATOR_PREFIX):
            raise QueryError(f"Unsupported logical operator: {key}")
        elif not _eval_field(doc, key, cond):
            return False
    return True


def _eval_logical(doc: Mapping[str, Any], op: str, clauses: Any) -> bool:
    if op == "$not":
        if not isinstance(clauses, Mapping):
            raise QueryError("$not requires a single clause object")
        return not match_query(doc, clauses)
    if not isinstance(clauses, list):
        raise QueryError(f"{op} requires a list of clauses")
    results = (match_query(doc, clause) for clause in clauses)
    return all(results) if op == "$and" else any(results)


def _is_operator_clause(cond: Any) -> bool:
    return (
        isinstance(cond, Mapping) and bool(cond)
        and all(isinstance(k, str) and k.startswith(OPERATOR_PREFIX) for k in cond)
    )


def _eval_field(doc: Mapping[str, Any], dotted_key: str, cond: Any) -> bool:
    value = deep_get(doc, dotted_key, _MISSING)
    if _is_operator_clause(cond):
        for op, arg in cond.items():
            if op not in COMPARATORS:
                raise QueryError(f"Unsupported operator: {op}")
            if not _eval_op(value, op, arg):
                return False
        return True
    return _equals(value, cond)


def _equals(value: Any, expected: Any) -> bool:
    if value is _MISSING:
        return expected is None
    if isinstance(value, list) and not isinstance(expected, list):
        return expected in value
    return value == expected


def _eval_op(value: Any, op: str, arg: Any) -> bool:
    if op == "$exists":
        return (value is not _MISSING) == bool(arg)
    if op == "$eq":
        return _equals(value, arg)
    if op == "$ne":
        return not _equals(value, arg)
    if op in ("$in", "$nin"):
        if not isinstance(arg, (list, tuple, set, frozenset)):
            raise QueryError(f"{op} requires an array")
        found = any(_equals(value, candidate) for candidate in arg)
        return found if op == "$in" else not found
    if value is _MISSING or value is None:
        return False
    if op == "$regex":
        if not isinstance(value, str):
            return False
        return re.search(arg, value) is not None
    if op == "$size":
        return isinstance(value, list) and len(value) == arg
    try:
        if op == "$gt":
            return value > arg
        if op == "$gte":
            return value >= arg
        if op == "$lt":
            return value < arg
        if op == "$lte":
            return value <= arg
    except TypeError:
        return False
    return False


# === Ordering =================================================================

def sort_key(value: Any) -> tuple:
    """Total order: missing/None < numbers < strings < booleans < lists < dicts."""
    if value is None or value is _MISSING:
        return (0, 0)
    if isinstance(value, bool):
        return (3, value)
    if isinstance(value, (int, float)):
        return (1, value)
    if isinstance(value, str):
        return (2, value)
    if isinstance(value, list):
        return (4, tuple(sort_key(v) for v in value))
    if isinstance(value, Mapping):
        return (5, tuple((k, sort_key(v)) for k, v in sorted(value.items())))
    return (6, repr(value))


def sort_documents(docs: list[Record], spec: Mapping[str, int]) -> list[Record]:
    """Stable multi-key sort; later keys are applied first."""
    result = list(docs)
    for key, direction in reversed(list(spec.items())):
        result.sort(key=lambda d: sort_key(deep_get(d, key)), reverse=direction < 0)
    return result


def project(doc: Record, projection: Mapping[str, int] | None) -> Record:
    """Inclusive projection {field: 1}; "_id" kept unless explicitly 0."""
    if not projection:
        return doc
    include = [k for k, v in projection.items() if v]
    out: Record = {}
    for key in include:
        val = deep_get(doc, key, _MISSING)
        if val is not _MISSING:
            deep_set(out, key, val)
    if projection.get(DEFAULT_ID_FIELD, 1) and DEFAULT_ID_FIELD in doc:
        out[DEFAULT_ID_FIELD] = doc[DEFAULT_ID_FIELD]
    return out


# === Updates ==================================================================

def is_operator_update(update: Mapping[str, Any]) -> bool:
    return any(k.startswith(OPERATOR_PREFIX) for k in update)


def apply_update(doc: Record, update: Mapping[str, Any]) -> Record:
    """Apply an operator update or a whole-document replacement."""
    if not is_operator_update(update):
        replaced = copy.deepcopy(dict(update))
        if DEFAULT_ID_FIELD in doc:
            replaced[DEFAULT_ID_FIELD] = doc[DEFAULT_ID_FIELD]
        return replaced

    new_doc = copy.deepcopy(doc)
    for op, changes in update.items():
        if op not in UPDATE_OPERATORS:
            raise QueryError(f"Unsupported update operator: {op}")
        if not isinstance(changes, Mapping):
            raise QueryError(f"{op} requires a mapping of fields")
        for key, value in changes.items():
            if op == "$set":
                deep_set(new_doc, key, copy.deepcopy(value))
            elif op == "$unset":
                deep_unset(new_doc, key)
            elif op == "$inc":
                current = deep_get(new_doc, key, 0)
                if not isinstance(current, (int, float)) or isinstance(current, bool):
                    raise QueryError(f"$inc requires numeric field: {key}")
                deep_set(new_doc, key, current + value)
            else:
                _apply_array_op(new_doc, op, key, value)
    if DEFAULT_ID_FIELD in doc:
        new_doc[DEFAULT_ID_FIELD] = doc[DEFAULT_ID_FIELD]
    return new_doc


def _apply_array_op(doc: Record, op: str, key: str, value: Any) -> None:
    arr = deep_get(doc, key, None)
    if arr is None:
        arr = []
    if not isinstance(arr, list):
        raise QueryError(f"{op} requires array field: {key}")
    arr = list(arr)
    if op == "$pull":
        arr = [item for item in arr if item != value]
    else:
        items = value["$each"] if isinstance(value, Mapping) and "$each" in value else [value]
        for item in items:
            if op == "$push" or item not in arr:
                arr.append(item)
    deep_set(doc, key, arr)


def upsert_document(query: Query, update: Mapping[str, Any]) -> Record:
    """Seed document for an upsert that matched nothing."""
    if not is_operator_update(update):
        return copy.deepcopy(dict(update))
    seed: Record = {}
    for key, value in query.items():
        if not key.startswith(OPERATOR_PREFIX) and not _is_operator_clause(value):
            deep_set(seed, key, copy.deepcopy(value))
    return apply_update(seed, update)
