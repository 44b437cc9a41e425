"""Update Clauses — patch payload parsed into field sets and raw store directives.

Invariants:
    - Keys starting with "$" are store-native operators, passed through verbatim
    - Every other key becomes part of exactly one FieldSet
    - The identifier field (and the store key "_id") is never settable by patch,
      neither as a plain key nor inside any operator's field map
    - A mapping "$set" payload joins the FieldSet, so validation sees it too
    - Parsing never mutates the caller's payload

Design Decisions:
    - Tagged union (FieldSet | RawDirective) parsed once per patch call:
      validation sees only FieldSet, rendering sees both
    - The rendered document always carries "$set" (possibly empty) so it can
      never be mistaken for a whole-record replacement
"""

from dataclasses import dataclass, field
from typing import Any, Mapping

from crudstore.core.domain_types import DEFAULT_ID_FIELD, OPERATOR_PREFIX, Record


@dataclass(frozen=True)
class FieldSet:
    """Plain field assignments, rendered as a $set."""
    values: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RawDirective:
    """Opaque store-native update operator, e.g. $inc or $push."""
    operator: str
    payload: Any


UpdateClause = FieldSet | RawDirective


def parse_update_clauses(data: Mapping[str, Any], id_field: str) -> list[UpdateClause]:
    """Split a patch payload into one FieldSet followed by any RawDirectives."""
    protected = {DEFAULT_ID_FIELD, id_field}
    values: dict[str, Any] = {}
    directives: list[UpdateClause] = []
    for key, value in data.items():
        if key == "$set" and isinstance(value, Mapping):
            values.update(_without_identifiers(value, protected))
        elif key.startswith(OPERATOR_PREFIX):
            if isinstance(value, Mapping):
                value = _without_identifiers(value, protected)
                if not value:
                    continue
            directives.append(RawDirective(key, value))
        elif not _addresses_identifier(key, protected):
            values[key] = value
    return [FieldSet(values), *directives]


def _addresses_identifier(path: str, protected: set[str]) -> bool:
    return any(path == name or path.startswith(f"{name}.") for name in protected)


def _without_identifiers(fields: Mapping[str, Any], protected: set[str]) -> dict[str, Any]:
    """Drop field paths that address an identifier ("_id", "uid", "uid.part")."""
    return {k: v for k, v in fields.items() if not _addresses_identifier(k, protected)}


def field_values(clauses: list[UpdateClause]) -> dict[str, Any]:
    """The plain field assignments of a parsed payload (what patch validation sees)."""
    merged: dict[str, Any] = {}
    for clause in clauses:
        if isinstance(clause, FieldSet):
            merged.update(clause.values)
    return merged


def with_field_values(clauses: list[UpdateClause], values: dict[str, Any]) -> list[UpdateClause]:
    """Replace the FieldSet content (e.g. after validation pruned extra fields)."""
    return [FieldSet(dict(values))] + [c for c in clauses if isinstance(c, RawDirective)]


def to_update_document(clauses: list[UpdateClause]) -> Record:
    """Render clauses to a store update document: {"$set": {...}, "$op": payload, ...}."""
    document: Record = {"$set": {}}
    for clause in clauses:
        if isinstance(clause, RawDirective):
            document[clause.operator] = clause.payload
        else:
            document["$set"].update(clause.values)
    return document
