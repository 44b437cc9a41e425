"""Record Policy — identifier derivation, timestamp stamping and field projection.

Invariants:
    - All functions return NEW records; caller payloads are never mutated
    - Derived identifiers are only added for a non-default id field, and only
      when the record does not already carry one
    - Timestamps are UTC ISO-8601 with millisecond precision and a Z suffix
    - Projection always keeps the identifier field, whatever the result shape

Design Decisions:
    - Clock and id generator are parameters with real defaults: tests pin
      them, production code never passes them
    - 8 random bytes per derived id (16 hex chars)
"""

import secrets
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Mapping

from crudstore.core.domain_types import DEFAULT_ID_FIELD, Page, Record, RecordId

ID_TOKEN_BYTES = 8


@dataclass(frozen=True)
class TimestampPolicy:
    """Whether and where created/updated instants are written."""
    enabled: bool = False
    created_field: str = "createdAt"
    updated_field: str = "updatedAt"


def new_record_id() -> str:
    return secrets.token_hex(ID_TOKEN_BYTES)


def utc_timestamp(now: datetime | None = None) -> str:
    """Format an instant as '2025-01-31T12:00:00.000Z'."""
    if now is None:
        now = datetime.now(timezone.utc)
    if now.tzinfo is None:
        raise ValueError(f"Naive datetime not allowed. Got {now}.")
    return now.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def with_identifier(
    record: Mapping[str, Any], id_field: str,
    make_id: Callable[[], RecordId] = new_record_id,
) -> Record:
    """Prepend a derived identifier when a custom id field is missing."""
    if id_field == DEFAULT_ID_FIELD or id_field in record:
        return dict(record)
    return {id_field: make_id(), **record}


def stamp_created(
    record: Mapping[str, Any], policy: TimestampPolicy, now: datetime | None = None,
) -> Record:
    """Stamp both created and updated fields (create path)."""
    result = dict(record)
    if policy.enabled:
        instant = utc_timestamp(now)
        result[policy.created_field] = instant
        result[policy.updated_field] = instant
    return result


def stamp_updated(
    record: Mapping[str, Any], policy: TimestampPolicy, now: datetime | None = None,
) -> Record:
    """Stamp only the updated field (update/patch path)."""
    result = dict(record)
    if policy.enabled:
        result[policy.updated_field] = utc_timestamp(now)
    return result


def prepare_replacement(
    data: Mapping[str, Any], id_field: str, record_id: RecordId, reinstate_id: bool,
) -> Record:
    """Full-replacement entry: drop incoming ids, optionally pin id_field to record_id."""
    entry = {k: v for k, v in data.items() if k not in (DEFAULT_ID_FIELD, id_field)}
    if reinstate_id:
        entry[id_field] = record_id
    return entry


def select_fields(
    result: Record | list[Record] | Page | None,
    fields: tuple[str, ...] | None,
    id_field: str,
) -> Record | list[Record] | Page | None:
    """Apply a $select projection to a record, list of records or Page."""
    if fields is None or result is None:
        return result
    if isinstance(result, Page):
        return result.with_data([_pick(r, fields, id_field) for r in result.data])
    if isinstance(result, list):
        return [_pick(r, fields, id_field) for r in result]
    return _pick(result, fields, id_field)


def _pick(record: Mapping[str, Any], fields: tuple[str, ...], id_field: str) -> Record:
    wanted = (*fields, id_field)
    return {k: record[k] for k in wanted if k in record}
