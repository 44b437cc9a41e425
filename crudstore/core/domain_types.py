"""Domain Types — record, query and result shapes shared across the codebase.

Invariants:
    - Control directives are exactly the four ControlDirective values; every
      other filter key is a predicate key
    - Page.total is None unless pagination was active for the call
    - DEFAULT_ID_FIELD is the store-generated key; any other id field is
      derived by the service on create

Design Decisions:
    - Records stay plain dicts: the store is schemaless and the service never
      owns their shape
    - str Enum for directives: compares equal to the raw filter keys
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Mapping


# ─── Aliases ─────────────────────────────────────────────────────

Record = dict[str, Any]
Query = dict[str, Any]
Params = Mapping[str, Any]
SortSpec = dict[str, int]
RecordId = str | int


# ─── Constants ───────────────────────────────────────────────────

DEFAULT_ID_FIELD = "_id"
OPERATOR_PREFIX = "$"


class ControlDirective(str, Enum):
    """Reserved filter keys governing paging/sorting/projection."""
    SORT = "$sort"
    LIMIT = "$limit"
    SKIP = "$skip"
    SELECT = "$select"


CONTROL_DIRECTIVES = frozenset(d.value for d in ControlDirective)


# ─── Result Envelope ─────────────────────────────────────────────

@dataclass(frozen=True)
class Page:
    """Paginated find result."""
    total: int | None
    limit: int | None
    skip: int
    data: list[Record] = field(default_factory=list)

    def with_data(self, data: list[Record]) -> "Page":
        return replace(self, data=data)

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "limit": self.limit,
            "skip": self.skip,
            "data": self.data,
        }
