"""Boundary Protocols — contracts between the service engine and its collaborators.

Invariants:
    - The engine only ever calls the primitives listed here
    - find() is synchronous and returns a lazy cursor; nothing touches storage
      until exec() is awaited
    - update()/remove() return affected counts, never documents

Design Decisions:
    - Protocol over ABC: structural subtyping, any store with these methods fits
    - Store methods may be coroutines or plain functions — the engine bridges
      both (see RecordService._call_store)
"""

from typing import Any, Protocol

from crudstore.core.domain_types import Query, Record, SortSpec
from crudstore.core.errors import FieldError


class StoreCursor(Protocol):
    """Chainable query handle returned by DocumentStore.find."""
    def sort(self, spec: SortSpec) -> "StoreCursor": ...
    def limit(self, count: int) -> "StoreCursor": ...
    def skip(self, count: int) -> "StoreCursor": ...
    async def exec(self) -> list[Record]: ...


class DocumentStore(Protocol):
    """Contract for the embedded document store — implemented by infrastructure."""
    schema: dict | None

    def find(
        self, query: Query, projection: dict[str, int] | None = None,
    ) -> StoreCursor: ...
    async def find_one(self, query: Query) -> Record | None: ...
    async def count(self, query: Query) -> int: ...
    async def insert(self, records: Record | list[Record]) -> Any: ...
    async def update(
        self, query: Query, update: Record, *, multi: bool = False, upsert: bool = False,
    ) -> int: ...
    async def remove(self, query: Query, *, multi: bool = False) -> int: ...


class RecordValidator(Protocol):
    """Compiled schema predicate; errors describe the last failed call."""
    schema: dict
    errors: list[FieldError]

    def prune(self, record: Record) -> Record: ...
    def is_valid(self, record: Record, path_prefix: str = "$") -> bool: ...
