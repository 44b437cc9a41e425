"""Reference Document Store — embedded, schemaless collections on async SQLAlchemy.

Invariants:
    - Implements the DocumentStore protocol (core/repository_protocols.py)
    - Every primitive call runs in exactly one session and commits once:
      a batch insert or multi update is all-or-nothing
    - "_id" is assigned on insert when absent and never changes afterwards
    - Returned documents are copies; callers cannot mutate stored state
    - Malformed operators surface as InvalidQueryError, driver failures as
      DatabaseError

Design Decisions:
    - Predicates evaluated in Python (core/query_matching.py) over the
      collection's rows: the store is embedded and small, JSON1 SQL
      translation is not worth its dialect coupling
    - find() returns a lazy cursor so sort/limit/skip chain before execution
    - Rows are read in pk order; that order is an implementation detail, not
      a promise (callers sort explicitly)
"""

import copy
import json
import logging
import uuid
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from crudstore.core.domain_types import DEFAULT_ID_FIELD, Query, Record, SortSpec
from crudstore.core.errors import InvalidQueryError
from crudstore.core.query_matching import (
    QueryError, apply_update, match_query, project, sort_documents, upsert_document,
)
from crudstore.infrastructure.database import DatabaseSessionManager
from crudstore.models.document import StoredDocument

logger = logging.getLogger(__name__)


def _storage_key(record_id: Any) -> str:
    return json.dumps(record_id, sort_keys=True)


class DocumentCursor:
    """Lazy find: sort/limit/skip are recorded, exec() runs the query."""

    def __init__(
        self, store: "SqlDocumentStore", query: Query,
        projection: dict[str, int] | None = None,
    ):
        self._store = store
        self._query = query
        self._projection = projection
        self._sort: SortSpec | None = None
        self._limit: int | None = None
        self._skip = 0

    def sort(self, spec: SortSpec) -> "DocumentCursor":
        self._sort = dict(spec)
        return self

    def limit(self, count: int) -> "DocumentCursor":
        self._limit = count
        return self

    def skip(self, count: int) -> "DocumentCursor":
        self._skip = count
        return self

    async def exec(self) -> list[Record]:
        docs = await self._store._matching(self._query)
        if self._sort:
            docs = sort_documents(docs, self._sort)
        if self._skip:
            docs = docs[self._skip:]
        if self._limit is not None:
            docs = docs[:self._limit]
        return [project(doc, self._projection) for doc in docs]


class SqlDocumentStore:
    """One named collection of JSON documents."""

    def __init__(
        self, db: DatabaseSessionManager, collection: str, schema: dict | None = None,
    ):
        self._db = db
        self.collection = collection
        self.schema = schema

    # ─── Reads ──────────────────────────────────────────────────────

    def find(self, query: Query, projection: dict[str, int] | None = None) -> DocumentCursor:
        return DocumentCursor(self, query, projection)

    async def find_one(self, query: Query) -> Record | None:
        docs = await self._matching(query)
        return docs[0] if docs else None

    async def count(self, query: Query) -> int:
        return len(await self._matching(query))

    # ─── Writes ─────────────────────────────────────────────────────

    async def insert(self, records: Record | list[Record]) -> Record | list[Record]:
        """Insert one document or a batch; returns them with "_id" assigned."""
        batch = records if isinstance(records, list) else [records]
        docs = [self._with_store_id(record) for record in batch]
        async with self._db.session() as session:
            session.add_all([self._row(doc) for doc in docs])
            await session.commit()
        logger.debug(
            "Inserted %d document(s)", len(docs),
            extra={"collection": self.collection, "count": len(docs)},
        )
        docs = copy.deepcopy(docs)
        return docs if isinstance(records, list) else docs[0]

    async def update(
        self, query: Query, update: Record, *, multi: bool = False, upsert: bool = False,
    ) -> int:
        """Apply an operator update or replacement; returns the matched count."""
        async with self._db.session() as session:
            rows = await self._matching_rows(session, query)
            if not multi:
                rows = rows[:1]
            for row in rows:
                row.body = self._apply(row.body, update)
            affected = len(rows)
            if not rows and upsert:
                seed = self._apply_upsert(query, update)
                session.add(self._row(self._with_store_id(seed)))
                affected = 1
            await session.commit()
        logger.debug(
            "Updated %d document(s)", affected,
            extra={"collection": self.collection, "count": affected},
        )
        return affected

    async def remove(self, query: Query, *, multi: bool = False) -> int:
        """Delete the first match, or all matches when multi; returns the count."""
        async with self._db.session() as session:
            rows = await self._matching_rows(session, query)
            if not multi:
                rows = rows[:1]
            for row in rows:
                await session.delete(row)
            await session.commit()
        logger.debug(
            "Removed %d document(s)", len(rows),
            extra={"collection": self.collection, "count": len(rows)},
        )
        return len(rows)

    # ─── Internals ──────────────────────────────────────────────────

    async def _matching(self, query: Query) -> list[Record]:
        async with self._db.session() as session:
            rows = await self._matching_rows(session, query)
            return [copy.deepcopy(row.body) for row in rows]

    async def _matching_rows(self, session: AsyncSession, query: Query) -> list[StoredDocument]:
        result = await session.execute(
            select(StoredDocument)
            .where(StoredDocument.collection == self.collection)
            .order_by(StoredDocument.pk)
        )
        return [row for row in result.scalars().all() if self._match(row.body, query)]

    def _row(self, doc: Record) -> StoredDocument:
        return StoredDocument(
            collection=self.collection,
            key=_storage_key(doc[DEFAULT_ID_FIELD]),
            body=doc,
        )

    @staticmethod
    def _with_store_id(record: Record) -> Record:
        doc = copy.deepcopy(dict(record))
        if doc.get(DEFAULT_ID_FIELD) is None:
            doc.pop(DEFAULT_ID_FIELD, None)
            doc = {DEFAULT_ID_FIELD: uuid.uuid4().hex, **doc}
        return doc

    @staticmethod
    def _match(doc: Record, query: Query) -> bool:
        try:
            return match_query(doc, query)
        except QueryError as e:
            raise InvalidQueryError("query", query) from e

    @staticmethod
    def _apply(doc: Record, update: Record) -> Record:
        try:
            return apply_update(doc, update)
        except QueryError as e:
            raise InvalidQueryError("update", update) from e

    @staticmethod
    def _apply_upsert(query: Query, update: Record) -> Record:
        try:
            return upsert_document(query, update)
        except QueryError as e:
            raise InvalidQueryError("update", update) from e
