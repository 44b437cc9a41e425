"""Record Service — find/get/create/update/patch/remove over a DocumentStore.

Invariants:
    - Validation always completes before the first store write of a call;
      a failing batch writes nothing
    - Multi-record patch/remove snapshot target ids BEFORE mutating, then
      write and re-query by that snapshot ({id_field: {"$in": ids}})
    - update never touches the store for a list payload or id=None
    - Single-id patch/update that match nothing raise NotFoundError
    - $select projection is the last step of every operation and always
      keeps the identifier field
    - Store calls are awaited one after another; no retries, no timeouts

Design Decisions:
    - Options frozen at construction (ServiceOptions); validators compiled once
    - _call_store bridges coroutine and plain-function stores uniformly
    - Decisions live in core/ (filter translation, update clauses, record
      policy); this class only sequences store calls around them
"""

import inspect
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Mapping

from crudstore.core.domain_types import (
    DEFAULT_ID_FIELD, ControlDirective, Page, Params, Query, Record, RecordId,
)
from crudstore.core.errors import (
    BadRequestError, ErrorContext, FieldError, NotFoundError, RecordValidationError,
)
from crudstore.core.filter_query import (
    parse_select, resolve_pagination, to_store_projection, translate_filter,
)
from crudstore.core.record_policy import (
    TimestampPolicy, prepare_replacement, select_fields, stamp_created,
    stamp_updated, with_identifier,
)
from crudstore.core.repository_protocols import DocumentStore, RecordValidator
from crudstore.core.schema_validation import check_records, compile_validators
from crudstore.core.service_options import PaginationPolicy, ServiceOptions
from crudstore.core.update_clauses import (
    field_values, parse_update_clauses, to_update_document, with_field_values,
)

logger = logging.getLogger(__name__)


async def _call_store(fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
    """Invoke a store primitive; await the result when it is awaitable."""
    result = fn(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result


def _query(params: Params | None) -> Mapping[str, Any]:
    return (params or {}).get("query") or {}


class RecordService:
    """Uniform CRUD operations over one store collection."""

    def __init__(self, options: ServiceOptions | Mapping[str, Any]):
        self.options = ServiceOptions.from_mapping(options)
        self.model: DocumentStore = self.options.model
        self.id_field = self.options.id_field
        self.paginate = self.options.paginate
        self.events = self.options.events
        self.timestamps = TimestampPolicy(
            enabled=self.options.add_timestamps,
            created_field=self.options.created_timestamp,
            updated_field=self.options.updated_timestamp,
        )
        self.validate_create: RecordValidator | None
        self.validate_patch: RecordValidator | None
        self.validate_create, self.validate_patch = compile_validators(
            self.options.schema_document, self.options.validator_options,
        )

    # ─── Queries ────────────────────────────────────────────────────

    async def find(self, params: Params | None = None) -> list[Record] | Page:
        """Matching records; a Page envelope when pagination is active.

        Without a $sort directive the order is whatever the store returns and
        is not guaranteed.
        """
        paginate = resolve_pagination(self.paginate, (params or {}).get("paginate"))
        page = await self._find(params, paginate, count=paginate.active)
        logger.debug(
            "find returned %d record(s)", len(page.data),
            extra={"operation": "find", "count": len(page.data)},
        )
        result = page if paginate.active else page.data
        return select_fields(result, self._selected(params), self.id_field)

    async def get(self, id: RecordId, params: Params | None = None) -> Record:
        record = await self._get(id, params)
        return select_fields(record, self._selected(params), self.id_field)

    # ─── Writes ─────────────────────────────────────────────────────

    async def create(
        self, data: Record | list[Record], params: Params | None = None,
    ) -> Record | list[Record]:
        """Insert one record or a batch; the whole batch is validated first."""
        batch = isinstance(data, list)
        now = datetime.now(timezone.utc)
        items = [
            stamp_created(with_identifier(item, self.id_field), self.timestamps, now)
            for item in (data if batch else [data])
        ]
        if self.validate_create:
            items, errors = check_records(
                self.validate_create, items, batch=batch, keep=self._managed_fields,
            )
            if errors:
                self._reject("create", errors)

        inserted = await _call_store(self.model.insert, items if batch else items[0])
        logger.debug(
            "create inserted %d record(s)", len(items),
            extra={"operation": "create", "count": len(items)},
        )
        return select_fields(inserted, self._selected(params), self.id_field)

    async def patch(
        self, id: RecordId | None, data: Record, params: Params | None = None,
    ) -> Record | list[Record]:
        """Partial update of one record, or of every match when id is None.

        params["store"] options (upsert) reach the store for both forms.
        """
        clauses = parse_update_clauses(
            stamp_updated(data, self.timestamps), self.id_field,
        )
        if self.validate_patch:
            checked, errors = check_records(
                self.validate_patch, [field_values(clauses)],
                batch=False, keep=self._managed_fields,
            )
            if errors:
                self._reject("patch", errors, id)
            clauses = with_field_values(clauses, checked[0])
        update_doc = to_update_document(clauses)

        if id is None:
            ids = await self._snapshot_ids(params)
            if not ids:
                return []
            scoped = self._scoped(ids)
            await _call_store(
                self.model.update, scoped, update_doc,
                multi=True, upsert=self._upsert(params),
            )
            result = (await self._find({"query": scoped})).data
            logger.debug(
                "patch updated %d record(s)", len(ids),
                extra={"operation": "patch", "count": len(ids)},
            )
        else:
            affected = await _call_store(
                self.model.update, self._single(id, params), update_doc,
                multi=False, upsert=self._upsert(params),
            )
            if not affected:
                self._missing("patch", id)
            result = await self._get(id)
        return select_fields(result, self._selected(params), self.id_field)

    async def update(
        self, id: RecordId | None, data: Record, params: Params | None = None,
    ) -> Record:
        """Full replacement of exactly one record."""
        if isinstance(data, list) or id is None:
            raise BadRequestError(
                "Not replacing multiple records. Did you mean `patch`?",
                ErrorContext(operation="update", record_id=id),
            )
        upsert = self._upsert(params)
        entry = prepare_replacement(
            data, self.id_field, id,
            reinstate_id=self.id_field != DEFAULT_ID_FIELD or upsert,
        )
        entry = stamp_updated(entry, self.timestamps)
        if self.validate_create:
            checked, errors = check_records(
                self.validate_create, [entry], batch=False, keep=self._managed_fields,
            )
            if errors:
                self._reject("update", errors, id)
            entry = checked[0]

        affected = await _call_store(
            self.model.update, self._single(id, params), entry,
            multi=False, upsert=upsert,
        )
        if not affected:
            self._missing("update", id)
        result = await self._get(id)
        return select_fields(result, self._selected(params), self.id_field)

    async def remove(
        self, id: RecordId | None, params: Params | None = None,
    ) -> Record | list[Record]:
        """Delete one record or every match; returns what was deleted.

        Targets are read before the delete because the store does not return
        removed documents. The store's remove takes no options beyond multi,
        so params["store"] does not apply here.
        """
        if id is None:
            items = (await self._find(params)).data
            ids = self._ids_of(items)
            if ids:
                await _call_store(self.model.remove, self._scoped(ids), multi=True)
        else:
            items = await self._get(id, params)
            await _call_store(self.model.remove, self._single(id, params), multi=False)
        logger.debug(
            "remove deleted %d record(s)", len(items) if isinstance(items, list) else 1,
            extra={"operation": "remove", "record_id": id},
        )
        return select_fields(items, self._selected(params), self.id_field)

    # ─── Internals ──────────────────────────────────────────────────

    async def _find(
        self, params: Params | None, paginate: PaginationPolicy | None = None,
        count: bool = False,
    ) -> Page:
        """Run a translated filter; count only when asked (pagination active)."""
        q = translate_filter(_query(params), paginate)
        total = None
        if count:
            total = await _call_store(self.model.count, q.predicate)

        if q.count_only:
            data: list[Record] = []
        else:
            cursor = self.model.find(q.predicate, to_store_projection(q.projection, self.id_field))
            if q.sort:
                cursor = cursor.sort(q.sort)
            if q.limit:
                cursor = cursor.limit(q.limit)
            if q.skip:
                cursor = cursor.skip(q.skip)
            data = await _call_store(cursor.exec)
        return Page(total=total, limit=q.limit, skip=q.skip or 0, data=data)

    async def _get(self, id: RecordId, params: Params | None = None) -> Record:
        record = await _call_store(self.model.find_one, self._single(id, params))
        if record is None:
            self._missing("get", id)
        return record

    async def _snapshot_ids(self, params: Params | None) -> list[RecordId]:
        return self._ids_of((await self._find(params)).data)

    def _ids_of(self, records: list[Record]) -> list[RecordId]:
        return [r[self.id_field] for r in records if self.id_field in r]

    def _single(self, id: RecordId, params: Params | None) -> Query:
        """{id_field: id} narrowed by any predicate clauses in params["query"]."""
        predicate = translate_filter(_query(params)).predicate
        return {**predicate, self.id_field: id}

    def _scoped(self, ids: list[RecordId]) -> Query:
        return {self.id_field: {"$in": ids}}

    @staticmethod
    def _selected(params: Params | None) -> tuple[str, ...] | None:
        return parse_select(_query(params).get(ControlDirective.SELECT.value))

    @staticmethod
    def _upsert(params: Params | None) -> bool:
        return bool(((params or {}).get("store") or {}).get("upsert"))

    @property
    def _managed_fields(self) -> tuple[str, ...]:
        fields = (self.id_field, DEFAULT_ID_FIELD)
        if self.timestamps.enabled:
            fields += (self.timestamps.created_field, self.timestamps.updated_field)
        return fields

    def _reject(self, operation: str, errors: list[FieldError], id: RecordId | None = None):
        logger.warning(
            "%s rejected: %d validation error(s)", operation, len(errors),
            extra={"operation": operation, "record_id": id, "error_code": "VALIDATION_ERROR"},
        )
        raise RecordValidationError(
            errors, ErrorContext(operation=operation, record_id=id),
        )

    def _missing(self, operation: str, id: RecordId):
        logger.warning(
            "%s found no record", operation,
            extra={"operation": operation, "record_id": id, "error_code": "NOT_FOUND"},
        )
        raise NotFoundError(id, ErrorContext(operation=operation, record_id=id))


def create_service(options: ServiceOptions | Mapping[str, Any]) -> RecordService:
    """Build a RecordService from options (ServiceOptions or a plain mapping)."""
    return RecordService(options)
