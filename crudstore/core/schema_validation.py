"""Schema Validation — compiled JSON-schema predicates for create and patch payloads.

Invariants:
    - Schemas are checked once at compile time; an invalid schema is a
      ConfigurationError, never a per-call failure
    - The patch validator is the create schema with top-level `required`
      emptied (a patch payload need not be complete)
    - errors lists EVERY failing rule of the last call, ordered by path
    - Pruning returns a new record; the input is never mutated

Design Decisions:
    - jsonschema's validator_for picks the draft from `$schema`, Draft 2020-12
      when absent
    - remove_additional drops undeclared properties wherever the schema says
      additionalProperties: false, so such fields are stripped instead of
      rejected
"""

import re
from typing import Any

from jsonschema import Draft202012Validator, FormatChecker
from jsonschema.exceptions import SchemaError, ValidationError
from jsonschema.validators import validator_for

from crudstore.core.domain_types import Record
from crudstore.core.errors import ConfigurationError, FieldError
from crudstore.core.repository_protocols import RecordValidator
from crudstore.core.service_options import ValidatorOptions


class CompiledSchema:
    """A RecordValidator backed by a jsonschema validator instance."""

    def __init__(
        self, schema: dict, *, remove_additional: bool = True, check_formats: bool = False,
    ):
        validator_cls = validator_for(schema, default=Draft202012Validator)
        try:
            validator_cls.check_schema(schema)
        except SchemaError as e:
            raise ConfigurationError(f"Invalid JSON schema: {e.message}") from e
        self.schema = schema
        self.remove_additional = remove_additional
        self._validator = validator_cls(
            schema, format_checker=FormatChecker() if check_formats else None,
        )
        self.errors: list[FieldError] = []

    def prune(self, record: Record) -> Record:
        if not self.remove_additional:
            return dict(record)
        return _remove_additional(record, self.schema)

    def is_valid(self, record: Record, path_prefix: str = "$") -> bool:
        found = sorted(
            (FieldError(_format_error_path(e, path_prefix), e.message)
             for e in self._validator.iter_errors(record)),
            key=lambda err: (err.path, err.message),
        )
        self.errors = found
        return not found


def compile_validators(
    schema: dict | None, options: ValidatorOptions,
) -> tuple[CompiledSchema | None, CompiledSchema | None]:
    """Compile (create, patch) validators, or (None, None) without a schema."""
    if schema is None:
        return None, None
    kwargs = {
        "remove_additional": options.remove_additional,
        "check_formats": options.check_formats,
    }
    create = CompiledSchema(schema, **kwargs)
    patch = CompiledSchema({**schema, "required": []}, **kwargs)
    return create, patch


def check_records(
    validator: RecordValidator, records: list[Record], *,
    batch: bool, keep: tuple[str, ...] = (),
) -> tuple[list[Record], list[FieldError]]:
    """Prune and validate every record; collect all errors in input order.

    `keep` names engine-managed top-level fields (id, timestamps): unless the
    schema declares them they bypass pruning and validation.
    Batch items get an indexed path prefix ($[0], $[1], ...).
    """
    declared = validator.schema.get("properties", {})
    checked: list[Record] = []
    errors: list[FieldError] = []
    for index, record in enumerate(records):
        held = {k: record[k] for k in keep if k in record and k not in declared}
        candidate = validator.prune({k: v for k, v in record.items() if k not in held})
        prefix = f"$[{index}]" if batch else "$"
        if not validator.is_valid(candidate, prefix):
            errors.extend(validator.errors)
        merged = {**candidate, **held}
        checked.append({k: merged[k] for k in record if k in merged})
    return checked, errors


def _format_error_path(error: ValidationError, prefix: str) -> str:
    parts = [prefix]
    for part in error.absolute_path:
        parts.append(f"[{part}]" if isinstance(part, int) else f".{part}")
    return "".join(parts)


def _remove_additional(instance: Any, schema: Any) -> Any:
    if not isinstance(schema, dict):
        return instance
    if isinstance(instance, dict):
        properties = schema.get("properties", {})
        patterns = schema.get("patternProperties", {})
        additional = schema.get("additionalProperties")
        result = {}
        for key, value in instance.items():
            if key in properties:
                result[key] = _remove_additional(value, properties[key])
            elif any(re.search(pattern, key) for pattern in patterns):
                result[key] = value
            elif additional is False:
                continue
            else:
                result[key] = _remove_additional(value, additional)
        return result
    if isinstance(instance, list) and isinstance(schema.get("items"), dict):
        return [_remove_additional(item, schema["items"]) for item in instance]
    return instance
