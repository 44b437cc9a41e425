"""Error Hierarchy tests — codes, statuses and the response envelope.

Tests cover:
    - Every error carries code, category, severity and HTTP status
    - Validation errors aggregate field errors into message and details
    - to_response() envelope shape
"""

import pytest

from crudstore.core.errors import (
    BadRequestError, ConfigurationError, CrudStoreError, DatabaseError,
    ErrorCategory, ErrorContext, FieldError, InvalidQueryError, NotFoundError,
    RecordValidationError,
)


@pytest.mark.parametrize("error,code,category,status", [
    (NotFoundError("x"), "NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND, 404),
    (BadRequestError("no"), "BAD_REQUEST", ErrorCategory.BUSINESS_RULE, 400),
    (RecordValidationError([]), "VALIDATION_ERROR", ErrorCategory.VALIDATION, 400),
    (InvalidQueryError("$limit", "x"), "INVALID_QUERY", ErrorCategory.VALIDATION, 400),
    (ConfigurationError("bad"), "CONFIGURATION_ERROR", ErrorCategory.CONFIGURATION, 500),
    (DatabaseError("boom", "commit"), "DATABASE_ERROR", ErrorCategory.DATABASE, 503),
])
def test_error_codes_and_statuses(error, code, category, status):
    assert isinstance(error, CrudStoreError)
    assert error.code == code
    assert error.category == category
    assert error.http_status == status


def test_not_found_message_names_id():
    assert str(NotFoundError(42)) == "No record found for id '42'"


def test_invalid_query_message():
    error = InvalidQueryError("$sort", "name")
    assert error.message == "Invalid value for $sort: 'name'"


def test_database_error_message():
    assert DatabaseError("boom", "commit").message == "Database commit failed: boom"


def test_validation_error_aggregates_field_errors():
    error = RecordValidationError([
        FieldError("$[0].age", "-1 is less than the minimum of 0"),
        FieldError("$[2]", "'name' is a required property"),
    ])
    assert error.message == (
        "Data failed validation: -1 is less than the minimum of 0 in $[0].age, "
        "'name' is a required property in $[2]"
    )
    details = error.to_response()["error"]["details"]
    assert details[0] == {"path": "$[0].age", "message": "-1 is less than the minimum of 0"}


def test_to_response_envelope():
    error = NotFoundError("abc", ErrorContext(operation="get", record_id="abc"))
    envelope = error.to_response()["error"]
    assert envelope["code"] == "NOT_FOUND"
    assert envelope["category"] == "resource_not_found"
    assert envelope["severity"] == "error"
    assert envelope["context"] == {"operation": "get", "record_id": "abc"}
    assert envelope["timestamp"]
