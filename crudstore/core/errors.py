"""Error Hierarchy — typed, categorized exceptions for every crudstore failure mode.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Caller errors (400-level) are raised before any store write
    - Store/driver errors (500-level) propagate unchanged, never retried
    - to_response() produces a transport-neutral error envelope

Design Decisions:
    - Single hierarchy with CrudStoreError base: a host framework maps one type
    - ErrorContext as dataclass: observability fields without coupling to logging
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    VALIDATION = "validation"
    BUSINESS_RULE = "business_rule"
    RESOURCE_NOT_FOUND = "resource_not_found"
    CONFIGURATION = "configuration"
    DATABASE = "database"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    operation: str | None = None
    record_id: Any = None
    debug_info: dict[str, Any] | None = None


@dataclass(frozen=True)
class FieldError:
    """One failing schema rule: JSON path of the offending value + message."""
    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.message} in {self.path}"


class CrudStoreError(Exception):
    """Base exception for all crudstore errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized error envelope."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "operation": self.context.operation,
                    "record_id": self.context.record_id,
                },
            }
        }


# ─── Caller Errors (400-level) ──────────────────────────────────

class NotFoundError(CrudStoreError):
    """No record matches the requested identifier."""
    def __init__(self, record_id: Any, context: ErrorContext | None = None):
        super().__init__(
            f"No record found for id '{record_id}'",
            "NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )
        self.record_id = record_id


class BadRequestError(CrudStoreError):
    """Operation invoked with arguments it refuses by contract."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "BAD_REQUEST", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, context, 400,
        )


class RecordValidationError(CrudStoreError):
    """Record data failed schema validation — aggregated over the whole call."""
    def __init__(self, errors: list[FieldError], context: ErrorContext | None = None):
        super().__init__(
            f"Data failed validation: {', '.join(str(e) for e in errors)}",
            "VALIDATION_ERROR", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.errors = list(errors)

    def to_response(self) -> dict:
        response = super().to_response()
        response["error"]["details"] = [
            {"path": e.path, "message": e.message} for e in self.errors
        ]
        return response


class InvalidQueryError(CrudStoreError):
    """A filter control directive ($limit, $skip, $sort, $select) is malformed."""
    def __init__(self, directive: str, value: Any, context: ErrorContext | None = None):
        super().__init__(
            f"Invalid value for {directive}: {value!r}",
            "INVALID_QUERY", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.directive = directive
        self.value = value


# ─── Construction / Infrastructure Errors (500-level) ───────────

class ConfigurationError(CrudStoreError):
    """Service options are missing or invalid — raised at construction only."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "CONFIGURATION_ERROR", ErrorCategory.CONFIGURATION,
            ErrorSeverity.CRITICAL, context, 500,
        )


class DatabaseError(CrudStoreError):
    """Store operation failed."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Database {operation} failed: {message}",
            "DATABASE_ERROR", ErrorCategory.DATABASE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation
