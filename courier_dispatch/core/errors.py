"""Error Hierarchy — typed, categorized exceptions for all dispatch failure modes.

Invariants:
    - A DispatchError always carries code, category and severity; http_status follows the class
    - Domain errors (400-level) are raised before any write, so a rejected operation leaves no trace
    - Store errors (StoreError family) never cross a service boundary unwrapped
    - to_response() produces the REST envelope used by api/error_handlers.py

Design Decisions:
    - Single hierarchy with DispatchError base: FastAPI global handler catches all
    - ErrorContext names the order, courier or delivery involved; handlers log it as-is
    - Store errors are plain exceptions, not DispatchError: they are internal signals
      that each lifecycle operation re-wraps with a domain-meaningful message
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """How loudly a failure is logged."""
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """Coarse grouping reported to clients in the error envelope."""
    VALIDATION = "validation"
    BUSINESS_RULE = "business_rule"
    RESOURCE_NOT_FOUND = "resource_not_found"
    INTERNAL = "internal"
    CONFLICT = "conflict"


@dataclass
class ErrorContext:
    """Which entities an error concerns."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    order_id: int | None = None
    courier_id: int | None = None
    delivery_id: int | None = None
    operation: str | None = None
    debug_info: dict[str, Any] | None = None


class DispatchError(Exception):
    """Base exception for all dispatch errors."""

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
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "order_id": self.context.order_id,
                    "courier_id": self.context.courier_id,
                    "delivery_id": self.context.delivery_id,
                    "operation": self.context.operation,
                },
            }
        }


# ─── Domain Errors (400-level) ──────────────────────────────────

class NotFoundError(DispatchError):
    """Requested entity does not exist."""
    def __init__(
        self, entity: str, entity_id: object, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{entity} '{entity_id}' not found",
            "NOT_FOUND", ErrorCategory.RESOURCE_NOT_FOUND,
            ErrorSeverity.ERROR, context, 404,
        )
        self.entity = entity
        self.entity_id = entity_id


class AlreadyExistsError(DispatchError):
    """Entity with the same natural key already exists."""
    def __init__(
        self, entity: str, entity_id: object, context: ErrorContext | None = None,
    ):
        super().__init__(
            f"{entity} '{entity_id}' already exists",
            "ALREADY_EXISTS", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context, 409,
        )
        self.entity = entity
        self.entity_id = entity_id


class InvalidValueError(DispatchError):
    """Malformed input or illegal transition precondition."""
    def __init__(
        self, message: str, field: str | None = None,
        context: ErrorContext | None = None,
    ):
        super().__init__(
            message, "INVALID_VALUE", ErrorCategory.VALIDATION,
            ErrorSeverity.ERROR, context, 400,
        )
        self.field = field


class ConflictError(DispatchError):
    """Business-rule violation (reassociation, deactivate-with-open-order, ...)."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "CONFLICT", ErrorCategory.BUSINESS_RULE,
            ErrorSeverity.ERROR, context, 409,
        )


class SimulatorRunningError(DispatchError):
    """Manual courier mutation attempted while the simulator owns the fleet."""
    def __init__(self, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Cannot {operation} while the simulator is running",
            "SIMULATOR_RUNNING", ErrorCategory.CONFLICT,
            ErrorSeverity.WARNING, context, 423,
        )


# ─── Infrastructure Errors (500-level) ──────────────────────────

class OperationFailedError(DispatchError):
    """Unexpected lower-layer failure, wrapped with the operation that hit it."""
    def __init__(
        self, message: str, operation: str, context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.operation = operation
        super().__init__(
            f"{operation} failed: {message}",
            "OPERATION_FAILED", ErrorCategory.INTERNAL,
            ErrorSeverity.CRITICAL, ctx, 500,
        )
        self.operation = operation


# ─── Store Signals (never leave the service layer) ──────────────

class StoreError(Exception):
    """Persistence adapter failure (connection, driver, integrity)."""


class RecordMissingError(StoreError):
    def __init__(self, entity: str, entity_id: object):
        super().__init__(f"{entity} '{entity_id}' does not exist in store")
        self.entity = entity
        self.entity_id = entity_id


class RecordExistsError(StoreError):
    def __init__(self, entity: str, entity_id: object):
        super().__init__(f"{entity} '{entity_id}' already exists in store")
        self.entity = entity
        self.entity_id = entity_id
