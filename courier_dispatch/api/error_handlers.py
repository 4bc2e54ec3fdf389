"""Error Handlers — map every exception reaching FastAPI to the dispatch error envelope.

Invariants:
    - DispatchError → its own http_status with the to_response() envelope
    - RequestValidationError → 400 INVALID_VALUE, same envelope plus per-field details
    - Exception (catch-all) → 500 with no internal details
    - Client-side failures (validation, business rule, not found, conflict) are
      logged at WARNING; everything else at ERROR

Design Decisions:
    - Request validation reuses the INVALID_VALUE code so clients see a single
      taxonomy whether pydantic or core/ rejected the input
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from courier_dispatch.core.errors import (
    DispatchError, ErrorCategory, ErrorSeverity,
)

logger = logging.getLogger(__name__)

_CLIENT_CATEGORIES = frozenset({
    ErrorCategory.VALIDATION, ErrorCategory.BUSINESS_RULE,
    ErrorCategory.RESOURCE_NOT_FOUND, ErrorCategory.CONFLICT,
})


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""
    app.add_exception_handler(DispatchError, dispatch_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)


async def dispatch_error_handler(request: Request, exc: DispatchError):
    level = logging.WARNING if exc.category in _CLIENT_CATEGORIES else logging.ERROR
    logger.log(
        level, f"{exc.code} on {request.url.path}: {exc.message}",
        extra={
            "error_code": exc.code, "path": request.url.path,
            "order_id": exc.context.order_id, "courier_id": exc.context.courier_id,
        },
    )
    return JSONResponse(status_code=exc.http_status, content=exc.to_response())


async def request_validation_handler(request: Request, exc: RequestValidationError):
    details = [
        {
            "field": ".".join(str(loc) for loc in e["loc"] if loc != "body"),
            "message": e["msg"],
            "type": e["type"],
        }
        for e in exc.errors()
    ]
    logger.warning(
        f"Request validation failed on {request.url.path}: {details}",
        extra={"error_code": "INVALID_VALUE", "path": request.url.path},
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": {
                "code": "INVALID_VALUE",
                "message": "Invalid request data",
                "category": ErrorCategory.VALIDATION.value,
                "severity": ErrorSeverity.ERROR.value,
                "details": details,
            },
        },
    )


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(
        f"Unhandled exception on {request.url.path}: {exc}",
        extra={"path": request.url.path}, exc_info=True,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred",
                "category": ErrorCategory.INTERNAL.value,
                "severity": ErrorSeverity.CRITICAL.value,
            },
        },
    )
