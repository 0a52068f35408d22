"""Translation of domain failures into structured HTTP errors.

Every response body has the shape ``{"code", "message", "details"}``.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import (
    ExpectedVersionError,
    InvalidOperationError,
    ObjectNotFoundError,
    ValidationError,
)

from ordering.errors import GatewayFailure, Unauthorized

logger = structlog.get_logger(__name__)


def _details(exc) -> dict:
    messages = getattr(exc, "messages", None)
    return messages if isinstance(messages, dict) else {}


def _message(exc) -> str:
    message = getattr(exc, "message", None)
    if message:
        return message
    messages = getattr(exc, "messages", None)
    if isinstance(messages, dict):
        for value in messages.values():
            if isinstance(value, (list, tuple)) and value:
                return str(value[0])
            if value:
                return str(value)
    return str(messages) if messages else exc.__class__.__name__


def _error(status_code: int, code: str, exc, details: dict | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "code": code,
            "message": _message(exc),
            "details": details if details is not None else _details(exc),
        },
    )


async def not_found_handler(request: Request, exc: ObjectNotFoundError) -> JSONResponse:
    return _error(404, "NotFound", exc)


async def invalid_transition_handler(request: Request, exc: InvalidOperationError) -> JSONResponse:
    details = _details(exc)
    if hasattr(exc, "from_status"):
        details = {"from": exc.from_status, "to": exc.to_status}
    return _error(409, "InvalidTransition", exc, details)


async def unauthorized_handler(request: Request, exc: Unauthorized) -> JSONResponse:
    logger.warning("unauthorized_request", path=request.url.path, reason=exc.message)
    return _error(403, "Unauthorized", exc)


async def validation_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return _error(400, "ValidationFailed", exc)


async def gateway_failure_handler(request: Request, exc: GatewayFailure) -> JSONResponse:
    return _error(
        402,
        "GatewayFailure",
        exc,
        {"reason": exc.reason, "transaction_id": exc.transaction_id},
    )


async def concurrency_handler(request: Request, exc: ExpectedVersionError) -> JSONResponse:
    logger.warning("concurrent_modification", path=request.url.path)
    return JSONResponse(
        status_code=409,
        content={
            "code": "ConcurrentModification",
            "message": "The resource was modified by another request; retry",
            "details": {},
        },
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ObjectNotFoundError, not_found_handler)
    app.add_exception_handler(InvalidOperationError, invalid_transition_handler)
    app.add_exception_handler(Unauthorized, unauthorized_handler)
    app.add_exception_handler(ValidationError, validation_handler)
    app.add_exception_handler(GatewayFailure, gateway_failure_handler)
    app.add_exception_handler(ExpectedVersionError, concurrency_handler)
