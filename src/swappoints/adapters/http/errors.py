"""
HTTP Error Mapping - Domain Exceptions to Status Codes

    ValidationError, ConflictError, InsufficientFundsError -> 400
    UnauthorizedError                                       -> 401
    NotFoundError                                           -> 404
    StoreUnavailableError (fallback disabled only)          -> 503
    anything else                                           -> 500, detail logged only

Error bodies are ``{"error": "<message>"}``.
"""
from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from swappoints.domain.errors import (
    ConflictError,
    DomainError,
    InsufficientFundsError,
    NotFoundError,
    StoreUnavailableError,
    UnauthorizedError,
    ValidationError,
)

logger = logging.getLogger(__name__)

STATUS_BY_ERROR = (
    (ValidationError, 400),
    (ConflictError, 400),
    (InsufficientFundsError, 400),
    (UnauthorizedError, 401),
    (NotFoundError, 404),
)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    if isinstance(exc, StoreUnavailableError):
        logger.error("Store unavailable on %s %s: %s", request.method, request.url.path, exc)
        return _error(503, "Storage temporarily unavailable")

    for error_type, status_code in STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            return _error(status_code, str(exc))

    logger.warning("Unmapped domain error on %s %s: %r", request.method, request.url.path, exc)
    return _error(400, str(exc))


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        problems.append(f"{location}: {err.get('msg')}" if location else str(err.get("msg")))
    return _error(400, "Invalid request: " + "; ".join(problems))


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _error(500, "Internal server error")


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(DomainError, domain_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)
