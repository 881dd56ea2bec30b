"""Map domain exceptions to HTTP responses"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from recycle_ledger.api.dependencies import get_request_id
from recycle_ledger.domain.exceptions import (
    DomainException,
    InsufficientCreditsError,
    NotFoundError,
    StateConflictError,
    ValidationError,
)

logger = logging.getLogger(__name__)


def domain_error_response(error: DomainException, request_id: str) -> JSONResponse:
    """
    ValidationError -> 400 with details
    NotFoundError -> 404
    StateConflictError -> 409
    InsufficientCreditsError -> 400 with required/available
    anything else (e.g. exhausted ledger retries) -> 500, generic message
    """
    if isinstance(error, ValidationError):
        return JSONResponse(status_code=400, content={"detail": "Invalid input", "details": error.details})

    if isinstance(error, NotFoundError):
        return JSONResponse(status_code=404, content={"detail": str(error), "resource": error.resource})

    if isinstance(error, StateConflictError):
        return JSONResponse(
            status_code=409,
            content={"detail": str(error), "error": type(error).__name__},
        )

    if isinstance(error, InsufficientCreditsError):
        return JSONResponse(
            status_code=400,
            content={
                "detail": "Insufficient credits",
                "required": error.required,
                "available": error.available,
            },
        )

    logger.error(f"Unhandled domain error: {error}", extra={"request_id": request_id})
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(DomainException)
    async def handle_domain_exception(request: Request, exc: DomainException):
        return domain_error_response(exc, get_request_id(request))

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception):
        logger.error(f"Unexpected error: {exc}", extra={"request_id": get_request_id(request)})
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})
