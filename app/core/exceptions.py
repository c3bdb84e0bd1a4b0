"""
Global exception handlers — maps domain errors to HTTP and prevents
stack-trace leakage to clients.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from starlette.exceptions import HTTPException

from app.core.errors import (Conflict, Forbidden, Internal, NiraError, NotFound,
                             Unauthenticated, ValidationError)
from app.core.security import clear_session_cookie

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: dict[type[NiraError], int] = {
    Unauthenticated: 401,
    Forbidden: 403,
    ValidationError: 400,
    NotFound: 404,
    Conflict: 409,
    Internal: 500,
}


def status_for(exc: NiraError) -> int:
    for cls in type(exc).__mro__:
        if cls in _STATUS_BY_ERROR:
            return _STATUS_BY_ERROR[cls]
    return 500


async def _nira_error_handler(_request: Request, exc: NiraError) -> JSONResponse:
    status_code = status_for(exc)
    content: dict = {"success": False, "message": exc.message}
    if isinstance(exc, Unauthenticated):
        content["authenticated"] = False
        content["expired"] = exc.expired
    if status_code == 500:
        logger.error("Internal error: %s", exc.message, exc_info=exc)
        content["message"] = Internal.default_message
    response = JSONResponse(status_code=status_code, content=content)
    if isinstance(exc, Unauthenticated) and exc.expired:
        # The server-side session is already gone; stop the browser resending it
        clear_session_cookie(response)
    return response


async def _http_exception_handler(_request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


async def _validation_error_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    message = "Invalid input"
    if errors:
        first = errors[0]
        field = ".".join(str(p) for p in first.get("loc", ()) if p not in ("body", "query"))
        msg = str(first.get("msg", "")).removeprefix("Value error, ")
        message = f"{field}: {msg}" if field else msg
    return JSONResponse(status_code=400, content={"success": False, "message": message})


async def _rate_limit_handler(_request: Request, exc: RateLimitExceeded) -> JSONResponse:
    return JSONResponse(
        status_code=429,
        content={"success": False, "message": f"Too many requests: {exc.detail}"},
    )


async def _integrity_error_handler(_request: Request, exc: IntegrityError) -> JSONResponse:
    logger.error("Database integrity error: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=409,
        content={"success": False, "message": "Database constraint violation"},
    )


async def _sqlalchemy_error_handler(_request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.error("Database error: %s", exc, exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"success": False, "message": "Internal database error"},
    )


async def _generic_exception_handler(_request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception: %s", exc)
    return JSONResponse(
        status_code=500,
        content={"success": False, "message": "Internal server error"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach all exception handlers to the FastAPI app."""
    app.add_exception_handler(NiraError, _nira_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(HTTPException, _http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RateLimitExceeded, _rate_limit_handler)  # type: ignore[arg-type]
    app.add_exception_handler(IntegrityError, _integrity_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(SQLAlchemyError, _sqlalchemy_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _generic_exception_handler)
