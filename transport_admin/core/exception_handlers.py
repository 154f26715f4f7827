# transport_admin/core/exception_handlers.py
"""
FastAPI exception handlers.

Application exceptions render as ``{"error": {...}}`` with their own status.
Request validation errors are reported as 400; anything unhandled becomes a
generic 500 without internal detail.
"""
from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError

from transport_admin.core.exceptions import BaseAppException, ErrorCode
from transport_admin.core.logging import get_logger

logger = get_logger(__name__)


async def app_exception_handler(request: Request, exc: BaseAppException) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{exc.__class__.__name__} on {request.url.path}: {exc.message}")
    else:
        logger.info(f"{exc.__class__.__name__} on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def request_validation_handler(
    request: Request,
    exc: RequestValidationError | PydanticValidationError,
) -> JSONResponse:
    """Both FastAPI request errors and schema errors raised while building filters."""
    field_errors = {}
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part not in ("body", "query"))
        field_errors.setdefault(location or "request", []).append(error.get("msg", "Invalid value"))

    return JSONResponse(
        status_code=400,
        content={
            "error": {
                "message": "Validation failed",
                "code": ErrorCode.VALIDATION_ERROR.value,
                "details": {"field_errors": jsonable_encoder(field_errors)},
                "type": "RequestValidationError",
            }
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "message": "Internal server error",
                "code": ErrorCode.INTERNAL_ERROR.value,
                "details": {},
                "type": "InternalServerError",
            }
        },
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BaseAppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(PydanticValidationError, request_validation_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
