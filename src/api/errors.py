"""
Exception handlers.

Every error leaves the API as ``{"success": false, "error": ..., "details": ...}``.
``details`` carries the underlying message only in development, except for
request validation where it lists the offending fields.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.api.schemas import ErrorResponse
from src.config import settings
from src.domain.exceptions import ShipmentError

logger = logging.getLogger(__name__)


def error_response(status_code: int, error: str, details: str | None = None) -> JSONResponse:
    body = ErrorResponse(error=error, details=details)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(by_alias=True, exclude_none=True),
    )


async def shipment_error_handler(request: Request, exc: ShipmentError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("%s %s failed: %r", request.method, request.url.path, exc.__cause__ or exc)
    cause = exc.__cause__
    details = str(cause) if settings.debug and cause is not None else None
    return error_response(exc.status_code, exc.message, details)


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    details = "; ".join(
        f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}"
        for err in exc.errors()
    )
    return error_response(400, "Validation failed", details)


async def http_error_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    error = "Route not found" if exc.status_code == 404 else str(exc.detail)
    return error_response(exc.status_code, error)


async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return error_response(
        500, "Internal server error", str(exc) if settings.debug else None
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ShipmentError, shipment_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)
