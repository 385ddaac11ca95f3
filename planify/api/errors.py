"""
Boundary error translator.

The only place where internal error kinds become HTTP status codes and the
``{success, message, errors?}`` envelope.
"""

import traceback
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from planify.core.errors import AppError, InternalError, ValidationError, field_errors_from_pydantic
from planify.core.logging import get_logger
from planify.schemas.common import ApiResponse

logger = get_logger(__name__)


def error_body(exc: AppError) -> dict[str, Any]:
    envelope = ApiResponse(success=False, message=exc.message, errors=exc.errors)
    return envelope.model_dump(exclude_none=True)


def error_response(exc: AppError) -> JSONResponse:
    """Render an ``AppError`` as its status code and envelope."""
    headers = dict(exc.headers or {})
    if exc.status_code == 401:
        headers.setdefault("WWW-Authenticate", "Bearer")
    if exc.status_code == 503:
        headers.setdefault("Retry-After", "5")
    return JSONResponse(status_code=exc.status_code, content=error_body(exc), headers=headers or None)


def register_exception_handlers(app: FastAPI, debug: bool = False) -> None:
    """
    Register global exception handlers.

    Args:
        app: FastAPI application instance
        debug: Include exception detail and stack in 500 responses
    """

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        if exc.is_operational:
            logger.warning(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
        else:
            logger.error(f"{request.method} {request.url.path} -> {exc.status_code}: {exc.message}", exc_info=exc)
        return error_response(exc)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        error = ValidationError.for_fields(field_errors_from_pydantic(exc.errors()))
        logger.info(f"{request.method} {request.url.path} -> 422: {len(error.errors or [])} invalid field(s)")
        return error_response(error)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == 404:
            message = f"Route {request.url.path} not found"
        else:
            message = exc.detail if isinstance(exc.detail, str) else "Request failed"
        return error_response(AppError(message, status_code=exc.status_code, headers=exc.headers))

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            f"Unhandled exception on {request.method} {request.url.path}: {type(exc).__name__}",
            exc_info=exc,
        )
        error = InternalError()
        content = error_body(error)
        if debug:
            content["detail"] = str(exc)
            content["stack"] = traceback.format_exception(type(exc), exc, exc.__traceback__)
        return JSONResponse(status_code=error.status_code, content=content)
