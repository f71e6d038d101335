"""Exception handlers rendering the JSON error envelope."""

from typing import Any

import structlog
from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from freshtrio.config import settings
from freshtrio.core.exceptions import AppException

logger = structlog.get_logger(__name__)

GENERIC_ERROR = "InternalServerError"
GENERIC_ERROR_MESSAGE = "An unexpected error occurred"


def error_response(
    request: Request,
    status_code: int,
    error: str,
    message: Any,
    headers: dict[str, str] | None = None,
    **extra: Any,
) -> JSONResponse:
    """Build the ``{error, message, path}`` body shared by every handler."""
    return JSONResponse(
        status_code=status_code,
        content={"error": error, "message": message, **extra, "path": str(request.url)},
        headers=headers,
    )


def _internal_error(request: Request) -> JSONResponse:
    return error_response(
        request, status.HTTP_500_INTERNAL_SERVER_ERROR, GENERIC_ERROR, GENERIC_ERROR_MESSAGE
    )


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    """
    Render an application error with its own kind and status.

    In ``legacy`` mode every application error becomes the generic 500
    older mobile clients expect.
    """
    logger.info(
        "app_exception",
        error=type(exc).__name__,
        status_code=exc.status_code,
        path=request.url.path,
    )

    if settings.error_response_mode == "legacy":
        return _internal_error(request)

    return error_response(request, exc.status_code, type(exc).__name__, exc.message)


async def http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    """Render framework HTTP errors, keeping headers such as WWW-Authenticate."""
    return error_response(
        request,
        exc.status_code,
        "HTTPException",
        exc.detail,
        headers=getattr(exc, "headers", None),
    )


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    """Validation errors without the raw exception objects pydantic attaches."""
    return [{key: value for key, value in error.items() if key != "ctx"} for error in exc.errors()]


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Render request validation failures as 422 with per-field details."""
    return error_response(
        request,
        status.HTTP_422_UNPROCESSABLE_ENTITY,
        "ValidationError",
        "Request validation failed",
        details=jsonable_errors(exc),
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("unhandled_exception", error=str(exc), path=request.url.path, exc_info=exc)
    return _internal_error(request)
