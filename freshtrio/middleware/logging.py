"""Structured logging setup and per-request logging middleware."""

import logging
import sys
import time
import uuid
from collections.abc import Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware
from structlog.typing import Processor

REQUEST_ID_HEADER = "X-Request-ID"
PROCESS_TIME_HEADER = "X-Process-Time"


def _renderer(log_format: str) -> Processor:
    if log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer()


def configure_logging(log_level: str = "INFO", log_format: str = "json") -> None:
    """
    Route structlog through stdlib logging.

    Args:
        log_level: Stdlib level name, e.g. ``INFO``
        log_format: ``json`` for machine-readable lines, anything else for
            the coloured console renderer
    """
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            _renderer(log_format),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=logging.getLevelName(log_level.upper()),
    )


class LoggingMiddleware(BaseHTTPMiddleware):
    """Log each request and tag every log line of the request with its id."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        logger = structlog.get_logger("freshtrio.request")

        request_id = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(
            request_id=request_id, method=request.method, path=request.url.path
        )

        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            logger.error("request_failed", error=str(e), duration=time.perf_counter() - started)
            raise

        duration = time.perf_counter() - started
        logger.info("request_completed", status_code=response.status_code, duration=duration)

        response.headers[PROCESS_TIME_HEADER] = f"{duration:.6f}"
        response.headers[REQUEST_ID_HEADER] = request_id
        return response
