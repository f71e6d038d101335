"""FastAPI application entry point."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator
from starlette.exceptions import HTTPException as StarletteHTTPException

from freshtrio.api.v1.router import api_router
from freshtrio.config import settings
from freshtrio.core.exceptions import AppException
from freshtrio.core.firebase import initialize_firebase
from freshtrio.database import check_database_connection, engine
from freshtrio.middleware.error_handler import (
    app_exception_handler,
    general_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from freshtrio.middleware.logging import LoggingMiddleware, configure_logging

configure_logging(settings.log_level, settings.log_format)
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Bring up Firebase and probe the database; dispose the pool on shutdown."""
    logger.info("application_startup", environment=settings.environment)

    # Password auth keeps working without Firebase; federated sign-in then fails per request
    try:
        initialize_firebase(settings.firebase_credentials_path, settings.firebase_config_json)
    except Exception as e:
        logger.warning("firebase_unavailable", error=str(e))

    if not await check_database_connection():
        logger.error("database_unreachable")

    yield

    await engine.dispose()
    logger.info("application_shutdown")


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppException, app_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, validation_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, general_exception_handler)


def instrument(app: FastAPI) -> None:
    """Expose Prometheus request metrics on /metrics."""
    Instrumentator(
        should_group_status_codes=True,
        should_instrument_requests_inprogress=True,
        excluded_handlers=["/metrics", "/docs", "/redoc", "/openapi.json"],
        inprogress_labels=True,
    ).instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="Grocery delivery backend: accounts, federated sign-in and product catalog",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(LoggingMiddleware)

register_exception_handlers(app)
app.include_router(api_router, prefix=settings.api_v1_prefix)
instrument(app)


@app.get("/", tags=["Root"], include_in_schema=False)
async def root() -> dict[str, str]:
    return {"name": settings.app_name, "version": settings.app_version, "docs": "/docs"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "freshtrio.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        log_level=settings.log_level.lower(),
    )
