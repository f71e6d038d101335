"""Liveness and readiness endpoints."""

from fastapi import APIRouter
from pydantic import BaseModel

from freshtrio.config import settings
from freshtrio.core.firebase import is_firebase_initialized
from freshtrio.database import check_database_connection

router = APIRouter(tags=["Health"])


class HealthResponse(BaseModel):
    status: str
    version: str
    environment: str


class DetailedHealthResponse(HealthResponse):
    database: str
    firebase: str


@router.get("/health", response_model=HealthResponse, summary="Liveness")
async def health_check() -> HealthResponse:
    return HealthResponse(
        status="healthy", version=settings.app_version, environment=settings.environment
    )


@router.get("/health/detailed", response_model=DetailedHealthResponse, summary="Readiness")
async def detailed_health_check() -> DetailedHealthResponse:
    """
    Report database and Firebase state.

    A missing Firebase app only degrades federated sign-in, so the service
    reports ``degraded`` rather than failing.
    """
    db_ok = await check_database_connection()
    firebase_ok = is_firebase_initialized()

    return DetailedHealthResponse(
        status="healthy" if db_ok and firebase_ok else "degraded",
        version=settings.app_version,
        environment=settings.environment,
        database="healthy" if db_ok else "unhealthy",
        firebase="initialized" if firebase_ok else "unavailable",
    )


@router.get("/ping", summary="Ping")
async def ping() -> dict[str, str]:
    return {"message": "pong"}
