"""Liveness and readiness checks."""

from typing import Literal

from fastapi import APIRouter, Response, status
from pydantic import BaseModel

from clinic_scheduling.config import settings
from clinic_scheduling.core.redis_client import check_redis_connection
from clinic_scheduling.database import check_database_connection

router = APIRouter(prefix="/health", tags=["Health"])

ComponentState = Literal["up", "down", "disabled"]


class LivenessResponse(BaseModel):
    """The process is serving requests."""

    status: Literal["alive"] = "alive"
    version: str


class ReadinessResponse(BaseModel):
    """Whether the service can take scheduling commands."""

    ready: bool
    database: ComponentState
    reference_cache: ComponentState


@router.get("", response_model=LivenessResponse, summary="Liveness check")
async def liveness() -> LivenessResponse:
    """Answer without touching any backing service."""
    return LivenessResponse(version=settings.app_version)


@router.get("/ready", response_model=ReadinessResponse, summary="Readiness check")
async def readiness(response: Response) -> ReadinessResponse:
    """
    Check the backing services.

    Only the database gates readiness. The reference cache is advisory, so an
    unreachable Redis is reported but commands still run against the database.

    Returns:
        Component states; the status code is 503 when the database is down
    """
    database: ComponentState = "up" if await check_database_connection() else "down"

    reference_cache: ComponentState = "disabled"
    if settings.redis_enabled:
        reference_cache = "up" if await check_redis_connection() else "down"

    ready = database == "up"
    if not ready:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return ReadinessResponse(ready=ready, database=database, reference_cache=reference_cache)
