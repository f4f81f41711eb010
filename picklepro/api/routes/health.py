"""
Health check endpoints.

We provide two endpoints:
- /health: Basic liveness check (is the process running?)
- /health/ready: Readiness check (can we serve data?)

Readiness includes the preload cache: a resource whose last fetch failed
shows up as a degraded check, so a broken backend is visible before users
report empty screens.
"""

import asyncio
import logging
from typing import Any

from fastapi import APIRouter, Response, status
from pydantic import BaseModel

from ... import __version__
from ...infrastructure.snowflake.repositories.training import TrainingDataRepository
from ..dependencies import ConnectionFactory, ConnectionFactoryDep, PreloadingServiceDep, SettingsDep

logger = logging.getLogger(__name__)

router = APIRouter()


def _check_database(connection_factory: ConnectionFactory) -> None:
    with connection_factory() as conn:
        TrainingDataRepository(conn).health_check()


class HealthResponse(BaseModel):
    """
    Health check response.

    Standardized format makes it easy for monitoring tools to parse.
    """
    status: str
    version: str
    details: dict[str, Any] = {}


class ReadinessCheck(BaseModel):
    """Individual readiness check result."""
    name: str
    status: str  # "ok", "degraded" or "error"
    error: str | None = None


class ReadinessResponse(BaseModel):
    """Readiness check response with details."""
    status: str  # "ready" or "not_ready"
    version: str
    checks: list[ReadinessCheck]


@router.get(
    "",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Basic health check",
    description="Returns 200 if the service is running. Does not check dependencies.",
)
async def health_check(settings: SettingsDep) -> HealthResponse:
    """
    Liveness check - is the process alive?

    This endpoint should be very fast and not check external dependencies.
    """
    return HealthResponse(
        status="ok",
        version=__version__,
        details={"mock_mode": {"snowflake": settings.snowflake_mock_mode}},
    )


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    status_code=status.HTTP_200_OK,
    summary="Readiness check",
    description="Returns 200 if the service can serve data, 503 otherwise.",
    responses={
        503: {
            "description": "Service not ready",
            "model": ReadinessResponse,
        }
    },
)
async def readiness_check(
    response: Response,
    settings: SettingsDep,
    service: PreloadingServiceDep,
    connection_factory: ConnectionFactoryDep,
) -> ReadinessResponse:
    """
    Readiness check - can we serve traffic?

    Missing configuration or a backend that can't answer `SELECT 1`
    makes the service not ready. Preload errors are
    reported as degraded but don't fail the check: screens still render
    (empty, with a retry) when one resource is down.
    """
    checks: list[ReadinessCheck] = []
    all_ok = True

    missing_fields = settings.validate_required_fields()
    if missing_fields:
        checks.append(ReadinessCheck(
            name="configuration",
            status="error",
            error=f"Missing required fields: {', '.join(missing_fields)}"
        ))
        all_ok = False
        # no credentials to connect with
        checks.append(ReadinessCheck(name="database", status="error", error="Not configured"))
    else:
        checks.append(ReadinessCheck(name="configuration", status="ok"))
        try:
            await asyncio.to_thread(_check_database, connection_factory)
            checks.append(ReadinessCheck(name="database", status="ok"))
        except Exception as e:
            logger.error("Database health check failed", extra={"error": str(e)})
            checks.append(ReadinessCheck(name="database", status="error", error=str(e)))
            all_ok = False

    cache_status = service.get_cache_status()
    for name, error in cache_status.errors.items():
        checks.append(ReadinessCheck(
            name=f"preload:{name.value}",
            status="degraded" if error else "ok",
            error=error,
        ))

    if not all_ok:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
        logger.warning(
            "Readiness check failed",
            extra={
                "checks": [
                    {"name": c.name, "status": c.status, "error": c.error}
                    for c in checks
                ]
            }
        )

    return ReadinessResponse(
        status="ready" if all_ok else "not_ready",
        version=__version__,
        checks=checks,
    )
