"""Health check endpoints for readiness and liveness checks."""

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from baydigital import __version__
from baydigital.services.database import get_db_manager

router = APIRouter(tags=["health"])


async def _database_status() -> str:
    db_manager = get_db_manager()
    if db_manager is None:
        return "not_initialized"
    return "healthy" if await db_manager.health_check() else "unhealthy"


@router.get(
    "/v1/readiness",
    summary="Readiness check",
    description="Check if the service is ready to accept requests",
    status_code=status.HTTP_200_OK,
)
async def readiness() -> JSONResponse:
    """Readiness check endpoint.

    Returns 200 if the database answers, 503 otherwise.
    """
    checks = {"database": await _database_status()}
    all_healthy = all(value == "healthy" for value in checks.values())

    return JSONResponse(
        status_code=status.HTTP_200_OK if all_healthy else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "ready" if all_healthy else "not_ready",
            "checks": checks,
        },
    )


@router.get(
    "/v1/liveness",
    summary="Liveness check",
    description="Check if the service is alive",
    status_code=status.HTTP_200_OK,
)
async def liveness() -> dict:
    return {"status": "alive"}


@router.get(
    "/v1/health",
    summary="General health check",
    description="Health check with per-dependency status",
    status_code=status.HTTP_200_OK,
)
async def health() -> dict:
    """Detailed health status; degraded rather than failing when a dependency is down."""
    checks = {
        "database": {
            "status": await _database_status(),
            "type": "postgresql",
        }
    }
    all_healthy = all(check["status"] == "healthy" for check in checks.values())

    return {
        "status": "healthy" if all_healthy else "degraded",
        "version": __version__,
        "service": "bay-digital-dashboard",
        "checks": checks,
    }
