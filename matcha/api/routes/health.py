"""Health check endpoints for monitoring and deployment verification."""

import time

from fastapi import APIRouter, Response, status

from matcha.api.deps import CurrentUser
from matcha.api.middleware.latency_logging import get_latency_stats
from matcha.core.geolocation import get_geolocation_metrics
from matcha.core.supabase import check_database_connection
from matcha.schemas.auth import AuthenticatedResponse
from matcha.schemas.common import (
    CheckResult,
    HealthResponse,
    HealthStatus,
    MetricsResponse,
    ReadinessResponse,
)

router = APIRouter(tags=["health"])


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Liveness check",
    description="Basic health check to verify the service is running. Used by the orchestrator liveness check.",
)
async def health_check() -> HealthResponse:
    """Return basic health status without checking dependencies."""
    return HealthResponse(status=HealthStatus.HEALTHY)


@router.get(
    "/health/ready",
    response_model=ReadinessResponse,
    responses={
        200: {"description": "All dependencies healthy"},
        503: {"description": "One or more dependencies unhealthy"},
    },
    summary="Readiness check",
    description="Check if the database is reachable. Used by the orchestrator readiness check.",
)
async def readiness_check(response: Response) -> ReadinessResponse:
    """Check readiness of the database.

    Args:
        response: FastAPI response object for setting status code.

    Returns:
        ReadinessResponse: Status of all dependency checks.
    """
    start_time = time.perf_counter()
    db_result = await check_database_connection()
    latency_ms = (time.perf_counter() - start_time) * 1000

    checks = [
        CheckResult(
            name="database",
            healthy=db_result["healthy"],
            latency_ms=round(latency_ms, 2),
            error=db_result.get("error"),
        )
    ]

    all_healthy = all(check.healthy for check in checks)
    if not all_healthy:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return ReadinessResponse(
        status=HealthStatus.HEALTHY if all_healthy else HealthStatus.UNHEALTHY,
        checks=checks,
    )


@router.get(
    "/health/metrics",
    response_model=MetricsResponse,
    summary="Request and geolocation metrics",
    description="In-memory latency and geolocation stats since the process started. Health checks are not counted.",
)
async def metrics() -> MetricsResponse:
    latency = get_latency_stats()
    return MetricsResponse(
        requests=latency.get_stats(),
        requests_by_path=latency.get_stats_by_path(),
        geolocation=get_geolocation_metrics().get_stats(),
    )


@router.get(
    "/health/auth",
    response_model=AuthenticatedResponse,
    summary="Authenticated health check",
    description="Protected endpoint to verify authentication is working correctly.",
    responses={
        200: {"description": "Successfully authenticated"},
        401: {"description": "Authentication required or invalid token"},
    },
)
async def authenticated_check(user: CurrentUser) -> AuthenticatedResponse:
    """Return the user identified by the bearer token."""
    return AuthenticatedResponse(
        authenticated=True,
        user_id=user.user_id,
        email=user.email,
    )
