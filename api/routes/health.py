"""
Health Check API Routes.

Provides health, readiness, and liveness endpoints for
monitoring and orchestration systems (Kubernetes, load balancers, etc.).

Degraded mode is reported here on every call so operators are never left
with a half-functional deployment without noticing.
"""

import logging
import time
from datetime import datetime, timezone
from typing import List

from fastapi import APIRouter, Request

from api.dependencies import SettingsDep
from api.models.responses import (
    HealthCheckComponent,
    HealthResponse,
    LivenessResponse,
    ReadinessResponse,
)
from core.bootstrap import BootstrapReport, ResolutionOutcome

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["Health"])

# Track application start time for uptime calculation
_start_time: float = time.time()


def get_uptime_seconds() -> float:
    """Get application uptime in seconds."""
    return time.time() - _start_time


def _outcome_component(name: str, outcome: ResolutionOutcome) -> HealthCheckComponent:
    if outcome.is_acquired:
        return HealthCheckComponent(
            name=name, status="healthy", message=f"{name.capitalize()} available", source=outcome.tier
        )
    if outcome.is_degraded:
        return HealthCheckComponent(name=name, status="degraded", message=outcome.reason)
    return HealthCheckComponent(name=name, status="unhealthy", message=outcome.reason)


async def check_database_health(report: BootstrapReport) -> HealthCheckComponent:
    """
    Check database connectivity.

    Returns:
        HealthCheckComponent with database status.
    """
    handle = report.database_handle
    if handle is None:
        return _outcome_component("database", report.database)

    start = time.perf_counter()
    try:
        await handle.ping()
        latency_ms = (time.perf_counter() - start) * 1000
        return HealthCheckComponent(
            name="database",
            status="healthy",
            latency_ms=latency_ms,
            message=f"Connected to {handle.host}",
            source=report.database.tier,
        )
    except Exception as e:
        latency_ms = (time.perf_counter() - start) * 1000
        logger.warning(f"Database health check failed: {e}")
        return HealthCheckComponent(
            name="database",
            status="unhealthy",
            latency_ms=latency_ms,
            message=str(e),
        )


def check_browser_health(report: BootstrapReport, override: bool) -> HealthCheckComponent:
    """
    Check browser executable availability.

    Returns:
        HealthCheckComponent with browser status.
    """
    if override:
        return HealthCheckComponent(
            name="browser", status="healthy", message="Executable override configured", source="override"
        )
    return _outcome_component("browser", report.browser)


def _get_report(request: Request):
    return getattr(request.app.state, "bootstrap", None)


@router.get(
    "",
    response_model=HealthResponse,
    summary="Basic health check",
    description="Returns basic health status, including whether degraded mode is active.",
    responses={
        200: {"description": "Service is running"},
    },
)
async def health_check(request: Request, settings: SettingsDep) -> HealthResponse:
    """
    Basic health check endpoint.

    Does not probe dependencies - use /health/ready for that.
    """
    report = _get_report(request)
    degraded_mode = bool(report and report.degraded_mode)
    healthy = (
        report is not None
        and not degraded_mode
        and report.database.is_acquired
        and (report.browser.is_acquired or bool(settings.binary_executable_path_override))
    )

    return HealthResponse(
        status="healthy" if healthy else "degraded",
        version=settings.app_version,
        environment=settings.deployment_mode.value,
        degraded_mode=degraded_mode,
        timestamp=datetime.now(timezone.utc),
    )


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    summary="Readiness probe",
    description=(
        "Checks if the service is ready to accept traffic and reports the "
        "state of each bootstrapped resource."
    ),
    responses={
        200: {"description": "Readiness report"},
    },
)
async def readiness_check(request: Request, settings: SettingsDep) -> ReadinessResponse:
    """
    Readiness probe for Kubernetes and load balancers.

    A degraded component does not make the service unready; only an
    unhealthy one does, or a missing bootstrap.
    """
    report = _get_report(request)
    if report is None:
        return ReadinessResponse(ready=False, timestamp=datetime.now(timezone.utc))

    components: List[HealthCheckComponent] = [
        await check_database_health(report),
        check_browser_health(report, bool(settings.binary_executable_path_override)),
    ]

    unhealthy_count = sum(1 for c in components if c.status == "unhealthy")
    for component in components:
        if component.status == "degraded":
            logger.warning(f"Readiness: {component.name} degraded ({component.message})")

    return ReadinessResponse(
        ready=unhealthy_count == 0,
        degraded_mode=report.degraded_mode,
        components=components,
        timestamp=datetime.now(timezone.utc),
    )


@router.get(
    "/live",
    response_model=LivenessResponse,
    summary="Liveness probe",
    description=(
        "Checks if the service process is alive. "
        "Used by Kubernetes to determine if the container should be restarted."
    ),
    responses={
        200: {"description": "Service is alive"},
    },
)
async def liveness_check() -> LivenessResponse:
    """
    Liveness probe for Kubernetes.

    Does not check dependencies - a degraded dependency should not
    cause the container to restart.
    """
    return LivenessResponse(
        alive=True,
        uptime_seconds=get_uptime_seconds(),
        timestamp=datetime.now(timezone.utc),
    )
