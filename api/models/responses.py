"""
API Response Models.

Pydantic models for health probes and resource endpoints.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class HealthCheckComponent(BaseModel):
    """Health check status for a component."""

    name: str = Field(..., description="Component name")
    status: str = Field(..., description="Status: healthy, degraded, unhealthy")
    latency_ms: Optional[float] = Field(
        default=None,
        description="Response latency in milliseconds",
    )
    message: Optional[str] = Field(
        default=None,
        description="Status message",
    )
    source: Optional[str] = Field(
        default=None,
        description="Acquisition tier that provided the resource",
    )


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Overall status: healthy or degraded")
    version: str = Field(..., description="API version")
    environment: str = Field(..., description="Deployment mode")
    degraded_mode: bool = Field(..., description="Whether degraded mode is active")
    timestamp: datetime = Field(..., description="Check timestamp")


class ReadinessResponse(BaseModel):
    """Readiness probe response."""

    ready: bool = Field(..., description="Whether service is ready")
    degraded_mode: bool = Field(default=False, description="Whether degraded mode is active")
    components: List[HealthCheckComponent] = Field(
        default_factory=list,
        description="Component statuses",
    )
    timestamp: datetime = Field(..., description="Check timestamp")


class LivenessResponse(BaseModel):
    """Liveness probe response."""

    alive: bool = Field(..., description="Whether service is alive")
    uptime_seconds: float = Field(..., description="Uptime in seconds")
    timestamp: datetime = Field(..., description="Check timestamp")


class BrowserResponse(BaseModel):
    """Browser executable in use by this process."""

    executable_path: str = Field(..., description="Absolute path of the browser executable")
    source: str = Field(..., description="'override' or the acquisition tier name")


class DatabasePingResponse(BaseModel):
    """Result of a round trip to the database."""

    ok: bool = Field(..., description="Whether the database answered")
    host: Optional[str] = Field(default=None, description="Database host")
    latency_ms: float = Field(..., description="Round-trip latency in milliseconds")
