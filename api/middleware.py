"""
FastAPI Middleware Components.

Provides correlation ID, request logging, and degraded-mode signalling
middleware for consistent request processing across the API.
"""

import logging
import uuid
from typing import List, Optional

from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.types import ASGIApp

logger = logging.getLogger(__name__)

DEGRADED_MODE_HEADER = "X-Degraded-Mode"


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """
    Middleware to add correlation ID to each request for tracing.

    Generates a unique ID for each request or uses one from the
    X-Correlation-ID header if provided.
    """

    def __init__(self, app: ASGIApp, header_name: str = "X-Correlation-ID") -> None:
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        """Process request and add correlation ID."""
        correlation_id = request.headers.get(self.header_name)
        if not correlation_id:
            correlation_id = f"req_{uuid.uuid4().hex[:12]}"

        request.state.correlation_id = correlation_id
        response = await call_next(request)
        response.headers[self.header_name] = correlation_id
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware to log incoming requests and responses.

    Logs request method, path, status code, and correlation ID.
    """

    def __init__(
        self,
        app: ASGIApp,
        exclude_paths: Optional[List[str]] = None,
    ) -> None:
        super().__init__(app)
        self.exclude_paths = exclude_paths or [
            "/api/v1/health",
            "/api/v1/health/live",
            "/api/v1/health/ready",
        ]

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        """Process request and log details."""
        if request.url.path in self.exclude_paths:
            return await call_next(request)

        method = request.method
        path = request.url.path
        correlation_id = getattr(request.state, "correlation_id", "unknown")

        logger.info(f"Request: {method} {path} | Correlation: {correlation_id}")
        response = await call_next(request)
        logger.info(
            f"Response: {method} {path} | "
            f"Status: {response.status_code} | "
            f"Correlation: {correlation_id}"
        )
        return response


class DegradedModeMiddleware(BaseHTTPMiddleware):
    """
    Marks every response while the process runs in degraded mode.

    Reads the degraded flag captured in the bootstrap report, so clients
    and proxies see the mode on each response, not only on health probes.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        response = await call_next(request)
        report = getattr(request.app.state, "bootstrap", None)
        if report is not None and report.degraded_mode:
            response.headers[DEGRADED_MODE_HEADER] = "true"
        return response


def setup_middleware(app: FastAPI) -> None:
    """
    Configure all middleware for the FastAPI application.

    Args:
        app: FastAPI application instance
    """
    # Middleware execute in reverse order of addition
    app.add_middleware(DegradedModeMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(CorrelationIdMiddleware)

    logger.info("Middleware configured successfully")
