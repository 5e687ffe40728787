"""
FastAPI Application Entry Point.

Initializes the FastAPI application with all routers, middleware,
exception handlers, and startup/shutdown events.

Preflight API - startup dependency bootstrap service.

This FastAPI application provides RESTful endpoints for:
- Health checks and readiness probes reporting degraded mode
- Access to the bootstrapped database handle and browser executable

See /api/docs for interactive Swagger documentation.

Launch with ``preflight serve`` or ``python -m api.main``. Both run the
bootstrap first and exit 1 without serving when the database outcome is
fatal. There is no module-level ASGI app: the application always needs a
bootstrap report.
"""

import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

import uvicorn
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from api.config import get_settings
from api.middleware import setup_middleware
from api.models.errors import ErrorCode, ErrorResponse, register_exception_handlers
from api.routes import api_router
from core.bootstrap import BootstrapReport, BootstrapSequence
from core.bootstrap.sequence import EXIT_OK

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)


# OpenAPI metadata
TAGS_METADATA = [
    {
        "name": "Health",
        "description": (
            "Health checks, readiness, and liveness probes. Readiness reports "
            "each bootstrapped resource and whether degraded mode is active."
        ),
    },
    {
        "name": "Resources",
        "description": (
            "Bootstrapped database handle and browser executable. Return 503 "
            "when the process is running without the resource."
        ),
    },
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan handler for startup and shutdown events.

    The bootstrap itself runs in ``serve_application`` before the server
    binds, so a fatal outcome never reaches the ASGI server.

    Shutdown:
    - Release the database handle (no-op if an interrupt already released it)
    """
    settings = get_settings()

    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Deployment mode: {settings.deployment_mode.value}")
    if getattr(app.state, "bootstrap", None) is None:
        logger.warning("Started without a bootstrap report, resources will report 503")

    logger.info("Application startup complete")

    yield  # Application runs here

    logger.info("Shutting down application...")

    report: Optional[BootstrapReport] = getattr(app.state, "bootstrap", None)
    if report is not None:
        await report.release()

    logger.info("Application shutdown complete")


def create_application(report: Optional[BootstrapReport] = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        report: Bootstrap report from a launcher that already ran the bootstrap

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Startup dependency bootstrap with degraded-mode fallback.",
        openapi_tags=TAGS_METADATA,
        lifespan=lifespan,
        docs_url="/api/docs" if settings.debug else None,
        redoc_url="/api/redoc" if settings.debug else None,
        openapi_url="/api/openapi.json" if settings.debug else None,
    )
    app.state.bootstrap = report

    # Configure logging level
    logging.getLogger().setLevel(settings.log_level.value)

    setup_middleware(app)
    register_exception_handlers(app)

    @app.exception_handler(404)
    async def not_found_handler(request: Request, exc: Exception) -> JSONResponse:
        """Handle 404 Not Found errors."""
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content=ErrorResponse(
                code=ErrorCode.NOT_FOUND,
                message=f"Path not found: {request.url.path}",
            ).model_dump(mode="json", exclude_none=True),
        )

    app.include_router(api_router)

    @app.get("/", include_in_schema=False)
    async def root() -> JSONResponse:
        """Root endpoint with API information."""
        return JSONResponse(
            content={
                "name": settings.app_name,
                "version": settings.app_version,
                "environment": settings.deployment_mode.value,
                "docs_url": "/api/docs" if settings.debug else None,
                "health_url": "/api/v1/health",
            }
        )

    logger.info(f"Application configured with {len(app.routes)} routes")

    return app


async def serve_application(
    sequence: BootstrapSequence,
    host: str,
    port: int,
    log_level: str = "info",
) -> int:
    """
    Bootstrap, then serve the API on the same event loop.

    The asyncpg connection is bound to the loop it was opened on, so the
    bootstrap and uvicorn share one loop.

    Args:
        sequence: Bootstrap sequence to run before binding
        host: Bind address
        port: Bind port
        log_level: uvicorn log level

    Returns:
        Process exit status: 1 on a fatal database outcome, otherwise 0
    """
    report = await sequence.run()
    if report.exit_code != EXIT_OK:
        logger.critical("Bootstrap failed, not starting the server")
        return report.exit_code

    config = uvicorn.Config(
        create_application(report),
        host=host,
        port=port,
        log_level=log_level,
    )
    try:
        await uvicorn.Server(config).serve()
    finally:
        await report.release()
    return EXIT_OK


def main() -> None:
    """Run the API server with settings from the environment."""
    settings = get_settings()
    exit_code = asyncio.run(
        serve_application(
            BootstrapSequence(settings.to_environment()),
            settings.host,
            settings.port,
            settings.log_level.value.lower(),
        )
    )
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
