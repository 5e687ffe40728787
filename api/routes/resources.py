"""
Bootstrapped Resource Routes.

Thin endpoints over the two startup resources. They are the first-use
points where degraded mode surfaces again as a 503.
"""

import logging
import time

from fastapi import APIRouter

from api.dependencies import BrowserDep, DatabaseDep
from api.models.responses import BrowserResponse, DatabasePingResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/resources", tags=["Resources"])


@router.get(
    "/database/ping",
    response_model=DatabasePingResponse,
    summary="Database round trip",
    responses={
        200: {"description": "Database answered"},
        503: {"description": "Running without a database"},
    },
)
async def ping_database(handle: DatabaseDep) -> DatabasePingResponse:
    """Run a trivial query against the bootstrapped connection."""
    start = time.perf_counter()
    await handle.ping()
    return DatabasePingResponse(
        ok=True,
        host=handle.host,
        latency_ms=(time.perf_counter() - start) * 1000,
    )


@router.get(
    "/browser",
    response_model=BrowserResponse,
    summary="Browser executable",
    responses={
        200: {"description": "Browser executable available"},
        503: {"description": "Running without a browser"},
    },
)
async def browser_executable(browser: BrowserDep) -> BrowserResponse:
    """Report the browser executable this process will launch."""
    path, source = browser
    return BrowserResponse(executable_path=path, source=source or "unknown")
