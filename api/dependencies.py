"""
FastAPI Dependency Injection Setup.

Provides reusable dependencies for settings, the bootstrap report, and the
two bootstrapped resources. Resource dependencies fail with a 503 when the
process is running without the resource, and log a warning the first time
each missing capability is asked for.
"""

import logging
from typing import Annotated, Set, Tuple

from fastapi import Depends, Request

from api.config import Settings, get_settings
from api.models.errors import DegradedModeError, ErrorCode, ServiceUnavailableError
from core.bootstrap import BootstrapReport, DatabaseHandle

logger = logging.getLogger(__name__)

OVERRIDE_SOURCE = "override"

# Components whose degraded state has already been reported at first use
_first_use_warned: Set[str] = set()


# =============================================================================
# Settings Dependency
# =============================================================================


def get_app_settings() -> Settings:
    """
    Get application settings dependency.

    Returns:
        Cached Settings instance.
    """
    return get_settings()


SettingsDep = Annotated[Settings, Depends(get_app_settings)]


# =============================================================================
# Bootstrap Dependencies
# =============================================================================


def get_bootstrap_report(request: Request) -> BootstrapReport:
    """
    Get the bootstrap report attached to the application.

    Raises:
        ServiceUnavailableError: If bootstrap has not completed
    """
    report = getattr(request.app.state, "bootstrap", None)
    if report is None:
        raise ServiceUnavailableError(
            "Startup bootstrap has not completed",
            code=ErrorCode.BOOTSTRAP_INCOMPLETE,
        )
    return report


BootstrapDep = Annotated[BootstrapReport, Depends(get_bootstrap_report)]


def _warn_first_use(component: str, reason: str) -> None:
    if component in _first_use_warned:
        return
    _first_use_warned.add(component)
    logger.warning(
        f"DEGRADED MODE: {component} requested but unavailable ({reason}). "
        f"Requests that need it will fail with 503."
    )


def reset_first_use_warnings() -> None:
    """Forget which degraded components were already reported (for tests)."""
    _first_use_warned.clear()


def get_database_handle(report: BootstrapDep) -> DatabaseHandle:
    """
    Get the live database handle.

    Raises:
        DegradedModeError: If the process is running without a database
    """
    handle = report.database_handle
    if handle is None or handle.is_closed:
        reason = report.database.reason or "connection closed"
        _warn_first_use("database", reason)
        raise DegradedModeError("database", reason)
    return handle


DatabaseDep = Annotated[DatabaseHandle, Depends(get_database_handle)]


def get_browser_executable(report: BootstrapDep, settings: SettingsDep) -> Tuple[str, str]:
    """
    Pick the browser executable for this process.

    The explicit override always wins over the bootstrapped path.

    Returns:
        (executable_path, source) tuple

    Raises:
        DegradedModeError: If neither an override nor a resolved path exists
    """
    if settings.binary_executable_path_override:
        return settings.binary_executable_path_override, OVERRIDE_SOURCE

    path = report.browser_executable
    if path is None:
        reason = report.browser.reason or "unknown reason"
        _warn_first_use("browser", reason)
        raise DegradedModeError("browser", reason)
    return path, report.browser.tier


BrowserDep = Annotated[Tuple[str, str], Depends(get_browser_executable)]
